# snippetbox/services/redis_service.py
"""
Redis Service for the session backend.

Async-only wrapper around redis.asyncio with:
- JSON serialization of stored values
- TTL support
- fail-closed error handling: every failure raises RedisServiceError
"""
import os
import json
import redis.asyncio as redis
from typing import Optional, Any
from dataclasses import dataclass
import logging

from snippetbox.core.service_base import BaseService, ServiceConfig
from snippetbox.core.exceptions import RedisServiceError, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class RedisConfig(ServiceConfig):
    """Connection settings for the session backend"""
    url: Optional[str] = None
    decode_responses: bool = True
    socket_timeout: float = 5.0
    max_connections: int = 50
    retry_on_timeout: bool = True
    health_check_interval: int = 30


class RedisService(BaseService[RedisConfig]):
    """
    Async Redis service used as a key/value store with expiry.
    """

    def __init__(self, config: Optional[RedisConfig] = None):
        """
        Args:
            config: Redis configuration. If not provided, REDIS_URL is read
                from the environment.
        """
        if config is None:
            config = RedisConfig(url=os.environ.get("REDIS_URL"))

        super().__init__(config, logger)

    def _validate_config(self) -> None:
        """A URL is mandatory: there is no degraded mode for sessions"""
        super()._validate_config()

        if not self.config.url:
            raise ConfigurationError("No Redis URL configured. Set REDIS_URL.", component="redis")

    async def _initialize_client(self) -> redis.Redis:
        """Create the client and ping the server"""
        client = redis.from_url(
            self.config.url,
            decode_responses=self.config.decode_responses,
            socket_timeout=self.config.socket_timeout,
            max_connections=self.config.max_connections,
            retry_on_timeout=self.config.retry_on_timeout,
            health_check_interval=self.config.health_check_interval
        )

        try:
            await client.ping()
        except Exception as e:
            await client.aclose()
            raise RedisServiceError(f"Failed to connect to Redis: {e}", operation="ping") from e

        self.logger.info("Redis connection successful")
        return client

    async def get(self, key: str, deserialize_json: bool = True) -> Any:
        """
        Read a value, decoding JSON where possible.

        Returns:
            The stored value, or None if the key does not exist

        Raises:
            RedisServiceError: If the read fails
        """
        await self.ensure_initialized()

        try:
            value = await self._client.get(key)
        except Exception as e:
            raise RedisServiceError(f"Redis get failed: {e}", key=key, operation="get") from e

        if value is None or not deserialize_json or not isinstance(value, str):
            return value

        try:
            return json.loads(value)
        except json.JSONDecodeError:
            # Plain string value
            return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Store a value. Anything but str/bytes is stored as JSON.

        Args:
            key: The key to set
            value: The value to store
            ttl: Seconds until the key expires, None for no expiry

        Raises:
            RedisServiceError: If the write fails
        """
        await self.ensure_initialized()

        if not isinstance(value, (str, bytes)):
            value = json.dumps(value)

        try:
            if ttl:
                await self._client.setex(key, ttl, value)
            else:
                await self._client.set(key, value)
        except Exception as e:
            raise RedisServiceError(f"Redis set failed: {e}", key=key, operation="set") from e

    async def delete(self, *keys: str) -> int:
        """
        Returns:
            Number of keys deleted

        Raises:
            RedisServiceError: If the delete fails
        """
        if not keys:
            return 0

        await self.ensure_initialized()

        try:
            return await self._client.delete(*keys)
        except Exception as e:
            raise RedisServiceError(f"Redis delete failed: {e}", key=keys[0], operation="delete") from e

    async def _cleanup(self) -> None:
        """Close the Redis connection pool"""
        if self._client:
            await self._client.aclose()
