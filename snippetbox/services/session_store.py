# snippetbox/services/session_store.py
"""
Session store backends.

MemorySessionStore keeps records in process memory and suits a single
worker and the tests. RedisSessionStore is the durable, shared backend.
Both are safe for concurrent use; two requests committing the same token
resolve as last writer wins.
"""
import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from snippetbox.core.security.session import SessionRecord
from snippetbox.services.redis_service import RedisService

logger = logging.getLogger(__name__)


class MemorySessionStore:
    """In-process session store with periodic cleanup of expired records"""

    def __init__(self, cleanup_interval: timedelta = timedelta(minutes=5)):
        self._records: Dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()

        self._cleanup_interval = cleanup_interval
        self._last_cleanup = datetime.now(timezone.utc)

    async def find(self, token: str) -> Optional[SessionRecord]:
        async with self._lock:
            record = self._records.get(token)
            if record is None:
                return None
            if record.is_expired():
                del self._records[token]
                return None
            # Hand out a copy so a request never mutates the stored record
            return SessionRecord(dict(record.values), record.deadline)

    async def commit(self, token: str, record: SessionRecord) -> None:
        async with self._lock:
            self._records[token] = SessionRecord(dict(record.values), record.deadline)
            self._cleanup_expired()

    async def delete(self, token: str) -> None:
        async with self._lock:
            self._records.pop(token, None)

    def __len__(self) -> int:
        return len(self._records)

    def _cleanup_expired(self) -> None:
        """Drop expired records, at most once per cleanup interval. Caller holds the lock."""
        now = datetime.now(timezone.utc)
        if now - self._last_cleanup < self._cleanup_interval:
            return

        expired = [token for token, record in self._records.items() if record.is_expired(now)]
        for token in expired:
            del self._records[token]

        self._last_cleanup = now

        if expired:
            logger.info(f"🧹 Cleaned up {len(expired)} expired sessions")


class RedisSessionStore:
    """Session records as JSON values with a TTL matching the session deadline"""

    def __init__(self, redis_service: RedisService, prefix: str = "session:"):
        self.redis = redis_service
        self.prefix = prefix

    def _key(self, token: str) -> str:
        return f"{self.prefix}{token}"

    async def find(self, token: str) -> Optional[SessionRecord]:
        data = await self.redis.get(self._key(token))
        if not isinstance(data, dict):
            return None

        record = SessionRecord(
            values=data.get("values", {}),
            deadline=datetime.fromtimestamp(data["deadline"], tz=timezone.utc)
        )
        return None if record.is_expired() else record

    async def commit(self, token: str, record: SessionRecord) -> None:
        remaining = (record.deadline - datetime.now(timezone.utc)).total_seconds()
        if remaining <= 0:
            await self.delete(token)
            return

        await self.redis.set(
            self._key(token),
            {"values": record.values, "deadline": record.deadline.timestamp()},
            ttl=math.ceil(remaining)
        )

    async def delete(self, token: str) -> None:
        await self.redis.delete(self._key(token))
