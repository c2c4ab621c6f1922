# snippetbox/models/users.py
"""
User accounts.

Passwords are stored as bcrypt hashes. Hashing runs in a worker thread so a
signup or login does not stall the event loop.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

import bcrypt
from pydantic import BaseModel

from snippetbox.core.exceptions import DuplicateEmailError, InvalidCredentialsError

logger = logging.getLogger(__name__)


class User(BaseModel):
    id: int
    name: str
    email: str
    hashed_password: bytes
    created: datetime


class UserModel(Protocol):
    async def insert(self, name: str, email: str, password: str) -> int:
        ...

    async def authenticate(self, email: str, password: str) -> int:
        ...

    async def exists(self, user_id: int) -> bool:
        ...


def hash_password(password: str, rounds: int = 12) -> bytes:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))


def check_password(password: str, hashed: bytes) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed)


class MemoryUserModel:
    """User storage in process memory. Emails are unique, case-insensitively."""

    def __init__(self, bcrypt_rounds: int = 12):
        self.bcrypt_rounds = bcrypt_rounds
        self._users: Dict[int, User] = {}
        self._by_email: Dict[str, int] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def insert(self, name: str, email: str, password: str) -> int:
        """
        Raises:
            DuplicateEmailError: email already registered
        """
        hashed = await asyncio.to_thread(hash_password, password, self.bcrypt_rounds)
        key = email.lower()

        async with self._lock:
            if key in self._by_email:
                raise DuplicateEmailError(email)

            user_id = self._next_id
            self._next_id += 1
            self._users[user_id] = User(
                id=user_id,
                name=name,
                email=email,
                hashed_password=hashed,
                created=datetime.now(timezone.utc)
            )
            self._by_email[key] = user_id

        logger.info(f"👤 Created user {user_id}")
        return user_id

    async def authenticate(self, email: str, password: str) -> int:
        """
        Return the id of the user with these credentials.

        Raises:
            InvalidCredentialsError: unknown email or wrong password
        """
        user = self._get_by_email(email)
        if user is None:
            raise InvalidCredentialsError()

        if not await asyncio.to_thread(check_password, password, user.hashed_password):
            raise InvalidCredentialsError()

        return user.id

    async def exists(self, user_id: int) -> bool:
        return user_id in self._users

    def _get_by_email(self, email: str) -> Optional[User]:
        user_id = self._by_email.get(email.lower())
        return self._users.get(user_id) if user_id is not None else None
