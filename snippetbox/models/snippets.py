# snippetbox/models/snippets.py
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Protocol

from pydantic import BaseModel

from snippetbox.core.exceptions import NoRecordError

LATEST_LIMIT = 10


class Snippet(BaseModel):
    id: int
    title: str
    content: str
    created: datetime
    expires: datetime


class SnippetModel(Protocol):
    async def insert(self, title: str, content: str, expires: int) -> int:
        ...

    async def get(self, snippet_id: int) -> Snippet:
        ...

    async def latest(self) -> List[Snippet]:
        ...


class MemorySnippetModel:
    """Snippet storage in process memory"""

    def __init__(self):
        self._snippets: Dict[int, Snippet] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def insert(self, title: str, content: str, expires: int) -> int:
        """Store a snippet that expires after `expires` days, return its id"""
        now = datetime.now(timezone.utc)
        async with self._lock:
            snippet_id = self._next_id
            self._next_id += 1
            self._snippets[snippet_id] = Snippet(
                id=snippet_id,
                title=title,
                content=content,
                created=now,
                expires=now + timedelta(days=expires)
            )
        return snippet_id

    async def get(self, snippet_id: int) -> Snippet:
        """
        Raises:
            NoRecordError: unknown or expired snippet
        """
        snippet = self._snippets.get(snippet_id)
        if snippet is None or snippet.expires <= datetime.now(timezone.utc):
            raise NoRecordError("snippet", snippet_id)
        return snippet

    async def latest(self) -> List[Snippet]:
        """The newest unexpired snippets, newest first"""
        now = datetime.now(timezone.utc)
        live = [s for s in self._snippets.values() if s.expires > now]
        live.sort(key=lambda s: s.id, reverse=True)
        return live[:LATEST_LIMIT]
