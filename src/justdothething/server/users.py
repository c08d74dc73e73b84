"""Application-side user records and the short-lived cache in front of them."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 5 * 60.0


class UserRecord(BaseModel):
    id: str
    settings: dict = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class UserStore(ABC):
    """Persistent user records keyed by identity-provider id."""

    @abstractmethod
    async def upsert(self, user_id: str) -> UserRecord:
        """Return the record for ``user_id``, creating it with empty settings."""
        ...

    @abstractmethod
    async def save_settings(self, user_id: str, settings: dict) -> UserRecord:
        ...


class InMemoryUserStore(UserStore):
    def __init__(self) -> None:
        self._records: dict[str, UserRecord] = {}

    async def upsert(self, user_id: str) -> UserRecord:
        record = self._records.get(user_id)
        if record is None:
            record = UserRecord(id=user_id)
            self._records[user_id] = record
            logger.info("Created user record %s", user_id)
        return record.model_copy(deep=True)

    async def save_settings(self, user_id: str, settings: dict) -> UserRecord:
        record = self._records.get(user_id) or UserRecord(id=user_id)
        record = record.model_copy(update={"settings": dict(settings), "updated_at": datetime.now()})
        self._records[user_id] = record
        return record.model_copy(deep=True)


class UserCache:
    """TTL cache over a ``UserStore`` so each request does not hit storage."""

    def __init__(
        self,
        store: UserStore,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, UserRecord]] = {}

    @property
    def store(self) -> UserStore:
        return self._store

    async def get(self, user_id: str) -> UserRecord:
        entry = self._entries.get(user_id)
        now = self._clock()
        if entry is not None and entry[0] > now:
            return entry[1]
        record = await self._store.upsert(user_id)
        self._entries[user_id] = (now + self._ttl, record)
        return record

    def put(self, record: UserRecord) -> None:
        self._entries[record.id] = (self._clock() + self._ttl, record)

    def invalidate(self, user_id: str) -> None:
        self._entries.pop(user_id, None)
