"""Key/value storage backends.

Every backend exposes the same async ``get``/``set``/``remove`` calls, whether
the medium underneath is synchronous (a dict, a local SQLite file) or
asynchronous (Redis). Storage is best effort: a missing or failing medium is
logged, ``get`` reports the key as absent and ``set``/``remove`` return False.
The record store decides what to do with a write that did not land.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from datetime import UTC, datetime

from sqlmodel import Session

from db import create_db_and_tables, create_db_engine
from models import StorageItem

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    name = "base"

    @abstractmethod
    async def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> bool:
        ...

    @abstractmethod
    async def remove(self, key: str) -> bool:
        ...


class MemoryStorage(StorageBackend):
    """Same-process dict. Nothing survives a restart."""

    name = "memory"

    def __init__(self, initial: dict[str, str] | None = None):
        self._items = dict(initial or {})

    async def get(self, key: str) -> str | None:
        try:
            return await asyncio.to_thread(self._get, key)
        except Exception as e:
            logger.warning(f"SQLite storage not available for get({key}): {e}")
            return None

    async def set(self, key: str, value: str) -> bool:
        try:
            await asyncio.to_thread(self._set, key, value)
            return True
        except Exception as e:
            logger.warning(f"SQLite storage not available for set({key}): {e}")
            return False

    async def remove(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self._remove, key)
            return True
        except Exception as e:
            logger.warning(f"SQLite storage not available for remove({key}): {e}")
            return False

    # Sessions block, so they run in a worker thread off the event loop
    def _get(self, key: str) -> str | None:
        with Session(self.engine) as session:
            item = session.get(StorageItem, key)
            return item.value if item else None

    def _set(self, key: str, value: str) -> None:
        with Session(self.engine) as session:
            item = session.get(StorageItem, key)
            if item:
                item.value = value
                item.updated_at = datetime.now(UTC)
            else:
                item = StorageItem(key=key, value=value)
            session.add(item)
            session.commit()

    def _remove(self, key: str) -> None:
        with Session(self.engine) as session:
            item = session.get(StorageItem, key)
            if item:
                session.delete(item)
                session.commit()


class RedisStorage(StorageBackend):
    """Asynchronous, possibly cross-process medium.

    The redis client is imported on first use so that a platform without the
    library (or without a configured URL) degrades to "no data" instead of
    failing at import time.
    """

    name = "redis"

    def __init__(self, url: str | None = None, client=None):
        self._url = url or os.getenv("REDIS_URL")
        self._client = client
        self._unavailable = False

    async def _get_client(self):
        if self._client is not None:
            return self._client
        if self._unavailable:
            return None
        if not self._url:
            logger.warning("REDIS_URL not set; redis storage not available")
            self._unavailable = True
            return None
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            logger.warning(f"redis storage not available: {e}")
            self._unavailable = True
            return None
        self._client = aioredis.Redis.from_url(self._url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> str | None:
        try:
            client = await self._get_client()
            if client:
                return await client.get(key)
        except Exception as e:
            logger.warning(f"Error getting item from redis storage: {e}")
        return None

    async def set(self, key: str, value: str) -> bool:
        try:
            client = await self._get_client()
            if client:
                await client.set(key, value)
                return True
        except Exception as e:
            logger.warning(f"Error setting item in redis storage: {e}")
        return False

    async def remove(self, key: str) -> bool:
        try:
            client = await self._get_client()
            if client:
                await client.delete(key)
                return True
        except Exception as e:
            logger.warning(f"Error removing item from redis storage: {e}")
        return False


BACKENDS = {
    MemoryStorage.name: MemoryStorage,
    SQLiteStorage.name: SQLiteStorage,
    RedisStorage.name: RedisStorage,
}


def create_storage(backend: str | None = None) -> StorageBackend:
    """Pick the storage backend once, from the argument or STORAGE_BACKEND."""
    backend = (backend or os.getenv("STORAGE_BACKEND", SQLiteStorage.name)).strip().lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown storage backend '{backend}'. Use one of: {sorted(BACKENDS)}")
    logger.info(f"STORAGE_BACKEND={backend}")
    return BACKENDS[backend]()
