"""Tests for the key/value storage backends."""
import asyncio
import threading

import pytest

from storage import MemoryStorage, RedisStorage, SQLiteStorage, create_storage


def run(coro):
    return asyncio.run(coro)


class FakeRedis:
    """In-process stand-in for a redis.asyncio client."""

    def __init__(self):
        self.items = {}

    async def get(self, key):
        return self.items.get(key)

    async def set(self, key, value):
        self.items[key] = value

    async def delete(self, key):
        self.items.pop(key, None)


class BrokenRedis:
    async def get(self, key):
        raise ConnectionError("connection refused")

    async def set(self, key, value):
        raise ConnectionError("connection refused")

    async def delete(self, key):
        raise ConnectionError("connection refused")


@pytest.fixture(scope="function")
def sqlite_url(tmp_path):
    return f"sqlite:///{tmp_path / 'healthtracker.db'}"


def test_memory_storage():
    storage = MemoryStorage()
    assert run(storage.get("missing")) is None
    assert run(storage.set("key", "value")) is True
    assert run(storage.get("key")) == "value"
    assert run(storage.remove("key")) is True
    assert run(storage.get("key")) is None


def test_sqlite_storage_round_trip(sqlite_url):
    storage = SQLiteStorage(sqlite_url)
    assert run(storage.get("key")) is None
    assert run(storage.set("key", '{"a": 1}')) is True
    assert run(storage.set("key", '{"a": 2}')) is True
    assert run(storage.get("key")) == '{"a": 2}'


def test_sqlite_storage_persists_across_instances(sqlite_url):
    run(SQLiteStorage(sqlite_url).set("key", "value"))
    assert run(SQLiteStorage(sqlite_url).get("key")) == "value"


def test_sqlite_storage_remove(sqlite_url):
    storage = SQLiteStorage(sqlite_url)
    run(storage.set("key", "value"))
    assert run(storage.remove("key")) is True
    assert run(storage.remove("key")) is True
    assert run(storage.get("key")) is None


def test_sqlite_storage_runs_sessions_off_the_event_loop(sqlite_url, monkeypatch):
    threads = []
    real_get = SQLiteStorage._get

    def recording_get(self, key):
        threads.append(threading.get_ident())
        return real_get(self, key)

    monkeypatch.setattr(SQLiteStorage, "_get", recording_get)
    storage = SQLiteStorage(sqlite_url)
    run(storage.set("key", "value"))

    assert run(storage.get("key")) == "value"
    assert threads and threads[0] != threading.get_ident()


def test_sqlite_storage_unavailable_is_soft():
    storage = SQLiteStorage("notadriver://nowhere")
    assert run(storage.get("key")) is None
    assert run(storage.set("key", "value")) is False
    assert run(storage.remove("key")) is False


def test_redis_storage_with_client():
    client = FakeRedis()
    storage = RedisStorage(client=client)
    assert run(storage.set("key", "value")) is True
    assert client.items == {"key": "value"}
    assert run(storage.get("key")) == "value"
    assert run(storage.remove("key")) is True
    assert run(storage.get("key")) is None


def test_redis_storage_without_url(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    storage = RedisStorage()
    assert run(storage.get("key")) is None
    assert run(storage.set("key", "value")) is False
    assert run(storage.remove("key")) is False


def test_redis_storage_errors_are_soft():
    storage = RedisStorage(client=BrokenRedis())
    assert run(storage.get("key")) is None
    assert run(storage.set("key", "value")) is False
    assert run(storage.remove("key")) is False


def test_create_storage_from_argument():
    assert isinstance(create_storage("memory"), MemoryStorage)
    assert isinstance(create_storage("Redis"), RedisStorage)


def test_create_storage_from_environment(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    assert isinstance(create_storage(), MemoryStorage)

    monkeypatch.delenv("STORAGE_BACKEND")
    assert isinstance(create_storage(), SQLiteStorage)


def test_create_storage_unknown_backend():
    with pytest.raises(ValueError):
        create_storage("floppy")
