"""Tests for the connection manager, schema, database lifecycle and query cache."""

import pytest

from warden.database.database import Database
from warden.database.db_cache import DatabaseQueryCache
from warden.database.db_connection import ConnectionManager
from warden.database.db_schema import SCHEMA_VERSION


class _FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestDatabaseQueryCache:
    def test_set_and_get(self):
        cache = DatabaseQueryCache(ttl_seconds=10, clock=_FakeClock())
        cache.set("rules:1", ["a"])

        assert cache.get("rules:1") == ["a"]
        assert cache.get("rules:2") is None

    def test_entries_expire(self):
        clock = _FakeClock()
        cache = DatabaseQueryCache(ttl_seconds=10, clock=clock)
        cache.set("config:1", "value")

        clock.now += 10

        assert cache.contains("config:1") is False
        assert cache.get_db_cache_stats()["size"] == 0

    def test_cached_none_is_distinguishable_from_miss(self):
        cache = DatabaseQueryCache(ttl_seconds=10, clock=_FakeClock())
        cache.set("config:1", None)

        assert cache.contains("config:1") is True
        assert cache.contains("config:2") is False

    def test_invalidate_by_pattern_and_all(self):
        cache = DatabaseQueryCache(ttl_seconds=10, clock=_FakeClock())
        cache.set("rules:1", [])
        cache.set("rules:2", [])
        cache.set("config:1", None)

        assert cache.invalidate("rules:") == 2
        assert cache.invalidate() == 1
        assert cache.get_db_cache_stats() == {"size": 0, "ttl_seconds": 10}


class TestConnectionManager:
    def test_connection_requires_open(self):
        with pytest.raises(RuntimeError):
            ConnectionManager().connection

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_error(self, db):
        with pytest.raises(ValueError):
            async with db.transaction() as conn:
                await conn.execute(
                    "INSERT INTO automod_rules (id, guild_id, name, patterns, targets, actions, created_at) "
                    "VALUES ('r', '1', 'n', '[]', '[]', '[]', 0)"
                )
                raise ValueError("abort")

        async with db.read() as conn:
            async with conn.execute("SELECT COUNT(*) FROM automod_rules") as cursor:
                row = await cursor.fetchone()
        assert row[0] == 0

    @pytest.mark.asyncio
    async def test_schema_version_recorded(self, db):
        async with db.read() as conn:
            async with conn.execute("SELECT version FROM schema_version") as cursor:
                rows = await cursor.fetchall()
        assert [row["version"] for row in rows] == [SCHEMA_VERSION]


class TestDatabaseLifecycle:
    @pytest.mark.asyncio
    async def test_initialize_and_shutdown(self, tmp_path):
        manager = ConnectionManager()
        database = Database(tmp_path / "nested" / "warden.db", connection=manager)

        assert await database.initialize() is True
        assert await database.initialize() is True
        assert manager.is_open is True
        assert (tmp_path / "nested" / "warden.db").exists()

        await database.shutdown()
        assert manager.is_open is False

    @pytest.mark.asyncio
    async def test_initialize_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory", encoding="utf-8")
        manager = ConnectionManager()

        database = Database(blocker / "warden.db", connection=manager)

        assert await database.initialize() is False
        assert manager.is_open is False
