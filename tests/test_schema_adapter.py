"""
Tests for the schema adapter probe and its memoization.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tracerpc.trace.schema import (
    BLOCKS_TABLE_EXISTS_SQL,
    CALL_TYPE_COLUMN_SQL,
    HASH_COLUMN_TYPE_SQL,
    SchemaAdapter,
)
from tracerpc.trace.types import SchemaProfile


def make_db(call_type=1, hash_type="bytea", blocks=1):
    answers = {
        CALL_TYPE_COLUMN_SQL: call_type,
        HASH_COLUMN_TYPE_SQL: hash_type,
        BLOCKS_TABLE_EXISTS_SQL: blocks,
    }

    async def fetchval(query, *args):
        await asyncio.sleep(0)
        return answers[query]

    db = MagicMock()
    db.fetchval = AsyncMock(side_effect=fetchval)
    return db


class TestSchemaProbe:
    @pytest.mark.asyncio
    async def test_modern_schema(self):
        adapter = SchemaAdapter(make_db())
        profile = await adapter.profile()
        assert profile == SchemaProfile(
            has_normalized_call_type=True,
            transaction_hash_is_binary=True,
            has_blocks_table=True,
        )

    @pytest.mark.asyncio
    async def test_legacy_schema(self):
        adapter = SchemaAdapter(make_db(call_type=None, hash_type="character varying", blocks=None))
        profile = await adapter.profile()
        assert profile.has_normalized_call_type is False
        assert profile.transaction_hash_is_binary is False
        assert profile.has_blocks_table is False

    @pytest.mark.asyncio
    async def test_unknown_hash_type_is_text(self):
        adapter = SchemaAdapter(make_db(hash_type=None))
        assert (await adapter.profile()).transaction_hash_is_binary is False


class TestSchemaMemoization:
    @pytest.mark.asyncio
    async def test_probe_runs_once(self):
        db = make_db()
        adapter = SchemaAdapter(db)
        assert adapter.cached is None

        first = await adapter.profile()
        second = await adapter.profile()

        assert first is second
        assert adapter.cached is first
        assert db.fetchval.await_count == 3

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_probe(self):
        db = make_db()
        adapter = SchemaAdapter(db)

        profiles = await asyncio.gather(*(adapter.profile() for _ in range(10)))

        assert all(p is profiles[0] for p in profiles)
        assert db.fetchval.await_count == 3

    @pytest.mark.asyncio
    async def test_failed_probe_is_not_cached(self):
        db = make_db()
        healthy = db.fetchval.side_effect
        db.fetchval.side_effect = ConnectionError("store down")
        adapter = SchemaAdapter(db)

        with pytest.raises(ConnectionError):
            await adapter.profile()
        assert adapter.cached is None

        db.fetchval.side_effect = healthy
        profile = await adapter.profile()
        assert profile.transaction_hash_is_binary is True
        assert adapter.cached is profile
