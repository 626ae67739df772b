"""
Tests for the trace engine's primary path and its empty-result fallback tree.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tracerpc.config.loader import TraceConfig
from tracerpc.exceptions import QueryTimeoutError, TraceNotFound, TraceNotReady
from tracerpc.trace.engine import TraceEngine
from tracerpc.trace.readiness import ReadinessOracle
from tracerpc.trace.types import Existence, TraceRow, UpstreamTransaction

TX_HASH = "0x" + "ab" * 32


def make_row(position=0, trace_address="{}"):
    return TraceRow(
        transaction_hash=bytes.fromhex("ab" * 32),
        block_hash=bytes.fromhex("cd" * 32),
        block_number=5,
        transaction_position=position,
        call_type="call",
        from_address=bytes.fromhex("11" * 20),
        to_address=bytes.fromhex("22" * 20),
        value=0,
        gas=21000,
        gas_used=21000,
        input=b"",
        output=b"",
        error=None,
        trace_address=trace_address,
        trace_index=0,
    )


def make_queries(
    rows=None,
    block_has_transactions=False,
    in_blocks_table=False,
    stored=(False, None),
    total=0,
    traced=0,
    tx_has_traces=False,
):
    queries = MagicMock()
    queries.block_traces = AsyncMock(return_value=rows or [])
    queries.transaction_traces = AsyncMock(return_value=rows or [])
    queries.block_has_transactions = AsyncMock(return_value=block_has_transactions)
    queries.block_in_blocks_table = AsyncMock(return_value=in_blocks_table)
    queries.find_transaction = AsyncMock(return_value=stored)
    queries.block_transaction_count = AsyncMock(return_value=total)
    queries.block_traced_transaction_count = AsyncMock(return_value=traced)
    queries.transaction_has_traces = AsyncMock(return_value=tx_has_traces)
    return queries


def make_upstream(block=Existence.EXISTS, tx=None, head=None, block_tx_count=None):
    upstream = MagicMock()
    upstream.block_exists = AsyncMock(return_value=block)
    upstream.get_transaction = AsyncMock(return_value=tx or UpstreamTransaction(Existence.UNKNOWN))
    upstream.head_height = AsyncMock(return_value=head)
    upstream.block_transaction_count = AsyncMock(return_value=block_tx_count)
    return upstream


def make_engine(queries, upstream, config=None) -> TraceEngine:
    readiness = ReadinessOracle(config or TraceConfig(), queries, upstream)
    return TraceEngine(queries, upstream, readiness)


# ═══════════════════════════════════════════════════════════════════════
# trace_block
# ═══════════════════════════════════════════════════════════════════════

class TestTraceBlock:
    @pytest.mark.asyncio
    async def test_rows_returned_without_fallback(self):
        queries = make_queries(rows=[make_row(0), make_row(1)])
        upstream = make_upstream()
        engine = make_engine(queries, upstream, TraceConfig(ready_mode="counts"))

        traces = await engine.trace_block(5)

        assert [t["transactionPosition"] for t in traces] == [0, 1]
        queries.block_has_transactions.assert_not_awaited()
        queries.block_transaction_count.assert_not_awaited()
        upstream.block_exists.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_block_missing_everywhere(self):
        upstream = make_upstream(block=Existence.MISSING)
        engine = make_engine(make_queries(), upstream)

        with pytest.raises(TraceNotFound) as exc_info:
            await engine.trace_block(1)
        assert str(exc_info.value) == "Block not found"
        upstream.block_exists.assert_awaited_once_with("0x1")

    @pytest.mark.asyncio
    async def test_upstream_unknown_is_not_missing(self):
        engine = make_engine(make_queries(), make_upstream(block=Existence.UNKNOWN))
        assert await engine.trace_block(1) == []

    @pytest.mark.asyncio
    async def test_stored_block_skips_upstream(self):
        upstream = make_upstream(block=Existence.MISSING)
        engine = make_engine(make_queries(block_has_transactions=True), upstream)

        assert await engine.trace_block(5) == []
        upstream.block_exists.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blocks_table_skips_upstream(self):
        upstream = make_upstream(block=Existence.MISSING)
        engine = make_engine(make_queries(in_blocks_table=True), upstream)

        assert await engine.trace_block(5) == []
        upstream.block_exists.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_counts_pending(self):
        queries = make_queries(block_has_transactions=True, total=3, traced=2)
        engine = make_engine(queries, make_upstream(), TraceConfig(ready_mode="counts"))

        with pytest.raises(TraceNotReady) as exc_info:
            await engine.trace_block(5)
        assert exc_info.value.data == {"ready": False, "reason": "traces_pending"}

    @pytest.mark.asyncio
    async def test_counts_ready_empty(self):
        queries = make_queries(block_has_transactions=True, total=3, traced=3)
        engine = make_engine(queries, make_upstream(), TraceConfig(ready_mode="counts"))
        assert await engine.trace_block(5) == []

    @pytest.mark.asyncio
    async def test_height_not_ready(self):
        engine = make_engine(make_queries(), make_upstream(), TraceConfig(ready_height=100))

        with pytest.raises(TraceNotReady) as exc_info:
            await engine.trace_block(200)
        assert exc_info.value.data == {"traceReadyHeight": 100}

    @pytest.mark.asyncio
    async def test_query_timeout_propagates(self):
        queries = make_queries()
        queries.block_traces.side_effect = QueryTimeoutError("trace_block", 15.0)
        engine = make_engine(queries, make_upstream())

        with pytest.raises(QueryTimeoutError):
            await engine.trace_block(5)
        queries.block_has_transactions.assert_not_awaited()


# ═══════════════════════════════════════════════════════════════════════
# trace_transaction
# ═══════════════════════════════════════════════════════════════════════

class TestTraceTransaction:
    @pytest.mark.asyncio
    async def test_rows_returned(self):
        queries = make_queries(rows=[make_row(0, "{}"), make_row(0, "{0}")])
        engine = make_engine(queries, make_upstream())

        traces = await engine.trace_transaction(TX_HASH)

        assert [t["traceAddress"] for t in traces] == [[], [0]]
        queries.find_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hash_lowercased(self):
        queries = make_queries()
        engine = make_engine(queries, make_upstream())

        await engine.trace_transaction("0x" + "AB" * 32)
        queries.transaction_traces.assert_awaited_once_with(TX_HASH)

    @pytest.mark.asyncio
    async def test_stored_without_traces_mode_none(self):
        upstream = make_upstream()
        engine = make_engine(make_queries(stored=(True, 5)), upstream)

        assert await engine.trace_transaction(TX_HASH) == []
        upstream.get_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stored_counts_pending(self):
        queries = make_queries(stored=(True, 5), tx_has_traces=False)
        engine = make_engine(queries, make_upstream(), TraceConfig(ready_mode="counts"))

        with pytest.raises(TraceNotReady) as exc_info:
            await engine.trace_transaction(TX_HASH)
        assert exc_info.value.data["reason"] == "traces_pending"
        queries.block_transaction_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stored_height_uses_block(self):
        engine = make_engine(make_queries(stored=(True, 150)), make_upstream(), TraceConfig(ready_height=100))

        with pytest.raises(TraceNotReady) as exc_info:
            await engine.trace_transaction(TX_HASH)
        assert exc_info.value.data == {"traceReadyHeight": 100}

    @pytest.mark.asyncio
    async def test_stored_without_block_number(self):
        engine = make_engine(make_queries(stored=(True, None)), make_upstream(), TraceConfig(ready_height=100))
        assert await engine.trace_transaction(TX_HASH) == []

    @pytest.mark.asyncio
    async def test_missing_upstream(self):
        upstream = make_upstream(tx=UpstreamTransaction(Existence.MISSING))
        engine = make_engine(make_queries(), upstream)

        with pytest.raises(TraceNotFound) as exc_info:
            await engine.trace_transaction(TX_HASH)
        assert str(exc_info.value) == "Transaction not found"

    @pytest.mark.asyncio
    async def test_upstream_unknown(self):
        engine = make_engine(make_queries(), make_upstream(), TraceConfig(ready_mode="counts"))
        assert await engine.trace_transaction(TX_HASH) == []

    @pytest.mark.asyncio
    async def test_upstream_pending_transaction(self):
        upstream = make_upstream(tx=UpstreamTransaction(Existence.EXISTS, None))
        engine = make_engine(make_queries(), upstream, TraceConfig(ready_mode="counts"))
        assert await engine.trace_transaction(TX_HASH) == []

    @pytest.mark.asyncio
    async def test_counts_store_missing_mined_transaction(self):
        upstream = make_upstream(tx=UpstreamTransaction(Existence.EXISTS, 42))
        engine = make_engine(make_queries(), upstream, TraceConfig(ready_mode="counts"))

        with pytest.raises(TraceNotReady) as exc_info:
            await engine.trace_transaction(TX_HASH)
        assert exc_info.value.data == {"ready": False, "reason": "db_missing_transaction"}

    @pytest.mark.asyncio
    async def test_height_mined_upstream_beyond_ready_height(self):
        upstream = make_upstream(tx=UpstreamTransaction(Existence.EXISTS, 150))
        engine = make_engine(make_queries(), upstream, TraceConfig(ready_height=100))

        with pytest.raises(TraceNotReady):
            await engine.trace_transaction(TX_HASH)

    @pytest.mark.asyncio
    async def test_mined_upstream_mode_none(self):
        upstream = make_upstream(tx=UpstreamTransaction(Existence.EXISTS, 150))
        engine = make_engine(make_queries(), upstream)
        assert await engine.trace_transaction(TX_HASH) == []
