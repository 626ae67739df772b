"""
Trace synthesis engine.

Answers ``trace_block`` / ``trace_transaction`` from the indexer store.
When the primary query returns rows they are formatted and returned whole.
When it returns none, the fallback tree decides between an empty list,
``TraceNotFound`` and ``TraceNotReady``:

    block/tx in store?  ──yes──▶ readiness check ─▶ [] | NotReady
          │no
    (block) in blocks table? ──yes──▶ readiness check
          │no
    upstream says ─ missing ─▶ NotFound
                  ─ exists / unknown ─▶ readiness check
"""

from typing import Any, Dict, List

from ..exceptions import TraceNotFound, TraceNotReady
from .formatter import format_traces
from .queries import TraceQueryEngine
from .readiness import ReadinessOracle
from .types import Existence, ReadinessDecision, ReadinessMode, ReadinessReason
from .upstream import UpstreamOracle


def _raise_unless_ready(decision: ReadinessDecision) -> None:
    if not decision.ready:
        raise TraceNotReady(decision.error_data())


class TraceEngine:

    def __init__(self, queries: TraceQueryEngine, upstream: UpstreamOracle, readiness: ReadinessOracle):
        self.queries = queries
        self.upstream = upstream
        self.readiness = readiness

    async def trace_block(self, block_number: int) -> List[Dict[str, Any]]:
        rows = await self.queries.block_traces(block_number)
        if rows:
            return format_traces(rows)

        existence = await self.block_existence(block_number)
        if existence.confirmed_missing:
            raise TraceNotFound("Block")

        _raise_unless_ready(await self.readiness.check_block(block_number))
        return []

    async def block_existence(self, block_number: int) -> Existence:
        """Store first, then the optional blocks table, then upstream."""
        if await self.queries.block_has_transactions(block_number):
            return Existence.EXISTS
        if await self.queries.block_in_blocks_table(block_number):
            return Existence.EXISTS
        return await self.upstream.block_exists(hex(block_number))

    async def trace_transaction(self, tx_hash: str) -> List[Dict[str, Any]]:
        tx_hash = tx_hash.lower()
        rows = await self.queries.transaction_traces(tx_hash)
        if rows:
            return format_traces(rows)

        stored, block_number = await self.queries.find_transaction(tx_hash)
        if stored:
            if self.readiness.mode is ReadinessMode.COUNTS:
                _raise_unless_ready(await self.readiness.check_transaction(tx_hash))
            elif block_number is not None:
                _raise_unless_ready(await self.readiness.check_block(block_number))
            return []

        upstream_tx = await self.upstream.get_transaction(tx_hash)
        if upstream_tx.existence is Existence.UNKNOWN:
            return []
        if upstream_tx.existence.confirmed_missing:
            raise TraceNotFound("Transaction")
        if upstream_tx.block_number is None:
            # Pending upstream: nothing to trace yet
            return []
        if self.readiness.mode is ReadinessMode.COUNTS:
            raise TraceNotReady(
                ReadinessDecision(ready=False, reason=ReadinessReason.DB_MISSING_TRANSACTION).error_data()
            )
        _raise_unless_ready(await self.readiness.check_block(upstream_tx.block_number))
        return []
