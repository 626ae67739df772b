"""
Readiness oracle: is an empty trace result final, or is the indexer behind?

Modes (resolved once from configuration):

- ``none``:   zero rows is always final.
- ``height``: ready iff ``block <= ready height``; the ready height is either
  configured explicitly or derived as ``upstream head - lag``. An unavailable
  head defers to ready.
- ``counts``: compare the block's stored transaction count with the number of
  distinct transactions that have indexed internal calls. An empty stored
  block is cross-checked against the upstream transaction count.

Store errors from the readiness queries are not caught here.
"""

from typing import Optional

from ..config.loader import TraceConfig
from ..logger import get_logger
from .queries import TraceQueryEngine
from .types import READY, ReadinessDecision, ReadinessMode, ReadinessReason
from .upstream import UpstreamOracle

logger = get_logger(__name__)


class ReadinessOracle:

    def __init__(self, config: TraceConfig, queries: TraceQueryEngine, upstream: UpstreamOracle):
        self.mode = config.mode
        self.ready_height = config.ready_height
        self.ready_lag = config.ready_lag
        self.debug = config.debug
        self.queries = queries
        self.upstream = upstream

    async def check_block(self, block_number: int) -> ReadinessDecision:
        if self.mode is ReadinessMode.COUNTS:
            decision = await self._check_block_counts(block_number)
        elif self.mode is ReadinessMode.HEIGHT:
            decision = await self._check_block_height(block_number)
        else:
            decision = READY

        if not decision.ready and self.debug:
            logger.info(
                f"trace_ready {self.mode.value} not ready: block={block_number} "
                f"reason={decision.reason.value if decision.reason else None} "
                f"readyHeight={decision.ready_height} upstreamTxCount={decision.upstream_tx_count}"
            )
        return decision

    async def check_transaction(self, tx_hash: str) -> ReadinessDecision:
        """
        Transaction-level counts check: ready iff at least one internal call
        is indexed for the hash. This cannot tell "no internal calls" apart
        from "not indexed yet".
        """
        if await self.queries.transaction_has_traces(tx_hash):
            return READY
        decision = ReadinessDecision(ready=False, reason=ReadinessReason.TRACES_PENDING)
        if self.debug:
            logger.info(f"trace_ready counts not ready: tx={tx_hash} reason={decision.reason.value}")
        return decision

    # ── height ──

    async def resolve_ready_height(self) -> Optional[int]:
        if self.ready_height is not None:
            return self.ready_height
        if self.ready_lag is not None:
            head = await self.upstream.head_height()
            if head is None:
                return None
            return max(head - self.ready_lag, 0)
        return None

    async def _check_block_height(self, block_number: int) -> ReadinessDecision:
        ready_height = await self.resolve_ready_height()
        if ready_height is None or block_number <= ready_height:
            return READY
        return ReadinessDecision(ready=False, ready_height=ready_height)

    # ── counts ──

    async def _check_block_counts(self, block_number: int) -> ReadinessDecision:
        total = await self.queries.block_transaction_count(block_number)
        if total == 0:
            return await self._cross_check_empty_block(block_number)

        traced = await self.queries.block_traced_transaction_count(block_number)
        if traced >= total:
            return READY
        return ReadinessDecision(ready=False, reason=ReadinessReason.TRACES_PENDING)

    async def _cross_check_empty_block(self, block_number: int) -> ReadinessDecision:
        upstream_count = await self.upstream.block_transaction_count(hex(block_number))
        if upstream_count:
            return ReadinessDecision(
                ready=False,
                reason=ReadinessReason.DB_MISSING_TRANSACTIONS,
                upstream_tx_count=upstream_count,
            )
        return ReadinessDecision(ready=True, reason=ReadinessReason.EMPTY_BLOCK)
