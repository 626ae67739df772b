"""
Trace query engine.

Every statement is fixed at import time. The schema profile only selects
which precompiled variant runs; request values are always bound as
parameters.
"""

import asyncio
from typing import Any, Awaitable, Dict, List, Optional, Tuple, TypeVar, Union

from ..exceptions import QueryTimeoutError
from ..logger import get_logger
from .schema import SchemaAdapter
from .types import SchemaProfile, TraceRow

logger = get_logger(__name__)

T = TypeVar("T")

_NORMALIZED_CALL_TYPE = "COALESCE(it.call_type, it.type)"
_LEGACY_CALL_TYPE = "it.type"

_TRACE_SQL_TEMPLATE = """
SELECT
  t.hash AS transaction_hash,
  t.block_hash,
  t.block_number,
  t.index AS transaction_position,
  {call_type} AS call_type,
  it.from_address_hash,
  it.to_address_hash,
  it.value,
  it.gas,
  it.gas_used,
  it.input,
  it.output,
  it.error,
  it.trace_address,
  it.index AS trace_index
FROM internal_transactions it
JOIN transactions t ON it.transaction_hash = t.hash
WHERE {predicate}
ORDER BY t.index, it.index;
"""

# (by_block, normalized_call_type) → statement
TRACE_SQL: Dict[Tuple[bool, bool], str] = {
    (by_block, normalized): _TRACE_SQL_TEMPLATE.format(
        call_type=_NORMALIZED_CALL_TYPE if normalized else _LEGACY_CALL_TYPE,
        predicate="t.block_number = $1" if by_block else "t.hash = $1",
    )
    for by_block in (True, False)
    for normalized in (True, False)
}

BLOCK_HAS_TRANSACTIONS_SQL = """
SELECT 1
FROM transactions
WHERE block_number = $1
LIMIT 1;
"""

BLOCK_EXISTS_IN_BLOCKS_SQL = """
SELECT 1
FROM blocks
WHERE number = $1
LIMIT 1;
"""

BLOCK_TX_COUNT_SQL = """
SELECT COUNT(*)::int AS tx_count
FROM transactions
WHERE block_number = $1;
"""

BLOCK_TRACED_TX_COUNT_SQL = """
SELECT COUNT(DISTINCT it.transaction_hash)::int AS traced_tx_count
FROM internal_transactions it
JOIN transactions t ON it.transaction_hash = t.hash
WHERE t.block_number = $1;
"""

TRANSACTION_BLOCK_SQL = """
SELECT block_number
FROM transactions
WHERE hash = $1
LIMIT 1;
"""

TRANSACTION_HAS_TRACES_SQL = """
SELECT 1
FROM internal_transactions
WHERE transaction_hash = $1
LIMIT 1;
"""


def trace_sql(profile: SchemaProfile, by_block: bool) -> str:
    return TRACE_SQL[(by_block, profile.has_normalized_call_type)]


def _discard_result(task: "asyncio.Future[Any]") -> None:
    # Retrieve the outcome of a query abandoned after a timeout
    if not task.cancelled():
        task.exception()


async def race_timeout(awaitable: Awaitable[T], timeout: float, label: str) -> T:
    """
    Await *awaitable*, giving up after *timeout* seconds.

    The underlying query is shielded: on timeout it keeps running on its
    pool connection until the store finishes it.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError:
        task.add_done_callback(_discard_result)
        raise QueryTimeoutError(label, timeout) from None


class TraceQueryEngine:
    """Store queries for trace requests and the fallback/readiness checks."""

    def __init__(self, db: Any, schema: SchemaAdapter, timeout: float = 15.0):
        self.db = db
        self.schema = schema
        self.timeout = timeout

    # ── primary queries ──

    async def block_traces(self, block_number: int) -> List[TraceRow]:
        """All internal calls of a block ordered by (transactionPosition, traceIndex)."""
        return await race_timeout(
            self._fetch_traces(block_number, by_block=True),
            self.timeout,
            "trace_block",
        )

    async def transaction_traces(self, tx_hash: str) -> List[TraceRow]:
        """All internal calls of one transaction ordered by traceIndex."""
        return await race_timeout(
            self._fetch_traces(tx_hash, by_block=False),
            self.timeout,
            "trace_transaction",
        )

    async def _fetch_traces(self, key: Union[int, str], by_block: bool) -> List[TraceRow]:
        profile = await self.schema.profile()
        param = key if by_block else self._hash_param(profile, key)
        records = await self.db.fetch(trace_sql(profile, by_block), param)
        return [TraceRow.from_record(record) for record in records]

    # ── parameters ──

    @staticmethod
    def _hash_param(profile: SchemaProfile, tx_hash: str) -> Union[bytes, str]:
        tx_hash = tx_hash.lower()
        if profile.transaction_hash_is_binary:
            return bytes.fromhex(tx_hash[2:])
        return tx_hash

    async def hash_param(self, tx_hash: str) -> Union[bytes, str]:
        """Bind form of a transaction hash for the store's hash column type."""
        return self._hash_param(await self.schema.profile(), tx_hash)

    # ── existence ──

    async def block_has_transactions(self, block_number: int) -> bool:
        return await self.db.fetchval(BLOCK_HAS_TRANSACTIONS_SQL, block_number) is not None

    async def block_in_blocks_table(self, block_number: int) -> bool:
        """False when the store has no ``blocks`` table."""
        profile = await self.schema.profile()
        if not profile.has_blocks_table:
            return False
        return await self.db.fetchval(BLOCK_EXISTS_IN_BLOCKS_SQL, block_number) is not None

    async def find_transaction(self, tx_hash: str) -> Tuple[bool, Optional[int]]:
        """(stored, block_number) for a transaction hash."""
        row = await self.db.fetchrow(TRANSACTION_BLOCK_SQL, await self.hash_param(tx_hash))
        if row is None:
            return False, None
        block_number = row["block_number"]
        return True, None if block_number is None else int(block_number)

    # ── readiness counts ──

    async def block_transaction_count(self, block_number: int) -> int:
        return int(await self.db.fetchval(BLOCK_TX_COUNT_SQL, block_number) or 0)

    async def block_traced_transaction_count(self, block_number: int) -> int:
        return int(await self.db.fetchval(BLOCK_TRACED_TX_COUNT_SQL, block_number) or 0)

    async def transaction_has_traces(self, tx_hash: str) -> bool:
        param = await self.hash_param(tx_hash)
        return await self.db.fetchval(TRANSACTION_HAS_TRACES_SQL, param) is not None
