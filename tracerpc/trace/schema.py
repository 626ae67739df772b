"""
Schema adapter: one-time introspection of the indexer schema.

Blockscout releases differ in whether ``internal_transactions.call_type``
exists, whether ``transactions.hash`` is ``bytea`` or text, and whether a
``blocks`` table is present. The profile is computed once, lazily, and then
shared read-only; the schema is assumed stable for the process lifetime.
"""

import asyncio
from typing import Any, Optional

from ..logger import get_logger
from .types import SchemaProfile

logger = get_logger(__name__)

CALL_TYPE_COLUMN_SQL = """
SELECT 1
FROM information_schema.columns
WHERE table_schema = 'public'
  AND table_name = 'internal_transactions'
  AND column_name = 'call_type'
LIMIT 1;
"""

HASH_COLUMN_TYPE_SQL = """
SELECT data_type
FROM information_schema.columns
WHERE table_schema = 'public'
  AND table_name = 'transactions'
  AND column_name = 'hash'
LIMIT 1;
"""

BLOCKS_TABLE_EXISTS_SQL = """
SELECT 1
FROM information_schema.tables
WHERE table_schema = 'public' AND table_name = 'blocks'
LIMIT 1;
"""


class SchemaAdapter:
    """
    Memoized schema capability probe.

    Concurrent first callers wait on one lock so only one probe runs. A
    failed probe leaves nothing cached and the next call probes again.
    """

    def __init__(self, db: Any):
        self.db = db
        self._profile: Optional[SchemaProfile] = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> Optional[SchemaProfile]:
        return self._profile

    async def profile(self) -> SchemaProfile:
        if self._profile is not None:
            return self._profile
        async with self._lock:
            if self._profile is None:
                self._profile = await self._probe()
        return self._profile

    async def _probe(self) -> SchemaProfile:
        has_call_type = await self.db.fetchval(CALL_TYPE_COLUMN_SQL) is not None
        hash_type = await self.db.fetchval(HASH_COLUMN_TYPE_SQL)
        has_blocks = await self.db.fetchval(BLOCKS_TABLE_EXISTS_SQL) is not None
        profile = SchemaProfile(
            has_normalized_call_type=has_call_type,
            transaction_hash_is_binary=hash_type == "bytea",
            has_blocks_table=has_blocks,
        )
        logger.info(
            f"Indexer schema: call_type column={'yes' if has_call_type else 'no'}, "
            f"transactions.hash={hash_type or 'unknown'}, "
            f"blocks table={'yes' if has_blocks else 'no'}"
        )
        return profile
