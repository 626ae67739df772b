"""
Trace Engine Types

Value types shared by the schema adapter, query engine, upstream oracle,
readiness oracle and formatter.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SchemaProfile:
    """Indexer schema capabilities, probed once per process."""

    has_normalized_call_type: bool
    transaction_hash_is_binary: bool
    has_blocks_table: bool = False


class Existence(Enum):
    """Tri-state answer from the upstream node."""

    EXISTS = "exists"
    MISSING = "missing"
    UNKNOWN = "unknown"

    @property
    def confirmed_missing(self) -> bool:
        """
        Only a definitive upstream "no" counts as absent.

        ``UNKNOWN`` (upstream failure or timeout) is treated as existing.
        """
        return self is Existence.MISSING


@dataclass(frozen=True)
class UpstreamTransaction:
    """Result of ``eth_getTransactionByHash`` against the upstream node."""

    existence: Existence
    block_number: Optional[int] = None


class ReadinessMode(Enum):
    NONE = "none"
    HEIGHT = "height"
    COUNTS = "counts"


class ReadinessReason(str, Enum):
    EMPTY_BLOCK = "empty_block"
    TRACES_PENDING = "traces_pending"
    DB_MISSING_TRANSACTIONS = "db_missing_transactions"
    DB_MISSING_TRANSACTION = "db_missing_transaction"


@dataclass(frozen=True)
class ReadinessDecision:
    ready: bool
    reason: Optional[ReadinessReason] = None
    ready_height: Optional[int] = None
    upstream_tx_count: Optional[int] = None

    def error_data(self) -> Optional[Dict[str, Any]]:
        """Diagnostic payload attached to a -32010 response."""
        if self.reason is not None:
            data: Dict[str, Any] = {"ready": self.ready, "reason": self.reason.value}
            if self.upstream_tx_count is not None:
                data["upstreamTxCount"] = self.upstream_tx_count
            return data
        if self.ready_height is not None:
            return {"traceReadyHeight": self.ready_height}
        return None


READY = ReadinessDecision(ready=True)


@dataclass(frozen=True)
class TraceRow:
    """One indexed internal call, as returned by the trace queries."""

    transaction_hash: Any
    block_hash: Any
    block_number: Any
    transaction_position: Any
    call_type: Optional[str]
    from_address: Any
    to_address: Any
    value: Any
    gas: Any
    gas_used: Any
    input: Any
    output: Any
    error: Optional[str]
    trace_address: Any
    trace_index: Any

    @classmethod
    def from_record(cls, record: Any) -> "TraceRow":
        """Build from an asyncpg ``Record`` (or any mapping) of the trace query."""
        return cls(
            transaction_hash=record["transaction_hash"],
            block_hash=record["block_hash"],
            block_number=record["block_number"],
            transaction_position=record["transaction_position"],
            call_type=record["call_type"],
            from_address=record["from_address_hash"],
            to_address=record["to_address_hash"],
            value=record["value"],
            gas=record["gas"],
            gas_used=record["gas_used"],
            input=record["input"],
            output=record["output"],
            error=record["error"],
            trace_address=record["trace_address"],
            trace_index=record["trace_index"],
        )
