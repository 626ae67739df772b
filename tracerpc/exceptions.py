"""
Trace RPC Exceptions

Custom exception classes for the trace gateway.
"""

from typing import Any, Optional


class TraceRPCException(Exception):
    """Base exception for the trace gateway."""
    pass


class ConfigurationError(TraceRPCException, ValueError):
    """Configuration error."""
    pass


class TraceQueryError(TraceRPCException):
    """Store query failed."""
    pass


class QueryTimeoutError(TraceQueryError):
    """Store query did not settle within the query timeout."""

    def __init__(self, label: str, timeout: float):
        super().__init__(f"{label} timeout after {timeout:.3f}s")
        self.label = label
        self.timeout = timeout


class TraceNotFound(TraceRPCException):
    """Block or transaction confirmed absent on-chain."""

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.entity = entity


class TraceNotReady(TraceRPCException):
    """Indexer lag detected; the caller should retry later."""

    def __init__(self, data: Optional[Any] = None):
        super().__init__("Trace data not ready")
        self.data = data
