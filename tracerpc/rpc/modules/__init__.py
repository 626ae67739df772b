"""
Trace RPC Modules

JSON-RPC method implementations served locally.
"""

from .trace import TraceModule

__all__ = [
    "TraceModule",
]
