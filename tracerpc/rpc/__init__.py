"""
Trace RPC JSON-RPC Layer

Provides the JSON-RPC 2.0 front door for the trace gateway:
- Dispatcher with batch and notification support
- trace_* methods served from the indexer store
- Pass-through of every other method to the upstream node
"""

from .server import RPCServer
from .config import RPCConfig

__all__ = [
    "RPCServer",
    "RPCConfig",
]
