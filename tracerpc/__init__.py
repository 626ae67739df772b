"""
Trace RPC Gateway Package

Serves Parity-style trace_block / trace_transaction from an indexer's
PostgreSQL store and proxies every other JSON-RPC method upstream.

Core imports are lazily loaded so that importing a submodule does not
build the web application. Import from submodules:

    from tracerpc.trace.engine import TraceEngine
    from tracerpc.database import Database
    from tracerpc.config import load_config
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'Database':
        from .database import Database
        return Database
    elif name == 'TraceEngine':
        from .trace.engine import TraceEngine
        return TraceEngine
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'tracerpc' has no attribute {name!r}")

__all__ = ['Database', 'TraceEngine', 'load_config']
