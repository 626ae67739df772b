"""
Trace RPC Unified Configuration

Loads all sections of config.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    ServiceConfig,
    DatabaseConfig,
    UpstreamConfig,
    TraceConfig,
    load_config,
)

__all__ = [
    "ServiceConfig",
    "DatabaseConfig",
    "UpstreamConfig",
    "TraceConfig",
    "load_config",
]
