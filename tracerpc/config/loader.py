"""
Trace RPC Unified Configuration Loader

Loads all sections of config.toml at startup with environment variable overrides.
A ``.env`` file, when present, is loaded into the process environment first.

Environment variable mapping:
    [rpc.http] port          → PORT
    [database] host          → DB_HOST
    [upstream] url           → UPSTREAM_RPC_URL (legacy: EVMOS_RPC_URL)
    [trace] ready_mode       → TRACE_READY_MODE
    ...

Sensitive values (passwords) SHOULD come from env vars, never TOML.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from ..constants import DEFAULT_QUERY_TIMEOUT_MS, VALID_DECIMAL_PATTERN
from ..exceptions import ConfigurationError
from ..rpc.config import RPCConfig, env_flag
from ..trace.types import ReadinessMode

logger = logging.getLogger(__name__)


def parse_block_setting(value: Any) -> Optional[int]:
    """
    Accept a ready height / lag only when it is a non-negative decimal integer.

    Anything else (negative, hex, blank, garbage) is ignored.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    text = str(value).strip()
    if VALID_DECIMAL_PATTERN.match(text):
        return int(text)
    return None


# -- Database -----------------------------------------------------------

@dataclass
class DatabaseConfig:
    """[database] section."""
    host: Optional[str] = None
    port: int = 5432
    name: str = "blockscout"
    user: Optional[str] = None
    password: Optional[str] = None
    pool_size: int = 10
    idle_timeout: float = 30.0
    connection_timeout: float = 5.0
    ssl: bool = False
    ssl_reject_unauthorized: bool = True
    query_timeout: float = DEFAULT_QUERY_TIMEOUT_MS / 1000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatabaseConfig":
        return cls(
            host=data.get("host"),
            port=data.get("port", 5432),
            name=data.get("name", "blockscout"),
            user=data.get("user"),
            password=data.get("password"),
            pool_size=data.get("pool_size", 10),
            idle_timeout=data.get("idle_timeout", 30.0),
            connection_timeout=data.get("connection_timeout", 5.0),
            ssl=data.get("ssl", False),
            ssl_reject_unauthorized=data.get("ssl_reject_unauthorized", True),
            query_timeout=data.get("query_timeout", DEFAULT_QUERY_TIMEOUT_MS / 1000),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("DB_HOST"):
            self.host = v
        if v := os.environ.get("DB_PORT"):
            self.port = int(v)
        if v := os.environ.get("DB_NAME"):
            self.name = v
        if v := os.environ.get("DB_USER"):
            self.user = v
        if v := os.environ.get("DB_PASSWORD"):
            self.password = v
        if v := os.environ.get("DB_POOL_SIZE"):
            self.pool_size = int(v)
        if v := os.environ.get("DB_IDLE_TIMEOUT_MS"):
            self.idle_timeout = int(v) / 1000
        if v := os.environ.get("DB_CONNECTION_TIMEOUT_MS"):
            self.connection_timeout = int(v) / 1000
        if v := os.environ.get("DB_SSL"):
            self.ssl = env_flag(v)
        if v := os.environ.get("DB_SSL_REJECT_UNAUTHORIZED"):
            self.ssl_reject_unauthorized = env_flag(v)
        if v := os.environ.get("DB_QUERY_TIMEOUT_MS"):
            self.query_timeout = int(v) / 1000


# -- Upstream -----------------------------------------------------------

@dataclass
class UpstreamConfig:
    """[upstream] section."""
    url: str = ""
    # None follows the HTTP request timeout
    timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpstreamConfig":
        return cls(
            url=data.get("url", ""),
            timeout=data.get("timeout"),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("UPSTREAM_RPC_URL") or os.environ.get("EVMOS_RPC_URL"):
            self.url = v


# -- Trace readiness ----------------------------------------------------

@dataclass
class TraceConfig:
    """[trace] section."""
    ready_mode: str = ""
    ready_height: Optional[int] = None
    ready_lag: Optional[int] = None
    debug: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TraceConfig":
        return cls(
            ready_mode=data.get("ready_mode", ""),
            ready_height=parse_block_setting(data.get("ready_height")),
            ready_lag=parse_block_setting(data.get("ready_lag")),
            debug=data.get("debug", False),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("TRACE_READY_MODE"):
            self.ready_mode = v
        if v := os.environ.get("TRACE_READY_HEIGHT"):
            self.ready_height = parse_block_setting(v)
            if self.ready_height is None:
                logger.warning("Ignoring TRACE_READY_HEIGHT=%r: not a decimal integer", v)
        if v := os.environ.get("TRACE_READY_LAG"):
            self.ready_lag = parse_block_setting(v)
            if self.ready_lag is None:
                logger.warning("Ignoring TRACE_READY_LAG=%r: not a decimal integer", v)
        if v := os.environ.get("TRACE_READY_DEBUG"):
            self.debug = env_flag(v)

    @property
    def mode(self) -> ReadinessMode:
        """
        Resolve the readiness mode.

        ``counts``/``per_block`` select counts, ``height`` selects height;
        without an explicit mode a configured height or lag implies height.
        """
        mode = str(self.ready_mode or "").strip().lower()
        if mode in ("counts", "per_block"):
            return ReadinessMode.COUNTS
        if mode == "height":
            return ReadinessMode.HEIGHT
        if self.ready_height is not None or self.ready_lag is not None:
            return ReadinessMode.HEIGHT
        return ReadinessMode.NONE


# -----------------------------------------------------------------------
# Top-level unified config
# -----------------------------------------------------------------------

@dataclass
class ServiceConfig:
    """
    Unified gateway configuration.

    Loads every section of config.toml and applies environment variable
    overrides.  This is the single source of truth at runtime.
    """
    rpc: RPCConfig = field(default_factory=RPCConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    trace: TraceConfig = field(default_factory=TraceConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceConfig":
        """Create ServiceConfig from a parsed TOML dict."""
        return cls(
            rpc=RPCConfig.from_dict(data.get("rpc", {})),
            database=DatabaseConfig.from_dict(data.get("database", {})),
            upstream=UpstreamConfig.from_dict(data.get("upstream", {})),
            trace=TraceConfig.from_dict(data.get("trace", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "ServiceConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to config.toml

        Returns:
            ServiceConfig instance
        """
        path = Path(config_path)
        if not path.exists():
            logger.info("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            raw = tomllib.load(f)

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.rpc.apply_env()
        self.database.apply_env()
        self.upstream.apply_env()
        self.trace.apply_env()

    @property
    def upstream_timeout(self) -> float:
        """Upstream call timeout in seconds."""
        if self.upstream.timeout is not None:
            return self.upstream.timeout
        return self.rpc.http.timeout

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Returns:
            True if all valid

        Raises:
            ConfigurationError: on invalid config
        """
        if not self.upstream.url:
            raise ConfigurationError("Upstream RPC URL is required (UPSTREAM_RPC_URL)")
        if self.upstream_timeout <= 0:
            raise ConfigurationError("upstream timeout must be > 0")
        if self.rpc.http.timeout <= 0:
            raise ConfigurationError("request timeout must be > 0")
        if self.database.query_timeout <= 0:
            raise ConfigurationError("query timeout must be > 0")
        if self.database.pool_size < 1:
            raise ConfigurationError("pool_size must be >= 1")
        if self.rpc.http.rate_limit < 1:
            raise ConfigurationError("rate_limit must be >= 1")
        mode = str(self.trace.ready_mode or "").strip().lower()
        if mode not in ("", "none", "height", "counts", "per_block"):
            raise ConfigurationError(f"Invalid trace ready mode: {self.trace.ready_mode}")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, secrets omitted)."""
        return {
            "rpc": {
                "http": {
                    "host": self.rpc.http.host,
                    "port": self.rpc.http.port,
                    "cors_enabled": self.rpc.http.cors_enabled,
                    "rate_limit": self.rpc.http.rate_limit,
                    "timeout": self.rpc.http.timeout,
                },
            },
            "database": {
                "host": self.database.host,
                "port": self.database.port,
                "name": self.database.name,
                "pool_size": self.database.pool_size,
                "ssl": self.database.ssl,
                "query_timeout": self.database.query_timeout,
            },
            "upstream": {
                "url": self.upstream.url,
                "timeout": self.upstream_timeout,
            },
            "trace": {
                "mode": self.trace.mode.value,
                "ready_height": self.trace.ready_height,
                "ready_lag": self.trace.ready_lag,
                "debug": self.trace.debug,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> ServiceConfig:
    """
    Load gateway configuration.

    Resolution order:
        1. Explicit *path* argument
        2. TRACERPC_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    load_dotenv()
    if path is None:
        path = os.environ.get("TRACERPC_CONFIG", "config.toml")

    return ServiceConfig.from_file(path)
