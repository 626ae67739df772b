"""
Trace RPC HTTP Configuration
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..constants import DEFAULT_MAX_REQUEST_SIZE, DEFAULT_REQUEST_TIMEOUT_MS


def env_flag(value: str) -> bool:
    """Parse a truthy environment flag."""
    return value.strip().lower() in ("1", "true", "yes")


@dataclass
class HTTPConfig:
    """HTTP JSON-RPC front door configuration."""

    # Listen address
    host: str = "0.0.0.0"

    # Listen port
    port: int = 8545

    # Enable CORS
    cors_enabled: bool = False

    # CORS allowed origins
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # Rate limit (requests per minute per IP)
    rate_limit: int = 1000

    # Maximum request body size (bytes)
    max_request_size: int = DEFAULT_MAX_REQUEST_SIZE

    # Request timeout (seconds), also bounds upstream pass-through calls
    timeout: float = DEFAULT_REQUEST_TIMEOUT_MS / 1000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HTTPConfig":
        return cls(
            host=data.get("host", "0.0.0.0"),
            port=data.get("port", 8545),
            cors_enabled=data.get("cors_enabled", False),
            cors_origins=data.get("cors_origins", ["*"]),
            rate_limit=data.get("rate_limit", 1000),
            max_request_size=data.get("max_request_size", DEFAULT_MAX_REQUEST_SIZE),
            timeout=data.get("timeout", DEFAULT_REQUEST_TIMEOUT_MS / 1000),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("HOST"):
            self.host = v
        if v := os.environ.get("PORT"):
            self.port = int(v)
        if v := os.environ.get("ENABLE_CORS"):
            self.cors_enabled = env_flag(v)
        if v := os.environ.get("RATE_LIMIT"):
            self.rate_limit = int(v)
        if v := os.environ.get("REQUEST_TIMEOUT_MS"):
            self.timeout = int(v) / 1000


@dataclass
class RPCConfig:
    """RPC configuration."""

    # HTTP configuration
    http: HTTPConfig = field(default_factory=HTTPConfig)

    @classmethod
    def from_dict(cls, config: dict) -> "RPCConfig":
        """Create from dictionary."""
        return cls(http=HTTPConfig.from_dict(config.get("http", {})))

    def apply_env(self) -> None:
        self.http.apply_env()
