"""
Upstream pass-through for every JSON-RPC method the gateway does not serve.

Requests are forwarded verbatim and the upstream JSON response is returned
as-is, so clients see the upstream node's own ids, results and errors.
"""

import json
import time
from typing import Optional

import httpx

from ..logger import get_logger
from .server import RPCErrorCode, error_response

logger = get_logger(__name__)


class UpstreamProxy:

    def __init__(self, client: httpx.AsyncClient, url: str, timeout: float = 15.0):
        self.client = client
        self.url = url
        self.timeout = timeout

    async def forward(self, payload: dict) -> Optional[dict]:
        request_id = payload.get("id")
        start_time = time.time()
        try:
            response = await self.client.post(self.url, json=payload, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.warning(
                f"Proxy {payload.get('method')} NETWORK_ERROR ({time.time() - start_time:.3f}s): {exc!r}"
            )
            return error_response(request_id, RPCErrorCode.UPSTREAM_FAILED, "Upstream request failed")

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning(
                f"Proxy {payload.get('method')} invalid JSON [{response.status_code}] "
                f"({time.time() - start_time:.3f}s)"
            )
            return error_response(
                request_id,
                RPCErrorCode.UPSTREAM_INVALID_JSON,
                "Upstream returned invalid JSON",
                {"status": response.status_code},
            )
