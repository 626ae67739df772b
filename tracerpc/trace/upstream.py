"""
Upstream oracle: existence and head-height checks against a live node.

Used only to disambiguate empty store results. Each call sends one
JSON-RPC request bounded by its own timeout; httpx aborts the connection
when it expires. Network failures, timeouts, JSON-RPC errors and malformed
bodies all come back as ``Existence.UNKNOWN`` / ``None`` so a flaky
upstream can never produce a false "not found".
"""

import json
import time
from typing import Any, Optional

import httpx

from ..logger import get_logger
from .types import Existence, UpstreamTransaction

logger = get_logger(__name__)

_MISSING = object()


def parse_quantity(value: Any) -> Optional[int]:
    """Hex quantity (``0x1a``) → int, None when absent or malformed."""
    if not isinstance(value, str):
        return None
    try:
        return int(value, 16)
    except ValueError:
        return None


class UpstreamOracle:
    """
    JSON-RPC client for the upstream node.

    The ``httpx.AsyncClient`` is shared with the pass-through proxy and owned
    by the application lifecycle.
    """

    _rpc_id_counter = 0

    def __init__(self, client: httpx.AsyncClient, url: str, timeout: float = 15.0):
        self.client = client
        self.url = url
        self.timeout = timeout

    @classmethod
    def _next_id(cls) -> int:
        cls._rpc_id_counter += 1
        return cls._rpc_id_counter

    async def _rpc_call(self, method: str, params: list) -> Any:
        """
        Send one request and return its ``result`` member.

        Returns the ``_MISSING`` sentinel when the answer is unusable.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params,
        }
        start_time = time.time()
        try:
            response = await self.client.post(self.url, json=payload, timeout=self.timeout)
            data = response.json()
        except httpx.HTTPError as exc:
            elapsed = time.time() - start_time
            logger.warning(f"Upstream {method} NETWORK_ERROR ({elapsed:.3f}s): {exc!r}")
            return _MISSING
        except (json.JSONDecodeError, UnicodeDecodeError):
            elapsed = time.time() - start_time
            logger.warning(
                f"Upstream {method} returned invalid JSON [{response.status_code}] ({elapsed:.3f}s)"
            )
            return _MISSING

        logger.debug(f"Upstream {method} [{response.status_code}] ({time.time() - start_time:.3f}s)")
        if not isinstance(data, dict):
            return _MISSING
        if data.get("error") is not None:
            logger.warning(f"Upstream {method} error: {data['error']}")
            return _MISSING
        return data.get("result")

    async def get_block(self, block_number_hex: str) -> Any:
        """``eth_getBlockByNumber`` result (None when absent), ``_MISSING`` on failure."""
        return await self._rpc_call("eth_getBlockByNumber", [block_number_hex, False])

    async def block_exists(self, block_number_hex: str) -> Existence:
        block = await self.get_block(block_number_hex)
        if block is _MISSING:
            return Existence.UNKNOWN
        return Existence.EXISTS if block else Existence.MISSING

    async def block_transaction_count(self, block_number_hex: str) -> Optional[int]:
        """Number of transactions upstream has for a block, None if unknown or absent."""
        block = await self.get_block(block_number_hex)
        if block is _MISSING or not isinstance(block, dict):
            return None
        transactions = block.get("transactions")
        return len(transactions) if isinstance(transactions, list) else 0

    async def get_transaction(self, tx_hash: str) -> UpstreamTransaction:
        tx = await self._rpc_call("eth_getTransactionByHash", [tx_hash])
        if tx is _MISSING:
            return UpstreamTransaction(Existence.UNKNOWN)
        if not tx:
            return UpstreamTransaction(Existence.MISSING)
        block_number = parse_quantity(tx.get("blockNumber")) if isinstance(tx, dict) else None
        return UpstreamTransaction(Existence.EXISTS, block_number)

    async def transaction_exists(self, tx_hash: str) -> Existence:
        return (await self.get_transaction(tx_hash)).existence

    async def head_height(self) -> Optional[int]:
        """``eth_blockNumber`` as int, None when unavailable."""
        result = await self._rpc_call("eth_blockNumber", [])
        if result is _MISSING:
            return None
        return parse_quantity(result)
