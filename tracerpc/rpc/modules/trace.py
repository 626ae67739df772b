"""
Trace RPC trace_* Methods

Parity-compatible ``trace_block`` and ``trace_transaction`` rebuilt from the
indexer store instead of a tracing node.

Error mapping:
    -32602  malformed block number / transaction hash
    -32001  block or transaction confirmed absent upstream
    -32010  indexer lag detected (``data`` carries the readiness diagnostics)
    -32000  store query failed or timed out
"""

from typing import Any, Dict, List

from ...constants import VALID_BLOCK_NUMBER_PATTERN, VALID_TX_HASH_PATTERN
from ...exceptions import TraceNotFound, TraceNotReady
from ...logger import get_logger
from ..server import RPCError, RPCErrorCode, RPCModule, rpc_method

logger = get_logger(__name__)


def _first_param(params: tuple, named: dict, pattern) -> Any:
    if named or not params:
        return None
    value = params[0]
    if isinstance(value, str) and pattern.match(value):
        return value
    return None


class TraceModule(RPCModule):
    """
    Trace RPC methods (trace_* namespace).

    ``self.context`` is the ``TraceEngine``.
    """

    namespace = "trace"

    @rpc_method
    async def block(self, *params, **named) -> List[Dict[str, Any]]:
        """
        Returns the internal call traces of a block.

        Args:
            params[0]: Block number as hex quantity

        Returns:
            List of trace objects, possibly empty
        """
        block_hex = _first_param(params, named, VALID_BLOCK_NUMBER_PATTERN)
        if block_hex is None:
            raise RPCError(RPCErrorCode.INVALID_PARAMS, "Invalid params: expected hex block number")

        return await self._run("trace_block", self.context.trace_block(int(block_hex, 16)))

    @rpc_method
    async def transaction(self, *params, **named) -> List[Dict[str, Any]]:
        """
        Returns the internal call traces of a transaction.

        Args:
            params[0]: 32-byte transaction hash

        Returns:
            List of trace objects, possibly empty
        """
        tx_hash = _first_param(params, named, VALID_TX_HASH_PATTERN)
        if tx_hash is None:
            raise RPCError(RPCErrorCode.INVALID_PARAMS, "Invalid params: expected transaction hash")

        return await self._run("trace_transaction", self.context.trace_transaction(tx_hash.lower()))

    async def _run(self, method: str, call) -> List[Dict[str, Any]]:
        try:
            return await call
        except TraceNotFound as e:
            raise RPCError(RPCErrorCode.RESOURCE_NOT_FOUND, f"{e.entity} not found")
        except TraceNotReady as e:
            raise RPCError(RPCErrorCode.TRACE_NOT_READY, "Trace data not ready", e.data)
        except Exception:
            logger.exception(f"{method} error")
            raise RPCError(RPCErrorCode.SERVER_ERROR, f"{method} query failed")
