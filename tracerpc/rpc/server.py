"""
Trace RPC JSON-RPC 2.0 Server

Implements the JSON-RPC 2.0 specification with support for:
- Method registration and namespacing
- Batch requests
- Error handling with standard codes
- A fallback handler for methods served elsewhere (upstream pass-through)
"""

import json
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from dataclasses import dataclass
from enum import IntEnum

from ..constants import JSONRPC_VERSION
from ..logger import get_logger

logger = get_logger(__name__)


class RPCErrorCode(IntEnum):
    """JSON-RPC 2.0 error codes used by the gateway."""

    # Standard errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (-32000 to -32099)
    SERVER_ERROR = -32000
    RESOURCE_NOT_FOUND = -32001
    UPSTREAM_INVALID_JSON = -32002
    UPSTREAM_FAILED = -32003

    # Trace-specific errors
    TRACE_NOT_READY = -32010


@dataclass
class RPCError(Exception):
    """JSON-RPC error."""

    code: int
    message: str
    data: Optional[Any] = None

    def to_dict(self) -> dict:
        result = {
            "code": int(self.code),
            "message": self.message,
        }
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class RPCRequest:
    """JSON-RPC request."""

    jsonrpc: str
    method: str
    params: Union[List, Dict, None]
    id: Union[str, int, None]

    @classmethod
    def from_dict(cls, data: dict) -> "RPCRequest":
        return cls(
            jsonrpc=data.get("jsonrpc", JSONRPC_VERSION),
            method=data.get("method", ""),
            params=data.get("params"),
            id=data.get("id"),
        )

    @property
    def is_notification(self) -> bool:
        """Check if this is a notification (no id)."""
        return self.id is None


@dataclass
class RPCResponse:
    """JSON-RPC response."""

    jsonrpc: str = JSONRPC_VERSION
    result: Optional[Any] = None
    error: Optional[Dict] = None
    id: Union[str, int, None] = None

    def to_dict(self) -> dict:
        response = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            response["error"] = self.error
        else:
            response["result"] = self.result
        return response

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def error_response(request_id: Union[str, int, None], code: int, message: str, data: Any = None) -> dict:
    """Build a JSON-RPC error response dict."""
    return RPCResponse(id=request_id, error=RPCError(code, message, data).to_dict()).to_dict()


# Type for RPC method handlers
RPCMethod = Callable[..., Any]

# Fallback handlers receive the raw request dict and return a response dict
RPCFallback = Callable[[dict], Awaitable[Optional[dict]]]


class RPCModule:
    """
    Base class for RPC modules.

    Subclass this to create method namespaces like trace_.
    """

    # Namespace prefix (e.g., "trace")
    namespace: str = ""

    def __init__(self, context: Any = None):
        """
        Initialize module with optional context.

        Args:
            context: Application context (engine, store, upstream)
        """
        self.context = context

    def get_methods(self) -> Dict[str, RPCMethod]:
        """
        Get all public methods in this module.

        Methods starting with underscore are private.

        Returns:
            Dict mapping method names to callables
        """
        methods = {}
        for name in dir(self):
            if name.startswith("_"):
                continue
            attr = getattr(self, name)
            if callable(attr) and hasattr(attr, "__rpc_method__"):
                full_name = f"{self.namespace}_{name}" if self.namespace else name
                methods[full_name] = attr
        return methods


def rpc_method(func: RPCMethod) -> RPCMethod:
    """
    Decorator to mark a method as an RPC endpoint.

    Usage:
        @rpc_method
        async def block(self, *params) -> list:
            return await self.context.engine.trace_block(params[0])
    """
    func.__rpc_method__ = True
    return func


class RPCServer:
    """
    JSON-RPC 2.0 server.

    Manages method registration and request handling. Requests for methods
    that are not registered go to the fallback handler when one is set.
    """

    def __init__(self):
        self._methods: Dict[str, RPCMethod] = {}
        self._modules: Dict[str, RPCModule] = {}
        self._fallback: Optional[RPCFallback] = None

    def register_method(self, name: str, handler: RPCMethod):
        """
        Register a single RPC method.

        Args:
            name: Method name (e.g., "trace_block")
            handler: Async function to handle the method
        """
        self._methods[name] = handler
        logger.debug(f"Registered RPC method: {name}")

    def register_module(self, module: RPCModule):
        """
        Register an RPC module.

        Args:
            module: RPCModule instance
        """
        methods = module.get_methods()
        self._methods.update(methods)
        self._modules[module.namespace] = module
        logger.info(f"Registered RPC module: {module.namespace} ({len(methods)} methods)")

    def set_fallback(self, handler: Optional[RPCFallback]):
        """
        Route unregistered methods to *handler* instead of -32601.

        Args:
            handler: Async callable taking the raw request dict
        """
        self._fallback = handler

    def get_methods(self) -> List[str]:
        """Get list of registered method names."""
        return list(self._methods.keys())

    async def handle_request(self, data: Union[str, bytes, dict, list]) -> Optional[str]:
        """
        Handle a JSON-RPC request.

        Args:
            data: Request data (JSON string or parsed payload)

        Returns:
            JSON response string, or None for notifications
        """
        try:
            if isinstance(data, (str, bytes)):
                parsed = json.loads(data)
            else:
                parsed = data
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            error = RPCError(RPCErrorCode.PARSE_ERROR, f"Parse error: {e}")
            return RPCResponse(error=error.to_dict()).to_json()

        if isinstance(parsed, list):
            if not parsed:
                error = RPCError(RPCErrorCode.INVALID_REQUEST, "Invalid Request")
                return RPCResponse(error=error.to_dict()).to_json()

            responses = await asyncio.gather(*[
                self._handle_single(req) for req in parsed
            ])

            # Filter out None responses (notifications)
            responses = [r for r in responses if r is not None]
            if not responses:
                return None
            return json.dumps(responses)

        response = await self._handle_single(parsed)
        if response is None:
            return None
        return json.dumps(response)

    async def _handle_single(self, data: Any) -> Optional[dict]:
        """Handle a single request and return response dict."""
        if not isinstance(data, dict):
            return error_response(None, RPCErrorCode.INVALID_REQUEST, "Invalid Request")

        request = RPCRequest.from_dict(data)

        if request.jsonrpc != JSONRPC_VERSION:
            return error_response(request.id, RPCErrorCode.INVALID_REQUEST, "Invalid JSON-RPC version")

        if not isinstance(request.method, str) or not request.method:
            return error_response(request.id, RPCErrorCode.INVALID_REQUEST, "Invalid Request")

        handler = self._methods.get(request.method)
        if handler is None:
            if self._fallback is not None:
                response = await self._fallback(data)
                return None if request.is_notification else response
            if request.is_notification:
                return None
            return error_response(
                request.id,
                RPCErrorCode.METHOD_NOT_FOUND,
                f"Method not found: {request.method}",
            )

        try:
            if request.params is None:
                result = await handler()
            elif isinstance(request.params, list):
                result = await handler(*request.params)
            elif isinstance(request.params, dict):
                result = await handler(**request.params)
            else:
                raise RPCError(RPCErrorCode.INVALID_PARAMS, "Invalid params type")

            if request.is_notification:
                return None

            return RPCResponse(id=request.id, result=result).to_dict()

        except RPCError as e:
            if request.is_notification:
                return None
            return RPCResponse(id=request.id, error=e.to_dict()).to_dict()

        except Exception as e:
            logger.exception(f"Error handling RPC method {request.method}")
            if request.is_notification:
                return None
            return error_response(request.id, RPCErrorCode.INTERNAL_ERROR, str(e))
