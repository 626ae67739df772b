# tracerpc/gateway/main.py
import json
import time
from typing import Any, Optional

import httpx
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from tracerpc.config import ServiceConfig, load_config
from tracerpc.constants import SERVICE_VERSION, LOG_INCLUDE_REQUEST_CONTENT, LOG_MAX_PARAMS_LENGTH
from tracerpc.database import Database
from tracerpc.logger import get_logger
from tracerpc.rpc.modules.trace import TraceModule
from tracerpc.rpc.proxy import UpstreamProxy
from tracerpc.rpc.server import RPCErrorCode, RPCServer, error_response
from tracerpc.trace.engine import TraceEngine
from tracerpc.trace.queries import TraceQueryEngine
from tracerpc.trace.readiness import ReadinessOracle
from tracerpc.trace.schema import SchemaAdapter
from tracerpc.trace.upstream import UpstreamOracle

logger = get_logger(__name__)


def build_rpc_server(config: ServiceConfig, db: Any, http_client: httpx.AsyncClient) -> RPCServer:
    """
    Wire the trace engine and the upstream pass-through into a dispatcher.

    Args:
        config: Loaded service configuration
        db: Store handle exposing fetch/fetchrow/fetchval
        http_client: Shared client for upstream calls

    Returns:
        RPCServer serving trace_* locally and proxying everything else
    """
    schema = SchemaAdapter(db)
    queries = TraceQueryEngine(db, schema, timeout=config.database.query_timeout)
    upstream = UpstreamOracle(http_client, config.upstream.url, timeout=config.upstream_timeout)
    readiness = ReadinessOracle(config.trace, queries, upstream)

    server = RPCServer()
    server.register_module(TraceModule(TraceEngine(queries, upstream, readiness)))
    proxy = UpstreamProxy(http_client, config.upstream.url, timeout=config.rpc.http.timeout)
    server.set_fallback(proxy.forward)
    return server


def _truncate(text: str) -> str:
    if len(text) > LOG_MAX_PARAMS_LENGTH:
        return text[:LOG_MAX_PARAMS_LENGTH] + "...[TRUNCATED]"
    return text


def log_rpc_payload(payload: Any) -> None:
    """One log line per request: method and params, or batch summary."""
    if isinstance(payload, list):
        methods = [item.get("method") for item in payload if isinstance(item, dict) and item.get("method")]
        logger.info(f"rpc batch size={len(payload)} methods={','.join(map(str, methods))}")
    elif isinstance(payload, dict) and payload.get("method"):
        if LOG_INCLUDE_REQUEST_CONTENT:
            params = _truncate(json.dumps(payload.get("params", [])))
            logger.info(f"rpc method={payload['method']} params={params}")
        else:
            logger.info(f"rpc method={payload['method']}")


# ============================================================================
# APPLICATION SETUP
# ============================================================================

config: ServiceConfig = load_config()
db: Optional[Database] = None
http_client: Optional[httpx.AsyncClient] = None
rpc_server: Optional[RPCServer] = None

app = FastAPI(title="Trace RPC Gateway", description="trace_* JSON-RPC served from an indexer store.", version=SERVICE_VERSION)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

if config.rpc.http.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.rpc.http.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every HTTP exchange with its latency."""
    start_time = time.time()
    client_ip = request.client.host if request.client else "unknown"
    logger.debug(f"<-- {client_ip} - \"{request.method} {request.url.path}\"")
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"--> {client_ip} - \"{request.method} {request.url.path}\" ERROR ({time.time() - start_time:.3f}s): {e}")
        raise
    logger.info(f"--> {client_ip} - \"{request.method} {request.url.path}\" {response.status_code} ({time.time() - start_time:.3f}s)")
    return response


# ============================================================================
# APPLICATION STARTUP/SHUTDOWN
# ============================================================================

@app.on_event("startup")
async def startup():
    global db, http_client, rpc_server

    logger.info("Starting Trace RPC Gateway...")
    config.validate()
    logger.info(f"Configuration: {json.dumps(config.to_dict())}")

    http_client = httpx.AsyncClient(timeout=config.upstream_timeout)
    logger.info("Shared HTTP client initialized.")

    db = await Database.create(config.database)

    rpc_server = build_rpc_server(config, db, http_client)
    app.state.rpc_server = rpc_server

    logger.info(f"Trace readiness mode: {config.trace.mode.value}")
    logger.info(f"Upstream node: {config.upstream.url}")
    logger.info(f"RPC gateway listening on {config.rpc.http.host}:{config.rpc.http.port}")


@app.on_event("shutdown")
async def shutdown():
    """Clean shutdown"""
    if http_client:
        await http_client.aclose()
        logger.info("Shared HTTP client closed.")
    if db:
        await db.close()


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_response(None, RPCErrorCode.INTERNAL_ERROR, "Internal error"),
    )


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.get("/health")
async def health():
    try:
        await db.ping()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "db_unavailable"})
    return {"status": "ok"}


@app.post("/")
@app.post("/rpc")
@limiter.limit(f"{config.rpc.http.rate_limit}/minute")
async def rpc_endpoint(request: Request):
    """JSON-RPC 2.0 endpoint"""
    body = await request.body()
    if len(body) > config.rpc.http.max_request_size:
        return JSONResponse(
            status_code=413,
            content=error_response(None, RPCErrorCode.INVALID_REQUEST, "Request too large"),
        )

    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = body
    else:
        log_rpc_payload(payload)

    result = await rpc_server.handle_request(payload)
    if result is None:
        return Response(status_code=204)
    # handle_request returns a JSON string; send it raw to avoid double-encoding
    return Response(content=result, media_type="application/json")
