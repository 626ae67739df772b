import logging

import uvicorn

from tracerpc.config import load_config

# Keep uvicorn quiet; the gateway logs its own requests
uvicorn_loggers = [
    logging.getLogger("uvicorn"),
    logging.getLogger("uvicorn.error"),
    logging.getLogger("uvicorn.access"),
    logging.getLogger("uvicorn.asgi"),
]

for uvicorn_logger in uvicorn_loggers:
    # Only show ERROR and CRITICAL
    uvicorn_logger.setLevel(logging.ERROR)
    # Remove handlers to prevent duplicate output
    uvicorn_logger.handlers = []

config = load_config()

if __name__ == "__main__":
    uvicorn.run(
        "tracerpc.gateway.main:app",
        host=config.rpc.http.host,
        port=config.rpc.http.port,
        reload=False,
        access_log=False,
        log_config=None,
        timeout_graceful_shutdown=10,
    )
