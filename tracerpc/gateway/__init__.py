"""
Trace RPC Gateway

FastAPI application exposing the JSON-RPC front door (``tracerpc.gateway.main:app``).
"""
