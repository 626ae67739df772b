#!/usr/bin/env python3
"""
Smoke check for a running gateway: send trace_block and verify the outcome.

Usage: python smoke_trace.py <blockHex> [error|empty|nonempty] [rpcUrl]

Exit codes:
    0  response matched the expectation
    1  usage error
    2  expected an error, got a result
    3  unexpected error response
    4  result is not a list
    5  unexpected trace list length
    6  request failed
"""
import os
import sys
from typing import Any

import httpx

from tracerpc.constants import VALID_BLOCK_NUMBER_PATTERN

EXPECTATIONS = ("error", "empty", "nonempty")


def check_response(data: Any, expected: str):
    """Return (exit_code, message) for a decoded trace_block response."""
    if not isinstance(data, dict):
        if expected == "error":
            return 2, f"✗ Expected error, got {data!r}"
        return 4, f"✗ Unexpected response shape: {data!r}"

    if expected == "error":
        if not data.get("error"):
            return 2, f"✗ Expected error, got {data.get('result')!r}"
        return 0, f"✓ error response: {data['error'].get('message')}"

    if data.get("error"):
        return 3, f"✗ Unexpected error: {data['error']}"

    result = data.get("result")
    if not isinstance(result, list):
        return 4, f"✗ Unexpected result shape: {result!r}"

    if expected == "empty" and len(result) == 0:
        return 0, "✓ empty trace list"
    if expected == "nonempty" and len(result) > 0:
        return 0, f"✓ nonempty trace list ({len(result)} traces)"

    return 5, f"✗ Unexpected trace list length: {len(result)}"


def main() -> int:
    if len(sys.argv) < 2 or not VALID_BLOCK_NUMBER_PATTERN.match(sys.argv[1]):
        print("Usage: python smoke_trace.py <blockHex> [error|empty|nonempty] [rpcUrl]")
        return 1

    block_hex = sys.argv[1]
    expected = sys.argv[2] if len(sys.argv) > 2 else "empty"
    if expected not in EXPECTATIONS:
        print(f"Expected must be one of: {', '.join(EXPECTATIONS)}")
        return 1
    rpc_url = sys.argv[3] if len(sys.argv) > 3 else os.environ.get("RPC_URL", "http://127.0.0.1:8545")

    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "trace_block",
        "params": [block_hex],
    }

    try:
        response = httpx.post(rpc_url, json=payload, timeout=30.0)
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        print(f"✗ Request failed: {e}")
        return 6

    code, message = check_response(data, expected)
    print(f"{message} for {block_hex}")
    return code


if __name__ == "__main__":
    sys.exit(main())
