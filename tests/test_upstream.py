"""
Tests for the upstream oracle against a mocked JSON-RPC node.

Uses httpx.MockTransport so no network is involved.
"""

import json

import httpx
import pytest

from tracerpc.trace.types import Existence
from tracerpc.trace.upstream import UpstreamOracle, parse_quantity

UPSTREAM_URL = "http://upstream.test:8545"
TX_HASH = "0x" + "ab" * 32


def make_oracle(handler) -> UpstreamOracle:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UpstreamOracle(client, UPSTREAM_URL, timeout=1.0)


def rpc_result(result):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})
    return handler


def rpc_error(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={
        "jsonrpc": "2.0",
        "id": body["id"],
        "error": {"code": -32000, "message": "header not found"},
    })


def network_down(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def read_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


def garbage(request: httpx.Request) -> httpx.Response:
    return httpx.Response(502, content=b"<html>Bad Gateway</html>")


class TestParseQuantity:
    def test_hex(self):
        assert parse_quantity("0x1a") == 26

    @pytest.mark.parametrize("value", [None, 26, "", "0xzz"])
    def test_invalid(self, value):
        assert parse_quantity(value) is None


# ═══════════════════════════════════════════════════════════════════════
# BLOCK EXISTENCE
# ═══════════════════════════════════════════════════════════════════════

class TestBlockExistence:
    @pytest.mark.asyncio
    async def test_exists(self):
        oracle = make_oracle(rpc_result({"number": "0x5", "transactions": []}))
        assert await oracle.block_exists("0x5") is Existence.EXISTS

    @pytest.mark.asyncio
    async def test_missing(self):
        oracle = make_oracle(rpc_result(None))
        assert await oracle.block_exists("0x1") is Existence.MISSING

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handler", [network_down, read_timeout, garbage, rpc_error])
    async def test_unusable_answer_is_unknown(self, handler):
        oracle = make_oracle(handler)
        existence = await oracle.block_exists("0x1")
        assert existence is Existence.UNKNOWN
        assert not existence.confirmed_missing

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return rpc_result(None)(request)

        oracle = make_oracle(handler)
        await oracle.block_exists("0x5")

        assert seen[0]["jsonrpc"] == "2.0"
        assert seen[0]["method"] == "eth_getBlockByNumber"
        assert seen[0]["params"] == ["0x5", False]

    @pytest.mark.asyncio
    async def test_transaction_count(self):
        oracle = make_oracle(rpc_result({"number": "0x5", "transactions": ["0x1", "0x2"]}))
        assert await oracle.block_transaction_count("0x5") == 2

    @pytest.mark.asyncio
    async def test_transaction_count_unknown(self):
        assert await make_oracle(network_down).block_transaction_count("0x5") is None
        assert await make_oracle(rpc_result(None)).block_transaction_count("0x5") is None


# ═══════════════════════════════════════════════════════════════════════
# TRANSACTION EXISTENCE
# ═══════════════════════════════════════════════════════════════════════

class TestTransactionExistence:
    @pytest.mark.asyncio
    async def test_mined(self):
        oracle = make_oracle(rpc_result({"hash": TX_HASH, "blockNumber": "0x2a"}))
        tx = await oracle.get_transaction(TX_HASH)
        assert tx.existence is Existence.EXISTS
        assert tx.block_number == 42

    @pytest.mark.asyncio
    async def test_pending_has_no_block_number(self):
        oracle = make_oracle(rpc_result({"hash": TX_HASH, "blockNumber": None}))
        tx = await oracle.get_transaction(TX_HASH)
        assert tx.existence is Existence.EXISTS
        assert tx.block_number is None

    @pytest.mark.asyncio
    async def test_missing(self):
        oracle = make_oracle(rpc_result(None))
        assert await oracle.transaction_exists(TX_HASH) is Existence.MISSING

    @pytest.mark.asyncio
    async def test_network_failure(self):
        oracle = make_oracle(network_down)
        tx = await oracle.get_transaction(TX_HASH)
        assert tx.existence is Existence.UNKNOWN
        assert tx.block_number is None


# ═══════════════════════════════════════════════════════════════════════
# HEAD HEIGHT
# ═══════════════════════════════════════════════════════════════════════

class TestHeadHeight:
    @pytest.mark.asyncio
    async def test_head(self):
        assert await make_oracle(rpc_result("0x64")).head_height() == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handler", [network_down, rpc_error, rpc_result(None), rpc_result("junk")])
    async def test_unavailable(self, handler):
        assert await make_oracle(handler).head_height() is None
