"""
Tests for the smoke check's response classification and exit codes.
"""

from unittest.mock import patch

import httpx
import pytest

import smoke_trace
from smoke_trace import check_response


class TestCheckResponse:
    def test_expected_error(self):
        code, message = check_response({"error": {"code": -32001, "message": "Block not found"}}, "error")
        assert code == 0
        assert "Block not found" in message

    def test_expected_error_got_result(self):
        assert check_response({"result": []}, "error")[0] == 2

    def test_unexpected_error(self):
        assert check_response({"error": {"code": -32000}}, "empty")[0] == 3

    def test_result_not_list(self):
        assert check_response({"result": None}, "empty")[0] == 4

    def test_empty(self):
        assert check_response({"result": []}, "empty")[0] == 0

    def test_nonempty(self):
        assert check_response({"result": [{"type": "call"}]}, "nonempty")[0] == 0

    @pytest.mark.parametrize("result,expected", [([], "nonempty"), ([{"type": "call"}], "empty")])
    def test_wrong_length(self, result, expected):
        assert check_response({"result": result}, expected)[0] == 5

    @pytest.mark.parametrize("data", [[{"result": []}], "oops", 42, None])
    def test_non_object_response(self, data):
        assert check_response(data, "empty")[0] == 4
        assert check_response(data, "nonempty")[0] == 4
        assert check_response(data, "error")[0] == 2


class TestMain:
    @pytest.mark.parametrize("argv", [
        ["smoke_trace.py"],
        ["smoke_trace.py", "123"],
        ["smoke_trace.py", "0x1", "maybe"],
    ])
    def test_usage(self, argv):
        with patch.object(smoke_trace.sys, "argv", argv):
            assert smoke_trace.main() == 1

    def test_request_failure(self):
        def fail(*args, **kwargs):
            raise httpx.ConnectError("connection refused")

        with patch.object(smoke_trace.sys, "argv", ["smoke_trace.py", "0x1", "empty", "http://127.0.0.1:1"]), \
                patch.object(smoke_trace.httpx, "post", side_effect=fail):
            assert smoke_trace.main() == 6

    def test_success(self):
        response = httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": []})

        with patch.object(smoke_trace.sys, "argv", ["smoke_trace.py", "0x1"]), \
                patch.object(smoke_trace.httpx, "post", return_value=response) as post:
            assert smoke_trace.main() == 0
        assert post.call_args.kwargs["json"]["method"] == "trace_block"
        assert post.call_args.kwargs["json"]["params"] == ["0x1"]
