"""Tests for mcp_session_proxy.proxy.sse."""

from __future__ import annotations

import pytest

from mcp_session_proxy.proxy.sse import decode_stream_payload
from mcp_session_proxy.types import DecodeFailure


class TestDecodeStreamPayload:
    def test_single_data_line(self):
        raw = 'event: message\ndata: {"jsonrpc":"2.0","id":1,"result":{}}\n\n'
        assert decode_stream_payload(raw) == {"jsonrpc": "2.0", "id": 1, "result": {}}

    def test_no_data_line_is_decode_failure(self):
        result = decode_stream_payload("event: message\nid: 7\n\n")
        assert isinstance(result, DecodeFailure)
        assert result.kind == "decode"
        assert "No SSE data line found" in result.message

    def test_empty_body_is_decode_failure(self):
        result = decode_stream_payload("")
        assert isinstance(result, DecodeFailure)
        assert result.kind == "decode"

    def test_invalid_json_is_parse_failure(self):
        result = decode_stream_payload("data: {not json}\n")
        assert isinstance(result, DecodeFailure)
        assert result.kind == "parse"

    def test_first_match_wins(self):
        raw = 'data: {"n": 1}\n\ndata: {"n": 2}\n\n'
        assert decode_stream_payload(raw) == {"n": 1}

    def test_crlf_line_endings(self):
        raw = 'event: message\r\ndata: {"ok": true}\r\n\r\n'
        assert decode_stream_payload(raw) == {"ok": True}

    def test_bare_cr_line_endings(self):
        raw = 'event: message\rdata: {"ok": true}\r\r'
        assert decode_stream_payload(raw) == {"ok": True}

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_numbers_are_parse_failures(self, constant):
        result = decode_stream_payload(f'data: {{"x": {constant}}}\n')
        assert isinstance(result, DecodeFailure)
        assert result.kind == "parse"
        assert "non-finite" in result.message

    def test_deep_nesting_is_parse_failure(self):
        result = decode_stream_payload("data: " + "[" * 200_000 + "]" * 200_000 + "\n")
        assert isinstance(result, DecodeFailure)
        assert result.kind == "parse"

    def test_marker_without_space(self):
        assert decode_stream_payload('data:{"a": 1}\n') == {"a": 1}

    def test_marker_must_start_line(self):
        result = decode_stream_payload('  data: {"a": 1}\n')
        assert isinstance(result, DecodeFailure)
        assert result.kind == "decode"

    def test_raw_preview_is_truncated(self):
        raw = "x" * 2000
        result = decode_stream_payload(raw)
        assert isinstance(result, DecodeFailure)
        assert len(result.message) < 600

    def test_non_object_json(self):
        assert decode_stream_payload("data: [1, 2]\n") == [1, 2]
