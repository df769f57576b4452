"""Shared fixtures for mcp-session-proxy tests."""

from __future__ import annotations

import json

import httpx
import pytest

from mcp_session_proxy.config import load_config
from mcp_session_proxy.proxy.metrics import ProxyMetrics
from mcp_session_proxy.proxy.sessions import SessionTable
from mcp_session_proxy.proxy.upstream import UpstreamClient
from mcp_session_proxy.types import ProxyConfig

UPSTREAM_URL = "http://fake-upstream:9999/mcp"


def sse_body(payload: dict) -> str:
    return f"event: message\ndata: {json.dumps(payload)}\n\n"


class FakeUpstream:
    """Scriptable upstream behind ``httpx.MockTransport``.

    Every request is recorded.  ``initialize`` hands out ``U1``, ``U2``, ...
    unless ``session_ids`` is set to False.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.session_ids = True
        self.status = 200
        self.error_body = "upstream exploded"
        self._issued = 0

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        rpc = json.loads(request.content)
        if self.status >= 400:
            return httpx.Response(self.status, text=self.error_body)

        method = rpc.get("method", "")
        if method.startswith("notifications/"):
            return httpx.Response(202)

        headers = {"content-type": "text/event-stream"}
        if method == "initialize":
            if self.session_ids:
                self._issued += 1
                headers["mcp-session-id"] = f"U{self._issued}"
            result = {"protocolVersion": "2025-06-18", "capabilities": {}}
        else:
            result = {
                "echo": method,
                "bound_to": request.headers.get("mcp-session-id"),
            }
        payload = {"jsonrpc": "2.0", "id": rpc.get("id"), "result": result}
        return httpx.Response(200, headers=headers, text=sse_body(payload))


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def proxy_config() -> ProxyConfig:
    return load_config(
        config_dict={"upstream": {"url": UPSTREAM_URL}, "static_dir": None},
        env={},
    )


@pytest.fixture
def upstream_client(fake_upstream, proxy_config) -> UpstreamClient:
    transport = httpx.MockTransport(fake_upstream.handler)
    return UpstreamClient(
        proxy_config.upstream,
        client=httpx.AsyncClient(transport=transport),
    )


@pytest.fixture
def sessions() -> SessionTable:
    return SessionTable(max_entries=100)


@pytest.fixture
def metrics() -> ProxyMetrics:
    return ProxyMetrics()
