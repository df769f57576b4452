"""HTTP front end for the session-translating JSON-RPC proxy.

Clients POST JSON-RPC to ``endpoint_path`` and address sessions with the
proxy-issued ``Mcp-Session-Id``; the upstream's own session ids stay inside
the session table.

Usage:
    mcp-session-proxy -c config.yaml serve --upstream https://docs.dhtmlx.com/mcp
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from ..types import ProxyConfig, RouteResult
from .chat import ChatError, run_chat
from .metrics import ProxyMetrics
from .router import JsonRpcRouter
from .sessions import SessionTable
from .upstream import SESSION_HEADER, UpstreamClient

logger = logging.getLogger(__name__)


def _to_response(result: RouteResult) -> Response:
    headers = {SESSION_HEADER: result.session_id} if result.session_id else None
    if result.status == 204:
        return Response(status_code=204, headers=headers)
    return JSONResponse(content=result.body, status_code=result.status, headers=headers)


def create_app(
    config: ProxyConfig | None = None,
    *,
    upstream_client: UpstreamClient | None = None,
    sessions: SessionTable | None = None,
    metrics: ProxyMetrics | None = None,
    instance_label: str = "",
) -> FastAPI:
    """Create the FastAPI proxy application.

    Args:
        config: Proxy configuration.  Defaults to ``ProxyConfig()``.
        upstream_client: Reuse an existing upstream client (tests, embedding).
        sessions: Session table owned by this app.  A new one is created if None.
        metrics: Shared metrics collector.
        instance_label: Human-readable label for this instance.
    """
    config = config or ProxyConfig()
    if upstream_client is None:
        upstream_client = UpstreamClient(config.upstream)
    if sessions is None:
        sessions = SessionTable(
            max_entries=config.sessions.max_entries,
            idle_ttl_seconds=config.sessions.idle_ttl_seconds,
        )
    if metrics is None:
        metrics = ProxyMetrics()

    router = JsonRpcRouter(upstream_client, sessions, metrics)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        yield
        await upstream_client.aclose()

    _app_title = "mcp-session-proxy"
    if instance_label:
        _app_title += f" [{instance_label}]"
    app = FastAPI(title=_app_title, lifespan=lifespan)
    app.state.instance_label = instance_label
    app.state.sessions = sessions
    app.state.router = router
    app.state.metrics = metrics

    @app.post(config.endpoint_path)
    async def jsonrpc_endpoint(request: Request):
        raw = await request.body()
        result = await router.handle_bytes(raw, request.headers.get(SESSION_HEADER))
        return _to_response(result)

    @app.get("/health")
    async def health():
        return {"status": "ok", "sessions": len(sessions)}

    @app.get("/stats")
    async def stats():
        snap = metrics.snapshot()
        snap["session_table"] = sessions.snapshot()
        return snap

    if config.chat.enabled:
        @app.post("/api/chat")
        async def chat(request: Request):
            try:
                body = await request.json()
            except ValueError:
                body = {}
            raw_message = body.get("message") if isinstance(body, dict) else None
            message = str(raw_message if raw_message is not None else "").strip()
            if not message:
                return JSONResponse({"error": "message is required"}, status_code=400)
            try:
                answer = await run_chat(upstream_client, config.chat, message)
            except ChatError as e:
                logger.warning("Chat failed: %s", e)
                return JSONResponse({"error": str(e)}, status_code=500)
            return {"answer": answer}

    # Static assets last so API routes are never shadowed
    if config.static_dir and Path(config.static_dir).is_dir():
        app.mount("/", StaticFiles(directory=config.static_dir, html=True), name="static")

    logger.info(
        "Proxy ready: %s -> %s%s",
        config.endpoint_path,
        upstream_client.url,
        f", label={instance_label}" if instance_label else "",
    )
    return app
