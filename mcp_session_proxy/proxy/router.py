"""JSON-RPC request classification and session-translating dispatch.

Every inbound request takes exactly one path:

- malformed      -> -32600, HTTP 400 (never reaches dispatch)
- notification   -> forwarded when the session is known, always HTTP 204
- initialize     -> fresh upstream session, new proxy id issued
- bound call     -> proxy id resolved to the upstream id, then forwarded

The client only ever sees proxy session ids.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Any

from ..types import RouteResult, UpstreamFailure
from .metrics import ProxyMetrics
from .sessions import SessionTable
from .sse import loads_json
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)

NOTIFICATION_PREFIX = "notifications/"

INVALID_REQUEST = -32600
SERVER_ERROR = -32000

MSG_UNKNOWN_SESSION = "Missing or unknown Mcp-Session-Id. Call initialize first."
MSG_NO_UPSTREAM_SESSION = "Upstream did not return session id"


class RouteKind(enum.Enum):
    MALFORMED = "malformed"
    NOTIFICATION = "notification"
    INITIALIZE = "initialize"
    BOUND = "bound"


def jsonrpc_error(request_id: Any, code: int, message: str) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    }


def classify(body: Any) -> RouteKind:
    """Pick the handling path for a decoded request body."""
    if not isinstance(body, dict) or not isinstance(body.get("method"), str):
        return RouteKind.MALFORMED
    method = body["method"]
    if method.startswith(NOTIFICATION_PREFIX):
        return RouteKind.NOTIFICATION
    if method == "initialize":
        return RouteKind.INITIALIZE
    return RouteKind.BOUND


class JsonRpcRouter:
    """Dispatches inbound JSON-RPC requests through the session table."""

    def __init__(
        self,
        upstream: UpstreamClient,
        sessions: SessionTable,
        metrics: ProxyMetrics | None = None,
    ) -> None:
        self.upstream = upstream
        self.sessions = sessions
        self.metrics = metrics

    async def handle_bytes(
        self, raw: bytes, session_header: str | None,
    ) -> RouteResult:
        """Entry point for a raw HTTP body."""
        try:
            body = loads_json(raw)
        except ValueError:
            # Unreadable bodies are not JSON-RPC objects either.
            result = RouteResult(
                status=400,
                body=jsonrpc_error(None, INVALID_REQUEST, "Invalid Request"),
                kind=RouteKind.MALFORMED.value,
            )
            self._record(result, 0.0)
            return result
        return await self.handle(body, session_header)

    async def handle(self, body: Any, session_header: str | None) -> RouteResult:
        """Route a decoded body.  Never raises."""
        t0 = time.monotonic()
        kind = classify(body)
        request_id = body.get("id") if isinstance(body, dict) else None

        if kind is RouteKind.MALFORMED:
            result = RouteResult(
                status=400,
                body=jsonrpc_error(request_id, INVALID_REQUEST, "Invalid Request"),
            )
        else:
            try:
                if kind is RouteKind.NOTIFICATION:
                    result = await self._notification(body, session_header)
                elif kind is RouteKind.INITIALIZE:
                    result = await self._initialize(body)
                else:
                    result = await self._bound_call(body, session_header)
            except Exception as e:
                logger.exception("Unhandled error routing %s", body.get("method"))
                result = RouteResult(
                    status=500,
                    body=jsonrpc_error(request_id, SERVER_ERROR, str(e)),
                )

        result.kind = kind.value
        self._record(result, (time.monotonic() - t0) * 1000)
        return result

    def _record(self, result: RouteResult, elapsed_ms: float) -> None:
        if self.metrics:
            self.metrics.record({
                "type": "request",
                "kind": result.kind,
                "status": result.status,
                "elapsed_ms": round(elapsed_ms, 1),
            })

    @staticmethod
    def _failure(request_id: Any, failure: UpstreamFailure) -> RouteResult:
        return RouteResult(
            status=500,
            body=jsonrpc_error(request_id, SERVER_ERROR, failure.message),
        )

    async def _notification(
        self, body: dict, session_header: str | None,
    ) -> RouteResult:
        upstream_id = self.sessions.get(session_header)
        if upstream_id is None:
            # Notifications can race ahead of initialize; tolerate them.
            return RouteResult(status=204)

        reply = await self.upstream.notify(body, upstream_id)
        if isinstance(reply, UpstreamFailure):
            return self._failure(body.get("id"), reply)
        return RouteResult(status=204, session_id=session_header)

    async def _initialize(self, body: dict) -> RouteResult:
        reply = await self.upstream.call(body, None)
        if isinstance(reply, UpstreamFailure):
            return self._failure(body.get("id"), reply)

        if not reply.session_id:
            return RouteResult(
                status=500,
                body=jsonrpc_error(body.get("id"), SERVER_ERROR, MSG_NO_UPSTREAM_SESSION),
            )

        proxy_id = self.sessions.generate()
        self.sessions.put(proxy_id, reply.session_id)
        logger.info("Session created: %s (total=%d)", proxy_id[:12], len(self.sessions))
        return RouteResult(status=200, body=reply.payload, session_id=proxy_id)

    async def _bound_call(
        self, body: dict, session_header: str | None,
    ) -> RouteResult:
        upstream_id = self.sessions.get(session_header)
        if upstream_id is None:
            return RouteResult(
                status=400,
                body=jsonrpc_error(body.get("id"), SERVER_ERROR, MSG_UNKNOWN_SESSION),
            )

        reply = await self.upstream.call(body, upstream_id)
        if isinstance(reply, UpstreamFailure):
            return self._failure(body.get("id"), reply)
        return RouteResult(status=200, body=reply.payload, session_id=session_header)
