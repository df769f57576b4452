"""HTTP client for the upstream JSON-RPC endpoint."""

from __future__ import annotations

import json
import logging

import httpx

from ..types import DecodeFailure, UpstreamConfig, UpstreamFailure, UpstreamReply
from .sse import decode_stream_payload, loads_json

logger = logging.getLogger(__name__)

SESSION_HEADER = "Mcp-Session-Id"
ACCEPT = "application/json, text/event-stream"


def build_timeout(config: UpstreamConfig) -> httpx.Timeout:
    """Translate config into an httpx timeout (None = wait indefinitely)."""
    return httpx.Timeout(config.timeout, connect=config.connect_timeout)


class UpstreamClient:
    """Issues JSON-RPC calls to a single upstream endpoint.

    Never retries.  Expected failures (non-2xx status, undecodable body,
    transport errors) come back as :class:`UpstreamFailure` values.
    """

    def __init__(
        self,
        config: UpstreamConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.url = config.url
        self._client = client or httpx.AsyncClient(timeout=build_timeout(config))

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, upstream_session_id: str | None) -> dict[str, str]:
        headers = dict(self.config.headers)
        headers["Content-Type"] = "application/json"
        headers["Accept"] = ACCEPT
        if upstream_session_id:
            headers[SESSION_HEADER] = upstream_session_id
        return headers

    async def _post(
        self, rpc: dict, upstream_session_id: str | None,
    ) -> httpx.Response | UpstreamFailure:
        method = rpc.get("method", "?")
        try:
            resp = await self._client.post(
                self.url,
                headers=self._headers(upstream_session_id),
                content=json.dumps(rpc),
            )
        except httpx.HTTPError as e:
            logger.warning("Upstream %s transport error: %s", method, e)
            return UpstreamFailure(message=f"Upstream {method} failed: {e!r}")

        if not resp.is_success:
            logger.warning("Upstream %s returned HTTP %d", method, resp.status_code)
            return UpstreamFailure(
                message=f"Upstream {method} failed: {resp.status_code} {resp.text}",
                status=resp.status_code,
                body=resp.text,
            )
        return resp

    async def call(
        self, rpc: dict, upstream_session_id: str | None = None,
    ) -> UpstreamReply | UpstreamFailure:
        """POST *rpc* and decode the reply payload."""
        resp = await self._post(rpc, upstream_session_id)
        if isinstance(resp, UpstreamFailure):
            return resp

        raw_text = resp.text
        content_type = resp.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            try:
                payload = loads_json(raw_text)
            except ValueError as e:
                payload = DecodeFailure(kind="parse", message=f"Invalid JSON body: {e}")
        else:
            payload = decode_stream_payload(raw_text)

        if isinstance(payload, DecodeFailure):
            return UpstreamFailure(
                message=payload.message, status=resp.status_code, body=raw_text,
            )

        return UpstreamReply(
            session_id=resp.headers.get(SESSION_HEADER) or upstream_session_id,
            payload=payload,
        )

    async def notify(
        self, rpc: dict, upstream_session_id: str | None = None,
    ) -> UpstreamReply | UpstreamFailure:
        """POST a notification; the response body is not decoded."""
        resp = await self._post(rpc, upstream_session_id)
        if isinstance(resp, UpstreamFailure):
            return resp
        return UpstreamReply(
            session_id=resp.headers.get(SESSION_HEADER) or upstream_session_id,
        )
