"""One-shot chat: its own initialize + tools/call pair, no session table."""

from __future__ import annotations

import logging
from typing import Any

from ..types import ChatConfig, UpstreamFailure
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


class ChatError(Exception):
    """Chat round-trip could not produce an answer."""


def extract_answer_text(payload: Any) -> str | None:
    """First ``type == "text"`` content item, else ``structuredContent.result``."""
    if not isinstance(payload, dict):
        return None
    result = payload.get("result")
    if not isinstance(result, dict):
        return None
    for item in result.get("content") or []:
        if isinstance(item, dict) and item.get("type") == "text" and item.get("text"):
            return item["text"]
    structured = result.get("structuredContent")
    if isinstance(structured, dict) and structured.get("result"):
        return structured["result"]
    return None


async def run_chat(upstream: UpstreamClient, config: ChatConfig, message: str) -> str:
    """Initialize a throwaway upstream session and ask the inference tool."""
    init = await upstream.call({
        "jsonrpc": "2.0",
        "id": 1,
        "method": "initialize",
        "params": {
            "protocolVersion": config.protocol_version,
            "capabilities": {},
            "clientInfo": {
                "name": config.client_name,
                "version": config.client_version,
            },
        },
    })
    if isinstance(init, UpstreamFailure):
        raise ChatError(init.message)
    if not init.session_id:
        raise ChatError("Missing Mcp-Session-Id header on initialize")

    reply = await upstream.call({
        "jsonrpc": "2.0",
        "id": 2,
        "method": "tools/call",
        "params": {
            "name": config.tool_name,
            "arguments": {
                "request": {
                    "query": message,
                    "mode": config.mode,
                    "include": config.include,
                },
            },
        },
    }, init.session_id)
    if isinstance(reply, UpstreamFailure):
        raise ChatError(reply.message)

    text = extract_answer_text(reply.payload)
    if not text:
        raise ChatError(f"No text content in upstream response: {str(reply.payload)[:500]}")
    return text
