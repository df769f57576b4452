"""All dataclasses and outcome types for mcp-session-proxy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class UpstreamConfig:
    url: str = "https://docs.dhtmlx.com/mcp"
    timeout: float | None = None  # None = wait indefinitely
    connect_timeout: float | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class SessionConfig:
    max_entries: int = 10_000
    idle_ttl_seconds: float | None = None


@dataclass
class ChatConfig:
    """One-shot chat endpoint (sessionless, independent of the session table)."""
    enabled: bool = True
    tool_name: str = "Inference"
    mode: str = "generation"
    include: list[str] | None = None
    protocol_version: str = "2025-06-18"
    client_name: str = "chatbot-backend"
    client_version: str = "0.1.0"


@dataclass
class ProxyInstanceConfig:
    """Configuration for a single proxy listener instance."""
    port: int = 3001
    upstream: str = ""
    label: str = ""
    host: str = "127.0.0.1"


@dataclass
class ProxyConfig:
    host: str = "127.0.0.1"
    port: int = 3001
    endpoint_path: str = "/mcp"
    static_dir: str | None = "public"
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    sessions: SessionConfig = field(default_factory=SessionConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    instances: list[ProxyInstanceConfig] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

@dataclass
class DecodeFailure:
    """Stream body could not be decoded.

    ``kind`` is ``"decode"`` when no data line exists and ``"parse"`` when
    the text after the marker is not valid JSON.
    """
    kind: str
    message: str


@dataclass
class UpstreamReply:
    session_id: str | None
    payload: Any = None


@dataclass
class UpstreamFailure:
    message: str
    status: int | None = None  # None for transport errors
    body: str = ""


@dataclass
class RouteResult:
    """What the router wants sent back to the client."""
    status: int
    body: Any = None  # None -> empty body (204)
    session_id: str | None = None
    kind: str = ""
