"""mcp-session-proxy: session-translating reverse proxy for JSON-RPC-over-HTTP upstreams."""

from .config import load_config, validate_config
from .types import (
    ChatConfig,
    DecodeFailure,
    ProxyConfig,
    ProxyInstanceConfig,
    RouteResult,
    SessionConfig,
    UpstreamConfig,
    UpstreamFailure,
    UpstreamReply,
)

__version__ = "0.1.0"

__all__ = [
    "load_config",
    "validate_config",
    "ChatConfig",
    "DecodeFailure",
    "ProxyConfig",
    "ProxyInstanceConfig",
    "RouteResult",
    "SessionConfig",
    "UpstreamConfig",
    "UpstreamFailure",
    "UpstreamReply",
]
