from .server import create_app
from .router import JsonRpcRouter, RouteKind, classify
from .sessions import SessionTable
from .sse import decode_stream_payload
from .upstream import UpstreamClient
from .metrics import ProxyMetrics

__all__ = [
    "create_app",
    "JsonRpcRouter",
    "RouteKind",
    "classify",
    "SessionTable",
    "decode_stream_payload",
    "UpstreamClient",
    "ProxyMetrics",
]
