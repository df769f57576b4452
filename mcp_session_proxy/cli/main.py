"""CLI: mcp-session-proxy serve, decode, config validate."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ..config import load_config, validate_config
from ..types import DecodeFailure


def cmd_serve(args):
    """Start the HTTP proxy."""
    import asyncio
    import logging as _logging

    import uvicorn

    from ..proxy import create_app

    # Uvicorn force-cancels in-flight upstream calls after the graceful
    # shutdown timeout; hide the resulting CancelledError tracebacks.
    class _SuppressCancelled(_logging.Filter):
        def filter(self, record: _logging.LogRecord) -> bool:
            if record.exc_info:
                exc_type = record.exc_info[0]
                if exc_type is asyncio.CancelledError:
                    return False
            return True

    _logging.getLogger("uvicorn.error").addFilter(_SuppressCancelled())
    _logging.basicConfig(level=_logging.INFO, format="%(levelname)s:%(name)s: %(message)s")

    try:
        config = load_config(config_path=args.config)
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    if args.upstream:
        config.upstream.url = args.upstream
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port

    errors = validate_config(config)
    if errors:
        for err in errors:
            print(f"Config error: {err}", file=sys.stderr)
        sys.exit(1)

    if config.instances:
        # Multi-instance mode: ignore --upstream/--port/--host CLI args
        from ..proxy.multi import run_multi_instance

        print(f"Multi-instance proxy ({len(config.instances)} listeners):")
        asyncio.run(run_multi_instance(config))
        return

    app = create_app(config)
    print(
        f"mcp-session-proxy on http://{config.host}:{config.port}{config.endpoint_path} "
        f"-> {config.upstream.url}",
        flush=True,
    )
    uvicorn.run(
        app, host=config.host, port=config.port, log_level="info",
        timeout_graceful_shutdown=2,
    )


def cmd_decode(args):
    """Decode a saved stream-framed response body and print its JSON."""
    from ..proxy.sse import decode_stream_payload

    path = Path(args.file)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        sys.exit(1)

    result = decode_stream_payload(path.read_text())
    if isinstance(result, DecodeFailure):
        print(f"{result.kind} error: {result.message}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(result, indent=2))


def cmd_config_validate(args):
    """Validate the config file."""
    try:
        config = load_config(config_path=args.config)
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    errors = validate_config(config)
    if errors:
        print("Config validation errors:")
        for err in errors:
            print(f"  - {err}")
        sys.exit(1)
    print("Config is valid.")
    print(f"  Endpoint:  {config.endpoint_path}")
    print(f"  Upstream:  {config.upstream.url}")
    print(f"  Listen:    {config.host}:{config.port}")
    print(f"  Sessions:  max={config.sessions.max_entries}, ttl={config.sessions.idle_ttl_seconds}")
    if config.instances:
        print(f"  Instances: {len(config.instances)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-session-proxy",
        description="Session-translating reverse proxy for JSON-RPC-over-HTTP upstreams",
    )
    parser.add_argument("--config", "-c", help="Path to config file")

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP proxy")
    serve_parser.add_argument(
        "--upstream", "-u", default=None,
        help="Upstream JSON-RPC endpoint URL. Ignored when instances are configured.",
    )
    serve_parser.add_argument("--port", "-p", type=int, default=None)
    serve_parser.add_argument("--host", default=None)

    # decode
    decode_parser = subparsers.add_parser("decode", help="Decode a saved SSE response body")
    decode_parser.add_argument("file", help="File containing the raw response body")

    # config validate
    config_parser = subparsers.add_parser("config", help="Config operations")
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_sub.add_parser("validate", help="Validate config file")

    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "decode":
        cmd_decode(args)
    elif args.command == "config":
        if args.config_command == "validate":
            cmd_config_validate(args)
        else:
            print("Usage: mcp-session-proxy config validate")
            sys.exit(1)


if __name__ == "__main__":
    main()
