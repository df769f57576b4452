"""Configuration loading, validation, and defaults."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml

from .types import (
    ChatConfig,
    ProxyConfig,
    ProxyInstanceConfig,
    SessionConfig,
    UpstreamConfig,
)

CONFIG_FILENAMES = [
    "mcp-session-proxy.yaml",
    "mcp-session-proxy.yml",
    "mcp-session-proxy.json",
]

ENV_PORT = "PORT"
ENV_UPSTREAM_URL = "MCP_UPSTREAM_URL"


def _discover_config() -> Path | None:
    """Search CWD then parent dirs up to home for a config file."""
    cwd = Path.cwd()
    home = Path.home()
    search = cwd
    while True:
        for name in CONFIG_FILENAMES:
            candidate = search / name
            if candidate.is_file():
                return candidate
        if search == home or search == search.parent:
            break
        search = search.parent
    return None


def _parse_instance(raw: dict[str, Any], default_upstream: str) -> ProxyInstanceConfig:
    return ProxyInstanceConfig(
        port=int(raw.get("port", 3001)),
        upstream=raw.get("upstream") or default_upstream,
        label=raw.get("label", ""),
        host=raw.get("host", "127.0.0.1"),
    )


def _build_config(raw: dict[str, Any], env: dict[str, str] | None = None) -> ProxyConfig:
    """Build a ProxyConfig from a raw dict, then apply env overrides."""
    if env is None:
        env = dict(os.environ)

    upstream_raw = raw.get("upstream", {})
    if isinstance(upstream_raw, str):
        upstream_raw = {"url": upstream_raw}
    upstream = UpstreamConfig(
        url=upstream_raw.get("url", UpstreamConfig.url),
        timeout=upstream_raw.get("timeout"),
        connect_timeout=upstream_raw.get("connect_timeout"),
        headers=dict(upstream_raw.get("headers") or {}),
    )
    if env.get(ENV_UPSTREAM_URL):
        upstream.url = env[ENV_UPSTREAM_URL]

    sessions_raw = raw.get("sessions", {})
    sessions = SessionConfig(
        max_entries=sessions_raw.get("max_entries", 10_000),
        idle_ttl_seconds=sessions_raw.get("idle_ttl_seconds"),
    )

    chat_raw = raw.get("chat", {})
    defaults = ChatConfig()
    chat = ChatConfig(
        enabled=chat_raw.get("enabled", defaults.enabled),
        tool_name=chat_raw.get("tool_name", defaults.tool_name),
        mode=chat_raw.get("mode", defaults.mode),
        include=chat_raw.get("include", defaults.include),
        protocol_version=chat_raw.get("protocol_version", defaults.protocol_version),
        client_name=chat_raw.get("client_name", defaults.client_name),
        client_version=chat_raw.get("client_version", defaults.client_version),
    )

    port = raw.get("port", 3001)
    if env.get(ENV_PORT):
        port = env[ENV_PORT]

    return ProxyConfig(
        host=raw.get("host", "127.0.0.1"),
        port=int(port),
        endpoint_path=raw.get("endpoint_path", "/mcp"),
        static_dir=raw.get("static_dir", "public"),
        upstream=upstream,
        sessions=sessions,
        chat=chat,
        instances=[
            _parse_instance(i, upstream.url)
            for i in raw.get("instances", [])
            if isinstance(i, dict)
        ],
    )


def validate_config(config: ProxyConfig) -> list[str]:
    """Validate a config. Returns list of error strings (empty = valid)."""
    errors: list[str] = []

    if not 0 < config.port < 65536:
        errors.append(f"port must be between 1 and 65535, got {config.port}")

    if not config.endpoint_path.startswith("/"):
        errors.append(f"endpoint_path must start with '/', got {config.endpoint_path!r}")

    if not config.upstream.url.startswith(("http://", "https://")):
        errors.append(f"upstream.url must be an http(s) URL, got {config.upstream.url!r}")

    if config.upstream.timeout is not None and config.upstream.timeout <= 0:
        errors.append("upstream.timeout must be > 0 when set")

    if config.sessions.max_entries < 1:
        errors.append("sessions.max_entries must be >= 1")

    ttl = config.sessions.idle_ttl_seconds
    if ttl is not None and ttl <= 0:
        errors.append("sessions.idle_ttl_seconds must be > 0 when set")

    ports = [i.port for i in config.instances]
    if len(ports) != len(set(ports)):
        errors.append("instances must listen on distinct ports")

    return errors


def load_config(
    config_path: str | Path | None = None,
    config_dict: dict | None = None,
    env: dict[str, str] | None = None,
) -> ProxyConfig:
    """Load config from dict, explicit path, or auto-discover."""
    if config_dict is not None:
        return _build_config(config_dict, env)

    if config_path is not None:
        path = Path(config_path)
    else:
        path = _discover_config()

    if path is None:
        # Return defaults
        return _build_config({}, env)

    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    text = path.read_text()
    if path.suffix == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text) or {}

    return _build_config(raw, env)
