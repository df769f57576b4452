"""Multi-instance proxy: N uvicorn listeners, each with its own session table."""

from __future__ import annotations

import asyncio
import dataclasses
import logging

import uvicorn

from ..types import ProxyConfig
from .metrics import ProxyMetrics
from .server import create_app

logger = logging.getLogger(__name__)


async def run_multi_instance(
    config: ProxyConfig,
    metrics: ProxyMetrics | None = None,
) -> None:
    """Start one uvicorn server per entry in ``config.instances``.

    Session tables and upstream clients are never shared between
    instances; only the metrics collector is.
    """
    if metrics is None:
        metrics = ProxyMetrics()

    servers: list[uvicorn.Server] = []
    for inst in config.instances:
        inst_config = dataclasses.replace(
            config,
            host=inst.host,
            port=inst.port,
            upstream=dataclasses.replace(config.upstream, url=inst.upstream or config.upstream.url),
            instances=[],
        )
        app = create_app(
            inst_config,
            metrics=metrics,
            instance_label=inst.label,
        )
        uv_config = uvicorn.Config(
            app,
            host=inst.host,
            port=inst.port,
            log_level="info",
            timeout_graceful_shutdown=2,
        )
        servers.append(uvicorn.Server(uv_config))
        label = inst.label or inst_config.upstream.url
        print(
            f"  [{label}] {inst.host}:{inst.port} -> {inst_config.upstream.url}",
            flush=True,
        )

    print(f"Starting {len(servers)} proxy instance(s)...", flush=True)
    await asyncio.gather(*(s.serve() for s in servers))
