"""
Probe entrypoint.

Fetches live condition ids from the subgraph, then tries every candidate
stream URL in turn and prints which ones connect and deliver messages.

Usage:
  python -m probe.main
  LR_PROBE_SPORT_SLUG=dota-2 LR_PROBE_WINDOW_S=30 python -m probe.main
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

# Ensure backend root is on path when run as python -m probe.main
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

import httpx

from shared.utils.logging import get_logger, setup_logging

from probe.config import ProbeSettings, get_probe_settings
from probe.streams import ConnectFactory, EndpointResult, probe_endpoint
from probe.subgraph import SubgraphClient, SubgraphError

logger = get_logger(__name__)

GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
RESET = "\033[0m"


def format_summary(results: list[EndpointResult]) -> str:
    lines = ["", "=== Results ==="]
    for r in results:
        color = GREEN if r.messages > 0 else (YELLOW if r.connected else RED)
        lines.append(f"  {color}{r.verdict}{RESET} | {r.url}")
        if r.messages > 0:
            lines.append(f"    -> {r.messages} messages, first after {r.first_message_ms}ms")
        if r.error:
            lines.append(f"    -> Error: {r.error}")
    return "\n".join(lines)


async def run_probe(
    settings: ProbeSettings,
    client: httpx.AsyncClient,
    connect_factory: Optional[ConnectFactory] = None,
) -> list[EndpointResult]:
    try:
        ids = await SubgraphClient(settings, client).fetch_live_condition_ids()
    except SubgraphError as exc:
        logger.warning("subgraph_unavailable", error=str(exc))
        ids = []
    logger.info("probe_ready", condition_ids=len(ids), endpoints=len(settings.stream_urls))

    results: list[EndpointResult] = []
    for url in settings.stream_urls:
        results.append(await probe_endpoint(url, ids, settings, connect_factory))
    return results


async def main() -> int:
    setup_logging("probe")
    settings = get_probe_settings()
    async with httpx.AsyncClient(timeout=settings.http_timeout_s) as client:
        results = await run_probe(settings, client)
    print(format_summary(results))
    return 0 if any(r.connected for r in results) else 1


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
