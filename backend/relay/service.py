"""
Relay service entrypoint.
Opens the source page, restores any reload hand-off, then runs the scan
scheduler until SIGINT/SIGTERM. Redis and the feed hub are both optional at
startup: without Redis the sent counter simply restarts at 0 after a reload,
and the transport keeps retrying the hub on its own.

Usage:
  python -m relay.service            # run the relay
  python -m relay.service --once     # scan once, print matches as JSON, exit
"""
from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

# Ensure backend root is on path when run as python -m relay.service
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from redis.exceptions import RedisError

from shared.config import Settings, get_settings
from shared.utils.health_server import start_health_server
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server
from shared.utils.redis_manager import RedisManager

from relay.freshness import FreshnessMonitor, ReloadHandoffStore
from relay.scheduler import ScanScheduler
from scraper.matches import scrape_matches
from scraper.view import DocumentView, PlaywrightDocumentView

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="relay", description="Live match relay")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Scan the source page once, print the live matches as JSON and exit",
    )
    return parser


async def scan_once(view: DocumentView, settings: Settings, out: Optional[TextIO] = None) -> int:
    """One-shot mode: no feed hub, no Redis. Only the JSON result is written to out (stdout)."""
    await view.open()
    try:
        await asyncio.sleep(settings.startup_delay_s)
        document = await view.read()
        matches = scrape_matches(document, settings.source_base_url)
    finally:
        await view.close()
    print(json.dumps([m.model_dump(mode="json") for m in matches], indent=2), file=out or sys.stdout)
    return 0


async def connect_redis(redis: RedisManager) -> bool:
    try:
        await redis.connect()
    except (RedisError, OSError) as exc:
        logger.warning("redis_unavailable", error=str(exc))
        return False
    return True


async def run_relay(view: DocumentView, settings: Settings) -> None:
    start_metrics_server()

    redis = RedisManager(settings)
    redis_ok = await connect_redis(redis)

    handoff = ReloadHandoffStore(redis, settings.source_name, settings.handoff_ttl_s)
    scheduler = ScanScheduler(view, FreshnessMonitor.from_settings(settings), handoff, settings)
    start_health_server("relay", scheduler.status, settings.status_port)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.request_shutdown)
        except NotImplementedError:
            pass

    try:
        await view.open()
        # Give the page's own scripts time to render the live section.
        await asyncio.sleep(settings.startup_delay_s)
        await scheduler.start(await handoff.consume())
        logger.info(
            "relay_service_started",
            source=settings.source_name,
            hub=settings.feed_hub_url,
            redis=redis_ok,
        )
        await scheduler.run()
    finally:
        await scheduler.stop()
        await view.close()
        if redis_ok:
            await redis.disconnect()
        logger.info("relay_service_stopped", sent_count=scheduler.sent_count)


async def main(argv: Optional[Sequence[str]] = None) -> int:
    """Relay service entrypoint."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    # --once keeps stdout for the JSON result.
    setup_logging("relay", {"source": settings.source_name}, stream=sys.stderr if args.once else None)

    view = PlaywrightDocumentView(settings)
    if args.once:
        return await scan_once(view, settings)
    await run_relay(view, settings)
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
