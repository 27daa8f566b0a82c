"""
Lightweight metrics collection for the Live Relay.
Wraps prometheus_client.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
MESSAGES_SENT = Counter(
    "lr_messages_sent_total",
    "Total wire messages sent to the feed hub",
    ["msg_type"],
)
MESSAGES_DROPPED = Counter(
    "lr_messages_dropped_total",
    "Wire messages dropped because the transport was not connected",
    ["msg_type"],
)
HUB_ACKS = Counter(
    "lr_hub_acks_total",
    "Acknowledgements received from the feed hub",
    ["ok"],
)
SCANS = Counter(
    "lr_scans_total",
    "Total scan ticks executed",
    ["outcome"],
)
EXTRACTION_MISSES = Counter(
    "lr_extraction_misses_total",
    "Live cards that did not yield a match",
)
PAGE_RELOADS = Counter(
    "lr_page_reloads_total",
    "Document view reloads",
    ["reason"],
)
TRANSPORT_RECONNECTS = Counter(
    "lr_transport_reconnects_total",
    "Reconnect attempts scheduled after a close or error",
)

# ── Histograms ──────────────────────────────────────────────────────────
SCAN_DURATION = Histogram(
    "lr_scan_duration_seconds",
    "Time to read the document and extract matches",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# ── Gauges ──────────────────────────────────────────────────────────────
LIVE_MATCHES = Gauge(
    "lr_live_matches",
    "Number of live matches found by the last scan",
)
TRANSPORT_CONNECTED = Gauge(
    "lr_transport_connected",
    "1 while the feed hub connection is open",
)


@contextmanager
def track_latency(histogram: Histogram) -> Iterator[None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.observe(time.perf_counter() - start)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
