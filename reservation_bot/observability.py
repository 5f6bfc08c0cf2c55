"""
Lightweight observability utilities.

Every turn crosses several collaborators (recognizer, knowledge base,
state storage). When a reply is slow or missing, the per-turn latency
records produced here are what lets you reconstruct which hop misbehaved.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

logger = logging.getLogger("reservation_bot.trace")


@contextmanager
def trace_span(name: str, **metadata):
    """
    Measure execution duration of a turn-level operation.

    Wraps:
    - full turns
    - intent recognition
    - knowledge base lookups

    Example log:
    [TRACE] recognize duration_ms=12.40 conversation=abc123

    Guarantees
    ----------
    - Always logs completion (even if exception occurs)
    - Never suppresses exceptions
    - Produces structured key=value logs
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000

        meta = " ".join(f"{k}={v}" for k, v in metadata.items())
        logger.info("[TRACE] %s duration_ms=%.2f %s", name, duration_ms, meta)
