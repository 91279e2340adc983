"""Shared service-layer helper functions."""

from __future__ import annotations

import time
import uuid


def new_request_id() -> str:
    """Short random id correlating hook events of one request."""
    return uuid.uuid4().hex[:12]


def elapsed_ms(start: float) -> float:
    """Milliseconds since *start* (a ``time.perf_counter()`` reading)."""
    return round((time.perf_counter() - start) * 1000, 2)
