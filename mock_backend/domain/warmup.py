from __future__ import annotations

import os
from enum import Enum

__all__ = [
    "Readiness",
    "compute_readiness",
    "get_cold_start_from_env",
]


class Readiness(str, Enum):
    warming = "warming"
    ready = "ready"


def compute_readiness(*, served: int, cold_start_requests: int) -> Readiness:
    """Deterministically decide whether request number `served` (0-based) is answered.

    The first `cold_start_requests` requests see a warming instance (503);
    everything after that is served normally.
    """
    if cold_start_requests < 0:
        raise ValueError("cold_start_requests must be >= 0")
    if served < 0:
        raise ValueError("served must be >= 0")
    return Readiness.warming if served < cold_start_requests else Readiness.ready


def get_cold_start_from_env() -> int:
    """Return COLD_START_REQUESTS from environment, defaulting to 0."""
    raw = os.getenv("COLD_START_REQUESTS", "0")
    try:
        val = int(raw, 10)
    except ValueError as e:  # pragma: no cover
        raise ValueError("COLD_START_REQUESTS must be an integer") from e
    if val < 0:
        raise ValueError("COLD_START_REQUESTS must be >= 0")
    return val
