"""In-memory sliding-window rate limiter, keyed per caller and action."""

import time
from collections import deque
from collections.abc import Hashable

_hits: dict[Hashable, deque[float]] = {}


def _prune(bucket: deque[float], now: float, window: float) -> None:
    while bucket and now - bucket[0] >= window:
        bucket.popleft()


def hit(key: Hashable, limit: int, window: float = 60.0) -> bool:
    """Record one hit for ``key``. Returns False when the limit is exceeded.

    Rejected hits are not recorded, so a caller that keeps retrying
    regains capacity as soon as old hits leave the window. Keys whose
    hits have all expired are dropped.
    """
    now = time.monotonic()
    for other in list(_hits):
        if other == key:
            continue
        _prune(_hits[other], now, window)
        if not _hits[other]:
            del _hits[other]

    bucket = _hits.setdefault(key, deque())
    _prune(bucket, now, window)
    if len(bucket) >= limit:
        return False
    bucket.append(now)
    return True


def tracked_keys() -> int:
    return len(_hits)


def reset() -> None:
    _hits.clear()
