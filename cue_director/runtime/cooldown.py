"""
Cooldown Ledger - Rate limiting for repeated effects.

Related queries share a bucket ("door creak" and "door slam" both land in
``door``) so variants of the same effect don't fire back to back.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Callable

logger = logging.getLogger(__name__)

_WS = re.compile(r"\s+")


def cooldown_bucket(query: str) -> str:
    """Map a query (or catalog id) onto its cooldown bucket.

    Example:
        cooldown_bucket("Door Creak")     # "door"
        cooldown_bucket("wolf howl")      # "wolf-howl"
        cooldown_bucket("cat  meow")      # "cat meow"
    """
    q = (query or "").lower()
    if "door" in q:
        return "door"
    if "footstep" in q:
        return "footsteps"
    if "whoosh" in q or "wind" in q:
        return "wind"
    if "wolf" in q and "howl" in q:
        return "wolf-howl"
    if "jingle" in q or "bell" in q:
        return "bells"
    if "thunder" in q:
        return "thunder"
    if "creak" in q:
        return "creak"
    if "knock" in q:
        return "knock"
    return _WS.sub(" ", q).strip()


class CooldownLedger:
    """Bucket → next-allowed timestamp.

    Entries are never cleaned up; an expired entry simply stops blocking.
    Only the orchestrator writes to the ledger.
    """

    def __init__(self, cooldown_s: float = 3.5, clock: Callable[[], float] = time.monotonic):
        self.cooldown_s = cooldown_s
        self._clock = clock
        self._next_allowed: dict[str, float] = {}

    def allowed(self, query: str, now: float | None = None) -> bool:
        """True if the query's bucket is not cooling down."""
        now = self._clock() if now is None else now
        return now >= self._next_allowed.get(cooldown_bucket(query), 0.0)

    def record(self, query: str, now: float | None = None) -> str:
        """Start the cooldown for the query's bucket. Returns the bucket."""
        now = self._clock() if now is None else now
        bucket = cooldown_bucket(query)
        self._next_allowed[bucket] = now + self.cooldown_s
        logger.debug(f"Cooldown started for bucket '{bucket}'")
        return bucket

    def remaining(self, query: str, now: float | None = None) -> float:
        """Seconds until the query's bucket is allowed again."""
        now = self._clock() if now is None else now
        return max(0.0, self._next_allowed.get(cooldown_bucket(query), 0.0) - now)

    def __len__(self) -> int:
        return len(self._next_allowed)
