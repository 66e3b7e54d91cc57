"""
Clock and random source used by the grading services.

Services never call datetime.now() or the random module directly; they receive
these collaborators at construction so tests can pin time and sampling.
"""
import random
from datetime import datetime, timezone
from typing import Optional


class SystemClock:
    """Wall-clock time as naive UTC, matching what the ORM stores."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


def make_random_source(seed: Optional[int] = None) -> random.Random:
    """Seeded generator for reproducible runs, OS entropy otherwise."""
    if seed is None:
        return random.SystemRandom()
    return random.Random(seed)
