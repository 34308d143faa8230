"""
Recommendation feed: a random, size-bounded slice of the catalog.

The shuffle is unseeded, so exact output is not reproducible; only the size
and membership of a sample can be asserted on.
"""

from __future__ import annotations

import random
from typing import Any, Optional, Sequence

from car_navigator.models import Vehicle
from car_navigator.normalizer import normalize


def sample(
    records: Sequence[Any],
    count: int,
    rng: Optional[random.Random] = None,
) -> list[Vehicle]:
    """Return ``min(count, len(records))`` distinct catalog entries, normalized."""
    size = min(max(int(count), 0), len(records))
    if size == 0:
        return []
    shuffled = list(records)
    (rng or random).shuffle(shuffled)
    return [normalize(record) for record in shuffled[:size]]
