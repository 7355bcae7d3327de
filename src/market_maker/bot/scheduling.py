"""
Trade amount and wait interval scheduling.
"""

import math
import random
from typing import Optional

from ..models import EffectiveSettings


class SchedulingPolicy:
    """
    Produces the trade amount and the wait before the next cycle.

    With randomization enabled both values are drawn uniformly from
    ``[min, max)``; a bound pair with ``min == max`` always yields ``min``.
    Without randomization the minimum is used. Inject a seeded
    ``random.Random`` for reproducible schedules.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def amount(self, settings: EffectiveSettings) -> float:
        low, high = settings.min_amount, settings.max_amount
        if not settings.is_randomized or high <= low:
            return low
        # min + r * span can round up to max for r close to 1
        return min(low + self._rng.random() * (high - low), math.nextafter(high, low))

    def interval(self, settings: EffectiveSettings) -> int:
        """Seconds to wait before the next cycle."""
        if not settings.is_randomized or settings.max_interval <= settings.min_interval:
            return settings.min_interval
        return self._rng.randrange(settings.min_interval, settings.max_interval)
