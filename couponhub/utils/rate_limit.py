"""
Outbound pacing for batch calls to the Shopify Admin API.

Usage:
    limiter = IntervalRateLimiter(rate_per_second=1.0)
    for coupon in coupons:
        limiter.acquire()
        client.create_coupon_discount(coupon.code)
"""
import time
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_RATE_PER_SECOND = 1.0


class IntervalRateLimiter:
    """
    Fixed-interval scheduler: at most one ``acquire()`` per interval.

    The first call returns immediately; later calls sleep until the interval
    since the previous slot has elapsed. A rate of 0 (or less) disables
    pacing entirely.
    """

    def __init__(
        self,
        rate_per_second: float = DEFAULT_RATE_PER_SECOND,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.interval = 1.0 / rate_per_second if rate_per_second and rate_per_second > 0 else 0.0
        self._clock = clock
        self._sleep = sleep
        self._next_slot: Optional[float] = None

    def acquire(self) -> float:
        """Block until the next slot is available. Returns seconds waited."""
        if self.interval <= 0:
            return 0.0

        now = self._clock()
        waited = 0.0
        if self._next_slot is not None and now < self._next_slot:
            waited = self._next_slot - now
            logger.debug('Rate limiter sleeping %.3fs', waited)
            self._sleep(waited)
            now = self._next_slot

        self._next_slot = now + self.interval
        return waited

    def reset(self) -> None:
        self._next_slot = None
