"""
Coupon code generation.

Codes are three uppercase letters followed by three digits (``ABC123``).
Uniqueness is enforced by the database unique constraint; the generator only
skips codes it already knows about and accepts whatever the store accepts.
"""
import logging
import random
import string
from typing import Callable, Dict, Any, Optional

from ..extensions import db
from ..models.coupon import MAX_TOTAL_COUPONS
from ..utils.exceptions import LimitExceededError, ValidationError
from .coupon_store import CouponStore, coupon_store

logger = logging.getLogger(__name__)


def generate_coupon_code(rng: Optional[random.Random] = None) -> str:
    """Draw one code uniformly: 3 letters + 3 digits."""
    chooser = rng or random
    letters = ''.join(chooser.choice(string.ascii_uppercase) for _ in range(3))
    digits = ''.join(chooser.choice(string.digits) for _ in range(3))
    return letters + digits


class CouponGenerator:
    """Bulk coupon creation bounded by the global ceiling."""

    def __init__(
        self,
        store: CouponStore = None,
        code_factory: Optional[Callable[[], str]] = None,
        max_total: int = MAX_TOTAL_COUPONS,
    ):
        self.store = store or coupon_store
        self.code_factory = code_factory or generate_coupon_code
        self.max_total = max_total

    def check_request(self, count) -> int:
        """
        Validate a generation request against the ceiling.

        Returns:
            The current total number of coupons

        Raises:
            ValidationError: If count is not an integer in [1, max_total]
            LimitExceededError: If existing + count would exceed the ceiling
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 1 or count > self.max_total:
            raise ValidationError(
                f'Invalid count. Must be between 1 and {self.max_total:,}.',
                field='count',
            )

        existing = self.store.count()
        if existing + count > self.max_total:
            raise LimitExceededError(self.max_total, existing, count)
        return existing

    def generate(self, count: int) -> Dict[str, Any]:
        """
        Create up to ``count`` new active coupons.

        At most ``2 * count`` codes are drawn. If the ceiling or the attempt
        budget is hit first, fewer coupons are created; ``count`` in the
        result is always the number actually inserted.

        Returns:
            Dict with count, requested, attempts and totalInDatabase
        """
        existing = self.check_request(count)
        target = min(count, self.max_total - existing)
        known = self.store.existing_codes()

        inserted = 0
        attempts = 0
        max_attempts = count * 2

        while inserted < target and attempts < max_attempts:
            attempts += 1
            code = self.code_factory()
            if code in known:
                continue
            known.add(code)
            if self.store.insert_code(code) is not None:
                inserted += 1

        db.session.commit()

        if inserted < count:
            logger.warning('Generated %d of %d requested coupons after %d attempts', inserted, count, attempts)
        else:
            logger.info('Generated %d coupons', inserted)

        return {
            'count': inserted,
            'requested': count,
            'attempts': attempts,
            'totalInDatabase': existing + inserted,
        }
