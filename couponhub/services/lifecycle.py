"""
Coupon lifecycle: the only place coupon state transitions happen.

    active --redeem--> used        (terminal)
    active --deactivate--> inactive (terminal, remote-driven)
    is_scratched: false -> true     (independent of status)

Each transition is a single conditional UPDATE; when it touches no row the
coupon is reloaded to report why.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from ..models.coupon import Coupon, CouponStatus
from ..utils.exceptions import (
    CouponNotFoundError,
    CouponAlreadyUsedError,
    CouponNotActiveError,
    CouponAlreadyScratchedError,
)
from .coupon_store import CouponStore, coupon_store

logger = logging.getLogger(__name__)


@dataclass
class RedemptionResult:
    coupon: Coupon

    @property
    def should_disable_shopify(self) -> bool:
        """True when a remote discount exists and must be disabled by the caller."""
        return bool(self.coupon.shopify_discount_id)


@dataclass
class DeactivationResult:
    deactivated: bool
    message: str


class CouponLifecycle:
    """State transitions for a single coupon."""

    def __init__(self, store: CouponStore = None):
        self.store = store or coupon_store

    def _explain_redeem_failure(self, code: str):
        coupon = self.store.get_by_code(code)
        if not coupon:
            raise CouponNotFoundError(code)
        if coupon.status != CouponStatus.ACTIVE.value:
            if coupon.status == CouponStatus.USED.value:
                raise CouponAlreadyUsedError(
                    code, coupon.used_date, coupon.employee_code, coupon.store_location
                )
            raise CouponNotActiveError(code, coupon.status)
        # Active but carrying a used_date
        raise CouponAlreadyUsedError(code, coupon.used_date, coupon.employee_code, coupon.store_location)

    def redeem(
        self,
        code: str,
        employee_code: str,
        store_location: str,
        order_reference: Optional[str] = None,
    ) -> RedemptionResult:
        """
        Mark a coupon used.

        Store location is validated by the caller; online redemptions pass
        the online sentinels.

        Raises:
            CouponNotFoundError, CouponAlreadyUsedError, CouponNotActiveError
        """
        coupon = self.store.get_by_code(code)
        if not coupon:
            raise CouponNotFoundError(code)

        if not self.store.mark_used(code, employee_code, store_location, order_reference):
            # Lost a race or the coupon was never redeemable
            self._explain_redeem_failure(code)

        coupon = self.store.get_by_code(code)
        logger.info('Coupon %s redeemed by %s at %s', code, employee_code, store_location)
        return RedemptionResult(coupon=coupon)

    def scratch(self, code: str) -> Coupon:
        """
        Reveal a coupon.

        Raises:
            CouponNotFoundError, CouponAlreadyScratchedError
        """
        coupon = self.store.get_by_code(code)
        if not coupon:
            raise CouponNotFoundError(code)
        if coupon.is_scratched:
            raise CouponAlreadyScratchedError(code)

        if not self.store.mark_scratched(code):
            raise CouponAlreadyScratchedError(code)

        return self.store.get_by_code(code)

    def deactivate_locally(self, code: str, reason: str) -> DeactivationResult:
        """Force an active coupon inactive. Only reconciliation calls this."""
        if self.store.mark_inactive(code, reason):
            logger.info('Coupon %s deactivated locally: %s', code, reason)
            return DeactivationResult(True, 'Coupon deactivated locally')
        return DeactivationResult(False, 'Coupon already inactive or not found')


coupon_lifecycle = CouponLifecycle()
