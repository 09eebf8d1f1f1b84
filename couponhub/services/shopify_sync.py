"""
Shopify sync: mirror local coupons as remote discount codes and fold remote
discount status back into local state.

Remote failures never roll back a local transition; they are logged and
reported in the result dicts.
"""
import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from ..models.coupon import Coupon, CouponStatus, ShopifyStatus, map_remote_status
from ..utils.exceptions import ShopifyError
from ..utils.rate_limit import IntervalRateLimiter
from .coupon_store import CouponStore, coupon_store
from .lifecycle import CouponLifecycle, coupon_lifecycle
from .shopify_client import ShopifyClient

logger = logging.getLogger(__name__)

SYNC_ONE_REASON = 'Deactivated due to Shopify sync'
SYNC_ALL_REASON = 'Shopify sync - deactivated'

CATEGORY_MESSAGES = {
    ShopifyError.UNAUTHORIZED: 'Invalid Shopify access token. Please check your credentials.',
    ShopifyError.NOT_FOUND: 'Shopify store not found. Please check SHOPIFY_STORE_URL.',
    ShopifyError.RATE_LIMITED: 'Shopify API rate limit exceeded. Please try again later.',
}


def describe_shopify_failure(error: str, category: Optional[str]) -> str:
    """User-facing message for a categorized remote failure."""
    return CATEGORY_MESSAGES.get(category, f'Shopify API Error: {error}')


class ShopifySyncService:
    """
    Adapter between local coupons and remote discount codes.

    The client is injected; when it is None every remote operation reports
    "Shopify not configured" instead of raising.
    """

    NOT_CONFIGURED = 'Shopify not configured'

    def __init__(
        self,
        client: Optional[ShopifyClient],
        store: CouponStore = None,
        lifecycle: CouponLifecycle = None,
        rate_limiter: Optional[IntervalRateLimiter] = None,
    ):
        self.client = client
        self.store = store or coupon_store
        self.lifecycle = lifecycle or coupon_lifecycle
        self.rate_limiter = rate_limiter or IntervalRateLimiter()

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def _not_configured(self) -> Dict[str, Any]:
        return {'success': False, 'message': self.NOT_CONFIGURED, 'error': self.NOT_CONFIGURED}

    # ==================== Single discount operations ====================

    def create_remote_discount(self, code: str) -> Dict[str, Any]:
        """Create the remote discount for a coupon and record the link locally."""
        if not self.is_configured:
            return self._not_configured()

        result = self.client.create_coupon_discount(code)
        if not result.get('success'):
            message = describe_shopify_failure(result.get('error'), result.get('category'))
            logger.warning('Failed to create Shopify discount for %s: %s', code, result.get('error'))
            return {
                'success': False,
                'code': code,
                'message': message,
                'error': result.get('error'),
                'category': result.get('category'),
            }

        shopify_id = result.get('discount_id')
        self.store.update_shopify_sync(code, shopify_id, synced=True, shopify_status=ShopifyStatus.ACTIVE.value)
        logger.info('Created Shopify discount %s for %s', shopify_id, code)
        return {
            'success': True,
            'code': code,
            'shopifyId': shopify_id,
            'message': 'Shopify discount created successfully',
        }

    def disable_remote_discount(self, coupon: Coupon) -> Dict[str, Any]:
        """Deactivate the coupon's remote discount and mark it disabled locally."""
        if not coupon.shopify_discount_id:
            return {'success': False, 'message': 'Coupon has no Shopify discount', 'error': 'not linked'}
        if not self.is_configured:
            return self._not_configured()

        result = self.client.disable_discount(coupon.shopify_discount_id)
        if not result.get('success'):
            logger.warning(
                'Failed to disable Shopify discount %s for %s: %s',
                coupon.shopify_discount_id, coupon.code, result.get('error'),
            )
            return {
                'success': False,
                'message': f"Failed to disable Shopify discount: {result.get('error')}",
                'error': result.get('error'),
            }

        self.store.update_shopify_status(coupon.code, ShopifyStatus.DISABLED.value)
        return {'success': True, 'message': 'Shopify discount disabled successfully'}

    def delete_remote_discount(self, coupon: Coupon) -> Dict[str, Any]:
        if not coupon.shopify_discount_id:
            return {'success': False, 'message': 'Coupon has no Shopify discount', 'error': 'not linked'}
        if not self.is_configured:
            return self._not_configured()

        result = self.client.delete_discount(coupon.shopify_discount_id)
        if not result.get('success'):
            logger.warning('Failed to delete Shopify discount for %s: %s', coupon.code, result.get('error'))
            return {'success': False, 'message': result.get('error'), 'error': result.get('error')}

        self.store.update_shopify_status(coupon.code, ShopifyStatus.DELETED.value)
        return {'success': True, 'message': 'Shopify discount deleted successfully'}

    def get_remote_status(self, discount_id: str) -> Dict[str, Any]:
        """Current remote status and code(s) for a discount id."""
        if not self.is_configured:
            return self._not_configured()
        return self.client.get_discount(discount_id)

    def list_remote_discounts(self) -> List[Dict[str, Any]]:
        if not self.is_configured:
            raise ShopifyError(self.NOT_CONFIGURED, category=ShopifyError.OTHER)
        return self.client.list_code_discounts()

    def test_connection(self) -> Dict[str, Any]:
        if not self.is_configured:
            return self._not_configured()
        return self.client.test_connection()

    # ==================== Batch sync ====================

    def sync_all_pending(self, limit: Optional[int] = None) -> Dict[str, Any]:
        """
        Create remote discounts for active, unsynced coupons.

        Items are processed sequentially, paced by the rate limiter. One
        failure does not stop the batch.
        """
        if not self.is_configured:
            return self._not_configured()

        connection = self.client.test_connection()
        if not connection.get('success'):
            message = describe_shopify_failure(connection.get('error'), connection.get('category'))
            return {'success': False, 'message': message, 'error': connection.get('error')}

        pending = self.store.needing_sync(limit)
        if not pending:
            return {
                'success': True,
                'message': 'No coupons need syncing',
                'synced': 0,
                'failed': 0,
                'total': 0,
                'results': [],
            }

        results = []
        for coupon in pending:
            self.rate_limiter.acquire()
            results.append(self.create_remote_discount(coupon.code))

        synced = sum(1 for r in results if r.get('success'))
        failed = len(results) - synced
        logger.info('Shopify sync finished: %d synced, %d failed', synced, failed)

        return {
            'success': True,
            'message': f'Synced {synced} coupons to Shopify. {failed} failed.',
            'synced': synced,
            'failed': failed,
            'total': len(results),
            'results': results,
        }

    # ==================== Status reconciliation ====================

    def _apply_remote_status(self, coupon: Coupon, remote_status: str, reason: str) -> Dict[str, Any]:
        old_status = coupon.shopify_status
        new_status = map_remote_status(remote_status)
        local_was_active = coupon.status == CouponStatus.ACTIVE.value

        updated = old_status != new_status
        if updated:
            self.store.update_shopify_status(coupon.code, new_status)

        deactivated = False
        if new_status == ShopifyStatus.DISABLED.value and local_was_active:
            deactivated = self.lifecycle.deactivate_locally(coupon.code, reason).deactivated

        return {
            'updated': updated,
            'deactivated': deactivated,
            'oldStatus': old_status,
            'newStatus': new_status,
        }

    def check_and_sync_coupon(self, code: str) -> Dict[str, Any]:
        """Read the remote status of one linked coupon and fold it in."""
        coupon = self.store.get_by_code(code)
        if not coupon:
            return {'success': False, 'message': 'Coupon not found'}
        if not coupon.shopify_discount_id:
            return {'success': False, 'message': 'Coupon not synced with Shopify'}

        remote = self.get_remote_status(coupon.shopify_discount_id)
        if not remote.get('success'):
            return {
                'success': False,
                'message': f"Failed to get Shopify status: {remote.get('error')}",
            }

        result = self._apply_remote_status(coupon, remote.get('status'), SYNC_ONE_REASON)
        result.update({
            'success': True,
            'code': code,
            'message': 'Status synced' if result['updated'] else 'Status already in sync',
        })
        return result

    def sync_statuses_from_remote(self) -> Dict[str, Any]:
        """Fold the status of every remote code discount into local coupons."""
        try:
            discounts = self.list_remote_discounts()
        except ShopifyError as e:
            logger.warning('Failed to list Shopify discounts: %s', e.message)
            return {'success': False, 'message': describe_shopify_failure(e.message, e.category)}

        synced = 0
        deactivated = 0
        for discount in discounts:
            for code in discount.get('codes', []):
                coupon = self.store.get_by_code(code)
                if not coupon:
                    continue
                result = self._apply_remote_status(coupon, discount.get('status'), SYNC_ALL_REASON)
                if result['updated']:
                    synced += 1
                if result['deactivated']:
                    deactivated += 1

        return {
            'success': True,
            'message': f'Synced {synced} coupon statuses. Deactivated {deactivated} coupons.',
            'totalFound': len(discounts),
            'synced': synced,
            'deactivated': deactivated,
        }

    # ==================== Order annotations ====================

    def annotate_order(
        self,
        order_id: str,
        code: str,
        employee_code: str,
        store_location: str,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Record a store redemption on the Shopify order: a note line and a
        ``coupon.validation_log`` metafield. Best-effort.
        """
        if not self.is_configured:
            return self._not_configured()

        timestamp = (now or datetime.utcnow()).isoformat() + 'Z'
        try:
            numeric_id = str(order_id).strip()
            if not numeric_id.isdigit():
                numeric_id = self.client.get_order_id_by_name(numeric_id)
            if not numeric_id:
                logger.info('Could not resolve order %s for annotation', order_id)
                return {'success': False, 'skipped': True, 'message': f'Order {order_id} not found'}

            self.client.append_order_note(
                numeric_id,
                f'Coupon {code} validated by {employee_code} @ {store_location} on {timestamp}',
            )
            self.client.set_order_coupon_log_metafield(numeric_id, {
                'code': code,
                'employeeCode': employee_code,
                'storeLocation': store_location,
                'action': 'validated',
                'ts': timestamp,
                'source': 'POS/API',
            })
        except ShopifyError as e:
            logger.warning('Failed to annotate order %s: %s', order_id, e.message)
            return {'success': False, 'message': e.message}

        return {'success': True, 'orderId': numeric_id}
