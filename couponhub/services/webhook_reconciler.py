"""
Webhook reconciler: folds Shopify discount and order notifications into
local coupon state.

The HTTP layer hands over ``(topic, raw_body, signature)`` and gets back a
``WebhookOutcome``. Anything that cannot be matched to a local coupon is
acknowledged with success so Shopify does not keep retrying.
"""
import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Iterable, Tuple

from pydantic import ValidationError as PayloadValidationError

from ..models.coupon import (
    Coupon,
    CouponStatus,
    ShopifyStatus,
    SHOPIFY_ORDER_EMPLOYEE_CODE,
    ONLINE_STORE_LOCATION,
    map_remote_status,
)
from ..schemas.webhooks import DiscountWebhook, OrderWebhook, decode_webhook_payload
from ..utils.exceptions import CouponError, WebhookSignatureError
from .coupon_store import CouponStore, coupon_store
from .lifecycle import CouponLifecycle, coupon_lifecycle
from .shopify_sync import ShopifySyncService

logger = logging.getLogger(__name__)

DISABLED_REASON = 'Webhook: Disabled in Shopify'
DELETED_REASON = 'Webhook: Deleted in Shopify'


@dataclass
class WebhookOutcome:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


def compute_webhook_signature(data: bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of the raw body, as sent in X-Shopify-Hmac-Sha256."""
    return base64.b64encode(
        hmac.new(secret.encode('utf-8'), data, hashlib.sha256).digest()
    ).decode('utf-8')


class WebhookReconciler:
    """Signature check, topic dispatch and per-topic reconciliation."""

    def __init__(
        self,
        sync_service: ShopifySyncService,
        secret: str = '',
        store: CouponStore = None,
        lifecycle: CouponLifecycle = None,
    ):
        self.sync = sync_service
        self.secret = secret
        self.store = store or coupon_store
        self.lifecycle = lifecycle or coupon_lifecycle

    # ==================== Entry point ====================

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> None:
        """
        Raises:
            WebhookSignatureError: If a secret is configured and the signature
                is missing or does not match
        """
        if not self.secret:
            logger.warning('SHOPIFY_WEBHOOK_SECRET not set; skipping webhook signature verification')
            return
        if not signature:
            raise WebhookSignatureError('Missing webhook signature')
        expected = compute_webhook_signature(raw_body, self.secret).encode('utf-8')
        # Header values may carry non-ASCII text; compare as bytes
        if not hmac.compare_digest(expected, signature.encode('utf-8', 'surrogateescape')):
            raise WebhookSignatureError()

    def handle(
        self,
        topic: Optional[str],
        raw_body: bytes,
        signature: Optional[str],
        allowed_topics: Optional[Iterable[str]] = None,
        label: str = 'Webhook',
    ) -> WebhookOutcome:
        try:
            self.verify_signature(raw_body, signature)
        except WebhookSignatureError as e:
            logger.warning('Rejected webhook %s: %s', topic, e.message)
            return WebhookOutcome(401, {'error': 'Unauthorized'})

        if not topic:
            return WebhookOutcome(400, {'error': 'Missing X-Shopify-Topic header'})

        try:
            data = json.loads(raw_body or b'')
        except ValueError:
            return WebhookOutcome(400, {'error': 'Invalid JSON'})
        if not isinstance(data, dict):
            return WebhookOutcome(400, {'error': 'Invalid JSON'})

        if allowed_topics is not None and topic not in allowed_topics:
            return self._unhandled(topic, label)

        try:
            payload = decode_webhook_payload(topic, data)
        except PayloadValidationError as e:
            logger.warning('Invalid %s payload: %s', topic, e.errors())
            return WebhookOutcome(400, {'error': 'Invalid payload'})

        logger.info('Received webhook %s', topic)

        if topic in ('discounts/create', 'discount_codes/create'):
            return self.handle_discount_create(payload)
        if topic in ('discounts/update', 'discount_codes/update'):
            return self.handle_discount_update(payload)
        if topic in ('discounts/delete', 'discount_codes/delete'):
            return self.handle_discount_delete(payload)
        if topic in ('orders/create', 'orders/paid'):
            return self.handle_order_paid(payload)
        if topic == 'orders/updated':
            return self.handle_order_updated(payload)

        return self._unhandled(topic, label)

    @staticmethod
    def _unhandled(topic: str, label: str) -> WebhookOutcome:
        logger.info('Unhandled webhook topic: %s', topic)
        return WebhookOutcome(200, {
            'success': True,
            'message': f'{label} received but topic {topic} not handled',
        })

    # ==================== Code resolution ====================

    def resolve_coupon_code(self, payload: DiscountWebhook) -> Tuple[Optional[str], str]:
        """
        Find the coupon code a discount webhook refers to.

        Tried in order: payload code, title pattern, local coupon linked to
        the discount id, live lookup of the discount.

        Returns:
            (code or None, source of the code)
        """
        if payload.code:
            return payload.code.strip().upper(), 'payload'

        code = payload.code_from_title()
        if code:
            return code, 'title'

        discount_id = payload.discount_gid
        if not discount_id:
            return None, 'none'

        linked = self.store.get_by_shopify_id(discount_id)
        if linked:
            return linked.code, 'linked'

        remote = self.sync.get_remote_status(discount_id)
        if remote.get('success') and remote.get('code'):
            return remote['code'], 'remote'

        return None, 'none'

    def _resolve_coupon(self, payload: DiscountWebhook) -> Tuple[Optional[Coupon], Optional[WebhookOutcome]]:
        code, source = self.resolve_coupon_code(payload)
        if not code:
            logger.info('No coupon code found for discount %s', payload.discount_gid)
            return None, WebhookOutcome(200, {
                'success': True,
                'message': 'No coupon code found in webhook, nothing to do',
            })

        coupon = self.store.get_by_code(code)
        if not coupon:
            return None, WebhookOutcome(200, {
                'success': True,
                'message': f'Coupon {code} not found locally',
            })

        logger.debug('Resolved coupon %s from %s', code, source)
        return coupon, None

    # ==================== Discount topics ====================

    def handle_discount_create(self, payload: DiscountWebhook) -> WebhookOutcome:
        coupon, early = self._resolve_coupon(payload)
        if early:
            return early

        if coupon.shopify_discount_id:
            return WebhookOutcome(200, {
                'success': True,
                'message': f'Coupon {coupon.code} already linked to Shopify discount',
            })

        if not payload.discount_gid:
            return WebhookOutcome(200, {
                'success': True,
                'message': f'No discount id in webhook for coupon {coupon.code}, nothing to link',
            })

        status = map_remote_status(payload.status or 'ACTIVE')
        linked = self.store.link_remote_discount(coupon.code, payload.discount_gid, status)
        return WebhookOutcome(200, {
            'success': True,
            'message': f'Linked coupon {coupon.code} to Shopify discount' if linked
            else f'Coupon {coupon.code} already linked to Shopify discount',
        })

    def handle_discount_update(self, payload: DiscountWebhook) -> WebhookOutcome:
        coupon, early = self._resolve_coupon(payload)
        if early:
            return early

        if not payload.status:
            return WebhookOutcome(200, {
                'success': True,
                'message': f'No status in update for coupon {coupon.code}',
            })

        code = coupon.code
        old_status = coupon.shopify_status
        local_was_active = coupon.status == CouponStatus.ACTIVE.value
        new_status = map_remote_status(payload.status)

        if old_status != new_status:
            self.store.update_shopify_status(code, new_status)

        deactivated = False
        if new_status == ShopifyStatus.DISABLED.value and local_was_active:
            deactivated = self.lifecycle.deactivate_locally(code, DISABLED_REASON).deactivated

        if old_status == new_status and not deactivated:
            message = f'Coupon {code} already in sync'
        else:
            message = f'Coupon {code} updated: {old_status} -> {new_status}'

        return WebhookOutcome(200, {
            'success': True,
            'message': message,
            'code': code,
            'oldStatus': old_status,
            'newStatus': new_status,
            'deactivated': deactivated,
        })

    def handle_discount_delete(self, payload: DiscountWebhook) -> WebhookOutcome:
        coupon, early = self._resolve_coupon(payload)
        if early:
            return early

        code = coupon.code
        local_was_active = coupon.status == CouponStatus.ACTIVE.value
        self.store.update_shopify_status(code, ShopifyStatus.DELETED.value)

        deactivated = False
        if local_was_active:
            deactivated = self.lifecycle.deactivate_locally(code, DELETED_REASON).deactivated

        return WebhookOutcome(200, {
            'success': True,
            'message': f'Coupon {code} marked as deleted in Shopify',
            'code': code,
            'deactivated': deactivated,
        })

    # ==================== Order topics ====================

    def _redeem_from_order(self, code: str, order_reference: str) -> Dict[str, Any]:
        coupon = self.store.get_by_code(code)
        if not coupon:
            return {'code': code, 'success': False, 'message': 'Coupon not found in local database'}
        if coupon.status == CouponStatus.USED.value:
            return {'code': code, 'success': True, 'message': 'Coupon already marked as used', 'redeemed': False}

        try:
            redemption = self.lifecycle.redeem(
                code,
                SHOPIFY_ORDER_EMPLOYEE_CODE,
                ONLINE_STORE_LOCATION,
                order_reference=order_reference,
            )
        except CouponError as e:
            return {'code': code, 'success': False, 'message': e.message}

        result = {'code': code, 'success': True, 'message': 'Coupon marked as used', 'redeemed': True}
        if redemption.should_disable_shopify:
            disable = self.sync.disable_remote_discount(redemption.coupon)
            result['shopifyDisabled'] = bool(disable.get('success'))
            if not disable.get('success'):
                result['shopifyError'] = disable.get('error')
        return result

    def handle_order_paid(self, payload: OrderWebhook) -> WebhookOutcome:
        order_number = payload.order_number or payload.name or payload.id
        order_reference = payload.name or (f'#{payload.order_number}' if payload.order_number else str(payload.id))

        results = [self._redeem_from_order(code, order_reference) for code in payload.discount_codes]
        processed = sum(1 for r in results if r.get('redeemed'))

        logger.info('Processed order %s: %d coupons marked as used', order_number, processed)
        return WebhookOutcome(200, {
            'success': True,
            'message': f'Processed order {order_number}: {processed} coupons marked as used',
            'orderId': payload.id,
            'orderNumber': payload.order_number,
            'processedCoupons': processed,
            'results': results,
        })

    def handle_order_updated(self, payload: OrderWebhook) -> WebhookOutcome:
        if payload.financial_status == 'paid' and payload.discount_applications:
            return self.handle_order_paid(payload)

        order_number = payload.order_number or payload.name or payload.id
        return WebhookOutcome(200, {
            'success': True,
            'message': f'Order {order_number} update processed - no action needed',
        })
