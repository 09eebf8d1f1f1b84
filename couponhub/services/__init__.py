"""
Business logic services for the coupon platform.
"""
from .coupon_store import CouponStore, coupon_store
from .code_generator import CouponGenerator, generate_coupon_code
from .lifecycle import CouponLifecycle, RedemptionResult, DeactivationResult, coupon_lifecycle
from .shopify_client import ShopifyClient
from .shopify_sync import ShopifySyncService
from .webhook_reconciler import WebhookReconciler, WebhookOutcome

__all__ = [
    'CouponStore',
    'coupon_store',
    'CouponGenerator',
    'generate_coupon_code',
    'CouponLifecycle',
    'RedemptionResult',
    'DeactivationResult',
    'coupon_lifecycle',
    'ShopifyClient',
    'ShopifySyncService',
    'WebhookReconciler',
    'WebhookOutcome',
]
