"""
Database models for the coupon platform.
"""
from .coupon import (
    Coupon,
    CouponStatus,
    ShopifyStatus,
    map_remote_status,
    COUPON_CODE_PATTERN,
    MAX_TOTAL_COUPONS,
    DISCOUNT_AMOUNT,
    DISCOUNT_MINIMUM_SUBTOTAL,
    DISCOUNT_VALIDITY_DAYS,
    DISCOUNT_USAGE_LIMIT,
    DISCOUNT_TITLE_PREFIX,
    SHOPIFY_ORDER_EMPLOYEE_CODE,
    ONLINE_STORE_LOCATION,
    VALID_STORE_LOCATIONS,
)

__all__ = [
    'Coupon',
    'CouponStatus',
    'ShopifyStatus',
    'map_remote_status',
    'COUPON_CODE_PATTERN',
    'MAX_TOTAL_COUPONS',
    'DISCOUNT_AMOUNT',
    'DISCOUNT_MINIMUM_SUBTOTAL',
    'DISCOUNT_VALIDITY_DAYS',
    'DISCOUNT_USAGE_LIMIT',
    'DISCOUNT_TITLE_PREFIX',
    'SHOPIFY_ORDER_EMPLOYEE_CODE',
    'ONLINE_STORE_LOCATION',
    'VALID_STORE_LOCATIONS',
]
