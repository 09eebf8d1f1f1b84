"""
Utility modules for the coupon platform.
"""
from .logging_config import setup_logging
from .rate_limit import IntervalRateLimiter
from .errors import (
    ErrorCode,
    error_response,
    internal_error
)
from .exceptions import (
    CouponError,
    CouponNotFoundError,
    CouponAlreadyUsedError,
    CouponNotActiveError,
    CouponAlreadyScratchedError,
    ValidationError,
    LimitExceededError,
    ShopifyError,
    WebhookSignatureError
)

__all__ = [
    'setup_logging',
    'IntervalRateLimiter',
    'ErrorCode',
    'error_response',
    'internal_error',
    'CouponError',
    'CouponNotFoundError',
    'CouponAlreadyUsedError',
    'CouponNotActiveError',
    'CouponAlreadyScratchedError',
    'ValidationError',
    'LimitExceededError',
    'ShopifyError',
    'WebhookSignatureError',
]
