"""
Custom exceptions for coupon business logic.

These exceptions carry a user-facing message and a machine code so route
handlers can turn them into ``{success: false, message}`` responses without
string matching.
"""


class CouponError(Exception):
    """Base exception for all coupon business logic errors."""

    def __init__(self, message: str, code: str = "COUPON_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class CouponNotFoundError(CouponError):
    """Coupon code does not exist locally."""

    def __init__(self, coupon_code: str = None):
        self.coupon_code = coupon_code
        message = "Coupon not found"
        if coupon_code:
            message = f'Coupon "{coupon_code}" not found'
        super().__init__(message, "COUPON_NOT_FOUND")


class CouponAlreadyUsedError(CouponError):
    """Coupon has already been redeemed."""

    def __init__(self, coupon_code: str, used_date=None, employee_code: str = None, store_location: str = None):
        self.coupon_code = coupon_code
        self.used_date = used_date
        message = "Coupon already used"
        if used_date:
            message = (
                f"Coupon already used on {used_date.strftime('%Y-%m-%d %H:%M:%S')}"
                f" by employee {employee_code} at {store_location}."
            )
        super().__init__(message, "COUPON_ALREADY_USED")


class CouponNotActiveError(CouponError):
    """Coupon is not in the active state."""

    def __init__(self, coupon_code: str, status: str):
        self.coupon_code = coupon_code
        self.status = status
        if status == 'inactive':
            detail = "This coupon has been deactivated."
        else:
            detail = f'This coupon has status: "{status}".'
        message = f'Coupon is not active. Current status: "{status}". {detail}'
        super().__init__(message, "COUPON_NOT_ACTIVE")


class CouponAlreadyScratchedError(CouponError):
    """Coupon has already been revealed."""

    def __init__(self, coupon_code: str):
        self.coupon_code = coupon_code
        super().__init__("Coupon already scratched", "COUPON_ALREADY_SCRATCHED")


class ValidationError(CouponError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class LimitExceededError(CouponError):
    """Coupon ceiling would be exceeded."""

    def __init__(self, limit: int, current: int, requested: int):
        self.limit = limit
        self.current = current
        self.requested = requested
        self.remaining = max(limit - current, 0)
        message = (
            f"Cannot generate {requested} codes. Database already has {current} codes. "
            f"Maximum total is {limit:,}. You can only generate {self.remaining} more codes."
        )
        super().__init__(message, "COUPON_LIMIT_EXCEEDED")


class ShopifyError(CouponError):
    """Error communicating with the Shopify Admin API."""

    UNAUTHORIZED = 'unauthorized'
    NOT_FOUND = 'not_found'
    RATE_LIMITED = 'rate_limited'
    OTHER = 'other'

    def __init__(self, message: str, category: str = None, original_error: Exception = None):
        self.original_error = original_error
        self.category = category or categorize_shopify_error(message)
        super().__init__(message, "SHOPIFY_ERROR")


def categorize_shopify_error(message: str) -> str:
    """Coarse category for a Shopify failure, matched on the error text."""
    text = (message or '').lower()
    if 'unauthorized' in text or 'invalid api key or access token' in text:
        return ShopifyError.UNAUTHORIZED
    if 'not found' in text:
        return ShopifyError.NOT_FOUND
    if 'rate limit' in text or 'throttled' in text:
        return ShopifyError.RATE_LIMITED
    return ShopifyError.OTHER


class WebhookSignatureError(CouponError):
    """Webhook HMAC signature missing or invalid."""

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message, "INVALID_SIGNATURE")
