"""
Coupon model and the compiled-in coupon program constants.
"""
import re
from datetime import datetime
from enum import Enum
from ..extensions import db


# ==================== Program Constants ====================

COUPON_CODE_PATTERN = re.compile(r'^[A-Z]{3}[0-9]{3}$')
MAX_TOTAL_COUPONS = 10000

# Remote discount terms
DISCOUNT_AMOUNT = '1000.00'
DISCOUNT_MINIMUM_SUBTOTAL = '1000.00'
DISCOUNT_VALIDITY_DAYS = 120
DISCOUNT_USAGE_LIMIT = 1
DISCOUNT_TITLE_PREFIX = 'Coupon Discount'

# Online redemption sentinels
SHOPIFY_ORDER_EMPLOYEE_CODE = 'SHOPIFY_ORDER'
ONLINE_STORE_LOCATION = 'Online Shopify'

# Chennai store locations accepted for in-store redemption
VALID_STORE_LOCATIONS = (
    'Aminjikarai',
    'Anna Nagar East',
    'Arumbakkam',
    'Kanchipuram',
    'Kilpauk',
    'Mogappair',
    'Mylapore',
    'Nerkundram',
    'Nungambakkam',
    'Perambur',
    'Saligramam',
    'Thiruvallur',
    'Washermenpet',
    'Adyar',
    ONLINE_STORE_LOCATION,
)


# ==================== Enums ====================

class CouponStatus(str, Enum):
    """Local redemption state."""
    ACTIVE = 'active'
    USED = 'used'
    INACTIVE = 'inactive'


class ShopifyStatus(str, Enum):
    """Last known state of the remote discount."""
    ACTIVE = 'active'
    DISABLED = 'disabled'
    DELETED = 'deleted'


def map_remote_status(remote_status) -> str:
    """Map a Shopify discount status (ACTIVE, EXPIRED, ...) to a local shopify_status."""
    if (remote_status or '').upper() == 'ACTIVE':
        return ShopifyStatus.ACTIVE.value
    return ShopifyStatus.DISABLED.value


# ==================== Models ====================

class Coupon(db.Model):
    """
    A unique scratch-card coupon.

    ``status`` tracks local redemption, ``is_scratched`` the customer reveal,
    and the ``shopify_*`` columns mirror the remote discount code.
    """
    __tablename__ = 'coupons'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(6), unique=True, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=CouponStatus.ACTIVE.value, index=True)

    created_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    used_date = db.Column(db.DateTime)
    scratched_date = db.Column(db.DateTime)

    # Redemption details
    employee_code = db.Column(db.String(100))
    store_location = db.Column(db.String(100))
    order_reference = db.Column(db.String(100))

    is_scratched = db.Column(db.Boolean, nullable=False, default=False)

    # Shopify mirror
    shopify_discount_id = db.Column(db.String(255), index=True)
    shopify_synced = db.Column(db.Boolean, nullable=False, default=False)
    shopify_status = db.Column(db.String(20), nullable=False, default=ShopifyStatus.ACTIVE.value)

    def __repr__(self):
        return f'<Coupon {self.code} {self.status}>'

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'status': self.status or CouponStatus.ACTIVE.value,
            'created_date': self.created_date.isoformat() if self.created_date else None,
            'used_date': self.used_date.isoformat() if self.used_date else None,
            'scratched_date': self.scratched_date.isoformat() if self.scratched_date else None,
            'employee_code': self.employee_code,
            'store_location': self.store_location,
            'order_reference': self.order_reference,
            'is_scratched': bool(self.is_scratched),
            'shopify_discount_id': self.shopify_discount_id,
            'shopify_synced': bool(self.shopify_synced),
            'shopify_status': self.shopify_status or ShopifyStatus.ACTIVE.value,
        }
