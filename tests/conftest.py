"""
Shared pytest fixtures.

Every test gets a fresh in-memory SQLite database. Shopify is never called
for real: ``mock_shopify`` swaps the app's client for a MagicMock.
"""
import base64
import dataclasses
import hashlib
import hmac
import pytest
from unittest.mock import MagicMock

from couponhub import create_app
from couponhub.extensions import db
from couponhub.models import Coupon
from couponhub.services.shopify_client import ShopifyClient

WEBHOOK_SECRET = 'test_webhook_secret_123'
LINKED_DISCOUNT_ID = 'gid://shopify/DiscountCodeNode/1234567890'


def generate_hmac_signature(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Generate Shopify-compatible HMAC signature."""
    return base64.b64encode(
        hmac.new(secret.encode('utf-8'), payload, hashlib.sha256).digest()
    ).decode('utf-8')


@pytest.fixture
def app():
    """Create test application."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def webhook_secret(app):
    """Configure a webhook secret so signatures are enforced."""
    settings = app.extensions['shopify_settings']
    app.extensions['shopify_settings'] = dataclasses.replace(settings, webhook_secret=WEBHOOK_SECRET)
    return WEBHOOK_SECRET


@pytest.fixture
def mock_shopify(app):
    """Replace the Shopify client with a MagicMock that succeeds by default."""
    mock = MagicMock(spec=ShopifyClient)
    mock.test_connection.return_value = {
        'success': True,
        'shop': {'name': 'Test Shop', 'domain': 'test-shop.myshopify.com'}
    }
    mock.create_coupon_discount.side_effect = lambda code: {
        'success': True,
        'discount_id': f'gid://shopify/DiscountCodeNode/{code}',
        'code': code,
        'status': 'ACTIVE'
    }
    mock.disable_discount.return_value = {'success': True, 'status': 'EXPIRED'}
    mock.delete_discount.return_value = {'success': True}
    mock.get_discount.return_value = {
        'success': True,
        'id': LINKED_DISCOUNT_ID,
        'status': 'ACTIVE',
        'title': 'Coupon Discount XYZ789',
        'codes': ['XYZ789'],
        'code': 'XYZ789'
    }
    mock.list_code_discounts.return_value = []
    app.extensions['shopify_client'] = mock
    return mock


@pytest.fixture
def sample_coupon(app):
    """An active, unsynced coupon."""
    coupon = Coupon(code='ABC123')
    db.session.add(coupon)
    db.session.commit()
    return coupon


@pytest.fixture
def linked_coupon(app):
    """An active coupon mirrored as an active Shopify discount."""
    coupon = Coupon(
        code='XYZ789',
        shopify_discount_id=LINKED_DISCOUNT_ID,
        shopify_synced=True,
        shopify_status='active'
    )
    db.session.add(coupon)
    db.session.commit()
    return coupon


def reload(code: str) -> Coupon:
    """Fetch a coupon fresh from the database."""
    db.session.expire_all()
    return Coupon.query.filter_by(code=code).first()
