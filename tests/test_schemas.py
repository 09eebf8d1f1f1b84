"""
Tests for webhook payload schemas.
"""
import pytest
from pydantic import ValidationError

from couponhub.schemas.webhooks import (
    DiscountWebhook,
    OrderWebhook,
    decode_webhook_payload,
)


class TestDiscountWebhook:
    """Tests for discount payload decoding."""

    def test_unknown_fields_are_ignored(self):
        payload = DiscountWebhook.model_validate({'title': 'Coupon Discount ABC123', 'shop_id': 1})
        assert payload.title == 'Coupon Discount ABC123'
        assert payload.status is None

    def test_code_from_title(self):
        assert DiscountWebhook(title='Coupon Discount ABC123').code_from_title() == 'ABC123'
        assert DiscountWebhook(title='Summer Sale').code_from_title() is None
        assert DiscountWebhook().code_from_title() is None

    @pytest.mark.parametrize('data,expected', [
        ({'admin_graphql_api_id': 'gid://shopify/DiscountCodeNode/5'}, 'gid://shopify/DiscountCodeNode/5'),
        ({'id': 5}, 'gid://shopify/DiscountCodeNode/5'),
        ({'id': 'gid://shopify/DiscountCodeNode/5'}, 'gid://shopify/DiscountCodeNode/5'),
        ({}, None),
    ])
    def test_discount_gid(self, data, expected):
        assert DiscountWebhook.model_validate(data).discount_gid == expected


class TestOrderWebhook:
    """Tests for order payload decoding."""

    def test_only_discount_code_applications_count(self):
        payload = OrderWebhook.model_validate({
            'id': 1,
            'order_number': 1001,
            'discount_applications': [
                {'type': 'discount_code', 'code': 'ABC123'},
                {'type': 'automatic', 'title': 'Winter Sale'},
                {'type': 'manual', 'code': 'IGNORED'},
                {'type': 'discount_code', 'code': 'XYZ789'},
            ]
        })
        assert payload.discount_codes == ['ABC123', 'XYZ789']

    def test_missing_applications(self):
        assert OrderWebhook.model_validate({'id': 1}).discount_codes == []

    def test_malformed_applications_raise(self):
        with pytest.raises(ValidationError):
            OrderWebhook.model_validate({'id': 1, 'discount_applications': 'ABC123'})


class TestDecodeWebhookPayload:
    """Tests for topic to schema dispatch."""

    def test_dispatch_by_topic(self):
        assert isinstance(decode_webhook_payload('discount_codes/update', {}), DiscountWebhook)
        assert isinstance(decode_webhook_payload('orders/paid', {}), OrderWebhook)
        assert decode_webhook_payload('products/update', {}) is None
