"""
Tests for the Shopify Admin API client with httpx mocked out.
"""
import json
from datetime import datetime
import httpx
import pytest
from unittest.mock import patch, MagicMock

from couponhub.services.shopify_client import ShopifyClient, to_discount_gid
from couponhub.utils.exceptions import ShopifyError


def make_response(payload=None, status_code=200):
    """Build a real httpx.Response bound to a request."""
    request = httpx.Request('POST', 'https://test-shop.myshopify.com/admin/api/2024-01/graphql.json')
    content = json.dumps(payload).encode('utf-8') if payload is not None else b''
    return httpx.Response(status_code, content=content, request=request)


@pytest.fixture
def http():
    """Patch httpx.Client; yields the mock whose .request returns responses."""
    with patch('couponhub.services.shopify_client.httpx.Client') as client_cls:
        session = MagicMock()
        client_cls.return_value.__enter__.return_value = session
        yield session


@pytest.fixture
def shopify():
    return ShopifyClient('https://test-shop.myshopify.com/', 'shpat_test_token')


def sent_json(http, call_index=0):
    return http.request.call_args_list[call_index].kwargs['json']


class TestClientSetup:
    """Tests for URL and header construction."""

    def test_domain_is_normalized(self, shopify):
        assert shopify.shop_domain == 'test-shop.myshopify.com'
        assert shopify.graphql_url == 'https://test-shop.myshopify.com/admin/api/2024-01/graphql.json'

    def test_access_token_header(self, http, shopify):
        http.request.return_value = make_response({'data': {'shop': {'name': 'Test'}}})
        shopify.test_connection()
        headers = http.request.call_args.kwargs['headers']
        assert headers['X-Shopify-Access-Token'] == 'shpat_test_token'

    def test_to_discount_gid(self):
        assert to_discount_gid(123) == 'gid://shopify/DiscountCodeNode/123'
        assert to_discount_gid('gid://shopify/DiscountCodeNode/9') == 'gid://shopify/DiscountCodeNode/9'


class TestErrorCategories:
    """Tests for mapping HTTP and GraphQL failures to categories."""

    @pytest.mark.parametrize('status_code,category', [
        (401, ShopifyError.UNAUTHORIZED),
        (404, ShopifyError.NOT_FOUND),
        (429, ShopifyError.RATE_LIMITED),
        (500, ShopifyError.OTHER),
    ])
    def test_http_status_categories(self, http, shopify, status_code, category):
        http.request.return_value = make_response({'errors': 'nope'}, status_code=status_code)

        with pytest.raises(ShopifyError) as exc_info:
            shopify._execute_query('query { shop { name } }')

        assert exc_info.value.category == category

    def test_graphql_errors_raise(self, http, shopify):
        http.request.return_value = make_response({'errors': [{'message': 'Throttled'}]})

        with pytest.raises(ShopifyError) as exc_info:
            shopify._execute_query('query { shop { name } }')

        assert exc_info.value.category == ShopifyError.RATE_LIMITED

    def test_transport_error_raises(self, http, shopify):
        http.request.side_effect = httpx.ConnectError('connection refused')

        with pytest.raises(ShopifyError):
            shopify._execute_query('query { shop { name } }')


class TestCreateCouponDiscount:
    """Tests for discountCodeBasicCreate."""

    def test_sends_fixed_discount_terms(self, http, shopify):
        http.request.return_value = make_response({'data': {'discountCodeBasicCreate': {
            'codeDiscountNode': {'id': 'gid://shopify/DiscountCodeNode/77', 'codeDiscount': {'status': 'ACTIVE'}},
            'userErrors': []
        }}})

        result = shopify.create_coupon_discount('ABC123', now=datetime(2026, 1, 1))

        assert result == {
            'success': True,
            'discount_id': 'gid://shopify/DiscountCodeNode/77',
            'code': 'ABC123',
            'status': 'ACTIVE'
        }
        discount = sent_json(http)['variables']['basicCodeDiscount']
        assert discount['title'] == 'Coupon Discount ABC123'
        assert discount['code'] == 'ABC123'
        assert discount['startsAt'] == '2026-01-01T00:00:00Z'
        assert discount['endsAt'] == '2026-05-01T00:00:00Z'
        assert discount['customerGets']['value']['discountAmount']['amount'] == '1000.00'
        assert discount['minimumRequirement']['subtotal']['greaterThanOrEqualToSubtotal'] == '1000.00'
        assert discount['usageLimit'] == 1
        assert discount['appliesOncePerCustomer'] is True
        assert not any(discount['combinesWith'].values())

    def test_user_errors_reported(self, http, shopify):
        http.request.return_value = make_response({'data': {'discountCodeBasicCreate': {
            'codeDiscountNode': None,
            'userErrors': [{'field': ['code'], 'message': 'Code must be unique'}]
        }}})

        result = shopify.create_coupon_discount('ABC123')

        assert result['success'] is False
        assert result['error'] == 'Code must be unique'
        assert result['category'] == ShopifyError.OTHER

    def test_unauthorized_reported_with_category(self, http, shopify):
        http.request.return_value = make_response({'errors': 'Invalid API key or access token'}, status_code=401)

        result = shopify.create_coupon_discount('ABC123')

        assert result['success'] is False
        assert result['category'] == ShopifyError.UNAUTHORIZED


class TestDiscountReads:
    """Tests for reading and listing discounts."""

    def test_get_discount_flattens_codes(self, http, shopify):
        http.request.return_value = make_response({'data': {'codeDiscountNode': {
            'id': 'gid://shopify/DiscountCodeNode/77',
            'codeDiscount': {
                'title': 'Coupon Discount ABC123',
                'status': 'EXPIRED',
                'codes': {'nodes': [{'code': 'ABC123'}]}
            }
        }}})

        result = shopify.get_discount('77')

        assert result['success'] is True
        assert result['status'] == 'EXPIRED'
        assert result['code'] == 'ABC123'
        assert sent_json(http)['variables'] == {'id': 'gid://shopify/DiscountCodeNode/77'}

    def test_get_discount_not_found(self, http, shopify):
        http.request.return_value = make_response({'data': {'codeDiscountNode': None}})
        result = shopify.get_discount('77')
        assert result['success'] is False
        assert result['category'] == ShopifyError.NOT_FOUND

    def test_list_follows_pagination(self, http, shopify):
        page = lambda code, has_next, cursor: make_response({'data': {'codeDiscountNodes': {
            'nodes': [{'id': f'gid://shopify/DiscountCodeNode/{code}', 'codeDiscount': {
                'title': f'Coupon Discount {code}', 'status': 'ACTIVE', 'codes': {'nodes': [{'code': code}]}
            }}],
            'pageInfo': {'hasNextPage': has_next, 'endCursor': cursor}
        }}})
        http.request.side_effect = [page('AAA111', True, 'c1'), page('BBB222', False, None)]

        discounts = shopify.list_code_discounts(page_size=1)

        assert [d['code'] for d in discounts] == ['AAA111', 'BBB222']
        assert sent_json(http, 1)['variables'] == {'first': 1, 'after': 'c1'}


class TestDisableAndDelete:
    """Tests for discountCodeDeactivate and discountCodeDelete."""

    def test_disable_discount(self, http, shopify):
        http.request.return_value = make_response({'data': {'discountCodeDeactivate': {
            'codeDiscountNode': {'id': 'gid://shopify/DiscountCodeNode/77', 'codeDiscount': {'status': 'EXPIRED'}},
            'userErrors': []
        }}})

        result = shopify.disable_discount('gid://shopify/DiscountCodeNode/77')

        assert result['success'] is True
        assert result['status'] == 'EXPIRED'
        assert 'discountCodeDeactivate' in sent_json(http)['query']

    def test_disable_discount_user_error(self, http, shopify):
        http.request.return_value = make_response({'data': {'discountCodeDeactivate': {
            'codeDiscountNode': None,
            'userErrors': [{'field': ['id'], 'message': 'Discount does not exist'}]
        }}})

        result = shopify.disable_discount('gid://shopify/DiscountCodeNode/77')

        assert result['success'] is False
        assert result['error'] == 'Discount does not exist'

    def test_delete_discount(self, http, shopify):
        http.request.return_value = make_response({'data': {'discountCodeDelete': {
            'deletedCodeDiscountId': 'gid://shopify/DiscountCodeNode/77',
            'userErrors': []
        }}})

        result = shopify.delete_discount('77')

        assert result == {'success': True, 'deleted_id': 'gid://shopify/DiscountCodeNode/77'}


class TestOrderAnnotations:
    """Tests for order lookup, note and metafield calls."""

    def test_get_order_id_by_name(self, http, shopify):
        http.request.return_value = make_response({'data': {'orders': {'nodes': [
            {'id': 'gid://shopify/Order/555', 'name': '#1001', 'legacyResourceId': '555'}
        ]}}})

        assert shopify.get_order_id_by_name('1001') == '555'
        assert sent_json(http)['variables'] == {'query': 'name:#1001'}

    def test_append_order_note_keeps_existing_note(self, http, shopify):
        http.request.side_effect = [
            make_response({'order': {'id': 555, 'note': 'Gift wrap'}}),
            make_response({'order': {'id': 555}}),
        ]

        result = shopify.append_order_note('555', 'Coupon ABC123 validated')

        assert result['note'] == 'Gift wrap\nCoupon ABC123 validated'
        put_call = http.request.call_args_list[1]
        assert put_call.args == ('PUT', 'https://test-shop.myshopify.com/admin/api/2024-01/orders/555.json')
        assert put_call.kwargs['json'] == {'order': {'id': '555', 'note': 'Gift wrap\nCoupon ABC123 validated'}}

    def test_set_order_coupon_log_metafield(self, http, shopify):
        http.request.return_value = make_response({'data': {'metafieldsSet': {'userErrors': []}}})

        result = shopify.set_order_coupon_log_metafield('555', {'code': 'ABC123'})

        assert result == {'success': True}
        metafield = sent_json(http)['variables']['metafields'][0]
        assert metafield['ownerId'] == 'gid://shopify/Order/555'
        assert metafield['namespace'] == 'coupon'
        assert metafield['key'] == 'validation_log'
        assert json.loads(metafield['value']) == {'code': 'ABC123'}
