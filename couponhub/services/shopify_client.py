"""
Shopify Admin API client.
Handles coupon discount codes, order annotations and webhook subscriptions.
"""
import json
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List

import httpx

from ..models.coupon import (
    DISCOUNT_AMOUNT,
    DISCOUNT_MINIMUM_SUBTOTAL,
    DISCOUNT_TITLE_PREFIX,
    DISCOUNT_USAGE_LIMIT,
    DISCOUNT_VALIDITY_DAYS,
)
from ..utils.exceptions import ShopifyError, categorize_shopify_error

logger = logging.getLogger(__name__)

_HTTP_STATUS_CATEGORIES = {
    401: ShopifyError.UNAUTHORIZED,
    403: ShopifyError.UNAUTHORIZED,
    404: ShopifyError.NOT_FOUND,
    429: ShopifyError.RATE_LIMITED,
}

DISCOUNT_FIELDS = """
    ... on DiscountCodeBasic {
        title
        status
        startsAt
        endsAt
        codes(first: 10) {
            nodes {
                code
            }
        }
    }
"""


def to_discount_gid(discount_id) -> str:
    """Normalize a numeric discount id to a DiscountCodeNode GID."""
    discount_id = str(discount_id)
    if discount_id.startswith('gid://'):
        return discount_id
    return f'gid://shopify/DiscountCodeNode/{discount_id}'


def _user_error_message(errors: List[Dict[str, Any]]) -> str:
    return ', '.join(e.get('message', str(e)) for e in errors)


def _flatten_discount(node: Dict[str, Any]) -> Dict[str, Any]:
    discount = node.get('codeDiscount') or {}
    codes = [c.get('code') for c in (discount.get('codes') or {}).get('nodes', []) if c.get('code')]
    return {
        'id': node.get('id'),
        'title': discount.get('title'),
        'status': discount.get('status'),
        'starts_at': discount.get('startsAt'),
        'ends_at': discount.get('endsAt'),
        'codes': codes,
        'code': codes[0] if codes else None,
    }


class ShopifyClient:
    """
    Client for the Shopify Admin GraphQL API (plus REST for order notes).

    Supports:
    - Coupon discount codes (create/deactivate/delete/read/list)
    - Order lookup, notes and metafields
    - Webhook subscriptions
    """

    def __init__(self, shop_domain: str, access_token: str, api_version: str = '2024-01', timeout: float = 30.0):
        self.shop_domain = shop_domain.replace('https://', '').replace('http://', '').rstrip('/')
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self.base_url = f'https://{self.shop_domain}/admin/api/{api_version}'
        self.graphql_url = f'{self.base_url}/graphql.json'

    @classmethod
    def from_settings(cls, settings) -> Optional['ShopifyClient']:
        """Build a client from ShopifySettings, or None when not configured."""
        if not settings.is_configured:
            return None
        return cls(settings.store_domain, settings.access_token, settings.api_version)

    def _headers(self) -> Dict[str, str]:
        return {
            'X-Shopify-Access-Token': self.access_token,
            'Content-Type': 'application/json'
        }

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            with httpx.Client() as client:
                response = client.request(
                    method,
                    url,
                    headers=self._headers(),
                    timeout=self.timeout,
                    **kwargs
                )
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            category = _HTTP_STATUS_CATEGORIES.get(status, ShopifyError.OTHER)
            raise ShopifyError(f'HTTP {status}: {e.response.text[:200]}', category=category, original_error=e)
        except httpx.HTTPError as e:
            raise ShopifyError(f'Request failed: {e}', category=ShopifyError.OTHER, original_error=e)

    def _execute_query(self, query: str, variables: Optional[Dict] = None) -> Dict[str, Any]:
        """Execute a GraphQL query."""
        payload = {'query': query}
        if variables:
            payload['variables'] = variables

        response = self._request('POST', self.graphql_url, json=payload)
        result = response.json()

        if 'errors' in result:
            raise ShopifyError(f"GraphQL errors: {result['errors']}")

        return result.get('data', {})

    def _rest(self, method: str, path: str, body: Optional[Dict] = None) -> Dict[str, Any]:
        kwargs = {'json': body} if body is not None else {}
        response = self._request(method, f'{self.base_url}{path}', **kwargs)
        return response.json() if response.content else {}

    # ==================== Shop ====================

    def test_connection(self) -> Dict[str, Any]:
        """Fetch basic shop info to confirm credentials."""
        query = """
        query {
            shop {
                name
                myshopifyDomain
            }
        }
        """
        try:
            result = self._execute_query(query)
            shop = result.get('shop') or {}
            return {
                'success': True,
                'shop': {'name': shop.get('name'), 'domain': shop.get('myshopifyDomain')}
            }
        except ShopifyError as e:
            return {
                'success': False,
                'error': e.message,
                'category': e.category
            }

    # ==================== Discount Codes ====================

    def create_coupon_discount(self, code: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Create the single-use fixed-amount discount for a coupon code.

        Terms: DISCOUNT_AMOUNT off orders of at least DISCOUNT_MINIMUM_SUBTOTAL,
        one use, once per customer, valid DISCOUNT_VALIDITY_DAYS from now,
        not combinable with other discounts.

        Returns:
            Dict with success, discount_id and code, or error and category
        """
        starts_at = now or datetime.utcnow()
        ends_at = starts_at + timedelta(days=DISCOUNT_VALIDITY_DAYS)

        mutation = """
        mutation discountCodeBasicCreate($basicCodeDiscount: DiscountCodeBasicInput!) {
            discountCodeBasicCreate(basicCodeDiscount: $basicCodeDiscount) {
                codeDiscountNode {
                    id
                    codeDiscount {
                        ... on DiscountCodeBasic {
                            title
                            status
                            codes(first: 1) {
                                nodes {
                                    code
                                }
                            }
                        }
                    }
                }
                userErrors {
                    field
                    message
                }
            }
        }
        """

        variables = {
            'basicCodeDiscount': {
                'title': f'{DISCOUNT_TITLE_PREFIX} {code}',
                'code': code,
                'startsAt': starts_at.isoformat() + 'Z',
                'endsAt': ends_at.isoformat() + 'Z',
                'customerSelection': {
                    'all': True
                },
                'customerGets': {
                    'value': {
                        'discountAmount': {
                            'amount': DISCOUNT_AMOUNT,
                            'appliesOnEachItem': False
                        }
                    },
                    'items': {
                        'all': True
                    }
                },
                'minimumRequirement': {
                    'subtotal': {
                        'greaterThanOrEqualToSubtotal': DISCOUNT_MINIMUM_SUBTOTAL
                    }
                },
                'usageLimit': DISCOUNT_USAGE_LIMIT,
                'appliesOncePerCustomer': True,
                'combinesWith': {
                    'productDiscounts': False,
                    'orderDiscounts': False,
                    'shippingDiscounts': False
                }
            }
        }

        try:
            result = self._execute_query(mutation, variables)
        except ShopifyError as e:
            return {
                'success': False,
                'error': e.message,
                'category': e.category
            }

        data = result.get('discountCodeBasicCreate') or {}
        errors = data.get('userErrors', [])
        if errors:
            message = _user_error_message(errors)
            return {
                'success': False,
                'error': message,
                'category': categorize_shopify_error(message),
                'errors': errors
            }

        node = data.get('codeDiscountNode') or {}
        return {
            'success': True,
            'discount_id': node.get('id'),
            'code': code,
            'status': (node.get('codeDiscount') or {}).get('status')
        }

    def disable_discount(self, discount_id: str) -> Dict[str, Any]:
        """Deactivate a code discount. No retry."""
        mutation = """
        mutation discountCodeDeactivate($id: ID!) {
            discountCodeDeactivate(id: $id) {
                codeDiscountNode {
                    id
                    codeDiscount {
                        ... on DiscountCodeBasic {
                            status
                        }
                    }
                }
                userErrors {
                    field
                    message
                }
            }
        }
        """

        try:
            result = self._execute_query(mutation, {'id': to_discount_gid(discount_id)})
        except ShopifyError as e:
            return {
                'success': False,
                'error': e.message,
                'category': e.category
            }

        data = result.get('discountCodeDeactivate') or {}
        errors = data.get('userErrors', [])
        if errors:
            return {
                'success': False,
                'error': _user_error_message(errors),
                'errors': errors
            }

        node = data.get('codeDiscountNode') or {}
        return {
            'success': True,
            'discount_id': node.get('id') or discount_id,
            'status': (node.get('codeDiscount') or {}).get('status')
        }

    def delete_discount(self, discount_id: str) -> Dict[str, Any]:
        """Delete a code discount by ID."""
        mutation = """
        mutation discountCodeDelete($id: ID!) {
            discountCodeDelete(id: $id) {
                deletedCodeDiscountId
                userErrors {
                    field
                    message
                }
            }
        }
        """

        try:
            result = self._execute_query(mutation, {'id': to_discount_gid(discount_id)})
        except ShopifyError as e:
            return {
                'success': False,
                'error': e.message,
                'category': e.category
            }

        data = result.get('discountCodeDelete') or {}
        errors = data.get('userErrors', [])
        if errors:
            return {
                'success': False,
                'error': _user_error_message(errors),
                'errors': errors
            }

        return {
            'success': True,
            'deleted_id': data.get('deletedCodeDiscountId') or discount_id
        }

    def get_discount(self, discount_id: str) -> Dict[str, Any]:
        """Read status, title and codes of a code discount."""
        query = """
        query getDiscount($id: ID!) {
            codeDiscountNode(id: $id) {
                id
                codeDiscount {
                    %s
                }
            }
        }
        """ % DISCOUNT_FIELDS

        try:
            result = self._execute_query(query, {'id': to_discount_gid(discount_id)})
        except ShopifyError as e:
            return {
                'success': False,
                'error': e.message,
                'category': e.category
            }

        node = result.get('codeDiscountNode')
        if not node:
            return {
                'success': False,
                'error': 'Discount not found',
                'category': ShopifyError.NOT_FOUND
            }

        discount = _flatten_discount(node)
        discount['success'] = True
        return discount

    def list_code_discounts(self, page_size: int = 50, max_pages: int = 200) -> List[Dict[str, Any]]:
        """
        List all code discounts, following cursor pagination.

        Raises:
            ShopifyError: If any page fails
        """
        query = """
        query listDiscounts($first: Int!, $after: String) {
            codeDiscountNodes(first: $first, after: $after) {
                nodes {
                    id
                    codeDiscount {
                        %s
                    }
                }
                pageInfo {
                    hasNextPage
                    endCursor
                }
            }
        }
        """ % DISCOUNT_FIELDS

        discounts = []
        cursor = None
        for _ in range(max_pages):
            variables = {'first': page_size}
            if cursor:
                variables['after'] = cursor
            result = self._execute_query(query, variables)
            connection = result.get('codeDiscountNodes') or {}
            discounts.extend(_flatten_discount(node) for node in connection.get('nodes', []))

            page_info = connection.get('pageInfo') or {}
            if not page_info.get('hasNextPage'):
                break
            cursor = page_info.get('endCursor')

        return discounts

    # ==================== Orders ====================

    def get_order_id_by_name(self, name: str) -> Optional[str]:
        """Resolve an order name like "#1001" to its numeric id."""
        query = """
        query findOrder($query: String!) {
            orders(first: 1, query: $query) {
                nodes {
                    id
                    name
                    legacyResourceId
                }
            }
        }
        """
        name = name if name.startswith('#') else f'#{name}'
        result = self._execute_query(query, {'query': f'name:{name}'})
        nodes = (result.get('orders') or {}).get('nodes', [])
        if not nodes:
            return None
        return str(nodes[0].get('legacyResourceId') or nodes[0]['id'].rsplit('/', 1)[-1])

    def append_order_note(self, order_id: str, line: str) -> Dict[str, Any]:
        """Append a line to the order's internal note (REST)."""
        order = self._rest('GET', f'/orders/{order_id}.json').get('order') or {}
        existing = order.get('note')
        note = f'{existing}\n{line}' if existing else line
        self._rest('PUT', f'/orders/{order_id}.json', {'order': {'id': order_id, 'note': note}})
        return {'success': True, 'note': note}

    def set_order_coupon_log_metafield(self, order_id: str, entry: Dict[str, Any]) -> Dict[str, Any]:
        """Store a JSON log entry in the coupon.validation_log order metafield."""
        mutation = """
        mutation metafieldsSet($metafields: [MetafieldsSetInput!]!) {
            metafieldsSet(metafields: $metafields) {
                userErrors {
                    field
                    message
                }
            }
        }
        """
        variables = {
            'metafields': [{
                'ownerId': f'gid://shopify/Order/{order_id}',
                'namespace': 'coupon',
                'key': 'validation_log',
                'type': 'json',
                'value': json.dumps(entry)
            }]
        }
        result = self._execute_query(mutation, variables)
        errors = (result.get('metafieldsSet') or {}).get('userErrors', [])
        if errors:
            return {'success': False, 'error': _user_error_message(errors)}
        return {'success': True}

    # ==================== Webhook Subscriptions ====================

    def list_webhook_subscriptions(self, first: int = 100) -> List[Dict[str, Any]]:
        query = """
        query listWebhooks($first: Int!) {
            webhookSubscriptions(first: $first) {
                nodes {
                    id
                    topic
                    endpoint {
                        ... on WebhookHttpEndpoint {
                            callbackUrl
                        }
                    }
                }
            }
        }
        """
        result = self._execute_query(query, {'first': first})
        return [
            {
                'id': node.get('id'),
                'topic': node.get('topic'),
                'callback_url': (node.get('endpoint') or {}).get('callbackUrl')
            }
            for node in (result.get('webhookSubscriptions') or {}).get('nodes', [])
        ]

    def create_webhook_subscription(self, topic: str, callback_url: str) -> Dict[str, Any]:
        mutation = """
        mutation webhookSubscriptionCreate($topic: WebhookSubscriptionTopic!, $webhookSubscription: WebhookSubscriptionInput!) {
            webhookSubscriptionCreate(topic: $topic, webhookSubscription: $webhookSubscription) {
                webhookSubscription {
                    id
                    topic
                }
                userErrors {
                    field
                    message
                }
            }
        }
        """
        variables = {
            'topic': topic,
            'webhookSubscription': {
                'callbackUrl': callback_url,
                'format': 'JSON'
            }
        }
        result = self._execute_query(mutation, variables)
        data = result.get('webhookSubscriptionCreate') or {}
        errors = data.get('userErrors', [])
        if errors:
            return {'success': False, 'topic': topic, 'error': _user_error_message(errors)}
        return {
            'success': True,
            'topic': topic,
            'id': (data.get('webhookSubscription') or {}).get('id')
        }

    def delete_webhook_subscription(self, subscription_id: str) -> Dict[str, Any]:
        mutation = """
        mutation webhookSubscriptionDelete($id: ID!) {
            webhookSubscriptionDelete(id: $id) {
                deletedWebhookSubscriptionId
                userErrors {
                    field
                    message
                }
            }
        }
        """
        result = self._execute_query(mutation, {'id': subscription_id})
        data = result.get('webhookSubscriptionDelete') or {}
        errors = data.get('userErrors', [])
        if errors:
            return {'success': False, 'error': _user_error_message(errors)}
        return {'success': True, 'deleted_id': data.get('deletedWebhookSubscriptionId')}
