"""
Tests for the Shopify sync service with a mocked client.
"""
import pytest
from unittest.mock import MagicMock

from couponhub.extensions import db
from couponhub.models import Coupon
from couponhub.services.shopify_sync import ShopifySyncService
from couponhub.utils.exceptions import ShopifyError
from couponhub.utils.rate_limit import IntervalRateLimiter
from conftest import reload, LINKED_DISCOUNT_ID


@pytest.fixture
def limiter():
    return MagicMock(spec=IntervalRateLimiter)


@pytest.fixture
def sync(app, mock_shopify, limiter):
    return ShopifySyncService(mock_shopify, rate_limiter=limiter)


class TestCreateRemoteDiscount:
    """Tests for pushing a single coupon."""

    def test_success_links_coupon(self, sync, sample_coupon):
        result = sync.create_remote_discount('ABC123')

        assert result['success'] is True
        assert result['shopifyId'] == 'gid://shopify/DiscountCodeNode/ABC123'
        coupon = reload('ABC123')
        assert coupon.shopify_synced is True
        assert coupon.shopify_discount_id == 'gid://shopify/DiscountCodeNode/ABC123'
        assert coupon.shopify_status == 'active'

    @pytest.mark.parametrize('category,message', [
        (ShopifyError.UNAUTHORIZED, 'Invalid Shopify access token. Please check your credentials.'),
        (ShopifyError.NOT_FOUND, 'Shopify store not found. Please check SHOPIFY_STORE_URL.'),
        (ShopifyError.RATE_LIMITED, 'Shopify API rate limit exceeded. Please try again later.'),
        (ShopifyError.OTHER, 'Shopify API Error: boom'),
    ])
    def test_failure_messages_by_category(self, sync, mock_shopify, sample_coupon, category, message):
        mock_shopify.create_coupon_discount.side_effect = None
        mock_shopify.create_coupon_discount.return_value = {
            'success': False, 'error': 'boom', 'category': category
        }

        result = sync.create_remote_discount('ABC123')

        assert result['success'] is False
        assert result['message'] == message
        assert reload('ABC123').shopify_synced is False

    def test_not_configured(self, app, sample_coupon):
        result = ShopifySyncService(None).create_remote_discount('ABC123')
        assert result['success'] is False
        assert result['message'] == 'Shopify not configured'


class TestSyncAllPending:
    """Tests for the sequential batch sync."""

    def test_syncs_each_pending_coupon_with_pacing(self, sync, mock_shopify, limiter, app):
        for code in ('AAA001', 'AAA002', 'AAA003'):
            db.session.add(Coupon(code=code))
        db.session.add(Coupon(code='USD001', status='used'))
        db.session.commit()

        result = sync.sync_all_pending()

        assert result['synced'] == 3
        assert result['failed'] == 0
        assert limiter.acquire.call_count == 3
        assert [c.args[0] for c in mock_shopify.create_coupon_discount.call_args_list] == [
            'AAA001', 'AAA002', 'AAA003'
        ]
        assert reload('USD001').shopify_synced is False

    def test_one_failure_does_not_abort_batch(self, sync, mock_shopify, app):
        for code in ('AAA001', 'AAA002', 'AAA003'):
            db.session.add(Coupon(code=code))
        db.session.commit()

        def create(code):
            if code == 'AAA002':
                return {'success': False, 'error': 'Throttled', 'category': ShopifyError.RATE_LIMITED}
            return {'success': True, 'discount_id': f'gid://shopify/DiscountCodeNode/{code}'}
        mock_shopify.create_coupon_discount.side_effect = create

        result = sync.sync_all_pending()

        assert result['synced'] == 2
        assert result['failed'] == 1
        assert [r['success'] for r in result['results']] == [True, False, True]
        assert reload('AAA003').shopify_synced is True

    def test_limit(self, sync, mock_shopify, app):
        for code in ('AAA001', 'AAA002', 'AAA003'):
            db.session.add(Coupon(code=code))
        db.session.commit()

        result = sync.sync_all_pending(limit=2)

        assert result['total'] == 2

    def test_connection_failure_stops_before_any_call(self, sync, mock_shopify, sample_coupon):
        mock_shopify.test_connection.return_value = {
            'success': False, 'error': 'Unauthorized', 'category': ShopifyError.UNAUTHORIZED
        }

        result = sync.sync_all_pending()

        assert result['success'] is False
        assert result['message'] == 'Invalid Shopify access token. Please check your credentials.'
        mock_shopify.create_coupon_discount.assert_not_called()

    def test_nothing_pending(self, sync, linked_coupon):
        result = sync.sync_all_pending()
        assert result['success'] is True
        assert result['total'] == 0


class TestDisableRemoteDiscount:
    """Tests for disabling a linked coupon's discount."""

    def test_success_marks_disabled(self, sync, mock_shopify, linked_coupon):
        result = sync.disable_remote_discount(linked_coupon)

        assert result['success'] is True
        mock_shopify.disable_discount.assert_called_once_with(LINKED_DISCOUNT_ID)
        assert reload('XYZ789').shopify_status == 'disabled'

    def test_failure_leaves_status(self, sync, mock_shopify, linked_coupon):
        mock_shopify.disable_discount.return_value = {'success': False, 'error': 'Discount does not exist'}

        result = sync.disable_remote_discount(linked_coupon)

        assert result['success'] is False
        assert reload('XYZ789').shopify_status == 'active'

    def test_unlinked_coupon(self, sync, mock_shopify, sample_coupon):
        assert sync.disable_remote_discount(sample_coupon)['success'] is False
        mock_shopify.disable_discount.assert_not_called()


class TestDeleteRemoteDiscount:
    """Tests for deleting a linked coupon's discount."""

    def test_success_marks_deleted(self, sync, mock_shopify, linked_coupon):
        result = sync.delete_remote_discount(linked_coupon)

        assert result['success'] is True
        mock_shopify.delete_discount.assert_called_once_with(LINKED_DISCOUNT_ID)
        coupon = reload('XYZ789')
        assert coupon.shopify_status == 'deleted'
        assert coupon.shopify_discount_id == LINKED_DISCOUNT_ID

    def test_failure_leaves_status(self, sync, mock_shopify, linked_coupon):
        mock_shopify.delete_discount.return_value = {'success': False, 'error': 'Discount does not exist'}

        result = sync.delete_remote_discount(linked_coupon)

        assert result['success'] is False
        assert reload('XYZ789').shopify_status == 'active'

    def test_unlinked_coupon(self, sync, mock_shopify, sample_coupon):
        assert sync.delete_remote_discount(sample_coupon)['success'] is False
        mock_shopify.delete_discount.assert_not_called()

class TestStatusReconciliation:
    """Tests for pulling remote status into local state."""

    def test_check_and_sync_remote_disabled_deactivates(self, sync, mock_shopify, linked_coupon):
        mock_shopify.get_discount.return_value = {'success': True, 'status': 'EXPIRED', 'codes': ['XYZ789']}

        result = sync.check_and_sync_coupon('XYZ789')

        assert result['success'] is True
        assert result['updated'] is True
        assert result['oldStatus'] == 'active'
        assert result['newStatus'] == 'disabled'
        coupon = reload('XYZ789')
        assert coupon.shopify_status == 'disabled'
        assert coupon.status == 'inactive'
        assert coupon.employee_code == 'Deactivated due to Shopify sync'

    def test_check_and_sync_in_sync(self, sync, linked_coupon):
        result = sync.check_and_sync_coupon('XYZ789')

        assert result['success'] is True
        assert result['updated'] is False
        assert reload('XYZ789').status == 'active'

    def test_remote_active_never_reactivates_local(self, sync, mock_shopify, app):
        """Local inactive stays inactive even if the remote discount is active."""
        db.session.add(Coupon(code='INA001', status='inactive', shopify_discount_id='gid://shopify/DiscountCodeNode/3',
                              shopify_synced=True, shopify_status='disabled'))
        db.session.commit()

        sync.check_and_sync_coupon('INA001')

        coupon = reload('INA001')
        assert coupon.shopify_status == 'active'
        assert coupon.status == 'inactive'

    def test_check_and_sync_unlinked(self, sync, sample_coupon):
        result = sync.check_and_sync_coupon('ABC123')
        assert result == {'success': False, 'message': 'Coupon not synced with Shopify'}

    def test_sync_all_statuses(self, sync, mock_shopify, linked_coupon, sample_coupon):
        mock_shopify.list_code_discounts.return_value = [
            {'id': LINKED_DISCOUNT_ID, 'status': 'EXPIRED', 'codes': ['XYZ789']},
            {'id': 'gid://shopify/DiscountCodeNode/2', 'status': 'ACTIVE', 'codes': ['ABC123']},
            {'id': 'gid://shopify/DiscountCodeNode/3', 'status': 'ACTIVE', 'codes': ['OTHER1']},
        ]

        result = sync.sync_statuses_from_remote()

        assert result['totalFound'] == 3
        assert result['synced'] == 1
        assert result['deactivated'] == 1
        assert reload('XYZ789').status == 'inactive'
        assert reload('ABC123').status == 'active'

    def test_sync_all_statuses_remote_failure(self, sync, mock_shopify):
        mock_shopify.list_code_discounts.side_effect = ShopifyError('HTTP 429', category=ShopifyError.RATE_LIMITED)

        result = sync.sync_statuses_from_remote()

        assert result['success'] is False
        assert result['message'] == 'Shopify API rate limit exceeded. Please try again later.'


class TestAnnotateOrder:
    """Tests for order note and metafield annotation."""

    def test_numeric_order_id(self, sync, mock_shopify):
        result = sync.annotate_order('555', 'ABC123', 'EMP1', 'Adyar')

        assert result == {'success': True, 'orderId': '555'}
        mock_shopify.get_order_id_by_name.assert_not_called()
        note = mock_shopify.append_order_note.call_args.args[1]
        assert note.startswith('Coupon ABC123 validated by EMP1 @ Adyar on ')
        entry = mock_shopify.set_order_coupon_log_metafield.call_args.args[1]
        assert entry['action'] == 'validated'
        assert entry['source'] == 'POS/API'

    def test_order_name_is_resolved(self, sync, mock_shopify):
        mock_shopify.get_order_id_by_name.return_value = '777'

        result = sync.annotate_order('#1001', 'ABC123', 'EMP1', 'Adyar')

        assert result['orderId'] == '777'
        mock_shopify.append_order_note.assert_called_once()

    def test_unresolved_order_is_skipped(self, sync, mock_shopify):
        mock_shopify.get_order_id_by_name.return_value = None

        result = sync.annotate_order('#9999', 'ABC123', 'EMP1', 'Adyar')

        assert result['skipped'] is True
        mock_shopify.append_order_note.assert_not_called()

    def test_remote_error_is_reported_not_raised(self, sync, mock_shopify):
        mock_shopify.append_order_note.side_effect = ShopifyError('HTTP 404: Not Found')

        result = sync.annotate_order('555', 'ABC123', 'EMP1', 'Adyar')

        assert result['success'] is False
