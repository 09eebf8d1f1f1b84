"""
Shopify sync API.

Endpoints for pushing coupons to Shopify as discount codes, pulling remote
discount status back, disabling or deleting a coupon's discount and online
redemption.
"""
from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.coupon import (
    CouponStatus,
    ShopifyStatus,
    SHOPIFY_ORDER_EMPLOYEE_CODE,
    ONLINE_STORE_LOCATION,
)
from ..services.coupon_store import coupon_store
from ..services.lifecycle import coupon_lifecycle
from ..utils.errors import internal_error
from ..utils.exceptions import CouponError
from . import get_json_body, get_shopify_sync

shopify_bp = Blueprint('shopify', __name__)

DEFAULT_SYNC_LIMIT = 50


def _not_configured():
    return jsonify({
        'success': False,
        'message': 'Shopify not configured. Set SHOPIFY_STORE_URL and SHOPIFY_ACCESS_TOKEN.'
    }), 400


@shopify_bp.route('/sync', methods=['POST'])
def sync_coupons():
    """
    Create Shopify discounts for unsynced active coupons.

    Request body:
    {
        "syncAll": false,  # true syncs every pending coupon
        "limit": 50        # batch size when syncAll is false
    }
    """
    sync = get_shopify_sync()
    if not sync.is_configured:
        return _not_configured()

    data = get_json_body()
    limit = None
    if not data.get('syncAll'):
        limit = data.get('limit') or DEFAULT_SYNC_LIMIT
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
            return jsonify({'success': False, 'message': 'Invalid limit'}), 400

    try:
        result = sync.sync_all_pending(limit)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error syncing coupons to Shopify: {e}')
        return internal_error('Error syncing coupons to Shopify')

    if not result.get('success'):
        return jsonify(result), 400
    return jsonify(result)


@shopify_bp.route('/sync-status', methods=['POST'])
def sync_status():
    """
    Pull discount status from Shopify.

    Request body:
    {
        "action": "sync-one" | "sync-all",
        "couponCode": "ABC123"  # required for sync-one
    }
    """
    data = get_json_body()
    action = data.get('action')
    code = (data.get('couponCode') or '').strip().upper()

    sync = get_shopify_sync()
    if not sync.is_configured:
        return _not_configured()

    if action == 'sync-one' and code:
        return jsonify(sync.check_and_sync_coupon(code))

    if action == 'sync-all':
        current_app.logger.info('Starting full Shopify status sync')
        result = sync.sync_statuses_from_remote()
        if not result.get('success'):
            return jsonify(result), 400
        return jsonify(result)

    return jsonify({
        'success': False,
        'message': 'Invalid action. Use "sync-one" or "sync-all"'
    }), 400


@shopify_bp.route('/sync-status', methods=['GET'])
def sync_status_one():
    """Sync one coupon's status. Query param: code."""
    code = (request.args.get('code') or '').strip().upper()
    if not code:
        return jsonify({'success': False, 'message': 'Coupon code is required'}), 400

    sync = get_shopify_sync()
    if not sync.is_configured:
        return _not_configured()
    return jsonify(sync.check_and_sync_coupon(code))


@shopify_bp.route('/disable', methods=['POST'])
def disable_coupon():
    """Disable a coupon's Shopify discount. Body: {"couponCode": "ABC123"}"""
    code = (get_json_body().get('couponCode') or '').strip().upper()
    if not code:
        return jsonify({'success': False, 'message': 'Coupon code is required'}), 400

    coupon = coupon_store.get_by_code(code)
    if not coupon:
        return jsonify({'success': False, 'message': 'Coupon not found'}), 404
    if not coupon.shopify_discount_id:
        return jsonify({'success': False, 'message': 'Coupon not synced to Shopify'}), 400
    if coupon.shopify_status == ShopifyStatus.DISABLED.value:
        return jsonify({'success': True, 'message': 'Coupon already disabled in Shopify'})

    sync = get_shopify_sync()
    if not sync.is_configured:
        return _not_configured()

    current_app.logger.info(f'Disabling Shopify discount for coupon {code}')
    result = sync.disable_remote_discount(coupon)
    if not result.get('success'):
        return jsonify({'success': False, 'message': result.get('message')}), 400

    return jsonify({
        'success': True,
        'message': 'Coupon disabled successfully in Shopify',
        'shopifyId': coupon.shopify_discount_id
    })


@shopify_bp.route('/delete', methods=['POST'])
def delete_coupon_discount():
    """Delete a coupon's Shopify discount. Body: {"couponCode": "ABC123"}"""
    code = (get_json_body().get('couponCode') or '').strip().upper()
    if not code:
        return jsonify({'success': False, 'message': 'Coupon code is required'}), 400

    coupon = coupon_store.get_by_code(code)
    if not coupon:
        return jsonify({'success': False, 'message': 'Coupon not found'}), 404
    if not coupon.shopify_discount_id:
        return jsonify({'success': False, 'message': 'Coupon not synced to Shopify'}), 400
    if coupon.shopify_status == ShopifyStatus.DELETED.value:
        return jsonify({'success': True, 'message': 'Coupon already deleted in Shopify'})

    sync = get_shopify_sync()
    if not sync.is_configured:
        return _not_configured()

    current_app.logger.info(f'Deleting Shopify discount for coupon {code}')
    result = sync.delete_remote_discount(coupon)
    if not result.get('success'):
        return jsonify({'success': False, 'message': result.get('message')}), 400

    return jsonify({
        'success': True,
        'message': 'Coupon deleted successfully in Shopify',
        'shopifyId': coupon.shopify_discount_id
    })


@shopify_bp.route('/redeem', methods=['POST'])
def redeem_online():
    """Redeem a coupon for an online order. Body: {"code": "ABC123"}"""
    code = (get_json_body().get('code') or '').strip().upper()
    if not code:
        return jsonify({'success': False, 'message': 'Coupon code is required'}), 400

    coupon = coupon_store.get_by_code(code)
    if not coupon:
        return jsonify({'success': False, 'message': 'Coupon not found'}), 404
    if coupon.status != CouponStatus.ACTIVE.value:
        return jsonify({
            'success': False,
            'message': 'Coupon is not active',
            'couponDetails': coupon.to_dict()
        }), 400

    try:
        redemption = coupon_lifecycle.redeem(code, SHOPIFY_ORDER_EMPLOYEE_CODE, ONLINE_STORE_LOCATION)
    except CouponError as e:
        return jsonify({'success': False, 'message': e.message}), 400
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error redeeming coupon {code}: {e}')
        return internal_error('Error redeeming coupon')

    response = {'success': True, 'message': 'Coupon marked as used successfully'}
    if redemption.should_disable_shopify:
        disable = get_shopify_sync().disable_remote_discount(redemption.coupon)
        response['shopifyDisabled'] = bool(disable.get('success'))
        if not disable.get('success'):
            response['shopifyError'] = disable.get('error')

    response['couponDetails'] = coupon_store.get_by_code(code).to_dict()
    return jsonify(response)


@shopify_bp.route('/test-connection', methods=['GET'])
def test_connection():
    sync = get_shopify_sync()
    if not sync.is_configured:
        return _not_configured()

    result = sync.test_connection()
    return jsonify(result), 200 if result.get('success') else 502
