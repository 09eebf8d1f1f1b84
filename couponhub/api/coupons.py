"""
Coupons API.

Provides REST endpoints for:
- Listing and looking up coupons
- Bulk generation (bounded by the 10,000 coupon ceiling)
- Customer scratch (reveal)
- Store redemption with Shopify follow-up
- Stats and usage reports
"""
from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.coupon import VALID_STORE_LOCATIONS
from ..services.code_generator import CouponGenerator
from ..services.coupon_store import coupon_store, MAX_PAGE_SIZE, SORTABLE_COLUMNS
from ..services.lifecycle import coupon_lifecycle
from ..utils.errors import internal_error
from ..utils.exceptions import (
    CouponError,
    CouponNotFoundError,
    LimitExceededError,
    ValidationError,
)
from . import get_json_body, get_shopify_sync

coupons_bp = Blueprint('coupons', __name__)


def _failure(message: str, status_code: int = 200, **extra):
    body = {'success': False, 'message': message}
    body.update(extra)
    return jsonify(body), status_code


def _int_arg(name: str, default: int):
    value = request.args.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        return None


# ==================== Lookup ====================

@coupons_bp.route('', methods=['GET'])
def list_coupons():
    """
    List coupons, or look up a single one.

    Query params:
        code: exact code lookup (returns a list of 0 or 1 coupons)
        page, limit (1-1000), sortBy, sortOrder (asc|desc), search
    """
    code = request.args.get('code')
    try:
        if code:
            coupon = coupon_store.get_by_code(code.strip().upper())
            return jsonify({
                'success': True,
                'coupons': [coupon.to_dict()] if coupon else []
            })

        page = _int_arg('page', 1)
        limit = _int_arg('limit', MAX_PAGE_SIZE)
        if page is None or page < 1:
            return _failure('Invalid page. Must be a positive integer.', 400)
        if limit is None or limit < 1 or limit > MAX_PAGE_SIZE:
            return _failure(f'Invalid limit. Must be between 1 and {MAX_PAGE_SIZE}.', 400)

        sort_by = request.args.get('sortBy', 'created_date')
        if sort_by not in SORTABLE_COLUMNS:
            sort_by = 'created_date'
        sort_order = 'asc' if request.args.get('sortOrder') == 'asc' else 'desc'

        result = coupon_store.list_coupons(
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            search=request.args.get('search', ''),
        )
        return jsonify({
            'success': True,
            'coupons': [c.to_dict() for c in result['coupons']],
            'pagination': result['pagination']
        })
    except SQLAlchemyError as e:
        current_app.logger.error(f'Error fetching coupons: {e}')
        return internal_error('Error fetching coupons')


@coupons_bp.route('/check', methods=['GET'])
def check_coupon():
    """Check whether a code exists."""
    code = (request.args.get('code') or '').strip().upper()
    if not code:
        return _failure('Coupon code is required', 400)

    coupon = coupon_store.get_by_code(code)
    return jsonify({
        'success': True,
        'exists': coupon is not None,
        'coupon': coupon.to_dict() if coupon else None
    })


@coupons_bp.route('/stats', methods=['GET'])
def coupon_stats():
    return jsonify({'success': True, 'stats': coupon_store.get_stats()})


@coupons_bp.route('/usage-stats', methods=['GET'])
def usage_stats():
    """Redemptions per store location. Query param timeframe: 24h or 7d."""
    timeframe = request.args.get('timeframe', '24h')
    if timeframe not in ('24h', '7d'):
        return _failure('Invalid timeframe. Use "24h" or "7d".', 400)

    result = coupon_store.get_usage_stats(timeframe)
    result['success'] = True
    return jsonify(result)


# ==================== Generation ====================

@coupons_bp.route('/generate', methods=['POST'])
def generate_coupons():
    """
    Generate new coupon codes.

    Request body:
    {
        "count": 100
    }
    """
    count = get_json_body().get('count')
    if isinstance(count, str) and count.strip().isdigit():
        count = int(count.strip())

    generator = CouponGenerator()
    try:
        result = generator.generate(count)
    except LimitExceededError as e:
        return _failure(e.message, 400, remaining=e.remaining)
    except ValidationError as e:
        return _failure(e.message, 400)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error generating coupons: {e}')
        return internal_error('Error generating coupons')

    current_app.logger.info(f"Generated {result['count']} coupons ({result['totalInDatabase']} total)")
    return jsonify({
        'success': True,
        'message': f"Generated {result['count']} coupon codes",
        'count': result['count'],
        'totalInDatabase': result['totalInDatabase']
    })


# ==================== Customer scratch ====================

@coupons_bp.route('/scratch', methods=['POST'])
def scratch_coupon():
    """Reveal a coupon. Body: {"code": "ABC123"}"""
    code = (get_json_body().get('code') or '').strip().upper()
    if not code:
        return _failure('Coupon code is required', 400)

    try:
        coupon = coupon_lifecycle.scratch(code)
    except CouponError as e:
        return _failure(e.message)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error scratching coupon {code}: {e}')
        return internal_error('Error scratching coupon')

    return jsonify({
        'success': True,
        'message': 'Coupon scratched successfully',
        'coupon': coupon.to_dict()
    })


# ==================== Store redemption ====================

@coupons_bp.route('/validate', methods=['POST'])
def validate_coupon():
    """
    Redeem a coupon in store.

    Request body:
    {
        "code": "ABC123",
        "employeeCode": "EMP1",
        "storeLocation": "Adyar",
        "orderId": "#1001"  # optional
    }

    Linked coupons are re-checked against Shopify first, so a discount
    disabled remotely is refused. After redemption the Shopify order is
    annotated (when orderId is given) and the remote discount is disabled.
    """
    data = get_json_body()
    code = (data.get('code') or '').strip().upper()
    employee_code = (data.get('employeeCode') or '').strip()
    store_location = (data.get('storeLocation') or '').strip()
    order_id = data.get('orderId')
    order_id = str(order_id).strip() if order_id not in (None, '') else None

    if not code or not employee_code or not store_location:
        return _failure(
            'Missing required fields. Please fill in all fields (coupon, employee, store).', 400
        )

    if store_location not in VALID_STORE_LOCATIONS:
        return _failure(
            f'Invalid store location: "{store_location}". Please select a valid Chennai store location.', 400
        )

    sync = get_shopify_sync()
    try:
        coupon = coupon_store.get_by_code(code)
        if not coupon:
            raise CouponNotFoundError(code)

        if coupon.shopify_discount_id and sync.is_configured:
            status_check = sync.check_and_sync_coupon(code)
            if status_check.get('success') and status_check.get('updated'):
                current_app.logger.info(f"Updated coupon {code} from Shopify: {status_check.get('message')}")

        redemption = coupon_lifecycle.redeem(code, employee_code, store_location, order_reference=order_id)
    except CouponNotFoundError:
        return _failure(
            f'Coupon "{code}" not found in database. Please check if the coupon code is correct.',
            couponDetails=None
        )
    except CouponError as e:
        coupon = coupon_store.get_by_code(code)
        return _failure(e.message, couponDetails=coupon.to_dict() if coupon else None)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error validating coupon {code}: {e}')
        return internal_error('Error validating coupon')

    response = {
        'success': True,
        'message': 'Coupon validated successfully'
    }

    if redemption.should_disable_shopify:
        if order_id:
            annotation = sync.annotate_order(order_id, code, employee_code, store_location)
            if not annotation.get('success') and not annotation.get('skipped'):
                current_app.logger.warning(f"Order annotation failed for {code}: {annotation.get('message')}")

        disable = sync.disable_remote_discount(redemption.coupon)
        response['shopifyDisabled'] = bool(disable.get('success'))
        if disable.get('success'):
            response['message'] += ' (Also disabled in Shopify)'
        else:
            response['shopifyError'] = disable.get('error')
            current_app.logger.warning(f"Failed to disable Shopify discount for {code}: {disable.get('error')}")

    coupon = coupon_store.get_by_code(code)
    response['couponDetails'] = coupon.to_dict()
    return jsonify(response)
