"""
Shopify webhook handlers.

Two receivers share one reconciler:
- /shopify         discount topics (and order topics, for stores that send
                   everything to one endpoint)
- /shopify-orders  order topics only

Signature check, payload decoding and state changes happen in
WebhookReconciler; this module only adapts Flask requests to it.
"""
from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..api import get_shopify_sync
from ..extensions import db
from ..schemas.webhooks import DISCOUNT_TOPICS, ORDER_TOPICS
from ..services.webhook_reconciler import WebhookReconciler

webhooks_bp = Blueprint('webhooks', __name__)


def get_reconciler() -> WebhookReconciler:
    settings = current_app.extensions['shopify_settings']
    return WebhookReconciler(get_shopify_sync(), secret=settings.webhook_secret)


def _dispatch(allowed_topics, label: str):
    topic = request.headers.get('X-Shopify-Topic')
    signature = request.headers.get('X-Shopify-Hmac-Sha256')

    try:
        outcome = get_reconciler().handle(
            topic,
            request.get_data(),
            signature,
            allowed_topics=allowed_topics,
            label=label,
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Webhook {topic} failed: {e}')
        return jsonify({'success': False, 'error': 'Webhook processing failed'}), 500

    return jsonify(outcome.body), outcome.status_code


@webhooks_bp.route('/shopify', methods=['POST'])
def handle_shopify_webhook():
    """Handle discounts/* (and orders/*) webhooks."""
    return _dispatch(DISCOUNT_TOPICS + ORDER_TOPICS, 'Webhook')


@webhooks_bp.route('/shopify-orders', methods=['POST'])
def handle_shopify_order_webhook():
    """Handle orders/create, orders/paid and orders/updated webhooks."""
    return _dispatch(ORDER_TOPICS, 'Order webhook')


@webhooks_bp.route('/shopify', methods=['GET'])
def shopify_webhook_info():
    return jsonify({
        'success': True,
        'message': 'Shopify webhook endpoint is active',
        'topics': list(DISCOUNT_TOPICS + ORDER_TOPICS)
    })


@webhooks_bp.route('/shopify-orders', methods=['GET'])
def shopify_order_webhook_info():
    return jsonify({
        'success': True,
        'message': 'Shopify order webhook endpoint is active',
        'topics': list(ORDER_TOPICS)
    })
