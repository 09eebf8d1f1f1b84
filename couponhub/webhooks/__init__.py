"""
Webhook receivers for Shopify discount and order notifications.
"""
from .shopify import webhooks_bp

__all__ = [
    'webhooks_bp',
]
