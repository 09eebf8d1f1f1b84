"""
HTTP API blueprints and the per-request service wiring they share.
"""
from flask import current_app, request

from ..services.shopify_sync import ShopifySyncService
from ..utils.rate_limit import IntervalRateLimiter


def get_shopify_sync() -> ShopifySyncService:
    """
    Build the sync service for this request from the client created at startup.

    The client is None when Shopify credentials are not configured.
    """
    settings = current_app.extensions['shopify_settings']
    return ShopifySyncService(
        current_app.extensions.get('shopify_client'),
        rate_limiter=IntervalRateLimiter(settings.sync_rate),
    )


def get_json_body() -> dict:
    """Request JSON as a dict; empty dict for missing or non-object bodies."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
