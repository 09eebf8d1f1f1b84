"""
CLI Commands for the coupon platform.

Usage:
    flask coupons generate --count 100     # Create coupon codes
    flask coupons stats                    # Show coupon counts

    flask shopify sync --limit 50          # Push unsynced coupons to Shopify
    flask shopify sync-status              # Pull all discount statuses
    flask shopify sync-status --code ABC123
    flask shopify test-connection
    flask shopify register-webhooks --base-url https://coupons.example.com
"""
from .coupons import init_app as init_coupon_commands
from .shopify import init_app as init_shopify_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_coupon_commands(app)
    init_shopify_commands(app)
