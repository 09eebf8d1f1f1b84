"""
Coupon Platform
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_cors import CORS

from .extensions import db, migrate
from .config import get_config, validate_config, ShopifySettings
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    CORS(app, origins=app.config['CORS_ORIGINS'], allow_headers=['Content-Type'])

    # Shopify settings and client, built once and shared by every request
    init_shopify(app)

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {
            'status': 'healthy',
            'service': 'couponhub',
            'shopify_configured': app.extensions['shopify_settings'].is_configured
        }

    return app


def init_shopify(app: Flask) -> None:
    """Store ShopifySettings and the ShopifyClient (or None) on app.extensions."""
    from .services.shopify_client import ShopifyClient

    settings = ShopifySettings.from_mapping(app.config)
    app.extensions['shopify_settings'] = settings
    app.extensions['shopify_client'] = ShopifyClient.from_settings(settings)

    if not settings.is_configured:
        logger.warning('Shopify credentials not configured; Shopify sync disabled')
    if not settings.webhook_secret:
        logger.warning('SHOPIFY_WEBHOOK_SECRET not set; webhook signatures will not be verified')


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.coupons import coupons_bp
    from .api.shopify import shopify_bp
    from .webhooks import webhooks_bp

    app.register_blueprint(coupons_bp, url_prefix='/api/coupons')
    app.register_blueprint(shopify_bp, url_prefix='/api/shopify')
    app.register_blueprint(webhooks_bp, url_prefix='/api/webhooks')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import error_response, ErrorCode

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', ErrorCode.METHOD_NOT_ALLOWED, 405, log_error=False)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return error_response('Internal server error', ErrorCode.INTERNAL_ERROR, 500, details={'error': str(error)})
