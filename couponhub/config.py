"""
Configuration management for the coupon platform.
"""
import os
from dataclasses import dataclass
from typing import Mapping, Any
from dotenv import load_dotenv

load_dotenv()


def _normalize_database_url(url: str) -> str:
    # SQLAlchemy requires postgresql:// not postgres://
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # Shopify store connection (single store)
    SHOPIFY_STORE_URL = os.getenv('SHOPIFY_STORE_URL', '')
    SHOPIFY_ACCESS_TOKEN = os.getenv('SHOPIFY_ACCESS_TOKEN', '')
    SHOPIFY_API_VERSION = os.getenv('SHOPIFY_API_VERSION', '2024-01')
    SHOPIFY_WEBHOOK_SECRET = os.getenv('SHOPIFY_WEBHOOK_SECRET', '')

    # Public base URL used when registering webhook callbacks
    WEBHOOK_BASE_URL = os.getenv('WEBHOOK_BASE_URL', '')

    # Remote calls per second during batch sync jobs
    SHOPIFY_SYNC_RATE = float(os.getenv('SHOPIFY_SYNC_RATE', '1.0'))

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
        if origin.strip()
    ]


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.getenv(
        'DATABASE_URL',
        'sqlite:///coupons_dev.db'  # SQLite fallback for local dev
    ))


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.getenv('DATABASE_URL', ''))

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate(cls) -> None:
        """
        Validate required production settings.

        Raises:
            RuntimeError: If the database URL or SECRET_KEY is missing or unsafe
        """
        if not cls.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError(
                "CRITICAL: DATABASE_URL environment variable is not set!\n"
                "Production deployments MUST point at the hosted coupons database."
            )

        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!\n"
                "Generate a secure key with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

    SECRET_KEY = _secret_key  # Validated at app startup


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    SHOPIFY_STORE_URL = ''
    SHOPIFY_ACCESS_TOKEN = ''
    SHOPIFY_WEBHOOK_SECRET = ''
    WEBHOOK_BASE_URL = ''
    SHOPIFY_SYNC_RATE = 0  # No pacing in tests


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate()


@dataclass(frozen=True)
class ShopifySettings:
    """
    Shopify connection settings, built once per application.

    Handlers never read the environment directly; they receive this object
    (or the client built from it) through ``app.extensions``.
    """
    store_domain: str = ''
    access_token: str = ''
    api_version: str = '2024-01'
    webhook_secret: str = ''
    webhook_base_url: str = ''
    sync_rate: float = 1.0

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> 'ShopifySettings':
        domain = (config.get('SHOPIFY_STORE_URL') or '').strip()
        domain = domain.replace('https://', '').replace('http://', '').rstrip('/')
        return cls(
            store_domain=domain,
            access_token=config.get('SHOPIFY_ACCESS_TOKEN') or '',
            api_version=config.get('SHOPIFY_API_VERSION') or '2024-01',
            webhook_secret=config.get('SHOPIFY_WEBHOOK_SECRET') or '',
            webhook_base_url=(config.get('WEBHOOK_BASE_URL') or '').rstrip('/'),
            sync_rate=float(config.get('SHOPIFY_SYNC_RATE', 1.0) or 0),
        )

    @property
    def is_configured(self) -> bool:
        """True when the store domain and access token are both present."""
        return bool(self.store_domain and self.access_token)
