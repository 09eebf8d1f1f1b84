"""
Logging setup for the coupon platform.

Configures the root logger once, before the Flask app is built, so that
``current_app.logger`` and module loggers share the same handlers.

Environment Variables:
    LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default INFO)
    LOG_FORMAT: text|json (default text)
"""
import json
import logging
import logging.config
import os
import re
from typing import Any, Dict

_ACCESS_TOKEN_RE = re.compile(r'(shpat_|shpca_|shppa_)[A-Za-z0-9]+')
_TOKEN_HEADER_RE = re.compile(r'(X-Shopify-Access-Token["\']?\s*[:=]\s*["\']?)([^\s"\',}]+)', re.IGNORECASE)
_HMAC_HEADER_RE = re.compile(r'(X-Shopify-Hmac-Sha256["\']?\s*[:=]\s*["\']?)([^\s"\',}]+)', re.IGNORECASE)


def _sanitize(value: str) -> str:
    value = _ACCESS_TOKEN_RE.sub(lambda m: m.group(1) + '[REDACTED]', value)
    value = _TOKEN_HEADER_RE.sub(lambda m: m.group(1) + '[REDACTED]', value)
    value = _HMAC_HEADER_RE.sub(lambda m: m.group(1) + '[REDACTED]', value)
    return value


class SensitiveDataFilter(logging.Filter):
    """Masks Shopify access tokens and webhook signatures in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _sanitize(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(_sanitize(a) if isinstance(a, str) else a for a in record.args)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            'level': record.levelname,
            'time': self.formatTime(record, datefmt='%Y-%m-%dT%H:%M:%S%z'),
            'logger': record.name,
            'message': record.getMessage(),
        }
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


_configured = False


def setup_logging(force: bool = False) -> None:
    """Configure console logging with token masking. Idempotent unless forced."""
    global _configured
    if _configured and not force:
        return

    log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_format = os.getenv('LOG_FORMAT', 'text').lower()

    config: Dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'filters': {
            'sensitive': {'()': SensitiveDataFilter},
        },
        'formatters': {
            'json': {'()': JsonFormatter},
            'plain': {'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s'},
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': log_level,
                'stream': 'ext://sys.stdout',
                'formatter': 'json' if log_format == 'json' else 'plain',
                'filters': ['sensitive'],
            },
        },
        'root': {
            'level': log_level,
            'handlers': ['console'],
        },
        'loggers': {
            # Reduce noise
            'httpx': {'level': 'WARNING'},
            'httpcore': {'level': 'WARNING'},
            'sqlalchemy.engine': {'level': 'WARNING'},
        },
    }

    logging.config.dictConfig(config)
    _configured = True
