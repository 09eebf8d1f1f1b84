"""
Gunicorn configuration for the coupon service.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Webhook and redemption requests are short; a few sync workers suffice
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = int(os.getenv('GUNICORN_TIMEOUT', '120'))  # Batch sync runs inside a request
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info').lower()
capture_output = True

proc_name = 'couponhub'

preload_app = True

graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting coupon service...")


def on_exit(server):
    print("[Gunicorn] Coupon service shutting down...")
