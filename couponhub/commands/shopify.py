"""
CLI Commands for Shopify sync and webhook registration.

Run batch sync from cron instead of the HTTP endpoint for large backlogs:

# Push pending coupons every 10 minutes
*/10 * * * * cd /app && flask shopify sync --limit 200
"""
import click
from flask import current_app
from flask.cli import with_appcontext

from ..api import get_shopify_sync
from ..utils.exceptions import ShopifyError

DISCOUNT_WEBHOOK_TOPICS = ('DISCOUNTS_CREATE', 'DISCOUNTS_UPDATE', 'DISCOUNTS_DELETE')
ORDER_WEBHOOK_TOPICS = ('ORDERS_CREATE', 'ORDERS_UPDATED', 'ORDERS_PAID')


def _require_sync():
    sync = get_shopify_sync()
    if not sync.is_configured:
        raise click.ClickException('Shopify not configured. Set SHOPIFY_STORE_URL and SHOPIFY_ACCESS_TOKEN.')
    return sync


@click.group('shopify')
def shopify_cli():
    """Shopify sync commands."""
    pass


@shopify_cli.command('sync')
@click.option('--limit', type=int, default=None, help='Maximum coupons to sync (all pending if omitted)')
@with_appcontext
def sync_coupons(limit):
    """Create Shopify discounts for unsynced active coupons."""
    result = _require_sync().sync_all_pending(limit)
    if not result.get('success'):
        raise click.ClickException(result.get('message'))

    click.echo(result['message'])
    for item in result['results']:
        if not item.get('success'):
            click.echo(f"  FAILED {item.get('code')}: {item.get('message')}")


@shopify_cli.command('sync-status')
@click.option('--code', help='Sync a single coupon')
@with_appcontext
def sync_status(code):
    """Pull discount status from Shopify into local coupons."""
    sync = _require_sync()
    if code:
        result = sync.check_and_sync_coupon(code.upper())
    else:
        result = sync.sync_statuses_from_remote()

    if not result.get('success'):
        raise click.ClickException(result.get('message'))
    click.echo(result['message'])


@shopify_cli.command('test-connection')
@with_appcontext
def test_connection():
    """Check Shopify credentials."""
    result = _require_sync().test_connection()
    if not result.get('success'):
        raise click.ClickException(f"Connection failed: {result.get('error')}")
    shop = result['shop']
    click.echo(f"Connected to {shop['name']} ({shop['domain']})")


@shopify_cli.command('register-webhooks')
@click.option('--base-url', help='Public base URL (defaults to WEBHOOK_BASE_URL)')
@click.option('--delete-existing', is_flag=True, help='Remove existing subscriptions first')
@with_appcontext
def register_webhooks(base_url, delete_existing):
    """Subscribe to discount and order webhooks."""
    sync = _require_sync()
    base_url = (base_url or current_app.extensions['shopify_settings'].webhook_base_url).rstrip('/')
    if not base_url:
        raise click.ClickException('No base URL. Pass --base-url or set WEBHOOK_BASE_URL.')

    client = sync.client
    targets = [(topic, f'{base_url}/api/webhooks/shopify') for topic in DISCOUNT_WEBHOOK_TOPICS]
    targets += [(topic, f'{base_url}/api/webhooks/shopify-orders') for topic in ORDER_WEBHOOK_TOPICS]

    try:
        existing = client.list_webhook_subscriptions()
        if delete_existing:
            for subscription in existing:
                client.delete_webhook_subscription(subscription['id'])
                click.echo(f"Deleted {subscription['topic']} -> {subscription['callback_url']}")
            existing = []

        registered = {(s['topic'], s['callback_url']) for s in existing}
        for topic, callback_url in targets:
            if (topic, callback_url) in registered:
                click.echo(f"Exists  {topic} -> {callback_url}")
                continue
            result = client.create_webhook_subscription(topic, callback_url)
            if result.get('success'):
                click.echo(f"Created {topic} -> {callback_url}")
            else:
                click.echo(f"FAILED  {topic}: {result.get('error')}")
    except ShopifyError as e:
        raise click.ClickException(e.message)


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(shopify_cli)
