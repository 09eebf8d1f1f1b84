"""
CLI Commands for coupon administration.
"""
import click
from flask.cli import with_appcontext

from ..services.code_generator import CouponGenerator
from ..services.coupon_store import coupon_store
from ..utils.exceptions import LimitExceededError, ValidationError


@click.group('coupons')
def coupons_cli():
    """Coupon administration commands."""
    pass


@coupons_cli.command('generate')
@click.option('--count', type=int, required=True, help='Number of codes to create')
@with_appcontext
def generate_coupons(count):
    """Generate new coupon codes."""
    try:
        result = CouponGenerator().generate(count)
    except (LimitExceededError, ValidationError) as e:
        raise click.ClickException(e.message)

    click.echo(f"Generated {result['count']} coupon codes ({result['totalInDatabase']} in database)")
    if result['count'] < count:
        click.echo(f"Warning: only {result['count']} of {count} requested codes were created")


@coupons_cli.command('stats')
@with_appcontext
def coupon_stats():
    """Show coupon counts by status."""
    stats = coupon_store.get_stats()
    click.echo("\n=== Coupon Statistics ===")
    click.echo(f"Total:     {stats['total']}")
    click.echo(f"Active:    {stats['active']}")
    click.echo(f"Used:      {stats['used']}")
    click.echo(f"Inactive:  {stats['inactive']}")
    click.echo(f"Scratched: {stats['scratched']}")
    click.echo(f"Synced:    {stats['synced']}")
    click.echo(f"Remaining: {stats['remaining']}")


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(coupons_cli)
