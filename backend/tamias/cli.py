# Overview: Flask CLI command groups for bootstrap, stock inspection and sales reports.

# backend/tamias/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables (idempotent).
#
# Inventory inspection:
# - python -m flask inventory stock --store-id 1 --product-id 42
#   Print the current stock of one product.
# - python -m flask inventory low-stock --store-id 1 --limit 5
#   List active products at or below their reorder threshold.
#
# Reports:
# - python -m flask reports daily --store-id 1 --date 2026-10-18
#   Print the daily sales summary (defaults to today, UTC).

import json

import click
from flask.cli import with_appcontext

from .errors import TamiasError
from .extensions import db
from .services import inventory_service, reporting_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create database tables for products and transactions."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('inventory')
def inventory_group():
    """Inventory ledger inspection."""


@inventory_group.command('stock')
@click.option('--store-id', type=int, required=True)
@click.option('--product-id', type=int, required=True)
@with_appcontext
def stock(store_id, product_id):
    """Print current stock for a product."""
    try:
        on_hand = inventory_service.get_stock(store_id, product_id)
    except TamiasError as exc:
        raise click.ClickException(exc.message)
    click.echo(f"Product {product_id} (store {store_id}): {on_hand}")


@inventory_group.command('low-stock')
@click.option('--store-id', type=int, required=True)
@click.option('--limit', type=int, default=5, show_default=True)
@with_appcontext
def low_stock(store_id, limit):
    """List products at or below their reorder threshold."""
    try:
        products = reporting_service.low_stock(store_id, limit=limit)
    except TamiasError as exc:
        raise click.ClickException(exc.message)

    if not products:
        click.echo("No low-stock products")
        return
    for product in products:
        click.echo(f"{product.id:>6}  {product.stock:>6} / {product.min_stock:<6} {product.name}")


@click.group('reports')
def reports_group():
    """Sales reports."""


@reports_group.command('daily')
@click.option('--store-id', type=int, required=True)
@click.option('--date', 'day', default=None, help='YYYY-MM-DD (default: today, UTC)')
@with_appcontext
def daily(store_id, day):
    """Print the daily sales summary as JSON."""
    try:
        summary = reporting_service.daily_summary(store_id, day)
    except TamiasError as exc:
        raise click.ClickException(exc.message)
    click.echo(json.dumps(summary, indent=2, sort_keys=True))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(reports_group)
