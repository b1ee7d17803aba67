"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask seed-demo: Insert a demo client, supplier and products
"""

import click
from decimal import Decimal

from backoffice import database
from backoffice.models import Client, Supplier, Product


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table of the back office schema."""
        database.create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('seed-demo')
    @click.option('--stock', default=10, show_default=True, help='Initial on-hand stock per product')
    def seed_demo(stock):
        """Insert demo counterparties and products."""
        db_session = database.get_session()

        if db_session.query(Product).filter(Product.reference == 'DEMO-001').first():
            click.echo(click.style('Demo data already present.', fg='yellow'))
            return

        try:
            db_session.add_all([
                Client(name='Demo Client', email='client@example.com'),
                Supplier(name='Demo Supplier', email='supplier@example.com'),
                Product(
                    reference='DEMO-001', name='Demo Widget',
                    supplier_price=Decimal('6.00'), selling_price=Decimal('10.00'),
                    stock_quantity=stock, provisional_stock=0
                ),
                Product(
                    reference='DEMO-002', name='Demo Gadget',
                    supplier_price=Decimal('15.00'), selling_price=Decimal('25.00'),
                    stock_quantity=stock, provisional_stock=0
                ),
            ])
            db_session.commit()
            click.echo(click.style('Demo data created.', fg='green'))
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error creating demo data: {e}', fg='red'))
            raise click.Abort()
