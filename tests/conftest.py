import pytest
from decimal import Decimal

from backoffice import create_app, database
from backoffice.database import get_session
from backoffice.models import Client, Supplier, Product


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(scope='function')
def client(app, session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema per test; yields the scoped session."""
    database.create_all()
    session = get_session()
    yield session
    session.rollback()
    session.remove()
    database.drop_all()


def _persist(session, obj):
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


@pytest.fixture(scope='function')
def customer(session):
    """Create test client (counterparty)."""
    return _persist(session, Client(name='Acme Retail', email='buyer@acme.test'))


@pytest.fixture(scope='function')
def supplier(session):
    """Create test supplier."""
    return _persist(session, Supplier(name='Wholesale Parts', email='sales@parts.test'))


@pytest.fixture(scope='function')
def widget(session):
    """Product with 10 units on hand."""
    return _persist(session, Product(
        reference='WID-001',
        name='Widget',
        supplier_price=Decimal('6.00'),
        selling_price=Decimal('10.00'),
        stock_quantity=10,
        provisional_stock=0
    ))


@pytest.fixture(scope='function')
def gadget(session):
    """Product with 5 units on hand."""
    return _persist(session, Product(
        reference='GAD-001',
        name='Gadget',
        supplier_price=Decimal('15.00'),
        selling_price=Decimal('25.00'),
        stock_quantity=5,
        provisional_stock=0
    ))


@pytest.fixture(scope='function')
def reload_product(session):
    """Read a product again, bypassing the identity map."""
    def _reload(product_id):
        return session.get(Product, product_id, populate_existing=True)
    return _reload
