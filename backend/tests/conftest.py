"""
Pytest fixtures for VBMS backend tests.

Provides test database setup, tenant fixtures, and test client.
"""

import pytest
from vbms import create_app
from vbms.extensions import db
from vbms.enums import UserRole
from vbms.models import Business, User


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'VBMS_DEFAULT_TIMEZONE': 'UTC',
        'VBMS_ORDER_ID_YEARLY_RESET': False,
        'VBMS_ID_ALLOCATION_ATTEMPTS': 3,
        'VBMS_EXPIRING_SOON_DAYS': 7,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def business_a(db_session):
    """Create Business A (first tenant)."""
    business = Business(name="Tony's Pizza", code="TONY", is_active=True)
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def business_b(db_session):
    """Create Business B (second tenant)."""
    business = Business(name="Beta Bakery", code="BETA", is_active=True)
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def admin_a(db_session, business_a):
    """Admin user belonging to Business A."""
    user = User(
        business_id=business_a.id,
        username="admin_a",
        email="admin_a@tonys.example",
        role=UserRole.ADMIN.value,
    )
    db_session.add(user)
    db_session.commit()
    return user


def order_payload(**overrides):
    """Minimal valid order body for order_service.create_order."""
    payload = {
        "source": "phone",
        "type": "pickup",
        "customer": {"name": "Ana", "phone": "+15550001111"},
        "items": [
            {"name": "Margherita", "sku": "PIZ-MARG", "quantity": 2, "unit_price_cents": 1200},
        ],
        "pricing": {"subtotal_cents": 2400, "tax_cents": 200, "total_cents": 2600},
    }
    payload.update(overrides)
    return payload


def call_payload(**overrides):
    """Minimal valid call body for call_service.create_call."""
    payload = {
        "phone_number": "+15550002222",
        "direction": "inbound",
        "purpose": "order",
        "timing": {"start_time": "2026-10-17T14:00:00Z"},
    }
    payload.update(overrides)
    return payload
