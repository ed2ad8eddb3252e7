"""
Pytest configuration and shared fixtures for the farm stock tests.

Every test that touches the database gets its own SQLite file under
tmp_path, selected through the FARM_DB_PATH environment variable.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import init_db, create_item, create_plot, create_schedule  # noqa: E402
from models import LineItem, Schedule  # noqa: E402
from utils.context import UserContext  # noqa: E402

USER_ID = 'user-1'


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Create a temporary farm database for testing."""
    db_path = str(tmp_path / 'farm.db')
    monkeypatch.setenv('FARM_DB_PATH', db_path)
    monkeypatch.setenv('FARM_BACKUP_DIR', str(tmp_path / 'backups'))
    init_db()
    yield db_path


@pytest.fixture
def ctx():
    return UserContext(user_id=USER_ID)


@pytest.fixture
def plot_id(temp_db):
    """A plot of 10 acres with a 200 L spray tank."""
    return create_plot(USER_ID, 'North Field', 10.0, 'Nashik', 200.0, '2026-06-01')


@pytest.fixture
def app(temp_db):
    from app import create_app

    app = create_app({
        'TESTING': True,
        'WTF_CSRF_ENABLED': False,
        'SECRET_KEY': 'dev-key-for-testing'
    })
    yield app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        client.environ_base['HTTP_X_USER_ID'] = USER_ID
        yield client


def add_stock_item(name, remaining, used=0.0, unit='kg'):
    return create_item(USER_ID, name, remaining, used, unit)


def add_schedule(plot_id, spray_items=(), drip_items=(), schedule_date='2026-07-01'):
    """Insert a schedule whose line items are already resolved."""
    schedule = Schedule(
        user_id=USER_ID,
        plot_id=plot_id,
        schedule_date=schedule_date,
        spray=bool(spray_items),
        drip=bool(drip_items),
        spray_items=list(spray_items),
        drip_items=list(drip_items),
    )
    return create_schedule(USER_ID, plot_id, schedule)


def line(name, final_qty, unit='kg', item_id=None):
    return LineItem(name=name, quantity=str(final_qty), unit=unit,
                    final_qty=final_qty, final_unit=unit, item_id=item_id)
