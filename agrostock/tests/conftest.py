"""
Pytest fixtures for Agrostock tests.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from agrostock import stock
from agrostock.models import Depot, Input, LandUse, Plot


User = get_user_model()

FIRM = 1
OTHER_FIRM = 2


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='capataz',
        password='testpass123'
    )


@pytest.fixture
def firm_id():
    return FIRM


@pytest.fixture
def depot_a(db):
    """Main depot of the firm."""
    return Depot.objects.create(
        code='galpon-1',
        name='Galpón 1',
        firm_id=FIRM,
        premise_id=10,
    )


@pytest.fixture
def depot_b(db):
    """Second depot of the same firm."""
    return Depot.objects.create(
        code='galpon-2',
        name='Galpón 2',
        firm_id=FIRM,
        premise_id=10,
    )


@pytest.fixture
def foreign_depot(db):
    """Depot belonging to another firm."""
    return Depot.objects.create(
        code='galpon-1',
        name='Galpón ajeno',
        firm_id=OTHER_FIRM,
    )


@pytest.fixture
def paddock(db):
    """Livestock plot (not a depot)."""
    return Plot.objects.create(
        code='potrero-4',
        name='Potrero 4',
        firm_id=FIRM,
        premise_id=10,
        land_use=LandUse.LIVESTOCK,
    )


@pytest.fixture
def field_plot(db):
    """Agricultural plot (not a depot)."""
    return Plot.objects.create(
        code='lote-7',
        name='Lote 7',
        firm_id=FIRM,
        premise_id=10,
        land_use=LandUse.AGRICULTURAL,
    )


@pytest.fixture
def urea(db, depot_a):
    """Fertilizer at depot A, empty."""
    return Input.objects.create(
        depot=depot_a,
        name='Urea',
        unit='kg',
        category='fertilizante',
        cost_per_unit=Decimal('0.80'),
    )


@pytest.fixture
def stocked_urea(urea):
    """Urea with 100 kg in stock."""
    stock.register_movement(urea, 'entry', Decimal('100'), reference='Compra inicial')
    urea.refresh_from_db()
    return urea


@pytest.fixture
def seed_remittance(db, depot_a):
    """In-transit remittance: 50 bags of an unlinked seed."""
    return stock.create_remittance(
        document_number='0001-00012345',
        date=date(2026, 3, 2),
        supplier_name='Semillera del Sur',
        supplier_tax_id='30-71234567-8',
        depot=depot_a,
        items=[{'description': 'Semilla X', 'unit': 'bolsa', 'quantity_ordered': 50}],
    )


@pytest.fixture
def today():
    """Return today's date."""
    return timezone.localdate()


@pytest.fixture
def in_days():
    """Date helper: in_days(5) is five days from today."""
    def _in_days(days):
        return timezone.localdate() + timedelta(days=days)
    return _in_days
