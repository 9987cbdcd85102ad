"""
Pytest fixtures for Partsledger tests.
"""

from decimal import Decimal

import pytest

from partsledger import ledger
from partsledger.models import Part


def make_part(part_number, stock=0, min_threshold=5, max_capacity=100,
              unit_cost=Decimal('12.50'), **kwargs):
    """Create a part and bring it to ``stock`` through a logged restock."""
    part = Part.objects.create(
        part_number=part_number,
        min_threshold=min_threshold,
        max_capacity=max_capacity,
        unit_cost=unit_cost,
        **kwargs,
    )
    if stock:
        ledger.restock(part, stock, actor='storeroom')
    return part


@pytest.fixture
def part(db):
    """Brake pad set: stock 10, threshold 5, capacity 100."""
    return make_part(
        'BP-100',
        stock=10,
        description='Brake pad set',
        category='brakes',
        supplier='Acme Parts',
        location='A-01',
    )


@pytest.fixture
def filter_part(db):
    """Oil filter: stock 40, threshold 10, capacity 50."""
    return make_part(
        'OF-200',
        stock=40,
        min_threshold=10,
        max_capacity=50,
        unit_cost=Decimal('4.00'),
        description='Oil filter',
        category='engine',
    )


@pytest.fixture
def empty_part(db):
    """Wiper blade with no stock and no transactions."""
    return make_part('WB-300', description='Wiper blade', category='body')


@pytest.fixture
def reservation(part):
    """Reservation of 5 units of ``part`` for JO-1."""
    return ledger.reserve(part, 'JO-1', 5, requester='mech-7')
