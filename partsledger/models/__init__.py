"""
Partsledger Models.

Core models for parts inventory:
- Part: Stocked part with its current balance
- StockTransaction: Immutable ledger of changes
- Reservation: Soft holds against job orders
- LowStockAlert: Threshold breach records
"""

from partsledger.models.alert import LowStockAlert
from partsledger.models.enums import (
    AlertUrgency,
    ReservationStatus,
    StockStatus,
    TransactionType,
)
from partsledger.models.part import Part
from partsledger.models.reservation import Reservation, derive_status
from partsledger.models.transaction import StockTransaction

__all__ = [
    'AlertUrgency',
    'ReservationStatus',
    'StockStatus',
    'TransactionType',
    'Part',
    'StockTransaction',
    'Reservation',
    'LowStockAlert',
    'derive_status',
]
