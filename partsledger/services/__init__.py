"""
Ledger services — modular organization of inventory operations.

Re-exports all public classes:
    from partsledger.services import StockLedger, ReservationManager, AlertEngine
"""

from partsledger.services.alerts import AlertEngine
from partsledger.services.ledger import StockLedger
from partsledger.services.reports import UsageReporter
from partsledger.services.reservations import ReservationManager
from partsledger.services.transactions import TransactionLog

__all__ = [
    'TransactionLog',
    'StockLedger',
    'ReservationManager',
    'AlertEngine',
    'UsageReporter',
]
