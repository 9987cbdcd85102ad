"""
Ledger Service — The single public interface for all inventory operations.

Usage:
    from partsledger import ledger, LedgerError

    ledger.restock(brake_pad, 40, actor='storeroom')
    res = ledger.reserve(brake_pad, 'JO-1042', 4, requester='mech-7')
    ledger.consume_from_reservation(res, 2, actor='mech-7')
    ledger.stock_status(brake_pad, 10)  # 'Available'

Parts, reservations and alerts may be passed as instances or primary keys.
"""

from partsledger.services.alerts import AlertEngine, urgency_for
from partsledger.services.ledger import StockLedger
from partsledger.services.reports import UsageReporter
from partsledger.services.reservations import ReservationManager
from partsledger.services.transactions import TransactionLog


class Ledger(StockLedger, ReservationManager, AlertEngine, UsageReporter):
    """
    Single interface for all ledger operations.

    IMPORTANT: All state-changing methods run under per-entity locks and
    atomic transactions. See each method's docstring.
    """

    append_transaction = TransactionLog.append
    transactions_for_part = TransactionLog.transactions_for_part
    transactions_between = TransactionLog.transactions_between
    reconstruct_balance = TransactionLog.reconstruct_balance

    urgency_for = staticmethod(urgency_for)
