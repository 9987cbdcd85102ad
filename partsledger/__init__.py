"""
Partsledger — stock ledger and reservation engine for maintenance parts.

Usage:
    from partsledger import ledger, LedgerError

    ledger.restock(part, 40, actor='storeroom')
    reservation = ledger.reserve(part, 'JO-1', 5, requester='mech-7')
    ledger.consume_from_reservation(reservation, 3, actor='mech-7')
    ledger.current_stock(part)  # 37
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from partsledger.service import Ledger
        return Ledger
    elif name == 'LedgerError':
        from partsledger.exceptions import LedgerError
        return LedgerError
    elif name == 'Part':
        from partsledger.models.part import Part
        return Part
    elif name == 'Reservation':
        from partsledger.models.reservation import Reservation
        return Reservation
    elif name == 'StockTransaction':
        from partsledger.models.transaction import StockTransaction
        return StockTransaction
    elif name == 'LowStockAlert':
        from partsledger.models.alert import LowStockAlert
        return LowStockAlert
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'LedgerError',
    'Part',
    'Reservation',
    'StockTransaction',
    'LowStockAlert',
]

__version__ = '0.1.0'
