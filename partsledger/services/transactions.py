"""
Transaction log — append-only history of stock-affecting events.

The log never checks business rules. Callers (StockLedger,
ReservationManager) validate under the part lock and then append.
"""

from collections.abc import Iterator

from django.db.models import Sum
from django.db.models.functions import Coalesce

from partsledger.exceptions import LedgerError, storage_guard
from partsledger.models.transaction import StockTransaction


class TransactionLog:
    """Append and read StockTransactions."""

    @classmethod
    def append(cls, part, type, quantity: int, performed_by: str,
               previous_stock: int, new_stock: int,
               job_order=None, mechanic=None, reason=None) -> int:
        """
        Record a transaction.

        Returns:
            id of the new transaction

        Raises:
            LedgerError('VALIDATION_ERROR'): If quantity is zero or
                performed_by is empty
        """
        return cls.record(
            part, type, quantity, performed_by, previous_stock, new_stock,
            job_order=job_order, mechanic=mechanic, reason=reason,
        ).pk

    @classmethod
    def record(cls, part, type, quantity: int, performed_by: str,
               previous_stock: int, new_stock: int,
               job_order=None, mechanic=None, reason=None) -> StockTransaction:
        """Same as append(), returning the saved StockTransaction."""
        if quantity == 0:
            raise LedgerError('VALIDATION_ERROR', field='quantity', requested=quantity)
        if not performed_by or not str(performed_by).strip():
            raise LedgerError('VALIDATION_ERROR', field='performed_by')

        with storage_guard('transactions.append'):
            return StockTransaction.objects.create(
                part=part,
                type=type,
                quantity=quantity,
                previous_stock=previous_stock,
                new_stock=new_stock,
                job_order=job_order or '',
                mechanic=mechanic or '',
                reason=reason or '',
                performed_by=performed_by,
            )

    @classmethod
    def transactions_for_part(cls, part) -> Iterator[StockTransaction]:
        """
        Transactions of a part, oldest first.

        Each call returns a fresh lazy iterator, so the sequence can be
        walked again from the start. Storage failures while walking it
        raise STORAGE_UNAVAILABLE.
        """
        with storage_guard('transactions.for_part'):
            yield from StockTransaction.objects.for_part(part).order_by('timestamp', 'id').iterator()

    @classmethod
    def transactions_between(cls, start, end, part=None) -> list[StockTransaction]:
        """Transactions with start <= timestamp < end, optionally for one part."""
        qs = StockTransaction.objects.between(start, end)
        if part is not None:
            qs = qs.for_part(part)
        with storage_guard('transactions.between'):
            return list(qs.select_related('part').order_by('timestamp', 'id'))

    @classmethod
    def reconstruct_balance(cls, part) -> int:
        """Recompute stock purely from the log (audit path, not the hot path)."""
        with storage_guard('transactions.reconstruct_balance'):
            return StockTransaction.objects.for_part(part).affecting_balance().aggregate(
                t=Coalesce(Sum('quantity'), 0)
            )['t']
