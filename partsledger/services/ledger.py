"""
Stock ledger — the single authoritative balance per part.

Every mutation runs as one unit under the part lock:
validate -> compute new balance -> append transaction + save balance
-> evaluate alerts, all inside transaction.atomic(). Invariants are
checked after the lock is taken, never before.
"""

import logging
from dataclasses import dataclass

from django.db import transaction

from partsledger.conf import ledger_settings
from partsledger.events import StockChanged, publish
from partsledger.exceptions import LedgerError, storage_guard
from partsledger.locks import part_lock
from partsledger.models.enums import StockStatus, TransactionType
from partsledger.models.part import Part
from partsledger.services.alerts import AlertEngine
from partsledger.services.common import (
    load_part_for_update,
    part_id_of,
    require_actor,
    require_positive,
)
from partsledger.services.transactions import TransactionLog

logger = logging.getLogger('partsledger')


def stock_status(current_stock: int, requested_quantity: int) -> str:
    """Availability of ``requested_quantity`` given ``current_stock``."""
    if current_stock == 0:
        return StockStatus.BACKORDER
    if requested_quantity <= current_stock:
        return StockStatus.AVAILABLE
    return StockStatus.PARTIAL


@dataclass(frozen=True)
class StockStatusReport:
    """Point-in-time stock picture for one part and request size."""

    part_id: int
    part_number: str
    current_stock: int
    reserved_outstanding: int
    requested_quantity: int
    status: str
    is_low_stock: bool
    min_threshold: int
    max_capacity: int


@dataclass(frozen=True)
class BalanceCheck:
    """Cached balance compared against the transaction log."""

    part_id: int
    part_number: str
    recorded: int
    reconstructed: int
    repaired: bool = False

    @property
    def difference(self) -> int:
        return self.reconstructed - self.recorded

    @property
    def matches(self) -> bool:
        return self.difference == 0


class StockLedger:
    """Balance-changing operations: restock, consume, adjust, return."""

    @classmethod
    def restock(cls, part, quantity: int, actor: str, reason=None):
        """
        Stock entry from procurement.

        Raises:
            LedgerError('INVALID_QUANTITY'): If quantity <= 0
            LedgerError('CAPACITY_EXCEEDED'): If the result exceeds max_capacity
        """
        require_positive(quantity)

        def check(locked, new_stock):
            if new_stock > locked.max_capacity:
                raise LedgerError(
                    'CAPACITY_EXCEEDED',
                    current=locked.current_stock,
                    requested=quantity,
                    max_capacity=locked.max_capacity,
                )

        return cls._apply(part, TransactionType.RESTOCK, quantity, actor, check,
                          reason=reason)

    @classmethod
    def consume(cls, part, quantity: int, actor: str, job_order=None, mechanic=None):
        """
        Stock exit.

        Raises:
            LedgerError('INVALID_QUANTITY'): If quantity <= 0
            LedgerError('INSUFFICIENT_STOCK'): If quantity > current_stock

        Concurrency:
            - Runs under the part lock and transaction.atomic()
            - Uses select_for_update() on Part
            - Verifies stock after lock
        """
        require_positive(quantity)

        def check(locked, new_stock):
            if new_stock < 0:
                raise LedgerError(
                    'INSUFFICIENT_STOCK',
                    available=locked.current_stock,
                    requested=quantity,
                )

        return cls._apply(part, TransactionType.CONSUME, -quantity, actor, check,
                          job_order=job_order, mechanic=mechanic)

    @classmethod
    def adjust(cls, part, delta: int, actor: str, reason: str):
        """
        Correction or write-off, independent of reservations.

        Raises:
            LedgerError('INVALID_QUANTITY'): If delta == 0
            LedgerError('VALIDATION_ERROR'): If reason is empty
            LedgerError('INVALID_ADJUSTMENT'): If the result leaves [0, max_capacity]
        """
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise LedgerError('VALIDATION_ERROR', field='delta', requested=delta)
        if delta == 0:
            raise LedgerError('INVALID_QUANTITY', requested=delta)
        require_actor(reason, field='reason')

        def check(locked, new_stock):
            if new_stock < 0 or new_stock > locked.max_capacity:
                raise LedgerError(
                    'INVALID_ADJUSTMENT',
                    current=locked.current_stock,
                    requested=delta,
                    max_capacity=locked.max_capacity,
                )

        return cls._apply(part, TransactionType.ADJUST, delta, actor, check,
                          reason=reason)

    @classmethod
    def return_stock(cls, part, quantity: int, actor: str, job_order=None, reason=None):
        """
        Parts physically returned to the shelf.

        Returns above capacity indicate a data error and are rejected.

        Raises:
            LedgerError('INVALID_QUANTITY'): If quantity <= 0
            LedgerError('CAPACITY_EXCEEDED'): If the result exceeds max_capacity
        """
        require_positive(quantity)

        def check(locked, new_stock):
            if new_stock > locked.max_capacity:
                raise LedgerError(
                    'CAPACITY_EXCEEDED',
                    current=locked.current_stock,
                    requested=quantity,
                    max_capacity=locked.max_capacity,
                )

        return cls._apply(part, TransactionType.RETURN, quantity, actor, check,
                          job_order=job_order, reason=reason)

    @classmethod
    def _apply(cls, part, type, delta, actor, check,
               job_order=None, mechanic=None, reason=None):
        require_actor(actor)
        pid = part_id_of(part)

        with part_lock(pid), storage_guard(f'ledger.{type.lower()}'):
            with transaction.atomic():
                locked = load_part_for_update(pid)
                previous = locked.current_stock
                new_stock = previous + delta
                check(locked, new_stock)

                tx = TransactionLog.record(
                    part=locked,
                    type=type,
                    quantity=delta,
                    performed_by=actor,
                    previous_stock=previous,
                    new_stock=new_stock,
                    job_order=job_order,
                    mechanic=mechanic,
                    reason=reason,
                )
                locked.current_stock = new_stock
                locked.save(update_fields=['current_stock', 'updated_at'])

                AlertEngine.on_balance_changed(locked, new_stock, locked.min_threshold)
                publish(StockChanged(
                    part_id=pid,
                    old_stock=previous,
                    new_stock=new_stock,
                    transaction_id=tx.pk,
                ))

        if isinstance(part, Part):
            part.current_stock = new_stock
            part.updated_at = locked.updated_at

        logger.info(
            f"ledger.{type.lower()}",
            extra={
                "part_id": pid,
                "delta": delta,
                "new_stock": new_stock,
                "actor": actor,
                "transaction_id": tx.pk,
            },
        )
        return tx

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def current_stock(cls, part) -> int:
        with storage_guard('ledger.current_stock'):
            try:
                return Part.objects.values_list('current_stock', flat=True).get(pk=part_id_of(part))
            except Part.DoesNotExist:
                raise LedgerError('PART_NOT_FOUND', part_id=part_id_of(part)) from None

    @classmethod
    def stock_status(cls, part, requested_quantity: int) -> str:
        return stock_status(cls.current_stock(part), requested_quantity)

    @classmethod
    def check_stock_status(cls, part, requested_quantity: int = 1) -> StockStatusReport:
        """Stock picture for a prospective request, including open holds."""
        from partsledger.services.reservations import ReservationManager

        with storage_guard('ledger.check_stock_status'):
            try:
                current = Part.objects.get(pk=part_id_of(part))
            except Part.DoesNotExist:
                raise LedgerError('PART_NOT_FOUND', part_id=part_id_of(part)) from None

        return StockStatusReport(
            part_id=current.pk,
            part_number=current.part_number,
            current_stock=current.current_stock,
            reserved_outstanding=ReservationManager.outstanding(current),
            requested_quantity=requested_quantity,
            status=stock_status(current.current_stock, requested_quantity),
            is_low_stock=current.is_low_stock,
            min_threshold=current.min_threshold,
            max_capacity=current.max_capacity,
        )

    @classmethod
    def reconcile(cls, part, repair: bool = False, actor=None) -> BalanceCheck:
        """
        Compare current_stock with the balance rebuilt from the log.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency (repair=True)

        A reconstructed balance outside [0, max_capacity] is reported
        but never written back.
        """
        pid = part_id_of(part)
        with part_lock(pid), storage_guard('ledger.reconcile'):
            with transaction.atomic():
                locked = load_part_for_update(pid)
                recorded = locked.current_stock
                reconstructed = TransactionLog.reconstruct_balance(locked)
                repaired = False

                if reconstructed != recorded:
                    logger.warning(
                        f"Part {pid} balance mismatch: recorded {recorded}, "
                        f"log {reconstructed} (diff: {reconstructed - recorded})"
                    )
                    if repair and 0 <= reconstructed <= locked.max_capacity:
                        locked.current_stock = reconstructed
                        locked.save(update_fields=['current_stock', 'updated_at'])
                        AlertEngine.on_balance_changed(locked, reconstructed, locked.min_threshold)
                        repaired = True
                        logger.warning(
                            "ledger.reconcile_repaired",
                            extra={
                                "part_id": pid,
                                "from_stock": recorded,
                                "to_stock": reconstructed,
                                "actor": actor or ledger_settings.DEFAULT_ACTOR,
                            },
                        )

        return BalanceCheck(
            part_id=pid,
            part_number=locked.part_number,
            recorded=recorded,
            reconstructed=reconstructed,
            repaired=repaired,
        )
