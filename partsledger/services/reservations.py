"""
Reservations — soft-hold lifecycle (reserve, consume, cancel, return).

All methods run under the reservation lock (then the part lock), and the
part lock is held until transaction.atomic() has committed. Stock only
leaves the ledger on consumption.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Count, F, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from partsledger.events import ReservationChanged, publish
from partsledger.exceptions import LedgerError, storage_guard
from partsledger.locks import part_lock, reservation_lock
from partsledger.models.enums import OPEN_STATUSES, ReservationStatus, TransactionType
from partsledger.models.reservation import Reservation, derive_status
from partsledger.services.common import (
    load_part_for_update,
    part_id_of,
    require_actor,
    require_positive,
)
from partsledger.services.ledger import StockLedger
from partsledger.services.transactions import TransactionLog

logger = logging.getLogger('partsledger')


def reservation_id_of(reservation) -> int:
    return reservation.pk if isinstance(reservation, Reservation) else reservation


def _load_reservation_for_update(reservation_id) -> Reservation:
    try:
        return Reservation.objects.select_for_update().get(pk=reservation_id)
    except Reservation.DoesNotExist:
        raise LedgerError('RESERVATION_NOT_FOUND', reservation_id=reservation_id) from None


def _part_of(reservation) -> int:
    """
    Part id of a reservation, read before any lock is taken.

    A reservation never changes part, so the value is safe to use for
    choosing the part lock.
    """
    if isinstance(reservation, Reservation) and reservation.part_id is not None:
        return reservation.part_id
    try:
        return Reservation.objects.values_list('part_id', flat=True).get(pk=reservation)
    except Reservation.DoesNotExist:
        raise LedgerError('RESERVATION_NOT_FOUND', reservation_id=reservation) from None


def _require_open(reservation: Reservation, operation: str) -> None:
    if reservation.status not in OPEN_STATUSES:
        raise LedgerError(
            'INVALID_TRANSITION',
            reservation_id=reservation.pk,
            operation=operation,
            current=reservation.status,
            expected=[s.value for s in OPEN_STATUSES],
        )


def _sync(target, source: Reservation) -> None:
    """Copy persisted state onto a caller-held instance."""
    if isinstance(target, Reservation) and target is not source:
        for field in ('quantity_reserved', 'quantity_consumed', 'status',
                      'updated_at', 'resolved_at'):
            setattr(target, field, getattr(source, field))


class ReservationManager:
    """Reservation lifecycle methods."""

    @classmethod
    def reserve(cls, part, job_order: str, quantity: int, requester: str) -> Reservation:
        """
        Hold ``quantity`` of a part for a job order.

        The hold is soft: current_stock is checked but not decremented.
        A RESERVE transaction is logged for audit.

        Raises:
            LedgerError('INVALID_QUANTITY'): If quantity <= 0
            LedgerError('DUPLICATE_ACTIVE_RESERVATION'): If the job order
                already holds an open reservation for the part
            LedgerError('INSUFFICIENT_STOCK'): If current_stock < quantity
        """
        require_positive(quantity)
        require_actor(requester, field='requester')
        require_actor(job_order, field='job_order')
        pid = part_id_of(part)

        with part_lock(pid), storage_guard('reservations.reserve'):
            with transaction.atomic():
                locked = load_part_for_update(pid)

                if Reservation.objects.open().filter(part_id=pid, job_order=job_order).exists():
                    raise LedgerError(
                        'DUPLICATE_ACTIVE_RESERVATION',
                        part_id=pid,
                        job_order=job_order,
                    )

                if locked.current_stock < quantity:
                    raise LedgerError(
                        'INSUFFICIENT_STOCK',
                        available=locked.current_stock,
                        requested=quantity,
                    )

                try:
                    with transaction.atomic():
                        reservation = Reservation.objects.create(
                            part=locked,
                            job_order=job_order,
                            quantity_reserved=quantity,
                            status=ReservationStatus.ACTIVE,
                            requested_by=requester,
                        )
                except IntegrityError:
                    # Another process won the race on the partial unique index
                    raise LedgerError(
                        'DUPLICATE_ACTIVE_RESERVATION',
                        part_id=pid,
                        job_order=job_order,
                    ) from None

                TransactionLog.record(
                    part=locked,
                    type=TransactionType.RESERVE,
                    quantity=quantity,
                    performed_by=requester,
                    previous_stock=locked.current_stock,
                    new_stock=locked.current_stock,
                    job_order=job_order,
                )
                publish(ReservationChanged(
                    reservation_id=reservation.pk,
                    old_status=None,
                    new_status=reservation.status,
                ))

        logger.info(
            "reservation.created",
            extra={
                "reservation_id": reservation.pk,
                "part_id": pid,
                "job_order": job_order,
                "qty": quantity,
            },
        )
        return reservation

    @classmethod
    def consume_from_reservation(cls, reservation, quantity: int, actor: str,
                                 mechanic=None) -> Reservation:
        """
        Draw ``quantity`` from the hold, decrementing stock.

        Transition: ACTIVE|PARTIAL -> PARTIAL|COMPLETED

        If the ledger rejects the consumption the reservation is left
        unchanged and the ledger error propagates.

        Raises:
            LedgerError('INVALID_TRANSITION'): If not ACTIVE/PARTIAL
            LedgerError('INVALID_QUANTITY'): If quantity <= 0
            LedgerError('OVER_CONSUMPTION'): If consumed + quantity > reserved
            LedgerError('INSUFFICIENT_STOCK'): From StockLedger.consume
        """
        require_actor(actor)
        rid = reservation_id_of(reservation)

        with reservation_lock(rid), storage_guard('reservations.consume'):
            with part_lock(_part_of(reservation)), transaction.atomic():
                locked = _load_reservation_for_update(rid)
                _require_open(locked, 'consume')
                require_positive(quantity)

                if locked.quantity_consumed + quantity > locked.quantity_reserved:
                    raise LedgerError(
                        'OVER_CONSUMPTION',
                        reservation_id=rid,
                        requested=quantity,
                        remaining=locked.remaining,
                    )

                StockLedger.consume(
                    locked.part_id,
                    quantity,
                    actor,
                    job_order=locked.job_order,
                    mechanic=mechanic,
                )

                old_status = locked.status
                locked.quantity_consumed += quantity
                locked.status = derive_status(locked.quantity_reserved, locked.quantity_consumed)
                if locked.status == ReservationStatus.COMPLETED:
                    locked.resolved_at = timezone.now()
                locked.save(update_fields=[
                    'quantity_consumed', 'status', 'resolved_at', 'updated_at',
                ])
                if locked.status != old_status:
                    publish(ReservationChanged(
                        reservation_id=rid,
                        old_status=old_status,
                        new_status=locked.status,
                    ))

        _sync(reservation, locked)
        logger.info(
            "reservation.consumed",
            extra={
                "reservation_id": rid,
                "qty": quantity,
                "consumed": locked.quantity_consumed,
                "status": str(locked.status),
            },
        )
        return locked

    @classmethod
    def cancel(cls, reservation, actor: str) -> Reservation:
        """
        Release the unconsumed remainder of the hold.

        Transition: ACTIVE|PARTIAL -> CANCELLED

        Consumed stock is not reversed; it has physically left the shelf.

        Raises:
            LedgerError('INVALID_TRANSITION'): From COMPLETED or CANCELLED
        """
        require_actor(actor)
        rid = reservation_id_of(reservation)

        with reservation_lock(rid), storage_guard('reservations.cancel'):
            with part_lock(_part_of(reservation)), transaction.atomic():
                locked = _load_reservation_for_update(rid)
                _require_open(locked, 'cancel')

                old_status = locked.status
                locked.status = derive_status(
                    locked.quantity_reserved, locked.quantity_consumed, cancelled=True,
                )
                locked.resolved_at = timezone.now()
                locked.save(update_fields=['status', 'resolved_at', 'updated_at'])
                publish(ReservationChanged(
                    reservation_id=rid,
                    old_status=old_status,
                    new_status=locked.status,
                ))

        _sync(reservation, locked)
        logger.info(
            "reservation.cancelled",
            extra={
                "reservation_id": rid,
                "actor": actor,
                "released": locked.remaining,
            },
        )
        return locked

    @classmethod
    def return_unused(cls, reservation, quantity: int, actor: str) -> Reservation:
        """
        Put unconsumed parts back on the shelf.

        Delegates to StockLedger.return_stock and shrinks the hold by the
        returned quantity, so the same units are not held and shelved at
        once. A hold reduced to its consumed quantity resolves: COMPLETED
        if anything was consumed, CANCELLED otherwise.

        Raises:
            LedgerError('INVALID_TRANSITION'): If not ACTIVE/PARTIAL
            LedgerError('INVALID_QUANTITY'): If quantity <= 0
            LedgerError('OVER_CONSUMPTION'): If quantity > reserved - consumed
            LedgerError('CAPACITY_EXCEEDED'): From StockLedger.return_stock
        """
        require_actor(actor)
        rid = reservation_id_of(reservation)

        with reservation_lock(rid), storage_guard('reservations.return_unused'):
            with part_lock(_part_of(reservation)), transaction.atomic():
                locked = _load_reservation_for_update(rid)
                _require_open(locked, 'return_unused')
                require_positive(quantity)

                if quantity > locked.remaining:
                    raise LedgerError(
                        'OVER_CONSUMPTION',
                        reservation_id=rid,
                        requested=quantity,
                        remaining=locked.remaining,
                    )

                StockLedger.return_stock(
                    locked.part_id,
                    quantity,
                    actor,
                    job_order=locked.job_order,
                    reason=f"Unused from reservation {rid}",
                )

                old_status = locked.status
                locked.quantity_reserved -= quantity
                locked.status = derive_status(locked.quantity_reserved, locked.quantity_consumed)
                if locked.status not in OPEN_STATUSES:
                    locked.resolved_at = timezone.now()
                locked.save(update_fields=[
                    'quantity_reserved', 'status', 'resolved_at', 'updated_at',
                ])
                if locked.status != old_status:
                    publish(ReservationChanged(
                        reservation_id=rid,
                        old_status=old_status,
                        new_status=locked.status,
                    ))

        _sync(reservation, locked)
        logger.info(
            "reservation.returned",
            extra={
                "reservation_id": rid,
                "qty": quantity,
                "status": str(locked.status),
            },
        )
        return locked

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_reservation(cls, reservation_id) -> Reservation:
        try:
            return Reservation.objects.get(pk=reservation_id)
        except Reservation.DoesNotExist:
            raise LedgerError('RESERVATION_NOT_FOUND', reservation_id=reservation_id) from None

    @classmethod
    def outstanding(cls, part) -> int:
        """Unconsumed quantity across open reservations of a part."""
        with storage_guard('reservations.outstanding'):
            return Reservation.objects.open().for_part(part_id_of(part)).aggregate(
                t=Coalesce(Sum(F('quantity_reserved') - F('quantity_consumed')), 0)
            )['t']

    @classmethod
    def reservations_for_job(cls, job_order: str):
        return Reservation.objects.for_job(job_order).select_related('part').order_by('created_at', 'id')

    @classmethod
    def reservation_summary(cls) -> dict:
        """Reservation counts by status, plus open total."""
        with storage_guard('reservations.summary'):
            rows = Reservation.objects.order_by().values('status').annotate(n=Count('id'))
            by_status = {row['status']: row['n'] for row in rows}
        return {
            'open': sum(by_status.get(s.value, 0) for s in OPEN_STATUSES),
            'by_status': {
                status.value: by_status.get(status.value, 0)
                for status in ReservationStatus
            },
        }
