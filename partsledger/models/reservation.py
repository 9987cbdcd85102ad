"""
Reservation model — Soft hold of a part for a job order.
"""

from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from partsledger.models.enums import OPEN_STATUSES, ReservationStatus


def derive_status(reserved: int, consumed: int, cancelled: bool = False) -> str:
    """
    Status as a pure function of the quantities.

    A hold with nothing left to consume and nothing consumed has been
    fully released, which is reported as CANCELLED.
    """
    if cancelled:
        return ReservationStatus.CANCELLED
    if consumed == 0:
        if reserved == 0:
            return ReservationStatus.CANCELLED
        return ReservationStatus.ACTIVE
    if consumed < reserved:
        return ReservationStatus.PARTIAL
    return ReservationStatus.COMPLETED


class ReservationQuerySet(models.QuerySet):

    def open(self):
        """ACTIVE or PARTIAL reservations."""
        return self.filter(status__in=OPEN_STATUSES)

    def for_part(self, part):
        return self.filter(part=part)

    def for_job(self, job_order: str):
        return self.filter(job_order=job_order)


class Reservation(models.Model):
    """
    Quantity of a part held for a job order.

    LIFECYCLE:

    ┌───────────────────────────────────────────────────────────────┐
    │                                                               │
    │   ┌────────┐  consume()   ┌─────────┐  consume()  ┌──────────┐ │
    │   │ ACTIVE │ ───────────► │ PARTIAL │ ──────────► │COMPLETED │ │
    │   └────────┘              └─────────┘             └──────────┘ │
    │       │                        │                               │
    │       │ cancel()               │ cancel()                      │
    │       ▼                        ▼                               │
    │   ┌────────────────────────────────┐                          │
    │   │           CANCELLED            │                          │
    │   └────────────────────────────────┘                          │
    │                                                               │
    └───────────────────────────────────────────────────────────────┘

    SOFT HOLD:
    Reserving does not decrement Part.current_stock. Stock leaves
    the ledger only when the reservation is consumed, so concurrent
    reservations for the same part may jointly promise more than is
    on hand.
    """

    part = models.ForeignKey(
        'partsledger.Part',
        on_delete=models.PROTECT,
        related_name='reservations',
        verbose_name=_('Part'),
    )
    job_order = models.CharField(max_length=50, db_index=True, verbose_name=_('Job order'))

    quantity_reserved = models.PositiveIntegerField(verbose_name=_('Quantity reserved'))
    quantity_consumed = models.PositiveIntegerField(default=0, verbose_name=_('Quantity consumed'))

    status = models.CharField(
        max_length=10,
        choices=ReservationStatus.choices,
        default=ReservationStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    requested_by = models.CharField(max_length=100, verbose_name=_('Requested by'))

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Resolved at'),
        help_text=_('Completion or cancellation time'),
    )

    objects = ReservationQuerySet.as_manager()

    class Meta:
        verbose_name = _('Reservation')
        verbose_name_plural = _('Reservations')
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_consumed__lte=F('quantity_reserved')),
                name='reservation_consumed_within_reserved',
            ),
            models.UniqueConstraint(
                fields=['part', 'job_order'],
                condition=Q(status__in=['ACTIVE', 'PARTIAL']),
                name='unique_open_reservation_per_job',
            ),
        ]
        indexes = [
            models.Index(fields=['part', 'status'], name='pl_res_part_status_idx'),
        ]

    @property
    def remaining(self) -> int:
        """Unconsumed part of the hold."""
        return self.quantity_reserved - self.quantity_consumed

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def __str__(self) -> str:
        return (
            f"{self.job_order}: {self.quantity_consumed}/{self.quantity_reserved} "
            f"x {self.part_id} [{self.status}]"
        )
