"""
StockTransaction model — Immutable ledger of quantity changes.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from partsledger.models.enums import BALANCE_TYPES, TransactionType


class StockTransactionQuerySet(models.QuerySet):

    def for_part(self, part):
        return self.filter(part=part)

    def affecting_balance(self):
        """Exclude audit-only entries (RESERVE)."""
        return self.filter(type__in=BALANCE_TYPES)

    def between(self, start, end):
        return self.filter(timestamp__gte=start, timestamp__lt=end)


class StockTransaction(models.Model):
    """
    Immutable record of a stock-affecting event.

    Rules:
    - NEVER update() or delete()
    - Corrections are new ADJUST transactions
    - quantity is signed: positive adds stock, negative removes it
    - previous_stock/new_stock snapshot the balance around the event
    """

    part = models.ForeignKey(
        'partsledger.Part',
        on_delete=models.PROTECT,
        related_name='transactions',
        verbose_name=_('Part'),
    )
    type = models.CharField(
        max_length=10,
        choices=TransactionType.choices,
        verbose_name=_('Type'),
    )
    quantity = models.IntegerField(
        verbose_name=_('Quantity'),
        help_text=_('Positive = in, Negative = out'),
    )
    previous_stock = models.PositiveIntegerField(verbose_name=_('Previous stock'))
    new_stock = models.PositiveIntegerField(verbose_name=_('New stock'))

    job_order = models.CharField(max_length=50, blank=True, default='', db_index=True, verbose_name=_('Job order'))
    mechanic = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Mechanic'))
    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Reason'))
    performed_by = models.CharField(max_length=100, verbose_name=_('Performed by'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))

    objects = StockTransactionQuerySet.as_manager()

    class Meta:
        verbose_name = _('Stock transaction')
        verbose_name_plural = _('Stock transactions')
        ordering = ['timestamp', 'id']
        indexes = [
            models.Index(fields=['part', 'timestamp'], name='pl_tx_part_ts_idx'),
            models.Index(fields=['type', 'timestamp'], name='pl_tx_type_ts_idx'),
        ]

    @property
    def affects_balance(self) -> bool:
        return self.type in BALANCE_TYPES

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError(
                "Stock transactions are immutable. "
                "To correct, record a new ADJUST transaction."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(
            "Stock transactions are immutable. "
            "To reverse, record a new ADJUST transaction."
        )

    def __str__(self) -> str:
        sign = '+' if self.quantity > 0 else ''
        return f"{self.type} {sign}{self.quantity} | {self.performed_by}"
