"""
Part model — a stocked spare part and its authoritative balance.
"""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class PartQuerySet(models.QuerySet):
    """QuerySet with helpers for stock-level filtering."""

    def active(self):
        return self.filter(is_active=True)

    def low_stock(self):
        """Parts at or below their minimum threshold."""
        return self.filter(current_stock__lte=F('min_threshold'))

    def out_of_stock(self):
        return self.filter(current_stock=0)


class Part(models.Model):
    """
    A stocked part.

    current_stock is the ledger value. It is written only by
    StockLedger, always together with a StockTransaction; never
    assign it directly.

    Performance:
    - current_stock is a cache of the transaction log
    - Read is O(1), not O(N)
    - Use ledger.reconcile() for audit/correction
    """

    part_number = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('Part number'),
    )
    description = models.CharField(
        max_length=255,
        blank=True,
        default='',
        verbose_name=_('Description'),
    )
    category = models.CharField(
        max_length=100,
        blank=True,
        default='',
        db_index=True,
        verbose_name=_('Category'),
    )

    current_stock = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Current stock'),
    )
    min_threshold = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Minimum threshold'),
        help_text=_('Alerts open when stock falls to or below this value'),
    )
    max_capacity = models.PositiveIntegerField(
        verbose_name=_('Maximum capacity'),
    )

    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        verbose_name=_('Unit cost'),
    )
    supplier = models.CharField(max_length=150, blank=True, default='', verbose_name=_('Supplier'))
    location = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Location'))
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Last updated'))

    objects = PartQuerySet.as_manager()

    class Meta:
        verbose_name = _('Part')
        verbose_name_plural = _('Parts')
        ordering = ['part_number']
        constraints = [
            models.CheckConstraint(
                condition=Q(current_stock__gte=0) & Q(current_stock__lte=F('max_capacity')),
                name='part_stock_within_capacity',
            ),
        ]

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_threshold

    @property
    def stock_value(self) -> Decimal:
        return self.current_stock * self.unit_cost

    def __str__(self) -> str:
        return f"{self.part_number} ({self.current_stock}/{self.max_capacity})"
