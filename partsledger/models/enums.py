"""
Enums for Partsledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class TransactionType(models.TextChoices):
    """
    Kind of stock-affecting event.

    RESERVE is recorded for audit only; a reservation is a soft hold and
    never moves the balance. Every other type changes current_stock.
    """
    RESERVE = 'RESERVE', _('Reserve')
    CONSUME = 'CONSUME', _('Consume')
    RETURN = 'RETURN', _('Return')
    ADJUST = 'ADJUST', _('Adjust')
    RESTOCK = 'RESTOCK', _('Restock')


# Types whose quantity moves the balance
BALANCE_TYPES = (
    TransactionType.CONSUME,
    TransactionType.RETURN,
    TransactionType.ADJUST,
    TransactionType.RESTOCK,
)


class ReservationStatus(models.TextChoices):
    """Reservation lifecycle status."""
    ACTIVE = 'ACTIVE', _('Active')           # Reserved, nothing consumed yet
    PARTIAL = 'PARTIAL', _('Partial')        # Some consumed
    COMPLETED = 'COMPLETED', _('Completed')  # Fully consumed
    CANCELLED = 'CANCELLED', _('Cancelled')  # Hold released


OPEN_STATUSES = (ReservationStatus.ACTIVE, ReservationStatus.PARTIAL)


class AlertUrgency(models.TextChoices):
    """Low-stock severity, ordered from least to most urgent."""
    LOW = 'LOW', _('Low')
    MEDIUM = 'MEDIUM', _('Medium')
    HIGH = 'HIGH', _('High')
    CRITICAL = 'CRITICAL', _('Critical')


class StockStatus(models.TextChoices):
    """Availability of a requested quantity against current stock."""
    AVAILABLE = 'Available', _('Available')
    PARTIAL = 'Partial', _('Partial')
    BACKORDER = 'Backorder', _('Backorder')
