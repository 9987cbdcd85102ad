"""
LowStockAlert model — record of a part falling to or below its threshold.

Usage:
    # Alerts are written by the AlertEngine after every balance change
    from partsledger.services.alerts import AlertEngine

    AlertEngine.open_alerts()
    AlertEngine.acknowledge(alert, actor='storeroom-lead')
"""

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from partsledger.models.enums import AlertUrgency


class LowStockAlertQuerySet(models.QuerySet):

    def open(self):
        """Unacknowledged alerts."""
        return self.filter(acknowledged=False)

    def acknowledged(self):
        return self.filter(acknowledged=True)

    def by_urgency(self, urgency):
        return self.filter(urgency=urgency)


class LowStockAlert(models.Model):
    """
    Low-stock alert for a part.

    At most one unacknowledged alert exists per part. Further threshold
    breaches update the open alert's urgency and snapshot instead of
    creating a new one. Alerts close only through acknowledgement and
    are kept for audit.
    """

    part = models.ForeignKey(
        'partsledger.Part',
        on_delete=models.PROTECT,
        related_name='alerts',
        verbose_name=_('Part'),
    )

    # Snapshot at last evaluation
    current_stock = models.PositiveIntegerField(verbose_name=_('Stock at alert'))
    threshold = models.PositiveIntegerField(verbose_name=_('Threshold at alert'))
    urgency = models.CharField(
        max_length=10,
        choices=AlertUrgency.choices,
        db_index=True,
        verbose_name=_('Urgency'),
    )
    message = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Message'))

    acknowledged = models.BooleanField(default=False, db_index=True, verbose_name=_('Acknowledged'))
    acknowledged_by = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Acknowledged by'))
    acknowledged_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Acknowledged at'))

    created_at = models.DateTimeField(default=timezone.now, verbose_name=_('Created at'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Updated at'))

    objects = LowStockAlertQuerySet.as_manager()

    class Meta:
        verbose_name = _('Low stock alert')
        verbose_name_plural = _('Low stock alerts')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['part'],
                condition=Q(acknowledged=False),
                name='unique_open_alert_per_part',
            ),
        ]

    def __str__(self) -> str:
        state = 'ack' if self.acknowledged else 'open'
        return f"[{self.urgency}] {self.part_id}: {self.current_stock} <= {self.threshold} ({state})"
