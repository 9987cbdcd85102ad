"""
Low-stock alerts — derive, escalate and acknowledge alerts.

Usage:
    from partsledger.services.alerts import AlertEngine

    # Called by StockLedger after every balance change
    AlertEngine.on_balance_changed(part, new_stock, part.min_threshold)

    # Periodic sweep (cron, celery beat, management command)
    touched = AlertEngine.check_alerts()
"""

import logging

from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from partsledger.conf import ledger_settings
from partsledger.events import AlertRaised, publish
from partsledger.exceptions import LedgerError, storage_guard
from partsledger.locks import part_lock
from partsledger.models.alert import LowStockAlert
from partsledger.models.enums import AlertUrgency
from partsledger.models.part import Part
from partsledger.services.common import load_part_for_update, part_id_of, require_actor

logger = logging.getLogger('partsledger')


def urgency_for(current_stock: int, threshold: int) -> str | None:
    """
    Urgency of a stock level, or None when above threshold.

    0 -> CRITICAL; <= threshold * ratio -> HIGH; <= threshold -> MEDIUM.
    """
    if current_stock == 0:
        return AlertUrgency.CRITICAL
    if current_stock <= threshold * ledger_settings.HIGH_URGENCY_RATIO:
        return AlertUrgency.HIGH
    if current_stock <= threshold:
        return AlertUrgency.MEDIUM
    return None


def alert_message(part: Part, urgency: str, current_stock: int) -> str:
    name = part.description or part.part_number
    if urgency == AlertUrgency.CRITICAL:
        return f"CRITICAL: {name} is out of stock. Immediate restocking required."
    if urgency == AlertUrgency.HIGH:
        return f"HIGH PRIORITY: {name} stock is critically low ({current_stock} units remaining)."
    if urgency == AlertUrgency.MEDIUM:
        return f"MEDIUM: {name} stock is below recommended levels ({current_stock} units remaining)."
    return f"LOW: {name} stock should be monitored ({current_stock} units remaining)."


class AlertEngine:
    """Alert derivation from ledger balances."""

    @classmethod
    def on_balance_changed(cls, part, new_stock: int, threshold: int) -> LowStockAlert | None:
        """
        Upsert the open alert for a part.

        - Below threshold, no open alert: create one
        - Below threshold, open alert: refresh snapshot and urgency
        - Above threshold: leave any open alert as it is; only an
          acknowledgement closes it

        Returns:
            The open alert after evaluation, or None if there is none.
        """
        pid = part_id_of(part)
        urgency = urgency_for(new_stock, threshold)

        with part_lock(pid), storage_guard('alerts.on_balance_changed'):
            with transaction.atomic():
                current = (
                    LowStockAlert.objects.open()
                    .select_for_update()
                    .filter(part_id=pid)
                    .first()
                )
                if urgency is None:
                    return current

                if not isinstance(part, Part):
                    part = Part.objects.get(pk=pid)
                message = alert_message(part, urgency, new_stock)

                if current is None:
                    alert = LowStockAlert.objects.create(
                        part_id=pid,
                        current_stock=new_stock,
                        threshold=threshold,
                        urgency=urgency,
                        message=message,
                    )
                    publish(AlertRaised(alert_id=alert.pk, part_id=pid, urgency=urgency))
                    logger.warning(
                        "alert.raised",
                        extra={
                            "alert_id": alert.pk,
                            "part_id": pid,
                            "urgency": str(urgency),
                            "stock": new_stock,
                            "threshold": threshold,
                        },
                    )
                    return alert

                escalated = current.urgency != urgency
                current.current_stock = new_stock
                current.threshold = threshold
                current.urgency = urgency
                current.message = message
                current.save(update_fields=[
                    'current_stock', 'threshold', 'urgency', 'message', 'updated_at',
                ])
                if escalated:
                    publish(AlertRaised(alert_id=current.pk, part_id=pid, urgency=urgency))
                    logger.warning(
                        "alert.urgency_changed",
                        extra={
                            "alert_id": current.pk,
                            "part_id": pid,
                            "urgency": str(urgency),
                            "stock": new_stock,
                        },
                    )
                return current

    @classmethod
    def acknowledge(cls, alert, actor: str) -> LowStockAlert:
        """
        Close an alert.

        Raises:
            LedgerError('ALREADY_ACKNOWLEDGED'): If the alert is already closed
            LedgerError('ALERT_NOT_FOUND'): If the alert does not exist
        """
        require_actor(actor)
        alert_id = alert.pk if isinstance(alert, LowStockAlert) else alert

        with storage_guard('alerts.acknowledge'):
            try:
                part_id = LowStockAlert.objects.values_list('part_id', flat=True).get(pk=alert_id)
            except LowStockAlert.DoesNotExist:
                raise LedgerError('ALERT_NOT_FOUND', alert_id=alert_id) from None

            with part_lock(part_id), transaction.atomic():
                locked = LowStockAlert.objects.select_for_update().get(pk=alert_id)
                if locked.acknowledged:
                    raise LedgerError(
                        'ALREADY_ACKNOWLEDGED',
                        alert_id=alert_id,
                        acknowledged_by=locked.acknowledged_by,
                    )
                locked.acknowledged = True
                locked.acknowledged_by = actor
                locked.acknowledged_at = timezone.now()
                locked.save(update_fields=[
                    'acknowledged', 'acknowledged_by', 'acknowledged_at', 'updated_at',
                ])

        logger.info(
            "alert.acknowledged",
            extra={"alert_id": alert_id, "actor": actor},
        )
        return locked

    @classmethod
    def acknowledge_many(cls, alerts, actor: str) -> int:
        """
        Close every open alert among ``alerts``.

        Alerts that are already acknowledged or do not exist are skipped.

        Returns:
            Number of alerts closed by this call.
        """
        require_actor(actor)
        alert_ids = [a.pk if isinstance(a, LowStockAlert) else a for a in alerts]

        with storage_guard('alerts.acknowledge_many'):
            targets = list(
                LowStockAlert.objects.open()
                .filter(pk__in=alert_ids)
                .order_by('part_id', 'pk')
                .values_list('pk', 'part_id')
            )

        closed = 0
        for alert_id, part_id in targets:
            with part_lock(part_id), storage_guard('alerts.acknowledge_many'):
                with transaction.atomic():
                    now = timezone.now()
                    # Re-checked under the lock; a concurrent acknowledge wins
                    closed += LowStockAlert.objects.open().filter(pk=alert_id).update(
                        acknowledged=True,
                        acknowledged_by=actor,
                        acknowledged_at=now,
                        updated_at=now,
                    )

        logger.info(
            "alert.acknowledged_many",
            extra={"requested": len(alert_ids), "closed": closed, "actor": actor},
        )
        return closed

    @classmethod
    def check_alerts(cls, part=None) -> list[LowStockAlert]:
        """
        Re-evaluate active parts against their thresholds.

        Picks up parts whose threshold was raised or whose alert was
        acknowledged while still low.

        Returns:
            Open alerts for parts currently at or below threshold.
        """
        parts = Part.objects.active()
        if part is not None:
            parts = parts.filter(pk=part_id_of(part))

        parts = parts.low_stock().order_by('pk')
        batch_size = ledger_settings.ALERT_SWEEP_BATCH_SIZE
        triggered = []
        checked = 0
        last_pk = 0

        while True:
            with storage_guard('alerts.check_alerts'):
                batch_ids = list(
                    parts.filter(pk__gt=last_pk).values_list('pk', flat=True)[:batch_size]
                )
            if not batch_ids:
                break

            for pid in batch_ids:
                with part_lock(pid), storage_guard('alerts.check_alerts'):
                    with transaction.atomic():
                        locked = load_part_for_update(pid)
                        alert = cls.on_balance_changed(
                            locked, locked.current_stock, locked.min_threshold,
                        )
                if alert is not None:
                    triggered.append(alert)
            checked += len(batch_ids)
            last_pk = batch_ids[-1]

        if triggered:
            logger.warning(
                "alert.sweep",
                extra={"triggered": len(triggered), "checked": checked},
            )
        return triggered

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def open_alert(cls, part) -> LowStockAlert | None:
        return LowStockAlert.objects.open().filter(part_id=part_id_of(part)).first()

    @classmethod
    def open_alerts(cls, urgency=None):
        qs = LowStockAlert.objects.open().select_related('part')
        if urgency is not None:
            qs = qs.by_urgency(urgency)
        return qs

    @classmethod
    def alert_statistics(cls) -> dict:
        """Counts of alerts, with open alerts broken down by urgency."""
        with storage_guard('alerts.alert_statistics'):
            rows = (
                LowStockAlert.objects.open()
                .order_by()
                .values('urgency')
                .annotate(n=Count('id'))
            )
            by_urgency = {row['urgency']: row['n'] for row in rows}
            total = LowStockAlert.objects.count()
            open_count = LowStockAlert.objects.open().count()

        return {
            'total': total,
            'open': open_count,
            'acknowledged': total - open_count,
            'by_urgency': {
                urgency.value: by_urgency.get(urgency.value, 0)
                for urgency in AlertUrgency
            },
        }
