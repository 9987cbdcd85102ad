"""
Domain events.

Events are frozen dataclasses delivered through Django signals once the
surrounding database transaction commits. A rolled-back operation emits
nothing. Fan-out to browsers, queues or mail is up to the receivers.

Usage:
    from django.dispatch import receiver
    from partsledger.events import alert_raised

    @receiver(alert_raised)
    def notify_storeroom(sender, event, **kwargs):
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger('partsledger')


@dataclass(frozen=True)
class StockChanged:
    part_id: int
    old_stock: int
    new_stock: int
    transaction_id: int


@dataclass(frozen=True)
class ReservationChanged:
    reservation_id: int
    old_status: str | None
    new_status: str


@dataclass(frozen=True)
class AlertRaised:
    alert_id: int
    part_id: int
    urgency: str


stock_changed = Signal()
reservation_changed = Signal()
alert_raised = Signal()

_SIGNALS = {
    StockChanged: stock_changed,
    ReservationChanged: reservation_changed,
    AlertRaised: alert_raised,
}


def publish(event) -> None:
    """Schedule delivery of ``event`` after the current transaction commits."""
    signal = _SIGNALS[type(event)]

    def _send():
        for receiver, response in signal.send_robust(sender=type(event), event=event):
            if isinstance(response, Exception):
                logger.error(
                    "event.receiver_failed",
                    extra={"event": type(event).__name__, "receiver": repr(receiver)},
                    exc_info=response,
                )

    transaction.on_commit(_send)
