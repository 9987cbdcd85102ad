"""
Tests for domain events delivered after commit.
"""

import pytest

from partsledger import ledger, LedgerError
from partsledger.events import (
    AlertRaised,
    ReservationChanged,
    StockChanged,
    alert_raised,
    reservation_changed,
    stock_changed,
)


pytestmark = pytest.mark.django_db


@pytest.fixture
def received():
    """Collect events from all three signals."""
    events = []

    def collect(sender, event, **kwargs):
        events.append(event)

    for signal in (stock_changed, reservation_changed, alert_raised):
        signal.connect(collect, weak=False)
    yield events
    for signal in (stock_changed, reservation_changed, alert_raised):
        signal.disconnect(collect)


class TestStockChanged:

    def test_emitted_after_commit(self, part, received, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            tx = ledger.consume(part, 2, actor='mech-7')

        assert received == [
            StockChanged(part_id=part.pk, old_stock=10, new_stock=8, transaction_id=tx.pk),
        ]

    def test_not_emitted_before_commit(self, part, received, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            ledger.consume(part, 2, actor='mech-7')

        assert received == []
        assert len(callbacks) == 1

    def test_failed_operation_emits_nothing(self, part, received, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(LedgerError):
                ledger.consume(part, 20, actor='mech-7')

        assert callbacks == []
        assert received == []


class TestReservationChanged:

    def test_lifecycle_events(self, part, received, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            reservation = ledger.reserve(part, 'JO-1', 5, requester='mech-7')
            ledger.consume_from_reservation(reservation, 2, actor='mech-7')
            ledger.cancel(reservation, actor='mech-7')

        transitions = [
            (e.old_status, e.new_status)
            for e in received if isinstance(e, ReservationChanged)
        ]
        assert transitions == [
            (None, 'ACTIVE'),
            ('ACTIVE', 'PARTIAL'),
            ('PARTIAL', 'CANCELLED'),
        ]

    def test_no_event_when_status_unchanged(self, reservation, received, django_capture_on_commit_callbacks):
        ledger.consume_from_reservation(reservation, 1, actor='mech-7')

        with django_capture_on_commit_callbacks(execute=True):
            ledger.consume_from_reservation(reservation, 1, actor='mech-7')

        assert not [e for e in received if isinstance(e, ReservationChanged)]


class TestAlertRaised:

    def test_raised_and_escalated(self, part, received, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            ledger.consume(part, 6, actor='mech-7')
            ledger.consume(part, 1, actor='mech-7')
            ledger.consume(part, 3, actor='mech-7')

        urgencies = [e.urgency for e in received if isinstance(e, AlertRaised)]
        assert urgencies == ['MEDIUM', 'CRITICAL']

    def test_failing_receiver_does_not_break_operation(self, part, django_capture_on_commit_callbacks):
        def broken(sender, event, **kwargs):
            raise RuntimeError('notifier down')

        stock_changed.connect(broken, weak=False)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                ledger.consume(part, 1, actor='mech-7')
        finally:
            stock_changed.disconnect(broken)

        assert ledger.current_stock(part) == 9
