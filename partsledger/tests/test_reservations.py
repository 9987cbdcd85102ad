"""
Tests for the reservation lifecycle.
"""

import pytest

from partsledger import ledger, LedgerError
from partsledger.models import Reservation, ReservationStatus, StockTransaction, TransactionType, derive_status
from partsledger.tests.conftest import make_part


pytestmark = pytest.mark.django_db


class TestDeriveStatus:
    """Status is a pure function of reserved/consumed."""

    @pytest.mark.parametrize('reserved, consumed, expected', [
        (5, 0, ReservationStatus.ACTIVE),
        (5, 3, ReservationStatus.PARTIAL),
        (5, 5, ReservationStatus.COMPLETED),
        (0, 0, ReservationStatus.CANCELLED),
    ])
    def test_derive(self, reserved, consumed, expected):
        assert derive_status(reserved, consumed) == expected

    def test_cancelled_flag_wins(self):
        assert derive_status(5, 3, cancelled=True) == ReservationStatus.CANCELLED


class TestReserve:
    """Tests for ledger.reserve()."""

    def test_reserve_creates_active_reservation(self, part):
        reservation = ledger.reserve(part, 'JO-1', 5, requester='mech-7')

        assert reservation.status == ReservationStatus.ACTIVE
        assert reservation.quantity_reserved == 5
        assert reservation.quantity_consumed == 0
        assert reservation.requested_by == 'mech-7'
        assert reservation.remaining == 5

    def test_reserve_does_not_move_stock(self, part):
        ledger.reserve(part, 'JO-1', 5, requester='mech-7')

        assert ledger.current_stock(part) == 10

    def test_reserve_more_than_stock_rejected(self, db):
        part = make_part('SP-3', stock=3)

        with pytest.raises(LedgerError) as exc:
            ledger.reserve(part, 'JO-1', 5, requester='mech-7')

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.available == 3
        assert exc.value.requested == 5
        assert not Reservation.objects.exists()
        assert not StockTransaction.objects.filter(type=TransactionType.RESERVE).exists()

    def test_duplicate_open_reservation_rejected(self, reservation, part):
        with pytest.raises(LedgerError) as exc:
            ledger.reserve(part, 'JO-1', 1, requester='mech-8')

        assert exc.value.code == 'DUPLICATE_ACTIVE_RESERVATION'
        assert Reservation.objects.count() == 1

    def test_job_can_reserve_again_after_cancel(self, reservation, part):
        ledger.cancel(reservation, actor='mech-7')

        again = ledger.reserve(part, 'JO-1', 2, requester='mech-7')

        assert again.pk != reservation.pk
        assert again.status == ReservationStatus.ACTIVE

    def test_same_job_different_parts(self, part, filter_part):
        ledger.reserve(part, 'JO-1', 2, requester='mech-7')
        ledger.reserve(filter_part, 'JO-1', 2, requester='mech-7')

        assert ledger.reservations_for_job('JO-1').count() == 2

    def test_soft_holds_may_over_promise(self, part):
        ledger.reserve(part, 'JO-1', 8, requester='mech-7')
        ledger.reserve(part, 'JO-2', 8, requester='mech-8')

        assert ledger.outstanding(part) == 16
        assert ledger.current_stock(part) == 10

    @pytest.mark.parametrize('job_order', ['', '  '])
    def test_job_order_required(self, part, job_order):
        with pytest.raises(LedgerError) as exc:
            ledger.reserve(part, job_order, 1, requester='mech-7')

        assert exc.value.code == 'VALIDATION_ERROR'
        assert exc.value.data['field'] == 'job_order'

    def test_zero_quantity_rejected(self, part):
        with pytest.raises(LedgerError) as exc:
            ledger.reserve(part, 'JO-1', 0, requester='mech-7')

        assert exc.value.code == 'INVALID_QUANTITY'


class TestConsumeFromReservation:
    """Tests for ledger.consume_from_reservation()."""

    def test_partial_then_completed(self, reservation, part):
        ledger.consume_from_reservation(reservation, 3, actor='mech-7')

        assert reservation.status == ReservationStatus.PARTIAL
        assert reservation.quantity_consumed == 3
        assert reservation.resolved_at is None
        assert ledger.current_stock(part) == 7

        ledger.consume_from_reservation(reservation, 2, actor='mech-7', mechanic='Dana')

        assert reservation.status == ReservationStatus.COMPLETED
        assert reservation.quantity_consumed == 5
        assert reservation.resolved_at is not None
        assert ledger.current_stock(part) == 5

    def test_consume_logs_against_job_order(self, reservation, part):
        ledger.consume_from_reservation(reservation, 2, actor='mech-7', mechanic='Dana')

        tx = StockTransaction.objects.for_part(part).filter(type=TransactionType.CONSUME).get()
        assert tx.job_order == 'JO-1'
        assert tx.mechanic == 'Dana'
        assert tx.quantity == -2

    def test_over_consumption_rejected(self, reservation, part):
        with pytest.raises(LedgerError) as exc:
            ledger.consume_from_reservation(reservation, 6, actor='mech-7')

        assert exc.value.code == 'OVER_CONSUMPTION'
        assert exc.value.data['remaining'] == 5
        reservation.refresh_from_db()
        assert reservation.quantity_consumed == 0
        assert ledger.current_stock(part) == 10

    def test_ledger_rejection_leaves_reservation_unchanged(self, reservation, part):
        ledger.consume(part, 8, actor='mech-9')

        with pytest.raises(LedgerError) as exc:
            ledger.consume_from_reservation(reservation, 3, actor='mech-7')

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        reservation.refresh_from_db()
        assert reservation.status == ReservationStatus.ACTIVE
        assert reservation.quantity_consumed == 0
        assert ledger.current_stock(part) == 2

    def test_consume_from_cancelled_rejected(self, reservation):
        ledger.cancel(reservation, actor='mech-7')

        with pytest.raises(LedgerError) as exc:
            ledger.consume_from_reservation(reservation, 1, actor='mech-7')

        assert exc.value.code == 'INVALID_TRANSITION'
        assert exc.value.data['current'] == ReservationStatus.CANCELLED

    def test_non_positive_quantity_rejected(self, reservation):
        with pytest.raises(LedgerError) as exc:
            ledger.consume_from_reservation(reservation, 0, actor='mech-7')

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_unknown_reservation(self, db):
        with pytest.raises(LedgerError) as exc:
            ledger.consume_from_reservation(999999, 1, actor='mech-7')

        assert exc.value.code == 'RESERVATION_NOT_FOUND'


class TestCancel:
    """Tests for ledger.cancel()."""

    def test_cancel_active(self, reservation, part):
        ledger.cancel(reservation, actor='mech-7')

        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.resolved_at is not None
        assert ledger.current_stock(part) == 10
        assert ledger.outstanding(part) == 0

    def test_cancel_partial_keeps_consumed(self, reservation, part):
        ledger.consume_from_reservation(reservation, 2, actor='mech-7')

        ledger.cancel(reservation, actor='mech-7')

        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.quantity_consumed == 2
        assert ledger.current_stock(part) == 8

    def test_cancel_completed_rejected(self, reservation):
        ledger.consume_from_reservation(reservation, 5, actor='mech-7')

        with pytest.raises(LedgerError) as exc:
            ledger.cancel(reservation, actor='mech-7')

        assert exc.value.code == 'INVALID_TRANSITION'
        reservation.refresh_from_db()
        assert reservation.status == ReservationStatus.COMPLETED

    def test_cancel_twice_rejected(self, reservation):
        ledger.cancel(reservation, actor='mech-7')

        with pytest.raises(LedgerError) as exc:
            ledger.cancel(reservation, actor='mech-7')

        assert exc.value.code == 'INVALID_TRANSITION'


class TestReturnUnused:
    """Tests for ledger.return_unused()."""

    def test_return_after_partial_use_completes(self, reservation, part):
        ledger.consume_from_reservation(reservation, 2, actor='mech-7')

        ledger.return_unused(reservation, 3, actor='mech-7')

        assert reservation.quantity_reserved == 2
        assert reservation.quantity_consumed == 2
        assert reservation.status == ReservationStatus.COMPLETED
        assert ledger.current_stock(part) == 11

    def test_partial_return_keeps_hold_open(self, reservation, part):
        ledger.return_unused(reservation, 2, actor='mech-7')

        assert reservation.quantity_reserved == 3
        assert reservation.status == ReservationStatus.ACTIVE
        assert ledger.outstanding(part) == 3

    def test_returning_everything_cancels(self, reservation):
        ledger.return_unused(reservation, 5, actor='mech-7')

        assert reservation.quantity_reserved == 0
        assert reservation.status == ReservationStatus.CANCELLED

    def test_return_more_than_remaining_rejected(self, reservation, part):
        ledger.consume_from_reservation(reservation, 4, actor='mech-7')

        with pytest.raises(LedgerError) as exc:
            ledger.return_unused(reservation, 2, actor='mech-7')

        assert exc.value.code == 'OVER_CONSUMPTION'
        assert ledger.current_stock(part) == 6

    def test_return_logged_as_return(self, reservation, part):
        ledger.return_unused(reservation, 1, actor='mech-7')

        tx = StockTransaction.objects.for_part(part).filter(type=TransactionType.RETURN).get()
        assert tx.job_order == 'JO-1'
        assert tx.quantity == 1

    def test_return_above_capacity_leaves_reservation(self, db):
        part = make_part('SP-9', stock=10, max_capacity=10)
        reservation = ledger.reserve(part, 'JO-4', 4, requester='mech-7')

        with pytest.raises(LedgerError) as exc:
            ledger.return_unused(reservation, 2, actor='mech-7')

        assert exc.value.code == 'CAPACITY_EXCEEDED'
        reservation.refresh_from_db()
        assert reservation.quantity_reserved == 4


class TestQueries:
    """Tests for reservation reads."""

    def test_outstanding_counts_open_remainders(self, part):
        first = ledger.reserve(part, 'JO-1', 5, requester='mech-7')
        ledger.reserve(part, 'JO-2', 3, requester='mech-7')
        third = ledger.reserve(part, 'JO-3', 2, requester='mech-7')
        ledger.consume_from_reservation(first, 2, actor='mech-7')
        ledger.cancel(third, actor='mech-7')

        assert ledger.outstanding(part) == 6

    def test_get_reservation(self, reservation):
        assert ledger.get_reservation(reservation.pk) == reservation

        with pytest.raises(LedgerError) as exc:
            ledger.get_reservation(999999)

        assert exc.value.code == 'RESERVATION_NOT_FOUND'

    def test_reservation_summary(self, part):
        first = ledger.reserve(part, 'JO-1', 5, requester='mech-7')
        ledger.reserve(part, 'JO-2', 3, requester='mech-7')
        third = ledger.reserve(part, 'JO-3', 2, requester='mech-7')
        ledger.consume_from_reservation(first, 2, actor='mech-7')
        ledger.cancel(third, actor='mech-7')

        summary = ledger.reservation_summary()

        assert summary['open'] == 2
        assert summary['by_status'] == {
            'ACTIVE': 1,
            'PARTIAL': 1,
            'COMPLETED': 0,
            'CANCELLED': 1,
        }
