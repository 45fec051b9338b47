"""
Unit tests for booking (stay_ledger/core/platform.py).

Tests cover:
- The order in which booking preconditions are checked
- Change returned for overpayment
- Payout to the owner under each settlement mode
- The AccommodationBooked event
- Double booking
"""

import pytest

from stay_ledger.core.errors import (
    InsufficientPayment,
    InvalidAccommodation,
    InvalidDateRange,
    NotAvailable,
)
from stay_ledger.core.events import AccommodationBooked
from stay_ledger.core.models import BookingResult, BookingStatus, Transfer, TransferKind
from stay_ledger.core.platform import Platform
from tests.constants import OWNER, STRANGER, TRAVELER

# ============================================================================
# HAPPY PATH
# ============================================================================


class TestBook:
    """Tests for a successful Platform.book call."""

    @pytest.mark.unit
    def test_exact_payment(self, listed: Platform):
        """Exact payment books with no change and pays the owner."""
        result = listed.book(0, TRAVELER, 10, 15, 100)

        assert result == BookingResult(booking_id=0, change=0)
        booking = listed.get_booking(0)
        assert booking.traveler == TRAVELER
        assert booking.paid == 100
        assert (booking.check_in, booking.check_out) == (10, 15)
        assert booking.status is BookingStatus.ACTIVE
        assert listed.get_accommodation(0).available is False

    @pytest.mark.unit
    def test_owner_paid_at_booking(self, listed: Platform):
        listed.book(0, TRAVELER, 10, 15, 100)

        assert listed.collect_transfers() == [
            Transfer(recipient=OWNER, amount=100, kind=TransferKind.PAYOUT, booking_id=0)
        ]
        assert listed.balance == 0
        assert listed.get_booking(0).settled is True

    @pytest.mark.unit
    def test_overpayment_returns_change(self, listed: Platform):
        """Only the price is recorded as paid; the surplus goes back."""
        result = listed.book(0, TRAVELER, 10, 15, 130)

        assert result.change == 30
        assert listed.get_booking(0).paid == 100
        transfers = listed.collect_transfers()
        assert Transfer(TRAVELER, 30, TransferKind.CHANGE, 0) in transfers
        assert listed.get_platform_details().total_received == 100

    @pytest.mark.unit
    def test_emits_booked_event(self, listed: Platform):
        listed.book(0, TRAVELER, 10, 15, 130)

        assert listed.collect_events() == [
            AccommodationBooked(
                booking_id=0,
                accommodation_id=0,
                traveler=TRAVELER,
                check_in=10,
                check_out=15,
                paid=100,
            )
        ]

    @pytest.mark.unit
    def test_free_accommodation(self, platform: Platform):
        """A zero-price listing books with zero payment and moves no value."""
        platform.list_accommodation(OWNER, "Tent", 0)

        result = platform.book(0, TRAVELER, 1, 2, 0)

        assert result == BookingResult(booking_id=0, change=0)
        assert platform.collect_transfers() == []

    @pytest.mark.unit
    def test_escrow_keeps_price_in_custody(self, escrow_platform: Platform):
        escrow_platform.list_accommodation(OWNER, "Beach House", 100)

        escrow_platform.book(0, TRAVELER, 10, 15, 100)

        assert escrow_platform.balance == 100
        assert escrow_platform.collect_transfers() == []
        assert escrow_platform.get_booking(0).settled is False


# ============================================================================
# PRECONDITIONS
# ============================================================================


class TestBookRejections:
    """Tests for Platform.book precondition failures."""

    @pytest.mark.unit
    def test_unknown_accommodation(self, listed: Platform):
        with pytest.raises(InvalidAccommodation):
            listed.book(5, TRAVELER, 10, 15, 100)

    @pytest.mark.unit
    def test_underpayment(self, listed: Platform):
        with pytest.raises(InsufficientPayment):
            listed.book(0, TRAVELER, 10, 15, 99)

        assert listed.get_accommodation(0).available is True
        assert listed.get_platform_details().booking_count == 0

    @pytest.mark.unit
    @pytest.mark.parametrize(("check_in", "check_out"), [(15, 10), (10, 10)])
    def test_empty_stay(self, listed: Platform, check_in: int, check_out: int):
        with pytest.raises(InvalidDateRange):
            listed.book(0, TRAVELER, check_in, check_out, 100)

    @pytest.mark.unit
    def test_double_booking(self, booked: Platform):
        """A second traveler cannot book an unavailable accommodation."""
        with pytest.raises(NotAvailable):
            booked.book(0, STRANGER, 20, 25, 100)

        assert booked.get_platform_details().booking_count == 1

    @pytest.mark.unit
    def test_availability_checked_before_payment(self, booked: Platform):
        with pytest.raises(NotAvailable):
            booked.book(0, STRANGER, 20, 25, 1)

    @pytest.mark.unit
    def test_payment_checked_before_dates(self, listed: Platform):
        with pytest.raises(InsufficientPayment):
            listed.book(0, TRAVELER, 15, 10, 1)

    @pytest.mark.unit
    def test_rejection_stages_nothing(self, listed: Platform):
        with pytest.raises(InsufficientPayment):
            listed.book(0, TRAVELER, 10, 15, 1)

        assert listed.collect_events() == []
        assert listed.collect_transfers() == []
        assert listed.balance == 0
