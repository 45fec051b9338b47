"""The booking ledger state machine.

:class:`Platform` owns the whole durable state of the registry: the custody
``balance`` plus four append-only collections (accommodations, bookings,
reviews, special offers).  It is a plain object; the executor owns exactly one
instance and threads every transaction through it.

Transition contract:

1. Every precondition is checked before the first mutation.  A failed check
   raises a :class:`~stay_ledger.core.errors.LedgerError` subclass and the
   platform is untouched.
2. Mutations are applied, value movements are recorded as
   :class:`~stay_ledger.core.models.Transfer` objects, and at most one event
   is staged.
3. Staged events and transfers stay on the platform until the executor
   drains them with :meth:`Platform.collect_events` and
   :meth:`Platform.collect_transfers`.

Value accounting:
    ``balance == total_received + total_reserve - total_paid_out - total_refunded``
    at all times, and ``balance`` never drops below zero.  Any surplus over
    the nightly price is handed back as a ``change`` transfer and never
    enters custody.

Settlement:
    With :attr:`SettlementMode.ON_BOOKING` (default) the owner is paid inside
    :meth:`Platform.book`; :meth:`Platform.check_in` then pays nothing more.
    With :attr:`SettlementMode.ON_CHECK_IN` the price stays in custody until
    check-in or cancellation.  Either way a booking settles at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any

from stay_ledger.core.errors import (
    AlreadyCancelled,
    InsufficientBalance,
    InsufficientPayment,
    InvalidAccommodation,
    InvalidAmount,
    InvalidBooking,
    InvalidBookingState,
    InvalidDateRange,
    InvalidDiscount,
    InvalidOffer,
    InvalidPrice,
    InvalidRating,
    InvalidReview,
    NotAvailable,
    NotOwner,
)
from stay_ledger.core.events import (
    AccommodationBooked,
    AccommodationListed,
    BookingCanceled,
    LedgerEvent,
    ReserveFunded,
    ReviewLeft,
)
from stay_ledger.core.models import (
    Accommodation,
    Booking,
    BookingResult,
    BookingStatus,
    PlatformDetails,
    Review,
    SettlementMode,
    SpecialOffer,
    Transfer,
    TransferKind,
    copy_record,
)

logger = logging.getLogger(__name__)

#: Share of ``paid`` returned on cancellation, in percent.  Fixed policy.
REFUND_PERCENT = 50

MIN_RATING = 0
MAX_RATING = 5


@dataclass(frozen=True)
class Savepoint:
    """Collection sizes and scalar totals at the start of a transaction.

    Records are append-only, so sizes are enough to drop new ones.  Changes to
    existing records are undone from the platform's undo log.
    """

    balance: int
    accommodations: int
    bookings: int
    reviews: int
    offers: int
    total_received: int
    total_reserve: int
    total_paid_out: int
    total_refunded: int
    events: int
    transfers: int


class Platform:
    """In-memory booking ledger.

    Args:
        settlement: When owners are paid for bookings.
    """

    def __init__(self, *, settlement: SettlementMode = SettlementMode.ON_BOOKING) -> None:
        self.settlement = settlement
        self.balance: int = 0

        self._accommodations: list[Accommodation] = []
        self._bookings: list[Booking] = []
        self._reviews: list[Review] = []
        self._offers: list[SpecialOffer] = []

        # Running totals backing the accounting identity
        self._total_received: int = 0
        self._total_reserve: int = 0
        self._total_paid_out: int = 0
        self._total_refunded: int = 0

        # Staged output of committed transitions, drained by the executor
        self._pending_events: list[LedgerEvent] = []
        self._pending_transfers: list[Transfer] = []

        # Prior field values of records changed since the open savepoint
        self._undo: list[tuple[Any, Any]] | None = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def list_accommodation(self, owner: str, details: str, price: int) -> int:
        """List a new accommodation and return its id.

        Zero price is allowed.  Emits ``AccommodationListed``.

        Raises:
            InvalidPrice: ``price`` is negative.
        """
        if price < 0:
            raise InvalidPrice.during("list_accommodation", f"price {price} is negative")

        accommodation_id = len(self._accommodations)
        self._accommodations.append(
            Accommodation(id=accommodation_id, owner=owner, details=details, price=price)
        )
        self._pending_events.append(
            AccommodationListed(id=accommodation_id, owner=owner, details=details, price=price)
        )
        logger.info("Accommodation %d listed by %s at %d", accommodation_id, owner, price)
        return accommodation_id

    def book(
        self,
        accommodation_id: int,
        traveler: str,
        check_in: int,
        check_out: int,
        payment: int,
    ) -> BookingResult:
        """Book an available accommodation.

        Checks run in this order and the first failure aborts:

        1. ``accommodation_id`` exists (:exc:`InvalidAccommodation`)
        2. the accommodation is available (:exc:`NotAvailable`)
        3. ``payment`` covers the price (:exc:`InsufficientPayment`)
        4. ``check_in < check_out`` (:exc:`InvalidDateRange`)

        The exact price enters custody; the surplus is returned as a
        ``change`` transfer.  Under ``ON_BOOKING`` settlement the price is
        forwarded to the owner in the same step.  Emits
        ``AccommodationBooked``.

        Returns:
            :class:`BookingResult` with the new booking id and the change.
        """
        accommodation = self._accommodation("book", accommodation_id)
        if not accommodation.available:
            raise NotAvailable.during("book", f"accommodation {accommodation_id} is booked")
        if payment < accommodation.price:
            raise InsufficientPayment.during(
                "book", f"payment {payment} is below price {accommodation.price}"
            )
        if check_in >= check_out:
            raise InvalidDateRange.during(
                "book", f"check-in {check_in} is not before check-out {check_out}"
            )

        price = accommodation.price
        change = payment - price
        booking_id = len(self._bookings)

        if change:
            self._pending_transfers.append(
                Transfer(
                    recipient=traveler,
                    amount=change,
                    kind=TransferKind.CHANGE,
                    booking_id=booking_id,
                )
            )

        self.balance += price
        self._total_received += price

        booking = Booking(
            id=booking_id,
            accommodation_id=accommodation_id,
            traveler=traveler,
            check_in=check_in,
            check_out=check_out,
            paid=price,
        )
        self._bookings.append(booking)
        self._remember(accommodation)
        accommodation.available = False

        self._pending_events.append(
            AccommodationBooked(
                booking_id=booking_id,
                accommodation_id=accommodation_id,
                traveler=traveler,
                check_in=check_in,
                check_out=check_out,
                paid=price,
            )
        )

        if self.settlement is SettlementMode.ON_BOOKING:
            self._pay_out(accommodation.owner, price, TransferKind.PAYOUT, booking_id)
            booking.settled = True

        logger.info(
            "Booking %d: accommodation %d by %s for %d (change %d)",
            booking_id,
            accommodation_id,
            traveler,
            price,
            change,
        )
        return BookingResult(booking_id=booking_id, change=change)

    def review(self, accommodation_id: int, reviewer: str, text: str, rating: int) -> int:
        """Attach a review to an accommodation and return the review id.

        The reviewer does not need to have booked the accommodation.
        Emits ``ReviewLeft``.

        Raises:
            InvalidAccommodation: unknown accommodation.
            InvalidRating: ``rating`` outside 0..5.
        """
        self._accommodation("review", accommodation_id)
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRating.during(
                "review", f"rating {rating} outside {MIN_RATING}..{MAX_RATING}"
            )

        review_id = len(self._reviews)
        self._reviews.append(
            Review(
                id=review_id,
                accommodation_id=accommodation_id,
                reviewer=reviewer,
                text=text,
                rating=rating,
            )
        )
        self._pending_events.append(
            ReviewLeft(
                review_id=review_id,
                accommodation_id=accommodation_id,
                reviewer=reviewer,
                text=text,
                rating=rating,
            )
        )
        logger.info("Review %d left on accommodation %d", review_id, accommodation_id)
        return review_id

    def cancel(self, booking_id: int, traveler: str) -> int:
        """Cancel an active booking and refund half of what was paid.

        The refund is drawn from custody.  When the booking has not been
        settled yet, the remainder is paid out to the owner in the same step.
        Availability is not re-opened.  Emits ``BookingCanceled``.

        Returns:
            The refunded amount (``paid * 50 // 100``).

        Raises:
            InvalidBooking: unknown booking.
            NotOwner: ``traveler`` did not make the booking.
            AlreadyCancelled: the booking was cancelled before.
            InvalidBookingState: the traveler already checked in.
            InsufficientBalance: custody cannot cover the refund.
        """
        booking = self._booking("cancel", booking_id)
        self._require_traveler("cancel", booking, traveler)
        self._require_active("cancel", booking)

        refund = booking.paid * REFUND_PERCENT // 100
        remainder = 0 if booking.settled else booking.paid - refund
        self._require_balance("cancel", refund + remainder)
        self._remember(booking)

        owner = self._accommodations[booking.accommodation_id].owner
        self._pay_out(traveler, refund, TransferKind.REFUND, booking_id)
        if not booking.settled:
            self._pay_out(owner, remainder, TransferKind.PAYOUT, booking_id)
            booking.settled = True
        booking.status = BookingStatus.CANCELLED
        booking.refunded = refund

        self._pending_events.append(BookingCanceled(booking_id=booking_id, refund_amount=refund))
        logger.info("Booking %d cancelled, refunded %d to %s", booking_id, refund, traveler)
        return refund

    def update_accommodation(
        self,
        accommodation_id: int,
        owner: str,
        new_details: str,
        new_price: int,
    ) -> None:
        """Replace details and price of an accommodation.  Emits no event.

        Raises:
            InvalidAccommodation: unknown accommodation.
            NotOwner: ``owner`` does not own the accommodation.
            InvalidPrice: ``new_price`` is negative.
        """
        accommodation = self._accommodation("update_accommodation", accommodation_id)
        if accommodation.owner != owner:
            raise NotOwner.during(
                "update_accommodation",
                f"{owner} does not own accommodation {accommodation_id}",
            )
        if new_price < 0:
            raise InvalidPrice.during(
                "update_accommodation", f"price {new_price} is negative"
            )

        self._remember(accommodation)
        accommodation.details = new_details
        accommodation.price = new_price
        logger.info("Accommodation %d updated (price %d)", accommodation_id, new_price)

    def check_in(self, booking_id: int, traveler: str) -> int:
        """Check a traveler in and settle the booking with the owner.

        If the owner was already paid at booking time nothing moves.
        Emits no event.

        Returns:
            The amount paid out to the owner by this call.
        """
        booking = self._booking("check_in", booking_id)
        self._require_traveler("check_in", booking, traveler)
        self._require_active("check_in", booking)

        amount = 0 if booking.settled else booking.paid
        self._require_balance("check_in", amount)
        self._remember(booking)

        if not booking.settled:
            owner = self._accommodations[booking.accommodation_id].owner
            self._pay_out(owner, amount, TransferKind.PAYOUT, booking_id)
            booking.settled = True
        booking.status = BookingStatus.CHECKED_IN

        logger.info("Booking %d checked in, settled %d", booking_id, amount)
        return amount

    def add_offer(self, accommodation_id: int, discount_pct: int, start: int, end: int) -> int:
        """Attach a special offer to an accommodation.  Emits no event.

        Raises:
            InvalidAccommodation: unknown accommodation.
            InvalidDiscount: ``discount_pct`` outside 0..100.
            InvalidDateRange: ``start`` is not before ``end``.
        """
        self._accommodation("add_offer", accommodation_id)
        if not 0 <= discount_pct <= 100:
            raise InvalidDiscount.during("add_offer", f"discount {discount_pct}% outside 0..100")
        if start >= end:
            raise InvalidDateRange.during("add_offer", f"start {start} is not before end {end}")

        offer_id = len(self._offers)
        self._offers.append(
            SpecialOffer(
                id=offer_id,
                accommodation_id=accommodation_id,
                discount_pct=discount_pct,
                start=start,
                end=end,
            )
        )
        logger.info("Offer %d added to accommodation %d", offer_id, accommodation_id)
        return offer_id

    def fund_reserve(self, funder: str, amount: int) -> int:
        """Add external value to custody so refunds can be honoured.

        Emits ``ReserveFunded``.

        Returns:
            The balance after funding.

        Raises:
            InvalidAmount: ``amount`` is not positive.
        """
        if amount <= 0:
            raise InvalidAmount.during("fund_reserve", f"amount {amount} is not positive")

        self.balance += amount
        self._total_reserve += amount
        self._pending_events.append(ReserveFunded(funder=funder, amount=amount))
        logger.info("Reserve funded with %d by %s", amount, funder)
        return self.balance

    # ------------------------------------------------------------------
    # Off-ledger stubs: validate the id, change nothing
    # ------------------------------------------------------------------

    def report_accommodation(self, accommodation_id: int) -> None:
        self._accommodation("report_accommodation", accommodation_id)
        logger.info("Accommodation %d reported for moderation", accommodation_id)

    def contact_host(self, accommodation_id: int, message: str) -> None:
        accommodation = self._accommodation("contact_host", accommodation_id)
        logger.info(
            "Message of %d chars for host %s of accommodation %d",
            len(message),
            accommodation.owner,
            accommodation_id,
        )

    def apply_cancellation_policy(self, booking_id: int, policy_id: int) -> None:
        self._booking("apply_cancellation_policy", booking_id)
        logger.info("Cancellation policy %d requested for booking %d", policy_id, booking_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search(self, location_text: str) -> list[Accommodation]:
        """Return accommodations whose ``details`` equal ``location_text`` exactly."""
        return [copy_record(a) for a in self._accommodations if a.details == location_text]

    def booking_history(self, traveler: str) -> list[Booking]:
        return [copy_record(b) for b in self._bookings if b.traveler == traveler]

    def reviews_for(self, accommodation_id: int) -> list[Review]:
        self._accommodation("reviews_for", accommodation_id)
        return [copy_record(r) for r in self._reviews if r.accommodation_id == accommodation_id]

    def offers_for(self, accommodation_id: int) -> list[SpecialOffer]:
        self._accommodation("offers_for", accommodation_id)
        return [copy_record(o) for o in self._offers if o.accommodation_id == accommodation_id]

    def get_platform_details(self) -> PlatformDetails:
        return PlatformDetails(
            balance=self.balance,
            accommodation_count=len(self._accommodations),
            booking_count=len(self._bookings),
            review_count=len(self._reviews),
            offer_count=len(self._offers),
            total_received=self._total_received,
            total_reserve=self._total_reserve,
            total_paid_out=self._total_paid_out,
            total_refunded=self._total_refunded,
            settlement=self.settlement,
        )

    def get_accommodation(self, accommodation_id: int) -> Accommodation:
        return copy_record(self._accommodation("get_accommodation", accommodation_id))

    def get_booking(self, booking_id: int) -> Booking:
        return copy_record(self._booking("get_booking", booking_id))

    def get_review(self, review_id: int) -> Review:
        if not 0 <= review_id < len(self._reviews):
            raise InvalidReview.during("get_review", f"no review {review_id}")
        return copy_record(self._reviews[review_id])

    def get_offer(self, offer_id: int) -> SpecialOffer:
        if not 0 <= offer_id < len(self._offers):
            raise InvalidOffer.during("get_offer", f"no offer {offer_id}")
        return copy_record(self._offers[offer_id])

    # ------------------------------------------------------------------
    # Executor support
    # ------------------------------------------------------------------

    def collect_events(self) -> list[LedgerEvent]:
        """Return and clear the events staged by committed transitions."""
        events, self._pending_events = self._pending_events, []
        return events

    def collect_transfers(self) -> list[Transfer]:
        """Return and clear the transfers staged by committed transitions."""
        transfers, self._pending_transfers = self._pending_transfers, []
        return transfers

    def savepoint(self) -> Savepoint:
        """Open a savepoint for one transaction.

        Costs the same however large the ledger is: only sizes and totals are
        captured, and records changed afterwards are logged as they change.
        """
        self._undo = []
        return Savepoint(
            balance=self.balance,
            accommodations=len(self._accommodations),
            bookings=len(self._bookings),
            reviews=len(self._reviews),
            offers=len(self._offers),
            total_received=self._total_received,
            total_reserve=self._total_reserve,
            total_paid_out=self._total_paid_out,
            total_refunded=self._total_refunded,
            events=len(self._pending_events),
            transfers=len(self._pending_transfers),
        )

    def rollback(self, savepoint: Savepoint) -> None:
        """Return to ``savepoint``, discarding everything done since."""
        for record, saved in reversed(self._undo or []):
            for f in fields(record):
                setattr(record, f.name, getattr(saved, f.name))
        self._undo = None

        del self._accommodations[savepoint.accommodations :]
        del self._bookings[savepoint.bookings :]
        del self._reviews[savepoint.reviews :]
        del self._offers[savepoint.offers :]
        del self._pending_events[savepoint.events :]
        del self._pending_transfers[savepoint.transfers :]

        self.balance = savepoint.balance
        self._total_received = savepoint.total_received
        self._total_reserve = savepoint.total_reserve
        self._total_paid_out = savepoint.total_paid_out
        self._total_refunded = savepoint.total_refunded

    def release(self) -> None:
        """Close the open savepoint, keeping every change."""
        self._undo = None

    def invariant_violations(self) -> list[str]:
        """Check the ledger invariants and describe every broken one.

        An empty list means the ledger is consistent.
        """
        violations: list[str] = []
        count = len(self._accommodations)

        for kind, records in (
            ("booking", self._bookings),
            ("review", self._reviews),
            ("offer", self._offers),
        ):
            for record in records:
                if not 0 <= record.accommodation_id < count:
                    violations.append(
                        f"{kind} {record.id} references missing accommodation "
                        f"{record.accommodation_id}"
                    )

        booked = {b.accommodation_id for b in self._bookings}
        for accommodation in self._accommodations:
            if not accommodation.available and accommodation.id not in booked:
                violations.append(
                    f"accommodation {accommodation.id} unavailable without a booking"
                )

        if self.balance < 0:
            violations.append(f"balance {self.balance} is negative")
        expected = (
            self._total_received
            + self._total_reserve
            - self._total_paid_out
            - self._total_refunded
        )
        if self.balance != expected:
            violations.append(f"balance {self.balance} != accounted {expected}")

        escrowed = sum(b.paid for b in self._bookings if b.is_active and not b.settled)
        if self.balance < escrowed:
            violations.append(f"balance {self.balance} below escrowed {escrowed}")

        return violations

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _accommodation(self, operation: str, accommodation_id: int) -> Accommodation:
        if not 0 <= accommodation_id < len(self._accommodations):
            raise InvalidAccommodation.during(operation, f"no accommodation {accommodation_id}")
        return self._accommodations[accommodation_id]

    def _booking(self, operation: str, booking_id: int) -> Booking:
        if not 0 <= booking_id < len(self._bookings):
            raise InvalidBooking.during(operation, f"no booking {booking_id}")
        return self._bookings[booking_id]

    @staticmethod
    def _require_traveler(operation: str, booking: Booking, traveler: str) -> None:
        if booking.traveler != traveler:
            raise NotOwner.during(operation, f"{traveler} did not make booking {booking.id}")

    @staticmethod
    def _require_active(operation: str, booking: Booking) -> None:
        if booking.status is BookingStatus.CANCELLED:
            raise AlreadyCancelled.during(operation, f"booking {booking.id} is cancelled")
        if booking.status is not BookingStatus.ACTIVE:
            raise InvalidBookingState.during(
                operation, f"booking {booking.id} is {booking.status.value}"
            )

    def _require_balance(self, operation: str, amount: int) -> None:
        if self.balance < amount:
            raise InsufficientBalance.during(
                operation, f"balance {self.balance} cannot cover {amount}"
            )

    def _remember(self, record: Any) -> None:
        """Log the current field values of ``record`` while a savepoint is open."""
        if self._undo is not None:
            self._undo.append((record, copy_record(record)))

    def _pay_out(self, recipient: str, amount: int, kind: TransferKind, booking_id: int) -> None:
        """Move ``amount`` out of custody.  Callers check the balance first."""
        if amount == 0:
            return
        self.balance -= amount
        if kind is TransferKind.REFUND:
            self._total_refunded += amount
        else:
            self._total_paid_out += amount
        self._pending_transfers.append(
            Transfer(recipient=recipient, amount=amount, kind=kind, booking_id=booking_id)
        )
