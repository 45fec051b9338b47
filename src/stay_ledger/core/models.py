"""Ledger record types.

Identifiers are dense and zero-based: an entity's id is its index in the
owning collection at insertion time.  Nothing is ever removed, so ids stay
valid for the lifetime of a ledger.

Amounts are plain ``int`` values in the smallest currency unit.  Dates are
plain ``int`` values as well (day-epoch by convention); the ledger only ever
compares them.

``Accommodation`` and ``Booking`` are mutated in place by transitions.
Reviews, offers, transfers and snapshots are frozen.  Queries never hand out
the stored instances; they return copies made with :func:`copy_record`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TypeVar

_R = TypeVar("_R")


class BookingStatus(Enum):
    """
    Booking lifecycle.

    State transitions:
    - ACTIVE -> CHECKED_IN (traveler checked in)
    - ACTIVE -> CANCELLED  (traveler cancelled, half refunded)

    Both targets are terminal.
    """

    ACTIVE = "active"
    CHECKED_IN = "checked_in"
    CANCELLED = "cancelled"


class SettlementMode(Enum):
    """When the owner is paid for a booking.

    ``ON_BOOKING`` forwards the price to the owner inside the booking
    transition itself.  ``ON_CHECK_IN`` keeps it in custody until the
    traveler checks in or cancels.
    """

    ON_BOOKING = "on_booking"
    ON_CHECK_IN = "on_check_in"


class TransferKind(Enum):
    PAYOUT = "payout"
    REFUND = "refund"
    CHANGE = "change"


@dataclass
class Accommodation:
    id: int
    owner: str
    details: str
    price: int
    available: bool = True


@dataclass
class Booking:
    """A traveler's stay at one accommodation.

    Attributes:
        paid: Amount taken into custody at booking time.  Never changes;
            refund and settlement amounts are derived from it.
        status: Current :class:`BookingStatus`.
        settled: ``True`` once the owner has been paid for this booking.
        refunded: Amount returned to the traveler on cancellation.
    """

    id: int
    accommodation_id: int
    traveler: str
    check_in: int
    check_out: int
    paid: int
    status: BookingStatus = BookingStatus.ACTIVE
    settled: bool = False
    refunded: int = 0

    @property
    def is_active(self) -> bool:
        return self.status is BookingStatus.ACTIVE


@dataclass(frozen=True)
class Review:
    id: int
    accommodation_id: int
    reviewer: str
    text: str
    rating: int


@dataclass(frozen=True)
class SpecialOffer:
    """Descriptive discount window.  Never applied to prices by the ledger."""

    id: int
    accommodation_id: int
    discount_pct: int
    start: int
    end: int


@dataclass(frozen=True)
class Transfer:
    """An outbound value movement the executor must deliver.

    Attributes:
        recipient: Address receiving the value.
        amount: Value moved, always positive.
        kind: Why the value moved.
        booking_id: Booking the movement belongs to.
    """

    recipient: str
    amount: int
    kind: TransferKind
    booking_id: int


@dataclass(frozen=True)
class BookingResult:
    booking_id: int
    change: int


@dataclass(frozen=True)
class PlatformDetails:
    """Read-only snapshot of ledger totals.

    The accounting identity
    ``balance == total_received + total_reserve - total_paid_out - total_refunded``
    holds for every snapshot.
    """

    balance: int
    accommodation_count: int
    booking_count: int
    review_count: int
    offer_count: int
    total_received: int
    total_reserve: int
    total_paid_out: int
    total_refunded: int
    settlement: SettlementMode


def copy_record(record: _R) -> _R:
    """Return a detached copy of a ledger record."""
    return replace(record)  # type: ignore[type-var]
