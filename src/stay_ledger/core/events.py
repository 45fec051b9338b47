"""
Ledger event types.

Events record FACTS about mutations that already happened, so names are in
PAST TENSE using the "domain:action" format:

    Good: "accommodation:listed", "booking:canceled"
    Bad:  "list_accommodation", "cancel"

Each successful transition emits at most one event.  ``update_accommodation``,
``check_in`` and ``add_offer`` emit none.

=============================================================================
USAGE
=============================================================================

    from stay_ledger.core.events import AccommodationListed, Events

    event = AccommodationListed(id=0, owner="0xA", details="Beach House", price=100)
    event.event_type            # "accommodation:listed"
    event.detail()              # {"id": 0, "owner": "0xA", ...}

    bus.on(Events.ACCOMMODATION_LISTED, handler)

=============================================================================
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar


class Events:
    """All event types emitted by the ledger."""

    ACCOMMODATION_LISTED = "accommodation:listed"
    """
    Emitted when an owner lists a new accommodation.

    Detail: {"id": int, "owner": str, "details": str, "price": int}
    """

    ACCOMMODATION_BOOKED = "accommodation:booked"
    """
    Emitted when a traveler books an accommodation.

    Detail: {
        "booking_id": int,
        "accommodation_id": int,
        "traveler": str,
        "check_in": int,
        "check_out": int,
        "paid": int
    }
    """

    REVIEW_LEFT = "review:left"
    """
    Emitted when a review is attached to an accommodation.

    Detail: {
        "review_id": int,
        "accommodation_id": int,
        "reviewer": str,
        "text": str,
        "rating": int
    }
    """

    BOOKING_CANCELED = "booking:canceled"
    """
    Emitted when a traveler cancels a booking.

    Detail: {"booking_id": int, "refund_amount": int}
    """

    RESERVE_FUNDED = "reserve:funded"
    """
    Emitted when external value is added to the refund reserve.

    Detail: {"funder": str, "amount": int}
    """


@dataclass(frozen=True)
class LedgerEvent:
    """Base class for event payloads.

    Subclasses set ``event_type`` and declare their payload fields.
    """

    event_type: ClassVar[str] = ""

    def detail(self) -> dict[str, Any]:
        """Return the payload as a plain JSON-serialisable dict."""
        return asdict(self)


@dataclass(frozen=True)
class AccommodationListed(LedgerEvent):
    event_type: ClassVar[str] = Events.ACCOMMODATION_LISTED

    id: int
    owner: str
    details: str
    price: int


@dataclass(frozen=True)
class AccommodationBooked(LedgerEvent):
    event_type: ClassVar[str] = Events.ACCOMMODATION_BOOKED

    booking_id: int
    accommodation_id: int
    traveler: str
    check_in: int
    check_out: int
    paid: int


@dataclass(frozen=True)
class ReviewLeft(LedgerEvent):
    event_type: ClassVar[str] = Events.REVIEW_LEFT

    review_id: int
    accommodation_id: int
    reviewer: str
    text: str
    rating: int


@dataclass(frozen=True)
class BookingCanceled(LedgerEvent):
    event_type: ClassVar[str] = Events.BOOKING_CANCELED

    booking_id: int
    refund_amount: int


@dataclass(frozen=True)
class ReserveFunded(LedgerEvent):
    event_type: ClassVar[str] = Events.RESERVE_FUNDED

    funder: str
    amount: int


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def is_valid_event_type(event_type: str) -> bool:
    """
    Check if an event type is one the ledger emits.

    Args:
        event_type: The event type string to check

    Returns:
        True if this is a ledger event type, False otherwise
    """
    return event_type in get_all_event_types()


def get_all_event_types() -> list[str]:
    """
    Get a sorted list of all ledger event types.

    Returns:
        List of all event type strings
    """
    return sorted(
        value
        for name, value in vars(Events).items()
        if isinstance(value, str) and not name.startswith("_")
    )
