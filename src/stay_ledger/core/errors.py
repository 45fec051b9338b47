"""Typed ledger exceptions.

Every precondition a transition checks maps to exactly one exception class
below.  They are raised before the transition's first mutation, and the
executor rolls back to its savepoint, so a failed transaction leaves no
trace in ledger state.

Each class carries a stable ``code`` string.  Codes are what clients and
journals key on; class names may be refactored, codes may not.

Hierarchy::

    LedgerError
    ├── InvalidAccommodation      unknown accommodation id
    ├── InvalidBooking            unknown booking id
    ├── InvalidReview             unknown review id
    ├── InvalidOffer              unknown offer id
    ├── NotOwner                  caller is not the owner / traveler
    ├── NotAvailable              accommodation already booked
    ├── InsufficientPayment       payment below nightly price
    ├── InsufficientBalance       custody cannot cover a debit
    ├── AlreadyCancelled          booking was cancelled before
    ├── InvalidBookingState       transition not valid from booking status
    ├── InvalidRating             rating outside 0..5
    ├── InvalidDateRange          start is not before end
    ├── InvalidDiscount           discount outside 0..100
    ├── InvalidPrice              negative price
    ├── InvalidAmount             non-positive value amount
    └── Unauthorized              caller address is not the signer
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class LedgerErrorContext:
    """Structured operation metadata carried by ledger exceptions.

    Attributes:
        operation: Stable operation identifier (for example ``"book"``).
        details: Optional human-readable context for logs and debugging.
    """

    operation: str
    details: str | None = None


class LedgerError(RuntimeError):
    """Base exception for every aborted ledger transition.

    Args:
        context: Structured operation metadata.
    """

    code = "ledger_error"

    def __init__(self, *, context: LedgerErrorContext) -> None:
        message = f"{self.code} in {context.operation}"
        if context.details:
            message = f"{message}: {context.details}"
        super().__init__(message)
        self.context = context

    @classmethod
    def during(cls, operation: str, details: str | None = None) -> LedgerError:
        """Build an instance for ``operation`` without spelling out the context."""
        return cls(context=LedgerErrorContext(operation=operation, details=details))


class InvalidAccommodation(LedgerError):
    code = "invalid_accommodation"


class InvalidBooking(LedgerError):
    code = "invalid_booking"


class InvalidReview(LedgerError):
    code = "invalid_review"


class InvalidOffer(LedgerError):
    code = "invalid_offer"


class NotOwner(LedgerError):
    code = "not_owner"


class NotAvailable(LedgerError):
    code = "not_available"


class InsufficientPayment(LedgerError):
    code = "insufficient_payment"


class InsufficientBalance(LedgerError):
    code = "insufficient_balance"


class AlreadyCancelled(LedgerError):
    code = "already_cancelled"


class InvalidBookingState(LedgerError):
    code = "invalid_booking_state"


class InvalidRating(LedgerError):
    code = "invalid_rating"


class InvalidDateRange(LedgerError):
    code = "invalid_date_range"


class InvalidDiscount(LedgerError):
    code = "invalid_discount"


class InvalidPrice(LedgerError):
    code = "invalid_price"


class InvalidAmount(LedgerError):
    code = "invalid_amount"


class Unauthorized(LedgerError):
    """Raised by the executor, never by the platform itself."""

    code = "unauthorized"
