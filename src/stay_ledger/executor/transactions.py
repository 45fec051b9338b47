"""
Pydantic models for ledger transactions.

A transaction is one request to run exactly one ledger transition.  The
models validate argument types and the unsigned-amount constraints before
the ledger is touched; everything that depends on ledger state (ids,
ownership, availability, balances) is checked by the platform itself.

Every transaction carries ``sender``: the address the caller claims to act
as.  The executor compares it with the authenticated signer, and
transitions that take an address (owner, traveler, reviewer, funder) receive
``sender`` as that address.

Transactions arrive either as model instances or as plain dicts, which are
routed to the right model by their ``op`` field::

    tx = parse_transaction({"op": "book", "sender": "0xB", "accommodation_id": 0,
                            "check_in": 10, "check_out": 15, "payment": 100})
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from stay_ledger.core.models import BookingResult
from stay_ledger.core.platform import Platform


class Transaction(BaseModel):
    """
    Base class for all transactions.

    Attributes:
        sender: Address of the caller, checked against the signer
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    op: str
    sender: str = Field(min_length=1)

    def apply(self, platform: Platform) -> Any:
        """Run this transaction's transition against ``platform``."""
        raise NotImplementedError


# ============================================================================
# STATE-CHANGING TRANSACTIONS
# ============================================================================


class ListAccommodation(Transaction):
    """List a new accommodation owned by ``sender``."""

    op: Literal["list_accommodation"] = "list_accommodation"
    details: str
    price: int = Field(ge=0)

    def apply(self, platform: Platform) -> int:
        return platform.list_accommodation(self.sender, self.details, self.price)


class Book(Transaction):
    """
    Book an accommodation as ``sender``.

    Attributes:
        payment: Value attached to the transaction; the surplus over the
                 price comes back as change
    """

    op: Literal["book"] = "book"
    accommodation_id: int
    check_in: int
    check_out: int
    payment: int = Field(ge=0)

    def apply(self, platform: Platform) -> BookingResult:
        return platform.book(
            self.accommodation_id, self.sender, self.check_in, self.check_out, self.payment
        )


class LeaveReview(Transaction):
    op: Literal["review"] = "review"
    accommodation_id: int
    text: str
    rating: int

    def apply(self, platform: Platform) -> int:
        return platform.review(self.accommodation_id, self.sender, self.text, self.rating)


class Cancel(Transaction):
    op: Literal["cancel"] = "cancel"
    booking_id: int

    def apply(self, platform: Platform) -> int:
        return platform.cancel(self.booking_id, self.sender)


class UpdateAccommodation(Transaction):
    op: Literal["update_accommodation"] = "update_accommodation"
    accommodation_id: int
    new_details: str
    new_price: int = Field(ge=0)

    def apply(self, platform: Platform) -> None:
        platform.update_accommodation(
            self.accommodation_id, self.sender, self.new_details, self.new_price
        )


class CheckIn(Transaction):
    op: Literal["check_in"] = "check_in"
    booking_id: int

    def apply(self, platform: Platform) -> int:
        return platform.check_in(self.booking_id, self.sender)


class AddOffer(Transaction):
    """Attach a discount window.  Any sender may publish an offer."""

    op: Literal["add_offer"] = "add_offer"
    accommodation_id: int
    discount_pct: int
    start: int
    end: int

    def apply(self, platform: Platform) -> int:
        return platform.add_offer(self.accommodation_id, self.discount_pct, self.start, self.end)


class FundReserve(Transaction):
    op: Literal["fund_reserve"] = "fund_reserve"
    amount: int = Field(gt=0)

    def apply(self, platform: Platform) -> int:
        return platform.fund_reserve(self.sender, self.amount)


# ============================================================================
# OFF-LEDGER STUBS
# ============================================================================


class ReportAccommodation(Transaction):
    op: Literal["report_accommodation"] = "report_accommodation"
    accommodation_id: int

    def apply(self, platform: Platform) -> None:
        platform.report_accommodation(self.accommodation_id)


class ContactHost(Transaction):
    op: Literal["contact_host"] = "contact_host"
    accommodation_id: int
    message: str

    def apply(self, platform: Platform) -> None:
        platform.contact_host(self.accommodation_id, self.message)


class ApplyCancellationPolicy(Transaction):
    op: Literal["apply_cancellation_policy"] = "apply_cancellation_policy"
    booking_id: int
    policy_id: int

    def apply(self, platform: Platform) -> None:
        platform.apply_cancellation_policy(self.booking_id, self.policy_id)


AnyTransaction = Annotated[
    Union[
        ListAccommodation,
        Book,
        LeaveReview,
        Cancel,
        UpdateAccommodation,
        CheckIn,
        AddOffer,
        FundReserve,
        ReportAccommodation,
        ContactHost,
        ApplyCancellationPolicy,
    ],
    Field(discriminator="op"),
]

_transaction_adapter: TypeAdapter[Transaction] = TypeAdapter(AnyTransaction)


def parse_transaction(payload: dict[str, Any]) -> Transaction:
    """
    Validate a plain dict into the transaction model named by its ``op``.

    Raises:
        pydantic.ValidationError: Unknown ``op``, missing fields, wrong types
            or a negative amount.
    """
    return _transaction_adapter.validate_python(payload)
