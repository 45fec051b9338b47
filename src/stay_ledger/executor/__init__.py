"""Executor package: serialises transactions through one ledger.

Public surface
--------------
- :class:`TransactionExecutor` - authenticate, apply, commit or abort.
- :func:`build_executor`       - wire an executor from configuration.
- :class:`TransactionReceipt`  - what a committed transaction produced.
- :func:`parse_transaction`    - validate a dict into a transaction model.
"""

from stay_ledger.executor.executor import (
    TransactionExecutor,
    TransactionReceipt,
    build_executor,
)
from stay_ledger.executor.transactions import (
    AddOffer,
    ApplyCancellationPolicy,
    Book,
    Cancel,
    CheckIn,
    ContactHost,
    FundReserve,
    LeaveReview,
    ListAccommodation,
    ReportAccommodation,
    Transaction,
    UpdateAccommodation,
    parse_transaction,
)

__all__ = [
    "AddOffer",
    "ApplyCancellationPolicy",
    "Book",
    "Cancel",
    "CheckIn",
    "ContactHost",
    "FundReserve",
    "LeaveReview",
    "ListAccommodation",
    "ReportAccommodation",
    "Transaction",
    "TransactionExecutor",
    "TransactionReceipt",
    "UpdateAccommodation",
    "build_executor",
    "parse_transaction",
]
