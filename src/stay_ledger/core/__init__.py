"""Ledger core: the booking state machine and its vocabulary.

Public surface
--------------
- :class:`Platform`        - the ledger aggregate and its transitions.
- :class:`EventBus`        - synchronous bus for committed events.
- :class:`SettlementMode`  - when owners are paid for bookings.
- :exc:`LedgerError`       - base of every aborted transition.
"""

from stay_ledger.core.bus import CommittedEvent, EventBus, EventMetadata
from stay_ledger.core.errors import LedgerError, LedgerErrorContext
from stay_ledger.core.events import Events
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
)
from stay_ledger.core.platform import Platform

__all__ = [
    "Accommodation",
    "Booking",
    "BookingResult",
    "BookingStatus",
    "CommittedEvent",
    "EventBus",
    "EventMetadata",
    "Events",
    "LedgerError",
    "LedgerErrorContext",
    "Platform",
    "PlatformDetails",
    "Review",
    "SettlementMode",
    "SpecialOffer",
    "Transfer",
    "TransferKind",
]
