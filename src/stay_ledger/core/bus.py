"""
Stay Ledger Event Bus

Every committed ledger event flows through the bus, which stamps it with a
global sequence number and notifies subscribers.  The bus is how external
consumers (indexers, notifiers, the journal) observe the ledger.

=============================================================================
PRINCIPLES
=============================================================================

1. THE BUS RECORDS FACTS
   - Events describe transitions that already COMMITTED
   - The bus never decides outcomes and cannot veto a transition

2. EVENTS ARE IMMUTABLE
   - ``CommittedEvent`` is frozen; handlers receive it, they cannot change it

3. EMIT IS SYNCHRONOUS
   - Sequence assignment, log append and handler calls all happen inline
   - Sequence numbers are the only ordering guarantee

4. ONE BUS PER EXECUTOR
   - There is no module-level bus; the executor owns its instance and
     hands it out to whoever needs to subscribe

=============================================================================
USAGE
=============================================================================

    from stay_ledger.core.bus import EventBus
    from stay_ledger.core.events import Events

    bus = EventBus()

    def on_booked(event):
        print(event.detail["booking_id"])

    unsubscribe = bus.on(Events.ACCOMMODATION_BOOKED, on_booked)
    ...
    unsubscribe()

=============================================================================
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from stay_ledger.core.events import LedgerEvent

logger = logging.getLogger(__name__)


# A handler takes a committed event and returns nothing
EventHandler = Callable[["CommittedEvent"], None]

# An unsubscribe function takes no args and returns nothing
Unsubscribe = Callable[[], None]

_DEFAULT_LOG_SIZE = 10_000


# =============================================================================
# EVENT METADATA
# =============================================================================


@dataclass(frozen=True)
class EventMetadata:
    """
    Metadata attached to every committed event.

    Attributes:
        timestamp: Unix epoch milliseconds (UTC).  For display only, NOT
                   for ordering.
        source: Component that emitted the event, e.g. ``"executor"``.
        sequence: Monotonically increasing integer assigned by the bus.
        tx_id: Transaction that produced the event, if any.
    """

    timestamp: int
    source: str
    sequence: int
    tx_id: str | None = None

    @staticmethod
    def create(source: str, sequence: int, tx_id: str | None = None) -> EventMetadata:
        """Create metadata stamped with the current UTC time."""
        now_ms = int(datetime.now(UTC).timestamp() * 1000)
        return EventMetadata(timestamp=now_ms, source=source, sequence=sequence, tx_id=tx_id)


# =============================================================================
# COMMITTED EVENT
# =============================================================================


@dataclass(frozen=True)
class CommittedEvent:
    """
    A ledger event after the bus has accepted it.

    Attributes:
        type: Event type string, e.g. ``"accommodation:booked"``.
        detail: Event payload.  Treat as read-only.
        _meta: Sequence, timestamp and source.
    """

    type: str
    detail: dict[str, Any] = field(default_factory=dict)
    _meta: EventMetadata | None = field(default=None)

    def __str__(self) -> str:
        if self._meta:
            return (
                f"CommittedEvent(type='{self.type}', "
                f"source='{self._meta.source}', "
                f"seq={self._meta.sequence})"
            )
        return f"CommittedEvent(type='{self.type}')"

    @property
    def meta(self) -> EventMetadata | None:
        return self._meta

    @property
    def sequence(self) -> int | None:
        return self._meta.sequence if self._meta else None


# =============================================================================
# EVENT BUS
# =============================================================================


class EventBus:
    """
    Synchronous, in-process event bus.

    Thread Safety:
    - NOT thread-safe.  The executor serialises every transaction, so the
      bus is only ever touched by one caller at a time.

    Key Methods:
    - emit(): Commit an event and notify handlers
    - on(): Subscribe to an event type (returns unsubscribe function)
    - once(): Subscribe for a single event only
    - get_event_log(): Retrieve recent history
    """

    def __init__(self, *, log_size: int = _DEFAULT_LOG_SIZE) -> None:
        # Registration order is preserved so handler execution is deterministic
        self._handlers: dict[str, list[EventHandler]] = {}
        # Bounded; the journal is the durable history
        self._event_log: deque[CommittedEvent] = deque(maxlen=log_size)
        self._sequence: int = 0
        self.debug: bool = False

    # =========================================================================
    # EMIT
    # =========================================================================

    def emit(
        self,
        event: LedgerEvent,
        *,
        source: str = "ledger",
        tx_id: str | None = None,
    ) -> CommittedEvent:
        """
        Commit a ledger event to the bus.

        When this returns the event has a sequence number, sits in the log,
        and every handler has been called.

        Args:
            event: The event payload produced by a transition.
            source: Which component is emitting.
            tx_id: Transaction identifier to stamp into the metadata.

        Returns:
            The committed, immutable event.
        """
        self._sequence += 1
        committed = CommittedEvent(
            type=event.event_type,
            detail=event.detail(),
            _meta=EventMetadata.create(source, self._sequence, tx_id),
        )
        self._event_log.append(committed)

        if self.debug:
            logger.debug("EMIT [%d]: %s from %s", self._sequence, committed.type, source)

        self._notify_handlers(committed)
        return committed

    def _notify_handlers(self, event: CommittedEvent) -> None:
        """
        Call every handler subscribed to ``event.type`` in registration order.

        Handler errors are logged and do not stop other handlers.  The event
        is committed regardless.
        """
        for handler in list(self._handlers.get(event.type, ())):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler error for '{event.type}': {e}", exc_info=True)

    # =========================================================================
    # SUBSCRIBE
    # =========================================================================

    def on(self, event_type: str, handler: EventHandler) -> Unsubscribe:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to listen for.
            handler: Called with the :class:`CommittedEvent`.

        Returns:
            A function that removes the subscription.
        """
        self._handlers.setdefault(event_type, []).append(handler)

        if self.debug:
            count = len(self._handlers[event_type])
            logger.debug(f"SUBSCRIBE: '{event_type}' (total handlers: {count})")

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type)
            if handlers and handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def once(self, event_type: str, handler: EventHandler) -> Unsubscribe:
        """Subscribe for the next event of ``event_type`` only."""
        unsub: Unsubscribe | None = None

        def one_time_wrapper(event: CommittedEvent) -> None:
            try:
                handler(event)
            finally:
                if unsub is not None:
                    unsub()

        unsub = self.on(event_type, one_time_wrapper)
        return unsub

    # =========================================================================
    # EVENT LOG ACCESS
    # =========================================================================

    def get_event_log(self, limit: int | None = None) -> list[CommittedEvent]:
        """
        Get committed events, oldest first.

        Args:
            limit: Maximum number of events to return (from the end).
                   None means return the whole in-memory log.
        """
        if limit is not None:
            return list(self._event_log)[-limit:]
        return list(self._event_log)

    def get_sequence(self) -> int:
        """Return the last assigned sequence number."""
        return self._sequence

    def get_handler_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, ()))

    def clear_event_log(self) -> None:
        """
        Clear the in-memory log.  Sequence numbers keep counting.
        """
        self._event_log.clear()
