"""Transaction executor.

:class:`TransactionExecutor` is the only writer of a
:class:`~stay_ledger.core.platform.Platform`.  One ``submit`` call is one
transaction:

1. Validate the payload into a transaction model (pydantic).
2. Authenticate: the transaction's ``sender`` must equal the signer.
3. Open a savepoint on the platform.
4. Run exactly one transition.
5. On any failure roll back to the savepoint and re-raise.  Transitions
   check every precondition before their first mutation, so a rejected
   transaction has nothing to undo; the rollback covers unexpected errors
   raised mid-transition.  A failed transaction is indistinguishable from
   one that was never submitted.
6. On success drain the staged events, publish each one to the bus and
   append it to the journal, and return a :class:`TransactionReceipt`.

Submissions are serialised by the caller; the executor holds no locks.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import stay_ledger.config as ledger_config
from stay_ledger.core.bus import CommittedEvent, EventBus
from stay_ledger.core.errors import LedgerError, Unauthorized
from stay_ledger.core.events import LedgerEvent
from stay_ledger.core.models import SettlementMode, Transfer
from stay_ledger.core.platform import Platform
from stay_ledger.executor.transactions import Transaction, parse_transaction
from stay_ledger.journal import JournalWriteError, append_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionReceipt:
    """
    Outcome of a committed transaction.

    Attributes:
        tx_id: Identifier stamped on every event of this transaction.
        op: Transaction type, e.g. ``"book"``.
        sender: Authenticated caller.
        result: Return value of the transition.
        events: Events committed to the bus, in order.
        transfers: Value movements the caller's wallet layer must deliver.
    """

    tx_id: str
    op: str
    sender: str
    result: Any
    events: tuple[CommittedEvent, ...]
    transfers: tuple[Transfer, ...]


class TransactionExecutor:
    """Serialises transactions through one platform.

    Args:
        platform: The ledger this executor owns.
        bus: Bus committed events are published to.  A fresh one by default.
        ledger_id: Journal file stem.
        journal_root: Journal directory.  ``None`` uses the journal default.
        journal_enabled: Append committed events to the journal.
        strict_signer: Reject transactions whose sender is not the signer.
    """

    def __init__(
        self,
        platform: Platform,
        *,
        bus: EventBus | None = None,
        ledger_id: str = "main",
        journal_root: Path | None = None,
        journal_enabled: bool = True,
        strict_signer: bool = True,
    ) -> None:
        self._platform = platform
        self._bus = bus if bus is not None else EventBus()
        self._ledger_id = ledger_id
        self._journal_root = journal_root
        self._journal_enabled = journal_enabled
        self._strict_signer = strict_signer

    @property
    def platform(self) -> Platform:
        return self._platform

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def ledger_id(self) -> str:
        return self._ledger_id

    def submit(self, signer: str, tx: Transaction | dict[str, Any]) -> TransactionReceipt:
        """Run one transaction on behalf of ``signer``.

        Args:
            signer: Authenticated address of the caller.
            tx: A transaction model or a dict with an ``op`` field.

        Returns:
            The receipt of the committed transaction.

        Raises:
            pydantic.ValidationError: The payload is malformed.
            Unauthorized: ``tx.sender`` is not ``signer``.
            LedgerError: The transition rejected the transaction.
        """
        if isinstance(tx, dict):
            tx = parse_transaction(tx)

        if self._strict_signer and tx.sender != signer:
            raise Unauthorized.during(tx.op, f"sender {tx.sender} is not signer {signer}")

        tx_id = uuid.uuid4().hex
        savepoint = self._platform.savepoint()
        try:
            result = tx.apply(self._platform)
        except LedgerError as exc:
            self._platform.rollback(savepoint)
            logger.warning(
                "Transaction %s (%s) aborted: %s",
                tx_id,
                tx.op,
                exc,
                extra={"tx_id": tx_id, "op": tx.op, "error_code": exc.code},
            )
            raise
        except Exception:
            self._platform.rollback(savepoint)
            logger.exception("Transaction %s (%s) failed unexpectedly", tx_id, tx.op)
            raise

        self._platform.release()
        events = tuple(self._publish(event, tx_id) for event in self._platform.collect_events())
        transfers = tuple(self._platform.collect_transfers())

        logger.info(
            "Transaction %s (%s) committed: %d event(s), %d transfer(s)",
            tx_id,
            tx.op,
            len(events),
            len(transfers),
            extra={"tx_id": tx_id, "op": tx.op},
        )
        return TransactionReceipt(
            tx_id=tx_id,
            op=tx.op,
            sender=tx.sender,
            result=result,
            events=events,
            transfers=transfers,
        )

    def _publish(self, event: LedgerEvent, tx_id: str) -> CommittedEvent:
        committed = self._bus.emit(event, source="executor", tx_id=tx_id)
        if self._journal_enabled:
            try:
                append_event(
                    self._ledger_id,
                    committed.type,
                    committed.detail,
                    sequence=committed.sequence,
                    tx_id=tx_id,
                    root=self._journal_root,
                )
            except JournalWriteError:
                logger.warning(
                    "Journal write failed for %s; transaction stays committed.",
                    committed,
                    exc_info=True,
                )
        return committed


def build_executor(cfg: ledger_config.LedgerConfig | None = None) -> TransactionExecutor:
    """Wire a fresh platform, bus and journal from configuration.

    Args:
        cfg: Configuration to use.  Defaults to the module-level ``config``.
    """
    cfg = cfg if cfg is not None else ledger_config.config
    platform = Platform(settlement=SettlementMode(cfg.ledger.settlement))
    return TransactionExecutor(
        platform,
        ledger_id=cfg.ledger.ledger_id,
        journal_root=cfg.journal.absolute_path,
        journal_enabled=cfg.journal.enabled,
        strict_signer=cfg.executor.strict_signer,
    )
