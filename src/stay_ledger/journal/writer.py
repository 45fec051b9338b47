"""JSONL journal writer for committed ledger events.

Overview
--------
The journal is the external, append-only record of every event the ledger
commits.  The in-memory :class:`~stay_ledger.core.platform.Platform` is the
live state; the journal is the audit trail a consumer can replay and verify.
The executor appends to it only after a transition has committed.

Storage
-------
One file per ledger::

    <journal root>/<ledger_id>.jsonl

The directory and file are created on the first write.

Envelope format
---------------
Every line is a self-contained JSON object:

.. code-block:: json

    {
      "event_id":       "a3f91c9e2d4b5e6f...",
      "sequence":       7,
      "timestamp":      "2026-10-18T14:23:01.452345+00:00",
      "ledger_id":      "main",
      "event_type":     "accommodation:booked",
      "schema_version": "1.0",
      "tx_id":          "5b0c...",
      "data":           { ... event payload ... },
      "prev_checksum":  "sha256:...",
      "_checksum":      "sha256:..."
    }

``_checksum`` is computed over the canonical JSON body (every field except
``_checksum``, ``sort_keys=True``).  ``prev_checksum`` is the ``_checksum``
of the preceding line (``null`` on the first line), which chains the file:
editing, dropping or reordering any line breaks verification of the lines
after it.

Concurrency
-----------
``fcntl.flock(LOCK_EX)`` is held while the previous checksum is read and the
new line is written, so the chain stays intact across processes on one host.
``fcntl`` is POSIX-only.

Failure isolation
-----------------
:exc:`JournalWriteError` is raised on filesystem or encoding failure.  The
executor catches it and logs a warning: the transition has already
committed and is not undone because its audit record was lost.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import logging
import re
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from stay_ledger.config import PROJECT_ROOT

logger = logging.getLogger(__name__)

# ── Schema version ─────────────────────────────────────────────────────────────
# Increment when the envelope format changes in a backwards-incompatible way.
_SCHEMA_VERSION = "1.0"

# ── Default journal root ───────────────────────────────────────────────────────
# Used when callers pass no explicit root.  Tests monkeypatch this.
_JOURNAL_ROOT: Path = PROJECT_ROOT / "data" / "journal"

# Ledger ids become file names.
_LEDGER_ID_RE = re.compile(r"^[A-Za-z0-9_.-]+$")

# Bytes read per step while scanning backwards for the last line.
_TAIL_CHUNK_BYTES = 16_384


class JournalWriteError(Exception):
    """Raised when a journal append fails due to a filesystem or encoding error."""


@dataclass(frozen=True)
class JournalVerifyResult:
    """Result of :func:`verify_journal`.

    Attributes:
        status: ``"ok"``, ``"empty"`` (no file or no events) or ``"corrupt"``.
        event_count: Number of lines that verified before the first failure.
        last_event_id: ``event_id`` of the last verified line.
        error_line: 1-based line number of the first failure, if any.
        error_detail: Why verification failed, if it did.
    """

    status: Literal["ok", "empty", "corrupt"]
    event_count: int
    last_event_id: str | None
    error_line: int | None = None
    error_detail: str | None = None


# ── Public API ────────────────────────────────────────────────────────────────


def append_event(
    ledger_id: str,
    event_type: str,
    data: dict[str, Any],
    *,
    sequence: int | None = None,
    tx_id: str | None = None,
    root: Path | None = None,
) -> str:
    """Append one event to the ledger's JSONL journal.

    Args:
        ledger_id:  Ledger the event belongs to; also the file name stem.
        event_type: Event type, e.g. ``"accommodation:booked"``.
        data:       JSON-serialisable event payload.
        sequence:   Bus sequence number of the event, if known.
        tx_id:      Transaction that produced the event, if known.
        root:       Journal directory.  Defaults to ``data/journal``.

    Returns:
        The new ``event_id`` (32-character lowercase hex).

    Raises:
        ValueError:        ``ledger_id`` or ``event_type`` is invalid.
        JournalWriteError: The write failed.
    """
    _validate_ledger_id(ledger_id)
    if not event_type or not event_type.strip():
        raise ValueError("append_event: event_type must be a non-empty string.")

    event_id = uuid.uuid4().hex
    path = journal_path(ledger_id, root=root)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as fh:
            fcntl.flock(fh, fcntl.LOCK_EX)
            try:
                body = {
                    "event_id": event_id,
                    "sequence": sequence,
                    "timestamp": datetime.now(UTC).isoformat(),
                    "ledger_id": ledger_id,
                    "event_type": event_type,
                    "schema_version": _SCHEMA_VERSION,
                    "tx_id": tx_id,
                    "data": data,
                    "prev_checksum": _last_checksum(path),
                }
                envelope = {**body, "_checksum": f"sha256:{_compute_checksum(body)}"}
                fh.write(json.dumps(envelope, ensure_ascii=False, sort_keys=True) + "\n")
                fh.flush()
            finally:
                fcntl.flock(fh, fcntl.LOCK_UN)
    except (OSError, TypeError, ValueError) as exc:
        raise JournalWriteError(
            f"Failed to write event {event_id!r} to journal {ledger_id!r} at {path}: {exc}"
        ) from exc

    logger.debug("journal: appended %r event %s to %s", event_type, event_id, path.name)
    return event_id


def read_journal(ledger_id: str, *, root: Path | None = None) -> Iterator[dict[str, Any]]:
    """Yield every envelope of a journal in append order.

    Blank lines are skipped.  A malformed line raises
    :exc:`json.JSONDecodeError`; run :func:`verify_journal` first when the
    file may be damaged.
    """
    _validate_ledger_id(ledger_id)
    path = journal_path(ledger_id, root=root)
    if not path.exists():
        return
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            if line.strip():
                yield json.loads(line)


def verify_journal(ledger_id: str, *, root: Path | None = None) -> JournalVerifyResult:
    """Verify every line of a journal, including the checksum chain.

    Each line must be a JSON object with a valid ``_checksum`` over its body,
    a non-empty ``event_id``, and a ``prev_checksum`` equal to the previous
    line's ``_checksum``.  Verification stops at the first failing line.
    """
    _validate_ledger_id(ledger_id)
    path = journal_path(ledger_id, root=root)
    if not path.exists():
        return JournalVerifyResult(status="empty", event_count=0, last_event_id=None)

    count = 0
    last_event_id: str | None = None
    prev_checksum: str | None = None

    with path.open("r", encoding="utf-8", errors="replace") as fh:
        for line_no, raw in enumerate(fh, start=1):
            line = raw.strip()
            if not line:
                continue

            problem = _check_line(line, prev_checksum)
            if isinstance(problem, str):
                return JournalVerifyResult(
                    status="corrupt",
                    event_count=count,
                    last_event_id=last_event_id,
                    error_line=line_no,
                    error_detail=problem,
                )

            count += 1
            last_event_id = problem["event_id"]
            prev_checksum = problem["_checksum"]

    if count == 0:
        return JournalVerifyResult(status="empty", event_count=0, last_event_id=None)
    return JournalVerifyResult(status="ok", event_count=count, last_event_id=last_event_id)


def journal_path(ledger_id: str, *, root: Path | None = None) -> Path:
    """Return ``<root>/<ledger_id>.jsonl``."""
    return (root if root is not None else _JOURNAL_ROOT) / f"{ledger_id}.jsonl"


# ── Internal helpers ──────────────────────────────────────────────────────────


def _validate_ledger_id(ledger_id: str) -> None:
    if not ledger_id or not _LEDGER_ID_RE.match(ledger_id):
        raise ValueError(
            f"ledger_id must be a non-empty file name component, got {ledger_id!r}."
        )


def _compute_checksum(payload: dict) -> str:
    """SHA-256 hex digest of the canonical JSON serialisation of ``payload``."""
    canonical = json.dumps(payload, ensure_ascii=False, sort_keys=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _check_line(line: str, prev_checksum: str | None) -> dict[str, Any] | str:
    """Return the parsed envelope, or a description of what is wrong with it."""
    try:
        envelope = json.loads(line)
    except json.JSONDecodeError as exc:
        return f"Line is not valid JSON: {exc}"

    if not isinstance(envelope, dict):
        return "Line deserialised to a non-dict type."

    recorded = envelope.get("_checksum")
    if not isinstance(recorded, str):
        return "Line is missing or has a non-string '_checksum' field."

    body = {k: v for k, v in envelope.items() if k != "_checksum"}
    expected = f"sha256:{_compute_checksum(body)}"
    if recorded != expected:
        return f"Checksum mismatch. Recorded: {recorded!r}. Expected: {expected!r}."

    event_id = envelope.get("event_id")
    if not isinstance(event_id, str) or not event_id:
        return "Line is missing a valid 'event_id' string."

    if envelope.get("prev_checksum") != prev_checksum:
        return (
            f"Chain broken: prev_checksum {envelope.get('prev_checksum')!r} "
            f"does not match preceding line {prev_checksum!r}."
        )

    return envelope


def _last_checksum(path: Path) -> str | None:
    """Return ``_checksum`` of the last non-blank line, or ``None`` if there is none.

    The file is read backwards in chunks until the start of that line is in
    the buffer, so lines of any length are found whole.
    """
    with path.open("rb") as fh:
        fh.seek(0, 2)
        position = fh.tell()
        tail = b""
        while position > 0:
            step = min(_TAIL_CHUNK_BYTES, position)
            position -= step
            fh.seek(position)
            tail = fh.read(step) + tail
            if b"\n" in tail.rstrip():
                break

    last = tail.rstrip().rsplit(b"\n", 1)[-1].strip()
    if not last:
        return None
    envelope = json.loads(last.decode("utf-8"))
    if not isinstance(envelope, dict) or not isinstance(envelope.get("_checksum"), str):
        raise ValueError(f"last line of {path.name} carries no checksum")
    return envelope["_checksum"]
