"""Journal package: append-only JSONL record of committed ledger events.

Public surface
--------------
- :func:`append_event`     - append one event to a ledger's journal file.
- :func:`read_journal`     - iterate the envelopes of a journal.
- :func:`verify_journal`   - check every checksum and the chain between lines.
- :exc:`JournalWriteError` - raised when a filesystem write fails.
- :class:`JournalVerifyResult` - result of :func:`verify_journal`.

Usage example
-------------
::

    from stay_ledger.journal import JournalWriteError, append_event

    try:
        append_event("main", "accommodation:listed", {"id": 0, ...}, sequence=1)
    except JournalWriteError:
        logger.warning("Journal write failed; transaction stays committed.")

Design notes
------------
- Events are stored at ``<journal root>/<ledger_id>.jsonl``.
- Each line embeds a SHA-256 checksum of its body and the checksum of the
  line before it.
- Writes are serialised with an exclusive POSIX file lock (``fcntl``).
"""

from stay_ledger.journal.writer import (
    JournalVerifyResult,
    JournalWriteError,
    append_event,
    journal_path,
    read_journal,
    verify_journal,
)

__all__ = [
    "JournalVerifyResult",
    "JournalWriteError",
    "append_event",
    "journal_path",
    "read_journal",
    "verify_journal",
]
