"""Stay Ledger: decentralized accommodation-booking registry.

A single-writer ledger state machine: owners list stays, travelers book and
pay for them, reviews and special offers attach to listings, and every
mutation is recorded as an immutable event in an append-only journal.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ---------------------------------------------------------------------------
# Package version - read from pyproject.toml via importlib.metadata.
#
# If the package is imported without being installed we fall back to
# "0.0.0-dev" so the ledger can still be used from a source checkout.
# ---------------------------------------------------------------------------
try:
    __version__: str = version("stay-ledger")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
