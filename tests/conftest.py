"""
Shared pytest fixtures for the stay ledger test suite.

This module provides fixtures that are automatically available to all test files:
- Fresh platforms in both settlement modes
- Platforms pre-populated with a listing and a booking
- Executors wired to a temporary journal directory

Addresses are plain strings; the ledger never interprets them.
"""

from collections.abc import Generator
from pathlib import Path

import pytest

import stay_ledger.journal.writer as _writer
from stay_ledger.core.models import SettlementMode
from stay_ledger.core.platform import Platform
from stay_ledger.executor import TransactionExecutor
from tests.constants import OWNER, TRAVELER

# ============================================================================
# JOURNAL FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def journal_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Redirect the default journal root to a temporary directory.

    Applied to every test so nothing ever writes to the real ``data/journal``.

    Returns:
        The temporary journal root (``tmp_path / "journal"``).
    """
    root = tmp_path / "journal"
    monkeypatch.setattr(_writer, "_JOURNAL_ROOT", root)
    return root


# ============================================================================
# PLATFORM FIXTURES
# ============================================================================


@pytest.fixture
def platform() -> Platform:
    """Empty platform that pays owners at booking time."""
    return Platform()


@pytest.fixture
def escrow_platform() -> Platform:
    """Empty platform that holds the price until check-in or cancellation."""
    return Platform(settlement=SettlementMode.ON_CHECK_IN)


@pytest.fixture
def listed(platform: Platform) -> Platform:
    """Platform with accommodation 0 ("Beach House", price 100) owned by OWNER."""
    platform.list_accommodation(OWNER, "Beach House", 100)
    platform.collect_events()
    return platform


@pytest.fixture
def booked(listed: Platform) -> Platform:
    """Listed platform where TRAVELER holds booking 0 for nights 10..15."""
    listed.book(0, TRAVELER, 10, 15, 100)
    listed.collect_events()
    listed.collect_transfers()
    return listed


@pytest.fixture
def escrow_booked(escrow_platform: Platform) -> Platform:
    """Escrow platform with accommodation 0 listed and booked by TRAVELER."""
    escrow_platform.list_accommodation(OWNER, "Beach House", 100)
    escrow_platform.book(0, TRAVELER, 10, 15, 100)
    escrow_platform.collect_events()
    escrow_platform.collect_transfers()
    return escrow_platform


# ============================================================================
# EXECUTOR FIXTURES
# ============================================================================


@pytest.fixture
def executor(platform: Platform, journal_root: Path) -> Generator[TransactionExecutor, None, None]:
    """Executor over an empty platform, journalling to the temporary root."""
    yield TransactionExecutor(platform, ledger_id="test", journal_root=journal_root)
