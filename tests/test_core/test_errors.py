"""Tests for the ledger exception hierarchy (stay_ledger/core/errors.py)."""

import pytest

from stay_ledger.core import errors
from stay_ledger.core.errors import LedgerError, LedgerErrorContext, NotOwner


def _error_classes() -> list[type[LedgerError]]:
    return [
        obj
        for obj in vars(errors).values()
        if isinstance(obj, type) and issubclass(obj, LedgerError) and obj is not LedgerError
    ]


@pytest.mark.unit
def test_during_builds_context():
    exc = NotOwner.during("cancel", "0xC did not make booking 0")

    assert isinstance(exc.context, LedgerErrorContext)
    assert exc.context.operation == "cancel"
    assert exc.context.details == "0xC did not make booking 0"
    assert str(exc) == "not_owner in cancel: 0xC did not make booking 0"


@pytest.mark.unit
def test_message_without_details():
    exc = NotOwner.during("cancel")

    assert str(exc) == "not_owner in cancel"


@pytest.mark.unit
def test_every_error_is_a_runtime_error():
    for cls in _error_classes():
        assert issubclass(cls, RuntimeError), cls.__name__


@pytest.mark.unit
def test_codes_are_unique():
    codes = [cls.code for cls in _error_classes()]

    assert len(codes) == len(set(codes))
    assert "ledger_error" not in codes
