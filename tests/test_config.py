"""Tests for stay_ledger.config loading and environment overrides."""

import configparser
from pathlib import Path

import pytest

import stay_ledger.config as ledger_config
from stay_ledger.config import (
    PROJECT_ROOT,
    JournalSettings,
    LedgerConfig,
    _load_from_ini,
    get_config_status,
    load_config,
    use_test_journal,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop any STAY_* variables leaking in from the shell."""
    for name in (
        "STAY_LEDGER_ID",
        "STAY_SETTLEMENT",
        "STAY_JOURNAL_ENABLED",
        "STAY_JOURNAL_PATH",
        "STAY_STRICT_SIGNER",
        "STAY_LOG_LEVEL",
        "STAY_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
def test_defaults():
    cfg = LedgerConfig()

    assert cfg.ledger.ledger_id == "main"
    assert cfg.ledger.settlement == "on_booking"
    assert cfg.journal.enabled is True
    assert cfg.executor.strict_signer is True
    assert cfg.logging.level == "INFO"
    assert cfg.logging.format == "detailed"


@pytest.mark.unit
def test_ledger_env_overrides(monkeypatch):
    monkeypatch.setenv("STAY_LEDGER_ID", "staging")
    monkeypatch.setenv("STAY_SETTLEMENT", "ON_CHECK_IN")

    cfg = load_config()

    assert cfg.ledger.ledger_id == "staging"
    assert cfg.ledger.settlement == "on_check_in"


@pytest.mark.unit
def test_journal_and_executor_env_overrides(monkeypatch):
    monkeypatch.setenv("STAY_JOURNAL_ENABLED", "false")
    monkeypatch.setenv("STAY_JOURNAL_PATH", "/tmp/ledger-journal")
    monkeypatch.setenv("STAY_STRICT_SIGNER", "no")

    cfg = load_config()

    assert cfg.journal.enabled is False
    assert cfg.journal.absolute_path == Path("/tmp/ledger-journal")
    assert cfg.executor.strict_signer is False


@pytest.mark.unit
def test_logging_env_overrides(monkeypatch):
    monkeypatch.setenv("STAY_LOG_LEVEL", "debug")
    monkeypatch.setenv("STAY_LOG_FORMAT", "JSON")

    cfg = load_config()

    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.format == "json"


@pytest.mark.unit
def test_unknown_log_format_ignored(monkeypatch):
    monkeypatch.setenv("STAY_LOG_FORMAT", "xml")

    assert load_config().logging.format == "detailed"


@pytest.mark.unit
def test_invalid_settlement_env(monkeypatch):
    monkeypatch.setenv("STAY_SETTLEMENT", "whenever")

    with pytest.raises(ValueError, match="settlement"):
        load_config()


@pytest.mark.unit
def test_load_from_ini():
    parser = configparser.ConfigParser()
    parser.read_string(
        "[ledger]\nledger_id = archive\nsettlement = on_check_in\n"
        "[journal]\nenabled = off\npath = var/journal\n"
        "[executor]\nstrict_signer = false\n"
        "[logging]\nlevel = warning\nformat = simple\n"
    )
    cfg = LedgerConfig()

    _load_from_ini(parser, cfg)

    assert cfg.ledger.ledger_id == "archive"
    assert cfg.ledger.settlement == "on_check_in"
    assert cfg.journal.enabled is False
    assert cfg.journal.absolute_path == PROJECT_ROOT / "var" / "journal"
    assert cfg.executor.strict_signer is False
    assert cfg.logging.level == "WARNING"
    assert cfg.logging.format == "simple"


@pytest.mark.unit
def test_ini_invalid_settlement():
    parser = configparser.ConfigParser()
    parser.read_string("[ledger]\nsettlement = monthly\n")

    with pytest.raises(ValueError):
        _load_from_ini(parser, LedgerConfig())


@pytest.mark.unit
def test_relative_journal_path_resolves_under_project():
    assert JournalSettings(path="data/journal").absolute_path == PROJECT_ROOT / "data" / "journal"


@pytest.mark.unit
def test_use_test_journal_restores(tmp_path: Path):
    original = ledger_config.config.journal.path

    with use_test_journal(tmp_path / "journal") as journal_dir:
        assert ledger_config.config.journal.absolute_path == journal_dir
        assert ledger_config.config.journal.enabled is True

    assert ledger_config.config.journal.path == original


@pytest.mark.unit
def test_config_status_keys():
    status = get_config_status()

    assert {"config_file_exists", "ledger_id", "settlement", "journal_path"} <= set(status)


@pytest.mark.unit
def test_reload_config_replaces_singleton(monkeypatch):
    original = ledger_config.config
    monkeypatch.setattr(ledger_config, "config", original)
    monkeypatch.setenv("STAY_LEDGER_ID", "reloaded")

    reloaded = ledger_config.reload_config()

    assert reloaded is ledger_config.config
    assert reloaded is not original
    assert reloaded.ledger.ledger_id == "reloaded"
