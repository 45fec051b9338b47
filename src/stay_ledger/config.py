"""
Ledger configuration management.

Configuration is loaded from multiple sources with a clear priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/ledger.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached.  The
LedgerConfig dataclass provides typed access to all settings.

Usage:
    from stay_ledger.config import config

    print(config.ledger.ledger_id)
    print(config.ledger.settlement)
    print(config.journal.absolute_path)

Environment Variable Mapping:
    STAY_LEDGER_ID        -> ledger.ledger_id
    STAY_SETTLEMENT       -> ledger.settlement
    STAY_JOURNAL_ENABLED  -> journal.enabled
    STAY_JOURNAL_PATH     -> journal.path
    STAY_STRICT_SIGNER    -> executor.strict_signer
    STAY_LOG_LEVEL        -> logging.level
    STAY_LOG_FORMAT       -> logging.format
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/, data/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "ledger.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "ledger.example.ini"

_SETTLEMENT_MODES = ("on_booking", "on_check_in")
_LOG_FORMATS = ("simple", "detailed", "json")


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class LedgerSettings:
    """Ledger identity and settlement policy."""

    ledger_id: str = "main"
    settlement: Literal["on_booking", "on_check_in"] = "on_booking"


@dataclass
class JournalSettings:
    """Event journal configuration."""

    enabled: bool = True
    path: str = "data/journal"

    @property
    def absolute_path(self) -> Path:
        """Get absolute path to the journal directory."""
        p = Path(self.path)
        if p.is_absolute():
            return p
        return PROJECT_ROOT / p


@dataclass
class ExecutorSettings:
    """Transaction executor configuration."""

    # Reject transactions whose caller address differs from the signer
    strict_signer: bool = True


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class LedgerConfig:
    """
    Complete ledger configuration.

    Access via the module-level `config` singleton.
    """

    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    journal: JournalSettings = field(default_factory=JournalSettings)
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def _parse_settlement(value: str) -> str:
    mode = value.strip().lower()
    if mode not in _SETTLEMENT_MODES:
        raise ValueError(f"settlement must be one of {_SETTLEMENT_MODES}, got {value!r}")
    return mode


def _load_from_ini(parser: configparser.ConfigParser, cfg: LedgerConfig) -> None:
    """Load configuration from parsed INI file into LedgerConfig."""
    if parser.has_section("ledger"):
        if parser.has_option("ledger", "ledger_id"):
            cfg.ledger.ledger_id = parser.get("ledger", "ledger_id")
        if parser.has_option("ledger", "settlement"):
            cfg.ledger.settlement = _parse_settlement(  # type: ignore[assignment]
                parser.get("ledger", "settlement")
            )

    if parser.has_section("journal"):
        if parser.has_option("journal", "enabled"):
            cfg.journal.enabled = _parse_bool(parser.get("journal", "enabled"))
        if parser.has_option("journal", "path"):
            cfg.journal.path = parser.get("journal", "path")

    if parser.has_section("executor"):
        if parser.has_option("executor", "strict_signer"):
            cfg.executor.strict_signer = _parse_bool(parser.get("executor", "strict_signer"))

    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in _LOG_FORMATS:
                cfg.logging.format = val  # type: ignore[assignment]


def _apply_env_overrides(cfg: LedgerConfig) -> None:
    """Apply environment variable overrides to configuration."""
    if env_ledger := os.getenv("STAY_LEDGER_ID"):
        cfg.ledger.ledger_id = env_ledger
    if env_settlement := os.getenv("STAY_SETTLEMENT"):
        cfg.ledger.settlement = _parse_settlement(env_settlement)  # type: ignore[assignment]

    if env_journal := os.getenv("STAY_JOURNAL_ENABLED"):
        cfg.journal.enabled = _parse_bool(env_journal)
    if env_journal_path := os.getenv("STAY_JOURNAL_PATH"):
        cfg.journal.path = env_journal_path

    if env_strict := os.getenv("STAY_STRICT_SIGNER"):
        cfg.executor.strict_signer = _parse_bool(env_strict)

    if env_log := os.getenv("STAY_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()
    if env_format := os.getenv("STAY_LOG_FORMAT"):
        if env_format.lower() in _LOG_FORMATS:
            cfg.logging.format = env_format.lower()  # type: ignore[assignment]


def load_config() -> LedgerConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. config/ledger.ini
        3. config/ledger.example.ini (fallback for development)
        4. Built-in defaults

    Raises:
        ValueError: A settlement mode is not recognised.
    """
    cfg = LedgerConfig()

    config_file = None
    if CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    elif CONFIG_EXAMPLE.exists():
        config_file = CONFIG_EXAMPLE

    if config_file:
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    _apply_env_overrides(cfg)

    return cfg


def reload_config() -> "LedgerConfig":
    """
    Reload configuration from disk and environment.

    This updates the module-level `config` singleton.  Executors that were
    already built keep the settings they were built with.
    """
    global config
    config = load_config()
    return config


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_config_status() -> dict:
    """
    Get configuration status for diagnostics.
    """
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "ledger_id": config.ledger.ledger_id,
        "settlement": config.ledger.settlement,
        "journal_enabled": config.journal.enabled,
        "journal_path": str(config.journal.absolute_path),
    }


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_test_journal:
    """
    Context manager that points the journal at a temporary directory.

    Usage:
        from stay_ledger.config import use_test_journal

        def test_something(tmp_path):
            with use_test_journal(tmp_path / "journal"):
                executor = build_executor()

    Args:
        journal_dir: Directory to write journal files into
    """

    def __init__(self, journal_dir: Path | str):
        self.journal_dir = Path(journal_dir)
        self.original_path: str | None = None
        self.original_enabled: bool | None = None

    def __enter__(self) -> Path:
        self.original_path = config.journal.path
        self.original_enabled = config.journal.enabled
        config.journal.path = str(self.journal_dir)
        config.journal.enabled = True
        return self.journal_dir

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_path is not None:
            config.journal.path = self.original_path
        if self.original_enabled is not None:
            config.journal.enabled = self.original_enabled
        return None
