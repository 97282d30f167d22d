# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB Payables.

This module is responsible for:
- loading the application configuration from a TOML file,
- validating its values,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import DatabaseConfig

DEFAULT_CONFIG_FILENAME = "smb_payables_config.toml"
DISPLAY_MODES = ("table", "csv", "both")


@dataclass(frozen=True)
class FiscalYear:
    """Represents a fiscal year with a start and end date."""

    start_date: date
    end_date: date


@dataclass(frozen=True)
class LedgerConfig:
    """
    Options of the payable ledger.

    Attributes
    ----------
    months_back, months_ahead:
        Default generation horizon around the reference date.
    due_soon_days:
        Number of days ahead for which unpaid instances raise a
        "due soon" alert.
    """

    months_back: int = 12
    months_ahead: int = 12
    due_soon_days: int = 3


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: Optional[Path] = None


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB Payables.

    This aggregates:
    - the fiscal year definition (default reporting period),
    - the presentation currency,
    - the database configuration (where obligations, payments, sales and
      expenses are stored),
    - ledger options (generation horizon, alert window),
    - the sale statuses counted as realized revenue,
    - logging and display options.
    """

    fiscal_year: FiscalYear
    currency: str
    database: DatabaseConfig
    ledger: LedgerConfig
    revenue_statuses: tuple[str, ...]
    logging: LoggingConfig
    display_mode: str


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Config section [{name}] must be a table.")
    return section


def _parse_fiscal_year(config_data: Mapping[str, Any]) -> FiscalYear:
    """
    Extract and validate the fiscal year from raw TOML configuration data.

    Args:
        config_data: Parsed TOML root dictionary.

    Returns:
        A FiscalYear instance.

    Raises:
        ValueError: if the fiscal year section or dates are missing/invalid.
    """
    fiscal_data = _section(config_data, "fiscal_year")

    try:
        start_raw = fiscal_data["start_date"]
        end_raw = fiscal_data["end_date"]
    except KeyError as exc:
        raise ValueError(
            "Config file is missing [fiscal_year].start_date or end_date."
        ) from exc

    try:
        start = date.fromisoformat(str(start_raw))
        end = date.fromisoformat(str(end_raw))
    except ValueError as exc:
        raise ValueError(
            "Invalid fiscal year dates, expected YYYY-MM-DD format."
        ) from exc

    if end < start:
        raise ValueError("Fiscal year end_date cannot be before start_date.")

    return FiscalYear(start_date=start, end_date=end)


def _non_negative_int(
    section: Mapping[str, Any], key: str, default: int, where: str
) -> int:
    raw_value = section.get(key, default)
    try:
        value = int(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected an integer."
        ) from exc
    if value < 0:
        raise ValueError(f"'{where}.{key}' must be >= 0 (got {value}).")
    return value


def _parse_ledger(raw: Mapping[str, Any]) -> LedgerConfig:
    section = _section(raw, "ledger")
    return LedgerConfig(
        months_back=_non_negative_int(section, "months_back", 12, "ledger"),
        months_ahead=_non_negative_int(section, "months_ahead", 12, "ledger"),
        due_soon_days=_non_negative_int(section, "due_soon_days", 3, "ledger"),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB Payables application configuration from a TOML file.

    Expected sections in the TOML file
    ----------------------------------
    [fiscal_year]
        start_date / end_date (YYYY-MM-DD). Mandatory.

    [accounting]
        currency (default "BRL").

    [database]
        engine ("sqlite") and path to the SQLite file.

    [ledger]
        months_back, months_ahead (default generation horizon) and
        due_soon_days (alert window).

    [sales]
        revenue_statuses: list of sale statuses counted as revenue
        (default ["paid", "completed"]).

    [logging]
        level (default "INFO") and optional file.

    [display]
        mode: "table", "csv" or "both".

    All file paths are resolved relative to the directory of the TOML file.

    Parameters
    ----------
    config_path:
        Path to the TOML configuration file. Defaults to
        ``smb_payables_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILENAME).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    fiscal_year = _parse_fiscal_year(raw)

    accounting_section = _section(raw, "accounting")
    currency = str(accounting_section.get("currency") or "BRL")

    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/smb_payables.sqlite"
    database_config = DatabaseConfig(
        engine=db_engine, path=(base_dir / str(db_path_raw)).resolve()
    )

    ledger = _parse_ledger(raw)

    sales_section = _section(raw, "sales")
    statuses_raw = sales_section.get("revenue_statuses", ["paid", "completed"])
    if not isinstance(statuses_raw, list) or not all(
        isinstance(s, str) for s in statuses_raw
    ):
        raise ValueError("'sales.revenue_statuses' must be a list of strings.")
    revenue_statuses = tuple(s.lower() for s in statuses_raw)

    logging_section = _section(raw, "logging")
    log_file_raw = logging_section.get("file")
    logging_config = LoggingConfig(
        level=str(logging_section.get("level") or "INFO").upper(),
        file=(base_dir / str(log_file_raw)).resolve() if log_file_raw else None,
    )

    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid value for 'display.mode': {display_mode!r}. "
            f"Expected one of {', '.join(DISPLAY_MODES)}."
        )

    return AppConfig(
        fiscal_year=fiscal_year,
        currency=currency,
        database=database_config,
        ledger=ledger,
        revenue_statuses=revenue_statuses,
        logging=logging_config,
        display_mode=display_mode,
    )
