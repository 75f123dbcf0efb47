# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB Books.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the CLI and the reporting helpers.

The aggregation core (records, metrics, render) never reads configuration
itself: the CLI turns these settings into explicit arguments.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "smb_books_config.toml"
DISPLAY_MODES = ("table", "csv", "both")


@dataclass(frozen=True)
class ReportingConfig:
    """
    Reporting window settings.

    ``window_end`` is the last month reported; None means the month of the
    current day, resolved by the caller.
    """

    months: int = 12
    window_end: Optional[date] = None


@dataclass(frozen=True)
class InvoiceConfig:
    currency_symbol: str = "$"
    tax_rate: Decimal = Decimal("0.10")


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB Books.

    This aggregates:
    - the reporting window,
    - invoice defaults (currency symbol and tax rate),
    - the default invoice template file, if any,
    - display options for CLI tables.
    """

    reporting: ReportingConfig
    invoice: InvoiceConfig
    default_template: Optional[Path]
    display_mode: str
    decimals: int

    @classmethod
    def defaults(cls) -> "AppConfig":
        """Configuration used when running without a config file."""
        return cls(
            reporting=ReportingConfig(),
            invoice=InvoiceConfig(),
            default_template=None,
            display_mode="table",
            decimals=2,
        )


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
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def parse_month(value: Any) -> date:
    """
    Parse a 'YYYY-MM' month (a full 'YYYY-MM-DD' date is also accepted).

    Returns the first day of the month.

    Raises:
        ValueError: if the value is not a valid month.
    """
    if isinstance(value, date):
        return value.replace(day=1)
    text = str(value).strip()
    try:
        if len(text) == 7:
            parsed = date.fromisoformat(f"{text}-01")
        else:
            parsed = date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid month {value!r}, expected YYYY-MM format.") from exc
    return parsed.replace(day=1)


def _parse_reporting(raw: Mapping[str, Any]) -> ReportingConfig:
    section = _section(raw, "reporting")

    raw_months = section.get("months", 12)
    try:
        months = int(raw_months)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'reporting.months' in the configuration. "
            "Expected an integer."
        ) from exc
    if months < 1:
        raise ValueError("'reporting.months' must be at least 1.")

    raw_end = section.get("window_end")
    window_end = parse_month(raw_end) if raw_end not in (None, "") else None

    return ReportingConfig(months=months, window_end=window_end)


def _parse_invoice(raw: Mapping[str, Any]) -> InvoiceConfig:
    section = _section(raw, "invoice")

    symbol = str(section.get("currency_symbol", "$"))

    raw_rate = section.get("tax_rate", "0.10")
    try:
        tax_rate = Decimal(str(raw_rate))
    except InvalidOperation as exc:
        raise ValueError(
            "Invalid value for 'invoice.tax_rate' in the configuration. "
            "Expected a number."
        ) from exc
    if not tax_rate.is_finite() or tax_rate < 0 or tax_rate > 1:
        raise ValueError("'invoice.tax_rate' must be between 0 and 1.")

    return InvoiceConfig(currency_symbol=symbol, tax_rate=tax_rate)


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB Books application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [reporting]
        ``months`` (length of the trailing window) and ``window_end``
        (optional 'YYYY-MM' last month).

    [invoice]
        ``currency_symbol`` and ``tax_rate`` used for rendered invoices.

    [templates]
        ``default``: optional invoice template file, resolved relative to
        the directory of the TOML file itself.

    [display]
        ``mode`` (table | csv | both) and ``decimals`` for CLI tables.

    Every section is optional.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``smb_books_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file cannot be parsed or holds invalid values.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Reporting and invoice sections
    reporting = _parse_reporting(raw)
    invoice = _parse_invoice(raw)

    # 2) Default template
    templates_section = _section(raw, "templates")
    template_raw = templates_section.get("default")
    default_template = (base_dir / str(template_raw)).resolve() if template_raw else None

    # 3) Display options
    display_section = _section(raw, "display")

    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        logger.warning(
            "Unknown display mode %r in %s, using 'table'", display_mode, config_file
        )
        display_mode = "table"
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2

    logger.debug("Loaded configuration from %s", config_file)

    return AppConfig(
        reporting=reporting,
        invoice=invoice,
        default_template=default_template,
        display_mode=display_mode,
        decimals=decimals,
    )
