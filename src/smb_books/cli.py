# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB Books.

This module wires together the building blocks of SMB Books:

- application configuration (reporting window, invoice defaults, display),
- CSV readers for invoices and expenses,
- the aggregation core (financial metrics, expense breakdown, activity),
- the invoice template renderer,
- view helpers (tabular rendering and CSV export).

The CLI is intentionally thin: it does not implement any financial logic
itself. It resolves arguments and configuration into explicit inputs and
hands them to the core.


Commands
--------
- ``metrics``:
    Financial summary, monthly series over a trailing window,
    month-over-month change and the list of skipped records.
- ``breakdown``:
    Expenses grouped by category.
- ``activity``:
    Most recent invoices and expenses.
- ``render``:
    Render an invoice template as HTML or as an indented block tree.
    Without ``--fields`` the preview sample invoice is rendered.


Reporting window
----------------
The ``metrics`` command reports a trailing window of ``--months`` months
(``reporting.months`` in the configuration, 12 by default) ending with
``--window-end`` (``reporting.window_end``, or the current month).
``--all-months`` instead spans every month holding a record.

The current date is read once, here, and passed to the core explicitly.


Display modes
-------------
``--display-mode`` (or ``display.mode``) selects ``table`` (stdout),
``csv`` (files written to ``--output``, ``data/output`` by default) or
``both``.
"""

import argparse
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import DEFAULT_CONFIG_FILE, AppConfig, load_app_config, parse_month
from .errors import ConfigValidationWarning, TemplateConfigError
from .invoices import InvoiceFieldValues, sample_fields
from .io import read_expense_rows, read_fields_json, read_invoice_rows
from .metrics import (
    MonthWindow,
    compute_expense_breakdown,
    compute_financial_metrics,
    compute_month_over_month,
    recent_activity,
)
from .render import RenderNode, render_invoice, to_html
from .template_config import InvoiceTemplate, default_template, load_template
from .views import (
    activity_to_dataframe,
    breakdown_to_dataframe,
    change_to_dataframe,
    monthly_to_dataframe,
    skipped_to_dataframe,
    summary_to_dataframe,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_books.cli",
        description=(
            "SMB Books - Invoicing & Expense Analytics for SMBs. "
            "Aggregates invoices and expenses into dashboard metrics and "
            "renders invoices from configurable templates."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_books and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used when "
            "present, built-in defaults otherwise."
        ),
    )
    ap.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    # Display options
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files are written when display mode "
            "includes 'csv'. If omitted, 'data/output' is used."
        ),
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # ------------------------------------------------------------------
    # metrics
    # ------------------------------------------------------------------
    metrics = subparsers.add_parser(
        "metrics",
        help="Financial summary and monthly revenue / expenses / profit.",
    )
    metrics.add_argument("--invoices", required=True, help="Invoices CSV file.")
    metrics.add_argument("--expenses", required=True, help="Expenses CSV file.")
    metrics.add_argument(
        "--window-end",
        dest="window_end",
        metavar="YYYY-MM",
        help="Last month of the reporting window (default: current month).",
    )
    window_group = metrics.add_mutually_exclusive_group()
    window_group.add_argument(
        "--months",
        type=int,
        help="Number of months in the trailing window (default: from config).",
    )
    window_group.add_argument(
        "--all-months",
        dest="all_months",
        action="store_true",
        help="Report every month from the earliest to the latest record.",
    )

    # ------------------------------------------------------------------
    # breakdown
    # ------------------------------------------------------------------
    breakdown = subparsers.add_parser(
        "breakdown",
        help="Expenses grouped by category.",
    )
    breakdown.add_argument("--expenses", required=True, help="Expenses CSV file.")

    # ------------------------------------------------------------------
    # activity
    # ------------------------------------------------------------------
    activity = subparsers.add_parser(
        "activity",
        help="Most recent invoices and expenses.",
    )
    activity.add_argument("--invoices", required=True, help="Invoices CSV file.")
    activity.add_argument("--expenses", required=True, help="Expenses CSV file.")
    activity.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Maximum number of items to show (default: 5).",
    )

    # ------------------------------------------------------------------
    # render
    # ------------------------------------------------------------------
    render = subparsers.add_parser(
        "render",
        help="Render an invoice from a template.",
    )
    render.add_argument(
        "--template",
        help=(
            "Template file (TOML or JSON). If omitted, templates.default from "
            "the configuration or the built-in default template is used."
        ),
    )
    render.add_argument(
        "--fields",
        help="JSON file with the invoice field values (default: sample invoice).",
    )
    render.add_argument(
        "--format",
        dest="output_format",
        choices=["html", "tree"],
        default="html",
        help="Output format (default: html).",
    )
    render.add_argument(
        "--out",
        dest="out_path",
        help="Write the output to this file instead of stdout.",
    )

    return ap


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


def _load_config(args: argparse.Namespace) -> AppConfig:
    if args.config_path:
        return load_app_config(args.config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    return AppConfig.defaults()


def _emit(
    tables: Sequence[tuple[str, str, pd.DataFrame]],
    args: argparse.Namespace,
    config: AppConfig,
) -> None:
    """Print and/or export (title, file stem, DataFrame) tables."""
    display_mode = args.display_mode or config.display_mode

    if display_mode in {"table", "both"}:
        for title, _, df in tables:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(none)")
            else:
                print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for _, stem, df in tables:
            path = output_dir / f"{stem}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _resolve_window(
    args: argparse.Namespace, config: AppConfig, today: date
) -> Optional[MonthWindow]:
    if args.all_months:
        return None
    if args.window_end:
        end = parse_month(args.window_end)
    else:
        end = config.reporting.window_end or today
    months = args.months if args.months is not None else config.reporting.months
    return MonthWindow.trailing(end, months=months)


def _handle_metrics(args: argparse.Namespace, config: AppConfig, today: date) -> None:
    window = _resolve_window(args, config, today)
    invoices = read_invoice_rows(args.invoices)
    expenses = read_expense_rows(args.expenses)

    result = compute_financial_metrics(invoices, expenses, window=window)

    if window is not None:
        print(f"Reporting window: {window.start:%Y-%m} to {window.end:%Y-%m}")
    else:
        print("Reporting window: all months with records")

    tables = [
        ("Financial summary", "summary", summary_to_dataframe(result.summary, config.decimals)),
        ("Monthly data", "monthly", monthly_to_dataframe(result.monthly_data, config.decimals)),
        (
            "Change from last month (%)",
            "month_over_month",
            change_to_dataframe(compute_month_over_month(result.monthly_data)),
        ),
    ]
    if result.skipped:
        tables.append(("Skipped records", "skipped", skipped_to_dataframe(result.skipped)))
    _emit(tables, args, config)


def _handle_breakdown(args: argparse.Namespace, config: AppConfig) -> None:
    result = compute_expense_breakdown(read_expense_rows(args.expenses))
    tables = [("Expenses by category", "breakdown", breakdown_to_dataframe(result, config.decimals))]
    if result.skipped:
        tables.append(("Skipped records", "skipped", skipped_to_dataframe(result.skipped)))
    _emit(tables, args, config)


def _handle_activity(args: argparse.Namespace, config: AppConfig) -> None:
    items = recent_activity(
        read_invoice_rows(args.invoices),
        read_expense_rows(args.expenses),
        limit=args.limit,
    )
    _emit([("Recent activity", "activity", activity_to_dataframe(items, config.decimals))], args, config)


def format_tree(node: RenderNode, indent: int = 0) -> str:
    """Indented outline of a render tree, one node per line."""
    label = node.tag
    if node.section:
        label += f" [{node.section}]"
    if node.text:
        label += f" {node.text!r}"
    lines = ["  " * indent + label]
    lines += [format_tree(child, indent + 1) for child in node.children]
    return "\n".join(lines)


def _resolve_template(
    args: argparse.Namespace, config: AppConfig
) -> tuple[InvoiceTemplate, list[ConfigValidationWarning]]:
    if args.template:
        return load_template(args.template)
    if config.default_template is not None:
        return load_template(config.default_template)
    return default_template(), []


def _resolve_fields(args: argparse.Namespace, config: AppConfig) -> InvoiceFieldValues:
    if args.fields:
        raw = read_fields_json(args.fields)
        raw.setdefault("currency_symbol", config.invoice.currency_symbol)
        raw.setdefault("tax_rate", str(config.invoice.tax_rate))
        return InvoiceFieldValues.from_mapping(raw)
    return replace(
        sample_fields(),
        currency_symbol=config.invoice.currency_symbol,
        tax_rate=config.invoice.tax_rate,
    )


def _handle_render(args: argparse.Namespace, config: AppConfig) -> None:
    template, warnings = _resolve_template(args, config)
    fields = _resolve_fields(args, config)

    rendered = render_invoice(template, fields)
    for warning in warnings + rendered.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if args.output_format == "tree":
        output = format_tree(rendered.tree)
    else:
        output = to_html(rendered.tree)

    if args.out_path:
        out = Path(args.out_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(output + "\n", encoding="utf-8")
        print(f"Wrote {out}")
    else:
        print(output)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the SMB Books CLI.

    Parses command-line arguments, configures logging, loads the
    application configuration and dispatches to the selected command.
    Input and template errors are reported through ``parser.error``
    (exit status 2).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_books version {__version__}")
        return

    _configure_logging(args.verbose)

    if not args.command:
        parser.error("a command is required (metrics, breakdown, activity, render).")

    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    today = _today()
    logger.debug("Running %r with today=%s", args.command, today)

    try:
        if args.command == "metrics":
            _handle_metrics(args, config, today)
        elif args.command == "breakdown":
            _handle_breakdown(args, config)
        elif args.command == "activity":
            _handle_activity(args, config)
        elif args.command == "render":
            _handle_render(args, config)
    except (TemplateConfigError, FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))


if __name__ == "__main__":
    main()
