# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB Books.

This module reads invoices and expenses exported as CSV files, and invoice
field values stored as JSON, into the loose mappings consumed by the
aggregation core.

Expected input formats
----------------------
Column names are case-insensitive and normalised to lower snake case
(``dueDate`` and ``Due Date`` both become ``due_date``).

1) Invoices
   --------
       id, date, amount, status [, due_date, customer, description, ...]

2) Expenses
   --------
       id, date, amount [, category, description, vendor, ...]

Cells are read as text and empty cells become None. Cell-level problems
(unparsable dates or amounts, unknown statuses) are NOT raised here: they
are left to the aggregator, which skips and reports the offending rows.
Only a structurally invalid file (missing required columns) raises a
ValueError.
"""

import json
import logging
import os
import re
from typing import Any, Union

import pandas as pd

logger = logging.getLogger(__name__)

INVOICE_COLUMNS = ("id", "date", "amount", "status")
EXPENSE_COLUMNS = ("id", "date", "amount")

PathLike = Union[str, "os.PathLike[str]"]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _snake_case(name: str) -> str:
    name = _CAMEL_BOUNDARY.sub("_", str(name).strip())
    return re.sub(r"[\s\-]+", "_", name).lower()


def _read_rows(path: PathLike, required: tuple[str, ...], kind: str) -> list[dict[str, Any]]:
    """
    Read a CSV file into a list of row mappings.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the file cannot be parsed or lacks a required column.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"{kind.capitalize()} file not found: {path}")

    try:
        df = pd.read_csv(path, dtype=str, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        df = pd.DataFrame(columns=list(required))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse {kind} CSV file: {path}") from exc

    df.columns = [_snake_case(c) for c in df.columns]

    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(
            f"Invalid {kind} CSV structure in {path}: missing column(s) "
            f"{', '.join(missing)}. Expected at least: {', '.join(required)} "
            "(column names are case-insensitive)."
        )

    # NaN -> None so that empty cells read as "missing".
    df = df.astype(object).where(df.notna(), None)
    rows = df.to_dict(orient="records")
    logger.debug("Read %d %s rows from %s", len(rows), kind, path)
    return rows


def read_invoice_rows(path: PathLike) -> list[dict[str, Any]]:
    """Read invoices from CSV. Required columns: id, date, amount, status."""
    return _read_rows(path, INVOICE_COLUMNS, "invoice")


def read_expense_rows(path: PathLike) -> list[dict[str, Any]]:
    """Read expenses from CSV. Required columns: id, date, amount."""
    return _read_rows(path, EXPENSE_COLUMNS, "expense")


def read_fields_json(path: PathLike) -> dict[str, Any]:
    """
    Read invoice field values from a JSON object file.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the content is not valid JSON or not an object.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Invoice fields file not found: {path}")

    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse invoice fields JSON file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid JSON root type in {path}, expected an object.")
    return data
