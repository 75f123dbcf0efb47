# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Invoice and expense records consumed by the aggregation core.

Records are fetched by an external data layer (REST API, managed backend,
CSV export) and arrive as loosely typed mappings: amounts may be strings
with currency symbols, dates may be ISO strings or timestamps, keys may be
camelCase or snake_case. This module turns such mappings into immutable,
typed records, or reports precisely why a record cannot be used.

Key components
--------------
- InvoiceStatus :
    Closed set of invoice lifecycle labels.
- InvoiceRecord / ExpenseRecord :
    Typed, validated records (amounts are non-negative Decimals).
- SkippedRecord :
    Description of a record excluded from a computation.
- parse_invoice / parse_expense :
    Strict parsers raising RecordValidationError.
- split_valid_records :
    Partial-failure helper used by the metrics module: parses a batch and
    separates usable records from skipped ones.
"""

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, TypeVar, Union

import pandas as pd

from .errors import RecordValidationError

logger = logging.getLogger(__name__)


class InvoiceStatus(str, Enum):
    """Lifecycle label of an invoice."""

    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"
    DRAFT = "draft"
    UNPAID = "unpaid"


@dataclass(frozen=True)
class InvoiceRecord:
    """
    A validated invoice.

    Only ``date``, ``amount`` and ``status`` take part in aggregation; the
    other attributes are carried for display purposes.
    """

    id: str
    date: date
    amount: Decimal
    status: InvoiceStatus
    due_date: Optional[date] = None
    customer: str = ""
    email: str = ""
    description: str = ""
    notes: str = ""
    items: tuple = ()

    @property
    def is_paid(self) -> bool:
        return self.status is InvoiceStatus.PAID


@dataclass(frozen=True)
class ExpenseRecord:
    """A validated expense. ``category`` drives the category breakdown."""

    id: str
    date: date
    amount: Decimal
    category: str = ""
    description: str = ""
    vendor: str = ""
    payment_method: str = ""
    receipt: bool = False
    recurring: bool = False
    notes: str = ""


@dataclass(frozen=True)
class SkippedRecord:
    """A record excluded from a computation, with the reason why."""

    kind: str
    record_id: Optional[str]
    reason: str


# Currency symbols, thousands separators and whitespace tolerated in amounts.
_AMOUNT_NOISE = re.compile(r"[\s,$€£¥]")

# ISO-8601 date, optionally followed by a time and a UTC offset.
_ISO_DATE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"([T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$"
)


def _lookup(raw: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-None value found under any of ``keys``."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def _record_id(raw: Mapping[str, Any]) -> Optional[str]:
    value = raw.get("id")
    if value is None:
        return None
    return str(value)


def coerce_amount(value: Any, record_id: Optional[str] = None) -> Decimal:
    """
    Convert a raw monetary value into a non-negative Decimal.

    Accepted inputs: Decimal, int, float and numeric strings. Strings may
    carry a currency symbol, thousands separators and surrounding spaces
    (e.g. ``"$1,250.00"``).

    Raises:
        RecordValidationError: if the value is missing, boolean, not a
            finite number, or negative.
    """
    if value is None or isinstance(value, bool):
        raise RecordValidationError(
            f"Invalid amount {value!r}", record_id=record_id, field="amount"
        )

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        cleaned = _AMOUNT_NOISE.sub("", str(value))
        if not cleaned:
            raise RecordValidationError(
                f"Invalid amount {value!r}", record_id=record_id, field="amount"
            )
        try:
            amount = Decimal(cleaned)
        except InvalidOperation as exc:
            raise RecordValidationError(
                f"Invalid amount {value!r}", record_id=record_id, field="amount"
            ) from exc

    if not amount.is_finite():
        raise RecordValidationError(
            f"Invalid amount {value!r}", record_id=record_id, field="amount"
        )
    if amount < 0:
        raise RecordValidationError(
            f"Negative amount {value!r}", record_id=record_id, field="amount"
        )
    return amount


def coerce_date(
    value: Any,
    record_id: Optional[str] = None,
    field: str = "date",
) -> date:
    """
    Convert a raw date value (date, datetime, Timestamp or ISO string).

    Strings must be ISO-8601 dates (``YYYY-MM-DD``, optionally with a
    time). Relative words such as ``"today"`` and bare numbers (epoch
    offsets) are rejected.

    Raises:
        RecordValidationError: if the value is missing or unparsable.
    """
    if value is pd.NaT:
        raise RecordValidationError(
            f"Missing {field}", record_id=record_id, field=field
        )
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise RecordValidationError(
            f"Missing {field}", record_id=record_id, field=field
        )
    if not isinstance(value, str) or not _ISO_DATE.match(value.strip()):
        raise RecordValidationError(
            f"Invalid {field} {value!r}, expected YYYY-MM-DD",
            record_id=record_id,
            field=field,
        )
    value = value.strip()
    try:
        ts = pd.to_datetime(value, errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise RecordValidationError(
            f"Invalid {field} {value!r}", record_id=record_id, field=field
        ) from exc
    if pd.isna(ts) or not isinstance(ts, pd.Timestamp):
        raise RecordValidationError(
            f"Invalid {field} {value!r}", record_id=record_id, field=field
        )
    return ts.date()


def coerce_status(value: Any, record_id: Optional[str] = None) -> InvoiceStatus:
    """Parse an invoice status, case-insensitively."""
    if isinstance(value, InvoiceStatus):
        return value
    try:
        return InvoiceStatus(str(value).strip().lower())
    except ValueError as exc:
        raise RecordValidationError(
            f"Unknown invoice status {value!r}", record_id=record_id, field="status"
        ) from exc


def parse_invoice(raw: Mapping[str, Any]) -> InvoiceRecord:
    """
    Build an InvoiceRecord from a loosely typed mapping.

    Both ``due_date`` and ``dueDate`` spellings are accepted. An unparsable
    optional due date is ignored rather than rejecting the whole invoice,
    since it takes no part in aggregation.
    """
    record_id = _record_id(raw)
    invoice_date = coerce_date(raw.get("date"), record_id)
    amount = coerce_amount(raw.get("amount"), record_id)
    status = coerce_status(raw.get("status"), record_id)

    due_raw = _lookup(raw, "due_date", "dueDate")
    due_date: Optional[date] = None
    if due_raw not in (None, ""):
        try:
            due_date = coerce_date(due_raw, record_id, field="due_date")
        except RecordValidationError:
            logger.debug("Ignoring invalid due date %r on invoice %s", due_raw, record_id)

    items = raw.get("items") or ()
    return InvoiceRecord(
        id=record_id or "",
        date=invoice_date,
        amount=amount,
        status=status,
        due_date=due_date,
        customer=_text(_lookup(raw, "customer", "client_name", "clientName")),
        email=_text(raw.get("email")),
        description=_text(raw.get("description")),
        notes=_text(raw.get("notes")),
        items=tuple(items) if isinstance(items, (list, tuple)) else (),
    )


def parse_expense(raw: Mapping[str, Any]) -> ExpenseRecord:
    """Build an ExpenseRecord from a loosely typed mapping."""
    record_id = _record_id(raw)
    expense_date = coerce_date(raw.get("date"), record_id)
    amount = coerce_amount(raw.get("amount"), record_id)

    return ExpenseRecord(
        id=record_id or "",
        date=expense_date,
        amount=amount,
        category=_text(raw.get("category")).strip(),
        description=_text(raw.get("description")),
        vendor=_text(raw.get("vendor")),
        payment_method=_text(_lookup(raw, "payment_method", "paymentMethod")),
        receipt=bool(raw.get("receipt") or False),
        recurring=bool(_lookup(raw, "recurring", "is_recurring", "isRecurring") or False),
        notes=_text(raw.get("notes")),
    )


RecordT = TypeVar("RecordT", InvoiceRecord, ExpenseRecord)


def split_valid_records(
    raws: Iterable[Union[RecordT, Mapping[str, Any]]],
    parser: Callable[[Mapping[str, Any]], RecordT],
    kind: str,
    record_type: type,
) -> tuple[list[RecordT], list[SkippedRecord]]:
    """
    Parse a batch of raw records, separating usable ones from skipped ones.

    Already-typed records (instances of ``record_type``) pass through
    untouched. Any RecordValidationError excludes only the offending record;
    the rest of the batch is still returned.

    Returns:
        (records, skipped), both in input order.
    """
    records: list[RecordT] = []
    skipped: list[SkippedRecord] = []

    for raw in raws:
        if isinstance(raw, record_type):
            records.append(raw)
            continue
        if not isinstance(raw, Mapping):
            skipped.append(
                SkippedRecord(
                    kind=kind,
                    record_id=None,
                    reason=f"Unsupported record type {type(raw).__name__}",
                )
            )
            logger.warning("Skipping %s: unsupported type %s", kind, type(raw).__name__)
            continue
        try:
            records.append(parser(raw))
        except RecordValidationError as exc:
            skipped.append(
                SkippedRecord(kind=kind, record_id=exc.record_id, reason=str(exc))
            )
            logger.warning("Skipping %s %s: %s", kind, exc.record_id, exc)

    return records, skipped
