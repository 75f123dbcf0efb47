# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Financial metrics aggregation for SMB Books.

This module computes every figure shown on the dashboard and reports pages
from plain lists of invoices and expenses:

1. Financial summary
   -----------------
   ``compute_financial_metrics()`` returns a FinancialSummary with:
   - total_revenue        : sum of *paid* invoice amounts,
   - outstanding_invoices : sum of every other invoice amount,
   - total_expenses       : sum of all expense amounts,
   - net_profit           : total_revenue - total_expenses.
   The summary always covers every valid record, whatever the window.

2. Monthly series
   --------------
   Records are bucketed by calendar month over a MonthWindow. Each month
   of the window yields exactly one MonthlyDataPoint (zeros when no record
   falls into it), in ascending chronological order. Without an explicit
   window, the series spans from the earliest to the latest record month.

3. Expense breakdown
   -----------------
   ``compute_expense_breakdown()`` groups expenses by category, sorted by
   descending total then category name.

4. Dashboard helpers
   -----------------
   ``compute_month_over_month()`` and ``recent_activity()`` feed the
   "from last month" indicators and the recent activity list.

Partial failures
----------------
Input records come from an external store and are not fully trusted.
A record with an unparsable date or amount (or an unknown status) is
excluded from every sum and listed in the ``skipped`` attribute of the
result; the computation itself never fails because of one bad record.

Determinism
-----------
All functions are pure. Amounts are Decimals end to end, and nothing here
reads the clock: a trailing window is built from an explicit end date
(``MonthWindow.trailing(end, months=12)``).
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union

import pandas as pd

from .records import (
    ExpenseRecord,
    InvoiceRecord,
    SkippedRecord,
    parse_expense,
    parse_invoice,
    split_valid_records,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

DEFAULT_CATEGORY = "Other"

InvoiceInput = Union[InvoiceRecord, Mapping[str, Any]]
ExpenseInput = Union[ExpenseRecord, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonthlyDataPoint:
    """
    Figures for one calendar month.

    Attributes
    ----------
    month :
        Three-letter month abbreviation used as chart label (e.g. 'Jan').
    period :
        Unambiguous 'YYYY-MM' key of the month.
    revenue, expenses, profit :
        Paid revenue, expenses and their difference for the month.
    """

    month: str
    period: str
    revenue: Decimal
    expenses: Decimal
    profit: Decimal


@dataclass(frozen=True)
class FinancialSummary:
    """Headline totals of the dashboard."""

    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    outstanding_invoices: Decimal


@dataclass(frozen=True)
class FinancialMetrics:
    """Summary, monthly series and skipped records of one aggregation."""

    summary: FinancialSummary
    monthly_data: list[MonthlyDataPoint]
    skipped: list[SkippedRecord] = field(default_factory=list)


@dataclass(frozen=True)
class CategoryAmount:
    """Total expenses for one category."""

    category: str
    amount: Decimal
    count: int
    share: Decimal


@dataclass(frozen=True)
class ExpenseBreakdown:
    """Expenses grouped by category, largest first."""

    total: Decimal
    categories: list[CategoryAmount]
    skipped: list[SkippedRecord] = field(default_factory=list)


@dataclass(frozen=True)
class ActivityItem:
    """One line of the recent activity feed."""

    date: date
    kind: str
    record_id: str
    description: str
    amount: Decimal
    status: str


# ---------------------------------------------------------------------------
# Reporting window
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonthWindow:
    """
    Inclusive range of calendar months used to bucket records.

    ``start`` and ``end`` may be any day of their month; only the month
    matters.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if (self.end.year, self.end.month) < (self.start.year, self.start.month):
            raise ValueError("Month window end cannot be before its start.")

    @classmethod
    def trailing(cls, end: date, months: int = 12) -> "MonthWindow":
        """Window of ``months`` calendar months ending with the month of ``end``."""
        if months < 1:
            raise ValueError("A month window must contain at least one month.")
        last = pd.Period(end, freq="M")
        first = last - (months - 1)
        return cls(start=first.start_time.date(), end=end)

    @classmethod
    def covering(cls, dates: Iterable[date]) -> Optional["MonthWindow"]:
        """Smallest window containing every date, or None for no dates."""
        dates = list(dates)
        if not dates:
            return None
        return cls(start=min(dates), end=max(dates))

    def months(self) -> list[pd.Period]:
        """Return the months of the window in ascending order."""
        return list(
            pd.period_range(
                start=pd.Period(self.start, freq="M"),
                end=pd.Period(self.end, freq="M"),
                freq="M",
            )
        )


def _month_of(d: date) -> pd.Period:
    return pd.Period(d, freq="M")


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def _parse_inputs(
    invoices: Iterable[InvoiceInput],
    expenses: Iterable[ExpenseInput],
) -> tuple[list[InvoiceRecord], list[ExpenseRecord], list[SkippedRecord]]:
    invoice_records, skipped_invoices = split_valid_records(
        invoices, parse_invoice, "invoice", InvoiceRecord
    )
    expense_records, skipped_expenses = split_valid_records(
        expenses, parse_expense, "expense", ExpenseRecord
    )
    return invoice_records, expense_records, skipped_invoices + skipped_expenses


def compute_financial_metrics(
    invoices: Iterable[InvoiceInput],
    expenses: Iterable[ExpenseInput],
    *,
    window: Optional[MonthWindow] = None,
) -> FinancialMetrics:
    """Compute the financial summary and the monthly series.

    Steps:
        1. Parse raw records; invalid ones are set aside as skipped.
        2. Compute the summary totals over every valid record.
        3. Initialize a zero bucket for every month of the window, so that
           months without any record still appear in the series.
        4. Add paid invoice amounts and expense amounts to their month
           bucket (records outside an explicit window are not bucketed).
        5. Emit one MonthlyDataPoint per month, oldest first.

    Args:
        invoices: InvoiceRecord instances or raw invoice mappings.
        expenses: ExpenseRecord instances or raw expense mappings.
        window: Months to report. None spans the records' own months.

    Returns:
        A FinancialMetrics instance. ``compute_financial_metrics([], [])``
        yields a zeroed summary and an empty monthly series.
    """
    invoice_records, expense_records, skipped = _parse_inputs(invoices, expenses)

    # 1) Summary over all valid records.
    total_revenue = sum((i.amount for i in invoice_records if i.is_paid), ZERO)
    outstanding = sum((i.amount for i in invoice_records if not i.is_paid), ZERO)
    total_expenses = sum((e.amount for e in expense_records), ZERO)

    summary = FinancialSummary(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_profit=total_revenue - total_expenses,
        outstanding_invoices=outstanding,
    )

    # 2) Monthly buckets.
    if window is None:
        window = MonthWindow.covering(
            [i.date for i in invoice_records] + [e.date for e in expense_records]
        )
    months = window.months() if window is not None else []

    revenue_by_month: dict[pd.Period, Decimal] = {m: ZERO for m in months}
    expenses_by_month: dict[pd.Period, Decimal] = {m: ZERO for m in months}

    for invoice in invoice_records:
        if not invoice.is_paid:
            continue
        key = _month_of(invoice.date)
        if key in revenue_by_month:
            revenue_by_month[key] += invoice.amount

    for expense in expense_records:
        key = _month_of(expense.date)
        if key in expenses_by_month:
            expenses_by_month[key] += expense.amount

    monthly_data = [
        MonthlyDataPoint(
            month=m.strftime("%b"),
            period=str(m),
            revenue=revenue_by_month[m],
            expenses=expenses_by_month[m],
            profit=revenue_by_month[m] - expenses_by_month[m],
        )
        for m in months
    ]

    logger.debug(
        "Aggregated %d invoices and %d expenses over %d months (%d skipped)",
        len(invoice_records),
        len(expense_records),
        len(monthly_data),
        len(skipped),
    )

    return FinancialMetrics(summary=summary, monthly_data=monthly_data, skipped=skipped)


def compute_expense_breakdown(expenses: Iterable[ExpenseInput]) -> ExpenseBreakdown:
    """Group expenses by category.

    Missing or blank categories are reported under "Other". Groups are
    sorted by descending amount; ties are broken by category name so the
    order never depends on input order.

    Returns:
        ExpenseBreakdown with each group's amount, record count and share of
        the total (percent, 2 decimals; 0 when the total is 0).
    """
    records, skipped = split_valid_records(
        expenses, parse_expense, "expense", ExpenseRecord
    )

    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for expense in records:
        category = expense.category or DEFAULT_CATEGORY
        totals[category] = totals.get(category, ZERO) + expense.amount
        counts[category] = counts.get(category, 0) + 1

    total = sum(totals.values(), ZERO)

    def _share(amount: Decimal) -> Decimal:
        if total == 0:
            return ZERO
        return (amount * 100 / total).quantize(CENT, rounding=ROUND_HALF_UP)

    categories = [
        CategoryAmount(
            category=category,
            amount=amount,
            count=counts[category],
            share=_share(amount),
        )
        for category, amount in sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    ]

    return ExpenseBreakdown(total=total, categories=categories, skipped=skipped)


def _percent_change(current: Decimal, previous: Decimal) -> Optional[Decimal]:
    if previous == 0:
        return None
    return ((current - previous) * 100 / abs(previous)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )


def compute_month_over_month(
    monthly_data: Sequence[MonthlyDataPoint],
) -> dict[str, Optional[Decimal]]:
    """
    Percentage change between the last two months of a series.

    Returns a dict with keys 'revenue', 'expenses' and 'profit'. A value is
    None when the series has fewer than two months or when the previous
    month's figure is zero.
    """
    keys = ("revenue", "expenses", "profit")
    if len(monthly_data) < 2:
        return {k: None for k in keys}

    previous, current = monthly_data[-2], monthly_data[-1]
    return {
        k: _percent_change(getattr(current, k), getattr(previous, k)) for k in keys
    }


def recent_activity(
    invoices: Iterable[InvoiceInput],
    expenses: Iterable[ExpenseInput],
    limit: int = 5,
) -> list[ActivityItem]:
    """
    Build the recent activity feed: newest invoices and expenses first.

    Expenses carry a negative signed amount and the status "Expense";
    invoices carry their capitalised status. Invalid records are left out.
    """
    invoice_records, expense_records, _ = _parse_inputs(invoices, expenses)

    items = [
        ActivityItem(
            date=i.date,
            kind="invoice",
            record_id=i.id,
            description=i.description or f"Invoice {i.id}".strip(),
            amount=i.amount,
            status=i.status.value.capitalize(),
        )
        for i in invoice_records
    ]
    items += [
        ActivityItem(
            date=e.date,
            kind="expense",
            record_id=e.id,
            description=e.description or e.category or "Expense",
            amount=-e.amount,
            status="Expense",
        )
        for e in expense_records
    ]

    # Newest first; kind and id keep the order stable for same-day records.
    items.sort(key=lambda a: (a.kind, a.record_id))
    items.sort(key=lambda a: a.date, reverse=True)
    return items[: max(limit, 0)]
