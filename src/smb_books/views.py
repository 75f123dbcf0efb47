# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB Books.

Helpers that turn aggregation results into pandas DataFrames with a fixed
column order, ready for terminal display or CSV export. Decimal amounts are
rounded half-up to the requested number of decimals and exposed as floats.
"""

from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import pandas as pd

from .metrics import (
    ActivityItem,
    ExpenseBreakdown,
    FinancialSummary,
    MonthlyDataPoint,
)
from .records import SkippedRecord

SUMMARY_COLUMNS = ["metric", "amount"]
MONTHLY_COLUMNS = ["period", "month", "revenue", "expenses", "profit"]
BREAKDOWN_COLUMNS = ["category", "amount", "count", "share"]
ACTIVITY_COLUMNS = ["date", "kind", "id", "description", "amount", "status"]
SKIPPED_COLUMNS = ["kind", "id", "reason"]
CHANGE_COLUMNS = ["metric", "change_pct"]


def _round(value: Decimal, decimals: int) -> float:
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def summary_to_dataframe(summary: FinancialSummary, decimals: int = 2) -> pd.DataFrame:
    """One row per headline figure, in dashboard order."""
    rows = [
        ("total_revenue", summary.total_revenue),
        ("total_expenses", summary.total_expenses),
        ("net_profit", summary.net_profit),
        ("outstanding_invoices", summary.outstanding_invoices),
    ]
    return pd.DataFrame(
        [{"metric": name, "amount": _round(value, decimals)} for name, value in rows],
        columns=SUMMARY_COLUMNS,
    )


def monthly_to_dataframe(
    monthly_data: Sequence[MonthlyDataPoint], decimals: int = 2
) -> pd.DataFrame:
    """Monthly series, oldest month first."""
    return pd.DataFrame(
        [
            {
                "period": p.period,
                "month": p.month,
                "revenue": _round(p.revenue, decimals),
                "expenses": _round(p.expenses, decimals),
                "profit": _round(p.profit, decimals),
            }
            for p in monthly_data
        ],
        columns=MONTHLY_COLUMNS,
    )


def breakdown_to_dataframe(breakdown: ExpenseBreakdown, decimals: int = 2) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "category": c.category,
                "amount": _round(c.amount, decimals),
                "count": c.count,
                "share": float(c.share),
            }
            for c in breakdown.categories
        ],
        columns=BREAKDOWN_COLUMNS,
    )


def activity_to_dataframe(items: Sequence[ActivityItem], decimals: int = 2) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "date": a.date.isoformat(),
                "kind": a.kind,
                "id": a.record_id,
                "description": a.description,
                "amount": _round(a.amount, decimals),
                "status": a.status,
            }
            for a in items
        ],
        columns=ACTIVITY_COLUMNS,
    )


def skipped_to_dataframe(skipped: Sequence[SkippedRecord]) -> pd.DataFrame:
    """Records excluded from a computation, with the reason why."""
    return pd.DataFrame(
        [{"kind": s.kind, "id": s.record_id or "", "reason": s.reason} for s in skipped],
        columns=SKIPPED_COLUMNS,
    )


def change_to_dataframe(changes: Mapping[str, Optional[Decimal]]) -> pd.DataFrame:
    """Month-over-month changes; undefined changes are shown as NaN."""
    return pd.DataFrame(
        [
            {"metric": name, "change_pct": float(value) if value is not None else None}
            for name, value in changes.items()
        ],
        columns=CHANGE_COLUMNS,
    )
