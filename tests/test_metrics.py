from datetime import date
from decimal import Decimal

import pytest

from smb_books.metrics import (
    MonthlyDataPoint,
    MonthWindow,
    compute_financial_metrics,
    compute_month_over_month,
    recent_activity,
)

INVOICES = [
    {"id": "i1", "amount": 100, "status": "paid", "date": "2024-01-15"},
    {"id": "i2", "amount": 50, "status": "pending", "date": "2024-02-01"},
]
EXPENSES = [{"id": "e1", "amount": 30, "date": "2024-01-20"}]


def _mixed_records():
    invoices = [
        {"id": "a", "amount": "1,200.50", "status": "paid", "date": "2024-03-05"},
        {"id": "b", "amount": 300, "status": "overdue", "date": "2024-03-20"},
        {"id": "c", "amount": 80.25, "status": "draft", "date": "2024-05-01"},
        {"id": "d", "amount": 420, "status": "PAID", "date": "2024-06-30"},
        {"id": "e", "amount": 10, "status": "unpaid", "date": "2024-06-01"},
    ]
    expenses = [
        {"id": "x", "amount": 99.99, "date": "2024-03-10", "category": "Software"},
        {"id": "y", "amount": "$500", "date": "2024-04-02", "category": "Rent"},
        {"id": "z", "amount": 12.01, "date": "2024-06-15"},
    ]
    return invoices, expenses


def test_scenario_summary_and_monthly_buckets() -> None:
    """Paid invoice in January, pending invoice in February, one January expense."""
    result = compute_financial_metrics(INVOICES, EXPENSES)

    s = result.summary
    assert s.total_revenue == Decimal("100")
    assert s.outstanding_invoices == Decimal("50")
    assert s.total_expenses == Decimal("30")
    assert s.net_profit == Decimal("70")

    assert [p.period for p in result.monthly_data] == ["2024-01", "2024-02"]
    jan, feb = result.monthly_data
    assert jan.month == "Jan"
    assert (jan.revenue, jan.expenses, jan.profit) == (100, 30, 70)
    assert feb.month == "Feb"
    assert (feb.revenue, feb.expenses, feb.profit) == (0, 0, 0)
    assert result.skipped == []


def test_empty_input_yields_zeroed_summary() -> None:
    result = compute_financial_metrics([], [])

    s = result.summary
    assert (s.total_revenue, s.total_expenses, s.net_profit, s.outstanding_invoices) == (
        0,
        0,
        0,
        0,
    )
    assert result.monthly_data == []


def test_empty_input_with_window_yields_all_zero_series() -> None:
    window = MonthWindow.trailing(date(2024, 12, 1), months=12)

    result = compute_financial_metrics([], [], window=window)

    assert len(result.monthly_data) == 12
    assert all(
        p.revenue == 0 and p.expenses == 0 and p.profit == 0 for p in result.monthly_data
    )


def test_summary_and_partition_invariants() -> None:
    invoices, expenses = _mixed_records()
    result = compute_financial_metrics(invoices, expenses)
    s = result.summary

    assert s.net_profit == s.total_revenue - s.total_expenses
    assert s.total_revenue + s.outstanding_invoices == (
        Decimal("1200.50") + 300 + Decimal("80.25") + 420 + 10
    )
    # Every status other than "paid" counts as outstanding.
    assert s.outstanding_invoices == Decimal("390.25")


def test_monthly_sums_match_summary_when_window_covers_all_records() -> None:
    invoices, expenses = _mixed_records()
    result = compute_financial_metrics(invoices, expenses)

    assert sum(p.revenue for p in result.monthly_data) == result.summary.total_revenue
    assert sum(p.expenses for p in result.monthly_data) == result.summary.total_expenses
    # March..June, one point per month, chronological.
    assert [p.period for p in result.monthly_data] == [
        "2024-03",
        "2024-04",
        "2024-05",
        "2024-06",
    ]
    may = result.monthly_data[2]
    assert (may.revenue, may.expenses) == (0, 0)


def test_results_are_deterministic() -> None:
    invoices, expenses = _mixed_records()

    first = compute_financial_metrics(invoices, expenses)
    second = compute_financial_metrics(list(reversed(invoices)), list(reversed(expenses)))

    assert first.summary == compute_financial_metrics(invoices, expenses).summary
    assert first.summary == second.summary
    assert first.monthly_data == second.monthly_data


def test_explicit_window_excludes_out_of_window_records_from_buckets_only() -> None:
    invoices = [
        {"id": "old", "amount": 1000, "status": "paid", "date": "2022-06-01"},
        {"id": "new", "amount": 200, "status": "paid", "date": "2024-11-15"},
    ]
    window = MonthWindow.trailing(date(2024, 12, 31), months=12)

    result = compute_financial_metrics(invoices, [], window=window)

    assert result.summary.total_revenue == Decimal("1200")
    assert len(result.monthly_data) == 12
    assert result.monthly_data[0].period == "2024-01"
    assert result.monthly_data[-1].period == "2024-12"
    assert sum(p.revenue for p in result.monthly_data) == Decimal("200")
    assert result.monthly_data[10].revenue == Decimal("200")


def test_invalid_records_are_skipped_and_reported() -> None:
    invoices = INVOICES + [
        {"id": "bad-date", "amount": 10, "status": "paid", "date": "not a date"},
        {"id": "bad-amount", "amount": "abc", "status": "paid", "date": "2024-01-02"},
        {"id": "bad-status", "amount": 10, "status": "refunded", "date": "2024-01-02"},
        {"id": "bad-now", "amount": 10, "status": "paid", "date": "now"},
        {"id": "bad-today", "amount": 10, "status": "paid", "date": "today"},
        {"id": "bad-epoch", "amount": 10, "status": "paid", "date": 20240115},
    ]
    expenses = EXPENSES + [{"id": "neg", "amount": -4, "date": "2024-01-03"}]

    result = compute_financial_metrics(invoices, expenses)

    assert result.summary.total_revenue == Decimal("100")
    assert result.summary.total_expenses == Decimal("30")
    assert {(s.kind, s.record_id) for s in result.skipped} == {
        ("invoice", "bad-date"),
        ("invoice", "bad-amount"),
        ("invoice", "bad-status"),
        ("invoice", "bad-now"),
        ("invoice", "bad-today"),
        ("invoice", "bad-epoch"),
        ("expense", "neg"),
    }


def test_month_window_validation() -> None:
    with pytest.raises(ValueError):
        MonthWindow.trailing(date(2024, 1, 1), months=0)
    with pytest.raises(ValueError):
        MonthWindow(start=date(2024, 5, 1), end=date(2024, 4, 30))

    window = MonthWindow.trailing(date(2024, 3, 15), months=3)
    assert window.start == date(2024, 1, 1)
    assert [str(m) for m in window.months()] == ["2024-01", "2024-02", "2024-03"]
    assert MonthWindow.covering([]) is None


def _point(period: str, revenue: str, expenses: str) -> MonthlyDataPoint:
    r, e = Decimal(revenue), Decimal(expenses)
    return MonthlyDataPoint(month="", period=period, revenue=r, expenses=e, profit=r - e)


def test_month_over_month_change() -> None:
    series = [_point("2024-01", "100", "50"), _point("2024-02", "150", "25")]

    change = compute_month_over_month(series)

    assert change["revenue"] == Decimal("50.00")
    assert change["expenses"] == Decimal("-50.00")
    assert change["profit"] == Decimal("150.00")


def test_month_over_month_undefined_cases() -> None:
    """Less than two months, or a zero previous value, gives None."""
    assert compute_month_over_month([]) == {
        "revenue": None,
        "expenses": None,
        "profit": None,
    }

    change = compute_month_over_month(
        [_point("2024-01", "0", "10"), _point("2024-02", "100", "10")]
    )
    assert change["revenue"] is None
    assert change["expenses"] == Decimal("0.00")


def test_recent_activity_orders_newest_first_and_signs_expenses() -> None:
    invoices = [
        {"id": "i1", "amount": 100, "status": "paid", "date": "2024-01-15"},
        {"id": "i2", "amount": 50, "status": "pending", "date": "2024-02-01"},
        {"id": "bad", "amount": "x", "status": "paid", "date": "2024-03-01"},
    ]
    expenses = [
        {"id": "e1", "amount": 30, "date": "2024-02-01", "category": "Travel"},
        {"id": "e2", "amount": 5, "date": "2023-12-31"},
    ]

    items = recent_activity(invoices, expenses, limit=3)

    assert [(a.kind, a.record_id) for a in items] == [
        ("expense", "e1"),
        ("invoice", "i2"),
        ("invoice", "i1"),
    ]
    assert items[0].amount == Decimal("-30")
    assert items[0].status == "Expense"
    assert items[0].description == "Travel"
    assert items[1].status == "Pending"
    assert items[2].description == "Invoice i1"
