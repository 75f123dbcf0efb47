import json

import pytest

from smb_books.io import read_expense_rows, read_fields_json, read_invoice_rows
from smb_books.metrics import compute_financial_metrics


def test_read_invoice_rows_normalizes_columns_and_empty_cells(tmp_path) -> None:
    path = tmp_path / "invoices.csv"
    path.write_text(
        "ID,Date,Amount,Status,dueDate,Customer\n"
        'inv-1,2024-01-15,"$1,100.00",paid,2024-02-14,Acme\n'
        "inv-2,2024-02-01,50,pending,,\n",
        encoding="utf-8",
    )

    rows = read_invoice_rows(path)

    assert rows[0] == {
        "id": "inv-1",
        "date": "2024-01-15",
        "amount": "$1,100.00",
        "status": "paid",
        "due_date": "2024-02-14",
        "customer": "Acme",
    }
    assert rows[1]["due_date"] is None
    assert rows[1]["customer"] is None


def test_read_invoice_rows_requires_columns(tmp_path) -> None:
    path = tmp_path / "invoices.csv"
    path.write_text("id,date,amount\n1,2024-01-01,10\n", encoding="utf-8")

    with pytest.raises(ValueError, match="status"):
        read_invoice_rows(path)


def test_cell_level_problems_are_left_to_the_aggregator(tmp_path) -> None:
    """A bad cell does not fail the read; the aggregator skips the row."""
    invoices = tmp_path / "invoices.csv"
    invoices.write_text(
        "id,date,amount,status\n"
        "a,2024-01-15,100,paid\n"
        "b,not-a-date,20,paid\n"
        "c,2024-01-20,,pending\n",
        encoding="utf-8",
    )
    expenses = tmp_path / "expenses.csv"
    expenses.write_text("id,date,amount,category\nx,2024-01-20,30,Rent\n", encoding="utf-8")

    result = compute_financial_metrics(read_invoice_rows(invoices), read_expense_rows(expenses))

    assert result.summary.total_revenue == 100
    assert result.summary.total_expenses == 30
    assert sorted(s.record_id for s in result.skipped) == ["b", "c"]


def test_read_expense_rows_errors(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        read_expense_rows(tmp_path / "missing.csv")

    path = tmp_path / "expenses.csv"
    path.write_text("id,amount\n1,10\n", encoding="utf-8")
    with pytest.raises(ValueError, match="date"):
        read_expense_rows(path)


def test_read_expense_rows_header_only(tmp_path) -> None:
    path = tmp_path / "expenses.csv"
    path.write_text("id,date,amount\n", encoding="utf-8")

    assert read_expense_rows(path) == []


def test_read_fields_json(tmp_path) -> None:
    path = tmp_path / "fields.json"
    path.write_text(json.dumps({"invoice_number": "INV-2"}), encoding="utf-8")
    assert read_fields_json(path) == {"invoice_number": "INV-2"}

    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_fields_json(path)

    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        read_fields_json(path)
