from decimal import Decimal

import pytest

from smb_books.invoices import (
    InvoiceFieldValues,
    LineItem,
    compute_invoice_totals,
    format_money,
    sample_fields,
)
from smb_books.render import render_invoice
from smb_books.template_config import InvoiceTemplate, LayoutConfig


def test_sample_invoice_totals() -> None:
    """The preview invoice: 2 x 250 + 1 x 500, 10% tax."""
    totals = sample_fields().resolved_totals()

    assert totals.subtotal == Decimal("1000.00")
    assert totals.discount == Decimal("0.00")
    assert totals.tax_amount == Decimal("100.00")
    assert totals.total == Decimal("1100.00")


def test_line_item_amount_is_rounded_to_the_cent() -> None:
    item = LineItem("Hours", Decimal("1.5"), Decimal("33.333"))

    assert item.amount == Decimal("50.00")


def test_discount_reduces_taxable_base_and_is_capped() -> None:
    items = [LineItem("A", Decimal("1"), Decimal("200"))]

    totals = compute_invoice_totals(items, tax_rate=Decimal("0.10"), discount=Decimal("50"))
    assert totals.tax_amount == Decimal("15.00")
    assert totals.total == Decimal("165.00")

    capped = compute_invoice_totals(items, tax_rate=Decimal("0.10"), discount=Decimal("500"))
    assert capped.discount == Decimal("200.00")
    assert capped.total == Decimal("0.00")


def test_explicit_money_fields_take_precedence() -> None:
    fields = InvoiceFieldValues(
        items=(LineItem("A", Decimal("1"), Decimal("100")),),
        total=Decimal("999"),
    )

    totals = fields.resolved_totals()

    assert totals.subtotal == Decimal("100.00")
    assert totals.total == Decimal("999")


def test_field_values_from_mapping() -> None:
    fields = InvoiceFieldValues.from_mapping(
        {
            "invoice_number": "INV-7",
            "client_address": "1 Main St\nSpringfield",
            "items": [{"description": "Audit", "rate": "1,500"}, {"quantity": 2, "rate": 10}],
            "tax_rate": "0.2",
        }
    )

    assert fields.client_address == ("1 Main St", "Springfield")
    assert fields.items[0].quantity == Decimal("1")
    assert fields.items[0].rate == Decimal("1500")
    assert fields.resolved_totals().total == Decimal("1824.00")
    assert fields.status == "unpaid"


def test_field_values_from_mapping_rejects_non_numeric_money() -> None:
    with pytest.raises(ValueError):
        InvoiceFieldValues.from_mapping({"items": [{"rate": "lots"}]})


@pytest.mark.parametrize(
    "raw",
    [
        {"subtotal": "NaN"},
        {"total": "Infinity"},
        {"discount": "-inf"},
        {"items": [{"rate": "nan"}]},
    ],
)
def test_field_values_from_mapping_rejects_non_finite_money(raw) -> None:
    with pytest.raises(ValueError):
        InvoiceFieldValues.from_mapping(raw)


def test_rendering_non_finite_money_raises_value_error() -> None:
    """A NaN subtotal is reported as a ValueError, not a decimal failure."""
    template = InvoiceTemplate(layout=LayoutConfig(summary=True))
    with pytest.raises(ValueError):
        render_invoice(template, {"subtotal": "NaN"})


def test_format_money() -> None:
    assert format_money(Decimal("1100")) == "$1,100.00"
    assert format_money(Decimal("-30"), "€") == "-€30.00"
    assert format_money(None) == ""
