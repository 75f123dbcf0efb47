# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Invoice field values used when rendering a template.

An invoice is rendered from a set of field values (numbers, dates, party
names, line items). Money fields that are not provided explicitly are
derived from the line items:

    subtotal   = sum(quantity * rate)
    tax_amount = (subtotal - discount) * tax_rate
    total      = subtotal - discount + tax_amount

All money values are Decimals rounded half-up to the cent.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

CENT = Decimal("0.01")
DEFAULT_TAX_RATE = Decimal("0.10")


def _to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).replace(",", "").strip())
        except InvalidOperation as exc:
            raise ValueError(f"Invalid numeric value: {value!r}") from exc
    if not number.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return number


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Optional[Decimal], symbol: str = "$") -> str:
    """Format an amount for display, e.g. ``$1,100.00``. None renders as ''."""
    if value is None:
        return ""
    amount = _money(Decimal(value))
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


@dataclass(frozen=True)
class LineItem:
    """One billed line: ``amount = quantity * rate``."""

    description: str
    quantity: Decimal
    rate: Decimal

    @property
    def amount(self) -> Decimal:
        return _money(self.quantity * self.rate)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "LineItem":
        return cls(
            description=str(raw.get("description") or ""),
            quantity=_to_decimal(raw.get("quantity"), Decimal("1")),
            rate=_to_decimal(raw.get("rate")),
        )


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    discount: Decimal
    tax_amount: Decimal
    total: Decimal


def compute_invoice_totals(
    items: Iterable[LineItem],
    *,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    discount: Decimal = Decimal("0"),
) -> InvoiceTotals:
    """Compute subtotal, tax and total of a list of line items.

    Tax applies to the discounted subtotal. The discount is capped at the
    subtotal so the total never goes negative.
    """
    subtotal = _money(sum((item.amount for item in items), Decimal("0")))
    discount = min(_money(Decimal(discount)), subtotal)
    taxable = subtotal - discount
    tax_amount = _money(taxable * Decimal(tax_rate))
    return InvoiceTotals(
        subtotal=subtotal,
        discount=discount,
        tax_amount=tax_amount,
        total=taxable + tax_amount,
    )


@dataclass(frozen=True)
class InvoiceFieldValues:
    """
    Values substituted into an invoice template.

    Money fields left to None are computed from ``items`` by
    ``resolved_totals()``.
    """

    invoice_number: str = ""
    issue_date: str = ""
    due_date: str = ""
    status: str = "unpaid"
    client_name: str = ""
    client_address: tuple[str, ...] = ()
    client_email: str = ""
    business_name: str = ""
    business_address: tuple[str, ...] = ()
    business_email: str = ""
    items: tuple[LineItem, ...] = ()
    subtotal: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total: Optional[Decimal] = None
    notes: str = ""
    terms: str = ""
    currency_symbol: str = "$"

    def resolved_totals(self) -> InvoiceTotals:
        """Totals with explicit values taking precedence over computed ones."""
        computed = compute_invoice_totals(
            self.items,
            tax_rate=self.tax_rate if self.tax_rate is not None else DEFAULT_TAX_RATE,
            discount=self.discount or Decimal("0"),
        )
        return InvoiceTotals(
            subtotal=self.subtotal if self.subtotal is not None else computed.subtotal,
            discount=self.discount if self.discount is not None else computed.discount,
            tax_amount=(
                self.tax_amount if self.tax_amount is not None else computed.tax_amount
            ),
            total=self.total if self.total is not None else computed.total,
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "InvoiceFieldValues":
        """
        Build field values from a loose mapping (JSON payload, form data).

        Address fields accept either a list of lines or a single string
        with newline-separated lines.
        """

        def _opt_decimal(key: str) -> Optional[Decimal]:
            value = raw.get(key)
            if value is None or value == "":
                return None
            return _to_decimal(value)

        def _lines(key: str) -> tuple[str, ...]:
            value = raw.get(key)
            if not value:
                return ()
            if isinstance(value, str):
                return tuple(line for line in value.splitlines() if line.strip())
            return tuple(str(v) for v in value)

        items = tuple(
            item if isinstance(item, LineItem) else LineItem.from_mapping(item)
            for item in (raw.get("items") or [])
        )

        return cls(
            invoice_number=str(raw.get("invoice_number") or ""),
            issue_date=str(raw.get("issue_date") or ""),
            due_date=str(raw.get("due_date") or ""),
            status=str(raw.get("status") or "unpaid"),
            client_name=str(raw.get("client_name") or ""),
            client_address=_lines("client_address"),
            client_email=str(raw.get("client_email") or ""),
            business_name=str(raw.get("business_name") or ""),
            business_address=_lines("business_address"),
            business_email=str(raw.get("business_email") or ""),
            items=items,
            subtotal=_opt_decimal("subtotal"),
            discount=_opt_decimal("discount"),
            tax_rate=_opt_decimal("tax_rate"),
            tax_amount=_opt_decimal("tax_amount"),
            total=_opt_decimal("total"),
            notes=str(raw.get("notes") or ""),
            terms=str(raw.get("terms") or ""),
            currency_symbol=str(raw.get("currency_symbol") or "$"),
        )


def sample_fields() -> InvoiceFieldValues:
    """Fixed invoice used to preview a template before any real invoice exists."""
    return InvoiceFieldValues(
        invoice_number="INV-1001",
        issue_date="2025-05-03",
        due_date="2025-06-02",
        status="unpaid",
        client_name="Sample Client",
        client_address=("456 Client Avenue", "Clientville, CL 67890"),
        client_email="client@example.com",
        business_name="Your Business",
        business_address=("123 Business Street", "Businesstown, BZ 12345"),
        business_email="business@example.com",
        items=(
            LineItem("Service 1", Decimal("2"), Decimal("250")),
            LineItem("Service 2", Decimal("1"), Decimal("500")),
        ),
        tax_rate=DEFAULT_TAX_RATE,
        notes="Thank you for your business.",
        terms="Payment due within 30 days.",
    )
