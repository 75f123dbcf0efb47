from decimal import Decimal

import pytest

from smb_books.errors import TemplateConfigError
from smb_books.invoices import InvoiceFieldValues, LineItem, sample_fields
from smb_books.render import (
    SECTION_BUILDERS,
    render_invoice,
    substitute_tokens,
    to_html,
)
from smb_books.template_config import (
    ContentConfig,
    HeaderAlignment,
    InvoiceTemplate,
    LayoutConfig,
    LogoPosition,
    StyleConfig,
    TableStyle,
    default_template,
)

ALL_SECTIONS = [name for name, _ in SECTION_BUILDERS]


def _template(layout: dict, **kwargs) -> InvoiceTemplate:
    return InvoiceTemplate(layout=LayoutConfig.from_mapping(layout), **kwargs)


def test_only_enabled_sections_are_rendered() -> None:
    """header on, footer off, every other key absent: only the header block."""
    rendered = render_invoice({"layoutConfig": {"header": True, "footer": False}})

    assert rendered.sections == ["header"]
    assert len(rendered.tree.children) == 1


def test_sections_follow_the_fixed_order() -> None:
    rendered = render_invoice(default_template(), sample_fields())

    assert rendered.sections == ALL_SECTIONS
    assert ALL_SECTIONS == [
        "header",
        "logo",
        "businessInfo",
        "clientInfo",
        "invoiceInfo",
        "itemTable",
        "summary",
        "notes",
        "footer",
    ]


def test_no_layout_flags_renders_an_empty_root() -> None:
    rendered = render_invoice(InvoiceTemplate(), sample_fields())

    assert rendered.tree.children == []


def test_header_token_substitution() -> None:
    template = _template(
        {"header": True}, content=ContentConfig(header_text="Invoice {{invoice_number}}")
    )
    fields = InvoiceFieldValues(invoice_number="INV-1001")

    rendered = render_invoice(template, fields)

    assert rendered.tree.find_all("header-text")[0].text == "Invoice INV-1001"


def test_unknown_tokens_are_left_verbatim_and_absent_values_are_empty() -> None:
    fields = InvoiceFieldValues(invoice_number="INV-9")

    text = substitute_tokens("{{invoice_number}} {{po_number}} [{{client_name}}]", fields)

    assert text == "INV-9 {{po_number}} []"


def test_money_tokens_are_formatted() -> None:
    text = substitute_tokens("Due: {{total}} (tax {{tax_amount}})", sample_fields())

    assert text == "Due: $1,100.00 (tax $100.00)"


def test_discount_line_requires_both_flags() -> None:
    fields = InvoiceFieldValues(
        items=(LineItem("A", Decimal("1"), Decimal("100")),),
        discount=Decimal("10"),
        tax_rate=Decimal("0.10"),
    )

    without = render_invoice(_template({"summary": True, "discounts": False}), fields)
    assert without.tree.find_all("summary-discount") == []

    only_discounts = render_invoice(_template({"discounts": True}), fields)
    assert only_discounts.sections == []
    assert only_discounts.tree.find_all("summary-discount") == []

    both = render_invoice(_template({"summary": True, "discounts": True}), fields)
    line = both.tree.find_all("summary-discount")[0]
    assert line.text_content() == "Discount:$10.00"


def test_summary_lines_and_total_colour() -> None:
    rendered = render_invoice(
        _template({"summary": True}, style=StyleConfig(primary_color="#123456")),
        sample_fields(),
    )

    assert rendered.tree.find_all("summary-tax")[0].text_content() == "Tax (10%):$100.00"
    total = rendered.tree.find_all("summary-total")[0]
    assert total.text_content() == "Total:$1,100.00"
    assert total.children[1].style["color"] == "#123456"


def test_style_mapping_is_applied() -> None:
    style = StyleConfig(
        font_family="Georgia, serif",
        font_size="14px",
        primary_color="#111111",
        secondary_color="#eeeeee",
    )
    rendered = render_invoice(
        _template({"header": True, "itemTable": True, "notes": True}, style=style),
        sample_fields(),
    )

    assert rendered.tree.style["font-family"] == "Georgia, serif"
    assert rendered.tree.style["font-size"] == "14px"
    assert rendered.section("header").children[0].style["color"] == "#111111"
    assert rendered.tree.find_all("table-header")[0].style["background-color"] == "#111111"
    assert rendered.section("notes").style["background-color"] == "#eeeeee"


@pytest.mark.parametrize(
    "header_alignment, logo_position",
    [
        (HeaderAlignment.CENTER, LogoPosition.LEFT),
        (HeaderAlignment.RIGHT, LogoPosition.LEFT),
        (HeaderAlignment.LEFT, LogoPosition.CENTER),
        (HeaderAlignment.LEFT, LogoPosition.RIGHT),
    ],
)
def test_header_alignment_and_logo_position(header_alignment, logo_position) -> None:
    """Each setting aligns only its own section."""
    style = StyleConfig(header_alignment=header_alignment, logo_position=logo_position)
    rendered = render_invoice(
        _template({"header": True, "logo": True}, style=style), sample_fields()
    )

    assert rendered.section("header").style["text-align"] == header_alignment.value
    assert rendered.section("logo").style["text-align"] == logo_position.value


@pytest.mark.parametrize(
    "table_style, first_row, second_row",
    [
        (TableStyle.BORDERED, {"border-bottom": "1px solid #e5e7eb"}, {"border-bottom": "1px solid #e5e7eb"}),
        (TableStyle.STRIPED, {"background-color": "#f9fafb"}, {}),
        (TableStyle.BORDERLESS, {}, {}),
    ],
)
def test_table_style_presets(table_style, first_row, second_row) -> None:
    rendered = render_invoice(
        _template({"itemTable": True}, style=StyleConfig(table_style=table_style)),
        sample_fields(),
    )

    rows = rendered.tree.find_all("item-row")
    assert [r.style for r in rows] == [first_row, second_row]
    assert [c.text for c in rows[0].children] == ["Service 1", "2", "$250.00", "$500.00"]


def test_logo_image_or_placeholder() -> None:
    with_logo = render_invoice(
        _template({"logo": True}, logo="https://example.com/logo.png"), sample_fields()
    )
    assert with_logo.tree.find_all("logo")[0].attrs["src"] == "https://example.com/logo.png"

    placeholder = render_invoice(_template({"logo": True}), sample_fields())
    assert placeholder.tree.find_all("logo-placeholder")[0].text == "Logo"


def test_every_text_is_a_string() -> None:
    rendered = render_invoice(default_template(), InvoiceFieldValues())

    assert all(isinstance(node.text, str) for node in rendered.tree.iter_nodes())


def test_invalid_style_values_are_reported_as_warnings() -> None:
    rendered = render_invoice(
        {"layout": {"itemTable": True}, "style": {"tableStyle": "zigzag"}},
        sample_fields(),
    )

    assert len(rendered.warnings) == 1
    assert rendered.warnings[0].key == "table_style"
    assert rendered.tree.find_all("items-bordered")


def test_template_without_configuration_raises() -> None:
    with pytest.raises(TemplateConfigError):
        render_invoice({"name": "nothing"}, sample_fields())


def test_render_accepts_field_mapping_and_defaults_to_sample() -> None:
    preview = render_invoice(_template({"invoiceInfo": True}))
    assert "INV-1001" in preview.tree.text_content()

    rendered = render_invoice(
        _template({"clientInfo": True}), {"client_name": "Globex", "client_email": "a@b.c"}
    )
    assert rendered.section("clientInfo").text_content() == "BILL TOGlobexa@b.c"


def test_html_output_escapes_user_text() -> None:
    fields = InvoiceFieldValues(client_name="<script>alert(1)</script> & Co")
    rendered = render_invoice(_template({"clientInfo": True, "footer": True}), fields)

    html = to_html(rendered.tree)

    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt; &amp; Co" in html
    assert 'data-section="clientInfo"' in html
    assert html.startswith("<div ")
    assert rendered.to_html() == html
