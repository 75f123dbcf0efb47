# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Invoice template renderer.

``render_invoice(template, fields)`` turns an InvoiceTemplate and the field
values of one invoice into a tree of styled blocks (RenderNode). The tree
can be embedded by a UI, exported, or serialised to HTML with ``to_html``.

Sections
--------
Sections are produced by walking a fixed, ordered table of
(section, builder) pairs:

    header, logo, businessInfo, clientInfo, invoiceInfo, itemTable,
    summary, notes, footer

A section is emitted only when its layout flag is set; a hidden section
leaves no trace in the tree (no placeholder, no empty container). The
``discounts`` flag is a sub-toggle of ``summary``: the discount line is
rendered only when both flags are set.

Tokens
------
Content texts (header, footer, notes label, terms label, discount label)
may contain the tokens below. Recognised tokens are replaced by the field
value (an absent value becomes an empty string); anything else that looks
like a token is left verbatim.

    {{invoice_number}} {{issue_date}} {{due_date}} {{client_name}}
    {{business_name}}  {{subtotal}}   {{tax_amount}} {{total}}

Money tokens and amounts are formatted by ``format_money``: currency symbol,
thousands separators and two decimals (``$1,100.00``). Unlike the web
preview, which printed ``$1100.00``, amounts carry a thousands separator.

Style mapping
-------------
    section / element           style property used
    --------------------------  ----------------------------------------
    root block                  font_family, font_size, text_color
    header block                header_alignment (text-align)
    header text                 primary_color (color)
    logo block                  logo_position (text-align)
    logo placeholder            secondary_color (background),
                                primary_color (dashed border)
    businessInfo / clientInfo   text_color (section titles)
    invoiceInfo panel           secondary_color (background)
    invoiceInfo status badge    primary_color (background)
    itemTable                   table_style preset (TABLE_STYLE_PRESETS)
    itemTable header row        primary_color (background), white text
    summary tax line            border_style (bottom border)
    summary total value         primary_color (color)
    notes panel                 secondary_color (background)
    footer                      border_style (top border)

Unknown layout keys have no effect; invalid enumerated style values have
already been replaced by their defaults in template_config.
"""

import logging
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from html import escape
from typing import Any, Optional, Union

from .errors import ConfigValidationWarning
from .invoices import InvoiceFieldValues, InvoiceTotals, format_money, sample_fields
from .template_config import InvoiceTemplate, TableStyle

logger = logging.getLogger(__name__)

WHITE = "#fff"
MUTED_TEXT = "#6b7280"

TABLE_STYLE_PRESETS: dict[TableStyle, dict[str, dict[str, str]]] = {
    TableStyle.BORDERED: {
        "table": {"border-collapse": "collapse", "border": "1px solid #e5e7eb"},
        "row": {"border-bottom": "1px solid #e5e7eb"},
        "odd_row": {},
    },
    TableStyle.BORDERLESS: {
        "table": {"border-collapse": "collapse"},
        "row": {},
        "odd_row": {},
    },
    TableStyle.STRIPED: {
        "table": {"border-collapse": "collapse", "border": "none"},
        "row": {},
        "odd_row": {"background-color": "#f9fafb"},
    },
}

RECOGNIZED_TOKENS = (
    "invoice_number",
    "issue_date",
    "due_date",
    "client_name",
    "business_name",
    "subtotal",
    "tax_amount",
    "total",
)

_TOKEN_RE = re.compile(r"\{\{(\w+)\}\}")

_VOID_TAGS = {"img", "br", "hr"}


@dataclass
class RenderNode:
    """
    One block of the rendered invoice.

    Attributes:
        tag: HTML-like element name ('div', 'h1', 'table', ...).
        section: Template section name for top-level section blocks.
        text: Text content (always a string).
        style: Inline style properties.
        attrs: Other attributes ('class', 'src', ...).
        children: Nested blocks, in display order.
    """

    tag: str
    section: Optional[str] = None
    text: str = ""
    style: dict[str, str] = field(default_factory=dict)
    attrs: dict[str, str] = field(default_factory=dict)
    children: list["RenderNode"] = field(default_factory=list)

    def iter_nodes(self) -> Iterator["RenderNode"]:
        """Depth-first iteration over this node and all its descendants."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def find_all(self, class_name: str) -> list["RenderNode"]:
        return [n for n in self.iter_nodes() if n.attrs.get("class") == class_name]

    def text_content(self) -> str:
        """Concatenated text of the node and its descendants."""
        return "".join(n.text for n in self.iter_nodes())


@dataclass
class RenderedInvoice:
    """Render result: the block tree and any configuration warnings."""

    tree: RenderNode
    warnings: list[ConfigValidationWarning] = field(default_factory=list)

    @property
    def sections(self) -> list[str]:
        """Names of the sections present, in display order."""
        return [c.section for c in self.tree.children if c.section]

    def section(self, name: str) -> Optional[RenderNode]:
        for child in self.tree.children:
            if child.section == name:
                return child
        return None

    def to_html(self) -> str:
        return to_html(self.tree)


# ---------------------------------------------------------------------------
# Token substitution
# ---------------------------------------------------------------------------


def token_values(
    fields: InvoiceFieldValues,
    totals: Optional[InvoiceTotals] = None,
) -> dict[str, str]:
    """Return the display value of every recognised token."""
    totals = totals or fields.resolved_totals()
    symbol = fields.currency_symbol
    return {
        "invoice_number": fields.invoice_number,
        "issue_date": fields.issue_date,
        "due_date": fields.due_date,
        "client_name": fields.client_name,
        "business_name": fields.business_name,
        "subtotal": format_money(totals.subtotal, symbol),
        "tax_amount": format_money(totals.tax_amount, symbol),
        "total": format_money(totals.total, symbol),
    }


def _substitute(text: str, values: Mapping[str, str]) -> str:
    def _repl(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in RECOGNIZED_TOKENS:
            return match.group(0)
        return values.get(name) or ""

    return _TOKEN_RE.sub(_repl, text or "")


def substitute_tokens(text: str, fields: InvoiceFieldValues) -> str:
    """Replace recognised ``{{token}}`` placeholders in ``text``."""
    return _substitute(text, token_values(fields))


# ---------------------------------------------------------------------------
# Section builders
# ---------------------------------------------------------------------------


@dataclass
class _RenderContext:
    template: InvoiceTemplate
    fields: InvoiceFieldValues
    totals: InvoiceTotals
    tokens: dict[str, str]

    def text(self, raw: str) -> str:
        return _substitute(raw, self.tokens)

    def money(self, value: Decimal) -> str:
        return format_money(value, self.fields.currency_symbol)


def _build_header(ctx: _RenderContext) -> RenderNode:
    style = ctx.template.style
    return RenderNode(
        "div",
        section="header",
        style={"text-align": style.header_alignment.value, "margin-bottom": "20px"},
        children=[
            RenderNode(
                "h1",
                text=ctx.text(ctx.template.content.header_text),
                style={"color": style.primary_color, "margin": "0"},
                attrs={"class": "header-text"},
            )
        ],
    )


def _build_logo(ctx: _RenderContext) -> RenderNode:
    style = ctx.template.style
    if ctx.template.logo:
        image = RenderNode(
            "img",
            style={"max-width": "200px", "max-height": "100px"},
            attrs={"class": "logo", "src": ctx.template.logo, "alt": "Logo"},
        )
    else:
        image = RenderNode(
            "div",
            text="Logo",
            style={
                "display": "inline-block",
                "width": "100px",
                "height": "100px",
                "background": style.secondary_color,
                "border": f"2px dashed {style.primary_color}",
            },
            attrs={"class": "logo-placeholder"},
        )
    return RenderNode(
        "div",
        section="logo",
        style={"text-align": style.logo_position.value, "margin-bottom": "20px"},
        children=[image],
    )


def _party_block(
    ctx: _RenderContext,
    section: str,
    title: str,
    name: str,
    address: tuple[str, ...],
    email: str,
    align: str,
) -> RenderNode:
    children = [
        RenderNode(
            "h3",
            text=title,
            style={"margin": "0", "font-size": "0.9em", "color": ctx.template.style.text_color},
        ),
        RenderNode("p", text=name, style={"margin": "5px 0", "font-weight": "bold"}),
    ]
    children += [RenderNode("p", text=line, style={"margin": "0"}) for line in address]
    if email:
        children.append(RenderNode("p", text=email, style={"margin": "0"}))
    return RenderNode(
        "div",
        section=section,
        style={"margin-bottom": "20px", "text-align": align},
        children=children,
    )


def _build_business_info(ctx: _RenderContext) -> RenderNode:
    f = ctx.fields
    return _party_block(
        ctx, "businessInfo", "FROM", f.business_name, f.business_address,
        f.business_email, "left",
    )


def _build_client_info(ctx: _RenderContext) -> RenderNode:
    f = ctx.fields
    return _party_block(
        ctx, "clientInfo", "BILL TO", f.client_name, f.client_address,
        f.client_email, "right",
    )


def _build_invoice_info(ctx: _RenderContext) -> RenderNode:
    style = ctx.template.style
    f = ctx.fields

    def _cell(label: str, value: RenderNode) -> RenderNode:
        return RenderNode(
            "div",
            children=[
                RenderNode("h4", text=label, style={"margin": "0", "font-size": "0.8em"}),
                value,
            ],
        )

    status_badge = RenderNode(
        "p",
        text=(f.status or "").upper(),
        style={
            "background-color": style.primary_color,
            "color": WHITE,
            "display": "inline-block",
            "padding": "2px 8px",
            "font-size": "0.8em",
        },
        attrs={"class": "status-badge"},
    )
    return RenderNode(
        "div",
        section="invoiceInfo",
        style={
            "background-color": style.secondary_color,
            "padding": "15px",
            "margin-bottom": "20px",
        },
        children=[
            _cell("INVOICE #", RenderNode("p", text=f.invoice_number, style={"margin": "5px 0"})),
            _cell("DATE", RenderNode("p", text=f.issue_date, style={"margin": "5px 0"})),
            _cell("DUE DATE", RenderNode("p", text=f.due_date, style={"margin": "5px 0"})),
            _cell("STATUS", status_badge),
        ],
    )


def _format_quantity(quantity: Decimal) -> str:
    if quantity == quantity.to_integral_value():
        return str(int(quantity))
    return format(quantity.normalize(), "f")


def _build_item_table(ctx: _RenderContext) -> RenderNode:
    style = ctx.template.style
    preset = TABLE_STYLE_PRESETS[style.table_style]

    header_cells = [
        RenderNode("th", text=label, style={"padding": "10px", "text-align": align})
        for label, align in (
            ("Item", "left"),
            ("Quantity", "right"),
            ("Rate", "right"),
            ("Amount", "right"),
        )
    ]
    head = RenderNode(
        "thead",
        children=[
            RenderNode(
                "tr",
                style={"background-color": style.primary_color, "color": WHITE},
                attrs={"class": "table-header"},
                children=header_cells,
            )
        ],
    )

    rows = []
    for index, item in enumerate(ctx.fields.items):
        row_style = dict(preset["row"])
        # nth-child(odd) rows, counted from 1.
        if index % 2 == 0:
            row_style.update(preset["odd_row"])
        rows.append(
            RenderNode(
                "tr",
                style=row_style,
                attrs={"class": "item-row"},
                children=[
                    RenderNode("td", text=item.description, style={"padding": "10px"}),
                    RenderNode(
                        "td",
                        text=_format_quantity(item.quantity),
                        style={"padding": "10px", "text-align": "right"},
                    ),
                    RenderNode(
                        "td",
                        text=ctx.money(item.rate),
                        style={"padding": "10px", "text-align": "right"},
                    ),
                    RenderNode(
                        "td",
                        text=ctx.money(item.amount),
                        style={"padding": "10px", "text-align": "right"},
                    ),
                ],
            )
        )

    table = RenderNode(
        "table",
        style={"width": "100%", **preset["table"]},
        attrs={"class": f"items-{style.table_style.value}"},
        children=[head, RenderNode("tbody", children=rows)],
    )
    return RenderNode(
        "div", section="itemTable", style={"margin-bottom": "20px"}, children=[table]
    )


def _summary_line(
    class_name: str,
    label: str,
    value: str,
    style: Optional[dict[str, str]] = None,
    value_style: Optional[dict[str, str]] = None,
) -> RenderNode:
    return RenderNode(
        "div",
        style={
            "display": "flex",
            "justify-content": "space-between",
            "padding": "5px 0",
            **(style or {}),
        },
        attrs={"class": class_name},
        children=[
            RenderNode("span", text=label),
            RenderNode("span", text=value, style=dict(value_style or {})),
        ],
    )


def _build_summary(ctx: _RenderContext) -> RenderNode:
    template = ctx.template
    totals = ctx.totals

    lines = [_summary_line("summary-subtotal", "Subtotal:", ctx.money(totals.subtotal))]

    if template.layout.discounts:
        lines.append(
            _summary_line(
                "summary-discount",
                f"{ctx.text(template.content.discount_label)}:",
                ctx.money(totals.discount),
            )
        )

    tax_label = "Tax:"
    if ctx.fields.tax_rate is not None:
        percent = (ctx.fields.tax_rate * 100).normalize()
        tax_label = f"Tax ({format(percent, 'f')}%):"
    lines.append(
        _summary_line(
            "summary-tax",
            tax_label,
            ctx.money(totals.tax_amount),
            style={"border-bottom": template.style.border_style},
        )
    )
    lines.append(
        _summary_line(
            "summary-total",
            "Total:",
            ctx.money(totals.total),
            style={"font-weight": "bold"},
            value_style={"color": template.style.primary_color},
        )
    )

    return RenderNode(
        "div",
        section="summary",
        style={"display": "flex", "justify-content": "flex-end", "margin-bottom": "20px"},
        children=[RenderNode("div", style={"width": "300px"}, children=lines)],
    )


def _build_notes(ctx: _RenderContext) -> RenderNode:
    content = ctx.template.content
    return RenderNode(
        "div",
        section="notes",
        style={
            "background-color": ctx.template.style.secondary_color,
            "padding": "15px",
            "margin-bottom": "20px",
        },
        children=[
            RenderNode(
                "h3",
                text=ctx.text(content.notes_label),
                style={"margin": "0 0 10px", "font-size": "1em"},
                attrs={"class": "notes-label"},
            ),
            RenderNode("p", text=ctx.fields.notes, style={"margin": "0"}),
            RenderNode(
                "h3",
                text=ctx.text(content.terms_label),
                style={"margin": "20px 0 10px", "font-size": "1em"},
                attrs={"class": "terms-label"},
            ),
            RenderNode("p", text=ctx.fields.terms, style={"margin": "0"}),
        ],
    )


def _build_footer(ctx: _RenderContext) -> RenderNode:
    return RenderNode(
        "div",
        section="footer",
        text=ctx.text(ctx.template.content.footer_text),
        style={
            "text-align": "center",
            "padding-top": "20px",
            "margin-top": "40px",
            "border-top": ctx.template.style.border_style,
            "font-size": "0.9em",
            "color": MUTED_TEXT,
        },
        attrs={"class": "footer-text"},
    )


SECTION_BUILDERS: list[tuple[str, Callable[[_RenderContext], RenderNode]]] = [
    ("header", _build_header),
    ("logo", _build_logo),
    ("businessInfo", _build_business_info),
    ("clientInfo", _build_client_info),
    ("invoiceInfo", _build_invoice_info),
    ("itemTable", _build_item_table),
    ("summary", _build_summary),
    ("notes", _build_notes),
    ("footer", _build_footer),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_invoice(
    template: Union[InvoiceTemplate, Mapping[str, Any]],
    fields: Union[InvoiceFieldValues, Mapping[str, Any], None] = None,
) -> RenderedInvoice:
    """Render an invoice from a template and field values.

    Args:
        template: An InvoiceTemplate, or its stored mapping representation
            (parsed with ``InvoiceTemplate.from_mapping``).
        fields: Field values of the invoice, as InvoiceFieldValues or a
            mapping. None renders the preview sample invoice.

    Returns:
        RenderedInvoice with the block tree and the configuration warnings
        raised while reading the template.

    Raises:
        TemplateConfigError: if a mapping template carries no configuration.
    """
    warnings: list[ConfigValidationWarning] = []
    if not isinstance(template, InvoiceTemplate):
        template, warnings = InvoiceTemplate.from_mapping(template)

    if fields is None:
        fields = sample_fields()
    elif not isinstance(fields, InvoiceFieldValues):
        fields = InvoiceFieldValues.from_mapping(fields)

    totals = fields.resolved_totals()
    ctx = _RenderContext(
        template=template,
        fields=fields,
        totals=totals,
        tokens=token_values(fields, totals),
    )

    style = template.style
    root = RenderNode(
        "div",
        style={
            "font-family": style.font_family,
            "font-size": style.font_size,
            "color": style.text_color,
            "padding": "20px",
        },
        attrs={"class": "invoice"},
    )
    for section, builder in SECTION_BUILDERS:
        if template.layout.is_visible(section):
            root.children.append(builder(ctx))

    logger.debug("Rendered invoice %r with sections %s", fields.invoice_number,
                 [c.section for c in root.children])
    return RenderedInvoice(tree=root, warnings=list(warnings))


def _style_attr(style: Mapping[str, str]) -> str:
    return "; ".join(f"{k}: {v}" for k, v in style.items())


def to_html(node: RenderNode) -> str:
    """Serialise a render tree to HTML markup (text and attributes escaped)."""
    attrs = dict(node.attrs)
    if node.section:
        attrs["data-section"] = node.section
    if node.style:
        attrs["style"] = _style_attr(node.style)
    attr_text = "".join(
        f' {name}="{escape(str(value), quote=True)}"' for name, value in attrs.items()
    )

    if node.tag in _VOID_TAGS:
        return f"<{node.tag}{attr_text}>"

    inner = escape(node.text, quote=False) + "".join(to_html(c) for c in node.children)
    return f"<{node.tag}{attr_text}>{inner}</{node.tag}>"
