# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Invoice template configuration.

A template is stored by the application as three open-ended JSON objects
(layout, style, content) plus an optional logo. This module turns them into
explicit, immutable records with documented defaults:

- LayoutConfig :
    One visibility flag per section. A flag missing from the stored object
    means the section is hidden.
- StyleConfig :
    Fonts, colours, border and alignment parameters. Constrained values
    (header_alignment, logo_position, table_style) are enumerations; an
    out-of-set value falls back to its default and is reported as a
    ConfigValidationWarning.
- ContentConfig :
    User-editable texts, which may contain substitution tokens such as
    ``{{invoice_number}}``.

Defaults
--------
    font_family      "Inter, sans-serif"
    font_size        "16px"
    primary_color    "#6366f1"
    secondary_color  "#f3f4f6"
    text_color       "#111827"
    border_style     "1px solid #e5e7eb"
    header_alignment left
    logo_position    left
    table_style      bordered

    header_text      "INVOICE"
    footer_text      "Thank you for your business"
    notes_label      "Notes"
    terms_label      "Terms & Conditions"
    discount_label   "Discount"
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .errors import ConfigValidationWarning, TemplateConfigError

logger = logging.getLogger(__name__)


class HeaderAlignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class LogoPosition(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class TableStyle(str, Enum):
    BORDERED = "bordered"
    BORDERLESS = "borderless"
    STRIPED = "striped"


# Section name as stored by the application -> LayoutConfig attribute.
LAYOUT_KEYS: dict[str, str] = {
    "header": "header",
    "logo": "logo",
    "businessInfo": "business_info",
    "clientInfo": "client_info",
    "invoiceInfo": "invoice_info",
    "itemTable": "item_table",
    "discounts": "discounts",
    "summary": "summary",
    "notes": "notes",
    "footer": "footer",
}

STYLE_KEYS: dict[str, str] = {
    "fontFamily": "font_family",
    "fontSize": "font_size",
    "primaryColor": "primary_color",
    "secondaryColor": "secondary_color",
    "textColor": "text_color",
    "borderStyle": "border_style",
    "headerAlignment": "header_alignment",
    "logoPosition": "logo_position",
    "tableStyle": "table_style",
}

CONTENT_KEYS: dict[str, str] = {
    "headerText": "header_text",
    "footerText": "footer_text",
    "notesLabel": "notes_label",
    "termsLabel": "terms_label",
    "discountLabel": "discount_label",
}


def _normalize_keys(raw: Mapping[str, Any], aliases: dict[str, str]) -> dict[str, Any]:
    """
    Map camelCase keys to attribute names; snake_case keys are kept as-is.

    Keys that match neither spelling are dropped.
    """
    known = set(aliases.values())
    out: dict[str, Any] = {}
    for key, value in raw.items():
        name = aliases.get(key, key)
        if name in known:
            out[name] = value
        else:
            logger.debug("Ignoring unknown template key %r", key)
    return out


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})


def _flag(value: Any) -> bool:
    """Visibility flag from a stored value. Strings other than true/1/yes/on are False."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


@dataclass(frozen=True)
class LayoutConfig:
    """Section visibility flags. Every section is hidden unless enabled."""

    header: bool = False
    logo: bool = False
    business_info: bool = False
    client_info: bool = False
    invoice_info: bool = False
    item_table: bool = False
    discounts: bool = False
    summary: bool = False
    notes: bool = False
    footer: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "LayoutConfig":
        values = _normalize_keys(raw, LAYOUT_KEYS)
        return cls(**{name: _flag(value) for name, value in values.items()})

    @classmethod
    def all_visible(cls) -> "LayoutConfig":
        return cls(**{f.name: True for f in fields(cls)})

    def is_visible(self, section: str) -> bool:
        """Visibility of a section given by its stored (camelCase) name."""
        name = LAYOUT_KEYS.get(section, section)
        return bool(getattr(self, name, False))


@dataclass(frozen=True)
class StyleConfig:
    font_family: str = "Inter, sans-serif"
    font_size: str = "16px"
    primary_color: str = "#6366f1"
    secondary_color: str = "#f3f4f6"
    text_color: str = "#111827"
    border_style: str = "1px solid #e5e7eb"
    header_alignment: HeaderAlignment = HeaderAlignment.LEFT
    logo_position: LogoPosition = LogoPosition.LEFT
    table_style: TableStyle = TableStyle.BORDERED

    @classmethod
    def from_mapping(
        cls,
        raw: Mapping[str, Any],
        warnings: Optional[list[ConfigValidationWarning]] = None,
    ) -> "StyleConfig":
        """
        Build a StyleConfig, falling back to defaults for missing values.

        Invalid enumerated values are replaced by their default and a
        ConfigValidationWarning is appended to ``warnings``.
        """
        values = _normalize_keys(raw, STYLE_KEYS)
        defaults = cls()
        kwargs: dict[str, Any] = {}

        for name, value in values.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            default = getattr(defaults, name)
            if isinstance(default, Enum):
                enum_type = type(default)
                try:
                    kwargs[name] = enum_type(str(value).strip().lower())
                except ValueError:
                    warning = ConfigValidationWarning(name, value, default.value)
                    logger.warning(str(warning))
                    if warnings is not None:
                        warnings.append(warning)
            else:
                kwargs[name] = str(value)

        return cls(**kwargs)


@dataclass(frozen=True)
class ContentConfig:
    header_text: str = "INVOICE"
    footer_text: str = "Thank you for your business"
    notes_label: str = "Notes"
    terms_label: str = "Terms & Conditions"
    discount_label: str = "Discount"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ContentConfig":
        values = _normalize_keys(raw, CONTENT_KEYS)
        return cls(**{k: str(v) for k, v in values.items() if v is not None})


@dataclass(frozen=True)
class InvoiceTemplate:
    """A complete, validated invoice template."""

    layout: LayoutConfig = field(default_factory=LayoutConfig)
    style: StyleConfig = field(default_factory=StyleConfig)
    content: ContentConfig = field(default_factory=ContentConfig)
    logo: Optional[str] = None
    name: str = "Default Template"
    is_default: bool = False

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any]
    ) -> tuple["InvoiceTemplate", list[ConfigValidationWarning]]:
        """
        Build a template from its stored representation.

        Each block can be given as ``layout_config``, ``layoutConfig`` or
        ``layout`` (same for style and content).

        Returns:
            (template, warnings) where warnings lists every style value that
            fell back to its default.

        Raises:
            TemplateConfigError: if no block is present at all, or if a block
                is not a mapping.
        """
        if not isinstance(data, Mapping):
            raise TemplateConfigError(
                f"Invoice template must be a mapping, got {type(data).__name__}."
            )

        def _block(*keys: str) -> Optional[Mapping[str, Any]]:
            for key in keys:
                value = data.get(key)
                if value is None:
                    continue
                if not isinstance(value, Mapping):
                    raise TemplateConfigError(
                        f"Template block '{key}' must be a mapping, "
                        f"got {type(value).__name__}."
                    )
                return value
            return None

        layout_raw = _block("layout_config", "layoutConfig", "layout")
        style_raw = _block("style_config", "styleConfig", "style")
        content_raw = _block("content_config", "contentConfig", "content")

        if not layout_raw and not style_raw and not content_raw:
            raise TemplateConfigError(
                "Invoice template has no layout, style or content configuration."
            )

        warnings: list[ConfigValidationWarning] = []
        logo = data.get("logo") or data.get("logo_url") or None

        template = cls(
            layout=LayoutConfig.from_mapping(layout_raw or {}),
            style=StyleConfig.from_mapping(style_raw or {}, warnings),
            content=ContentConfig.from_mapping(content_raw or {}),
            logo=str(logo) if logo else None,
            name=str(data.get("name") or "Default Template"),
            is_default=bool(data.get("is_default", False)),
        )
        return template, warnings


def default_template(name: str = "Default Template") -> InvoiceTemplate:
    """Template created for a new business: every section visible."""
    return InvoiceTemplate(
        layout=LayoutConfig.all_visible(),
        name=name,
        is_default=True,
    )


def load_template(
    path: Union[str, Path],
) -> tuple[InvoiceTemplate, list[ConfigValidationWarning]]:
    """
    Load an invoice template from a TOML or JSON file.

    TOML files use [layout], [style] and [content] tables and an optional
    top-level ``logo`` key; JSON files use the stored representation
    (``layout_config``, ``style_config``, ``content_config``).

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the file cannot be parsed.
        TemplateConfigError: if the parsed content is not a usable template.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Template file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = tomllib.loads(text)
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse template file: {path}") from exc

    return InvoiceTemplate.from_mapping(data)
