"""Data models and format constants used across the package."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from numbers import Integral
from typing import Any

from marketplace_ads import REQUIRED_HEADERS
from marketplace_ads.utils import new_ad_id

# ── Template constants ───────────────────────────────────────────

CONDITION_OPTIONS: tuple[str, ...] = ("New", "Used - Like New", "Used - Good", "Used - Fair")
SHIPPING_OPTIONS: tuple[str, ...] = ("Yes", "No")

DEFAULT_CONDITION = "New"
DEFAULT_SHIPPING = "No"
DEFAULT_CATEGORY = "Home & Garden > Tools & Workshop Equipment"

TEMPLATE_TITLE = "Facebook Marketplace Bulk Upload Template"
TEMPLATE_INSTRUCTIONS = (
    "You can create up to 50 listings at once. When you are finished, "
    "be sure to save or export this as an XLS/XLSX file."
)
SHEET_NAME = "Marketplace Ads"
EXPORT_FILENAME = "Facebook_Marketplace_Bulk_Ads.xlsx"

# Field name -> header text, in output column order.
FIELD_HEADERS: dict[str, str] = dict(
    zip(
        ("title", "price", "condition", "description", "category", "offer_shipping"),
        REQUIRED_HEADERS,
    )
)

Scalar = str | int | float | bool


# ── Errors ───────────────────────────────────────────────────────


class FormatError(ValueError):
    """An imported file does not satisfy the template's structural contract."""

    def __init__(self, message: str, *, code: str) -> None:
        super().__init__(message)
        self.code = code


# ── Coercion helpers ─────────────────────────────────────────────


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


def _to_field_map(values: Mapping[Any, Any] | None) -> dict[str, Scalar]:
    if values is None:
        return {}
    if not isinstance(values, Mapping):
        raise TypeError("other_fields must be a mapping")
    normalized: dict[str, Scalar] = {}
    for key, value in values.items():
        if not isinstance(key, str):
            raise TypeError("other_fields keys must be strings")
        normalized[key] = value
    return normalized


# ── Records ──────────────────────────────────────────────────────


@dataclass
class Ad:
    """One classified listing.

    ``Ad()`` starts a new listing: a fresh id plus the template defaults.
    Field values may be transiently invalid while being edited; use
    :func:`marketplace_ads.validation.validate_ad` to decide publishability.
    """

    id: str = field(default_factory=new_ad_id)
    title: str = ""
    price: float | None = 0.0
    condition: str = DEFAULT_CONDITION
    description: str = ""
    category: str = DEFAULT_CATEGORY
    offer_shipping: str = DEFAULT_SHIPPING
    other_fields: dict[str, Scalar] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("id must be a non-empty string")
        self.other_fields = _to_field_map(self.other_fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "price": self.price,
            "condition": self.condition,
            "description": self.description,
            "category": self.category,
            "offer_shipping": self.offer_shipping,
            "other_fields": dict(self.other_fields),
        }


@dataclass
class ImportReport:
    """Summary of one import attempt.

    Contract invariant: ``skipped_rows == rows_in - rows_out``.
    """

    rows_in: int = 0
    rows_out: int = 0
    skipped_rows: int = 0
    unknown_columns: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    sha256: str = ""

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.skipped_rows = _to_non_negative_int(self.skipped_rows, "skipped_rows")
        self.unknown_columns = _to_string_list(self.unknown_columns, "unknown_columns")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.rows_out > self.rows_in:
            raise ValueError("rows_out must be <= rows_in")
        if self.skipped_rows != self.rows_in - self.rows_out:
            raise ValueError("skipped_rows must equal rows_in - rows_out")

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "skipped_rows": self.skipped_rows,
            "unknown_columns": list(self.unknown_columns),
            "warnings": list(self.warnings),
            "sha256": self.sha256,
        }


@dataclass
class ParsedWorkbook:
    """Everything recovered from an imported template."""

    ads: list[Ad] = field(default_factory=list)
    headers: list[str] = field(default_factory=list)
    metadata: list[list[Any]] = field(default_factory=list)
    report: ImportReport = field(default_factory=ImportReport)
