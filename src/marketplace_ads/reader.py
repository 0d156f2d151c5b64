"""Template reader — turns an uploaded bulk-upload workbook into listings.

Layout contract (first sheet only):

* row 1: template caption
* row 2: instructions caption
* row 3: header row; matched case-insensitively and in any order, only
  ``TITLE`` and ``PRICE`` are mandatory
* row 4+: one listing per non-empty row

Structural problems raise :class:`~marketplace_ads.models.FormatError` and
produce no listings at all. Problems inside a data row never abort the
import: the offending cell falls back to the field default and a warning is
added to the :class:`~marketplace_ads.models.ImportReport`.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from numbers import Real
from pathlib import Path
from typing import Any

from openpyxl.utils.escape import unescape

from marketplace_ads.io import read_bytes, read_sheet_rows
from marketplace_ads.models import (
    CONDITION_OPTIONS,
    DEFAULT_CATEGORY,
    DEFAULT_CONDITION,
    DEFAULT_SHIPPING,
    FIELD_HEADERS,
    SHIPPING_OPTIONS,
    Ad,
    FormatError,
    ImportReport,
    ParsedWorkbook,
    Scalar,
)
from marketplace_ads.utils import sha256_bytes

HEADER_ROW_INDEX = 2
FIRST_DATA_ROW_INDEX = 3
MANDATORY_FIELDS: tuple[str, ...] = ("title", "price")

_FIELD_BY_HEADER: dict[str, str] = {header.lower(): name for name, header in FIELD_HEADERS.items()}

_CURRENCY_RE = re.compile(r"[\$€£]")
_THOUSANDS_COMMA_RE = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d+)?$")


# ── Header discovery ─────────────────────────────────────────────


def _normalize_header(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).strip().lower()


def _header_index(
    header_row: list[Any], warnings: list[str]
) -> tuple[dict[str, int], dict[str, int]]:
    """Return ``(field -> column, unknown header text -> column)``."""
    fields: dict[str, int] = {}
    extras: dict[str, int] = {}
    for idx, cell in enumerate(header_row):
        key = _normalize_header(cell)
        if not key:
            continue
        name = _FIELD_BY_HEADER.get(key)
        if name is None:
            extras.setdefault(unescape(str(cell)), idx)
        elif name in fields:
            warnings.append(
                f"Duplicate {FIELD_HEADERS[name]} column at position {idx + 1}; "
                "using the first one"
            )
        else:
            fields[name] = idx
    return fields, extras


# ── Cell coercion ────────────────────────────────────────────────


def _normalize_price_token(token: str) -> str:
    token = _CURRENCY_RE.sub("", token.strip()).strip()
    if _THOUSANDS_COMMA_RE.fullmatch(token):
        token = token.replace(",", "")
    return token


def _coerce_price(value: Any) -> tuple[float, bool]:
    """Return ``(price, ok)``; non-numeric input becomes ``0.0`` with ``ok=False``."""
    if value is None:
        return 0.0, True
    if isinstance(value, bool):
        return 0.0, False
    if isinstance(value, Real):
        number = float(value)
        return (number, True) if math.isfinite(number) else (0.0, False)
    if isinstance(value, str):
        token = _normalize_price_token(value)
        if not token:
            return 0.0, True
        if "_" in token:
            return 0.0, False
        try:
            number = float(token)
        except ValueError:
            return 0.0, False
        return (number, True) if math.isfinite(number) else (0.0, False)
    return 0.0, False


def _scalar(value: Any) -> Scalar:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        # Control characters are stored as _xHHHH_ escapes.
        return unescape(value)
    if isinstance(value, (int, float, bool)):
        return value
    return str(value)


def _coerce_text(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return unescape(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(_scalar(value))


def _coerce_shipping(value: Any) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return _coerce_text(value, DEFAULT_SHIPPING)


# ── Row projection ───────────────────────────────────────────────


def _row_to_ad(
    row: list[Any],
    row_number: int,
    fields: dict[str, int],
    extras: dict[str, int],
    warnings: list[str],
) -> Ad:
    def cell(name: str) -> Any:
        idx = fields.get(name)
        if idx is None or idx >= len(row):
            return None
        return row[idx]

    raw_price = cell("price")
    price, ok = _coerce_price(raw_price)
    if not ok:
        warnings.append(f"Row {row_number}: price {raw_price!r} is not a number; using 0")

    condition = _coerce_text(cell("condition"), DEFAULT_CONDITION)
    if condition not in CONDITION_OPTIONS:
        warnings.append(f"Row {row_number}: condition {condition!r} is not a known option")

    offer_shipping = _coerce_shipping(cell("offer_shipping"))
    if offer_shipping not in SHIPPING_OPTIONS:
        warnings.append(
            f"Row {row_number}: offer shipping {offer_shipping!r} is not a known option"
        )

    other_fields = {
        header: _scalar(row[idx])
        for header, idx in extras.items()
        if idx < len(row) and row[idx] is not None
    }

    return Ad(
        title=_coerce_text(cell("title"), ""),
        price=price,
        condition=condition,
        description=_coerce_text(cell("description"), ""),
        category=_coerce_text(cell("category"), DEFAULT_CATEGORY),
        offer_shipping=offer_shipping,
        other_fields=other_fields,
    )


# ── Public API ───────────────────────────────────────────────────


def parse_workbook(raw: bytes) -> ParsedWorkbook:
    """Parse template bytes into listings plus the header/caption rows.

    Every listing gets a freshly generated id; ids present in the file are
    never reused.

    Raises
    ------
    FormatError
        ``code="unreadable"`` if *raw* is not a workbook, ``"too_short"`` if
        fewer than 3 rows exist, ``"invalid_template"`` if the header row
        lacks ``Title`` or ``Price``.
    """
    rows = read_sheet_rows(raw)
    if len(rows) < FIRST_DATA_ROW_INDEX:
        raise FormatError(
            "File is too short. It must contain at least 3 rows "
            "(Title, Instructions, Headers).",
            code="too_short",
        )

    warnings: list[str] = []
    header_row = rows[HEADER_ROW_INDEX]
    fields, extras = _header_index(header_row, warnings)
    if any(name not in fields for name in MANDATORY_FIELDS):
        raise FormatError(
            "Invalid Template. Could not find 'Title' and 'Price' in Row 3.",
            code="invalid_template",
        )

    ads: list[Ad] = []
    data_rows = rows[FIRST_DATA_ROW_INDEX:]
    for offset, row in enumerate(data_rows):
        if not row:
            continue
        row_number = FIRST_DATA_ROW_INDEX + offset + 1
        ads.append(_row_to_ad(row, row_number, fields, extras, warnings))

    report = ImportReport(
        rows_in=len(data_rows),
        rows_out=len(ads),
        skipped_rows=len(data_rows) - len(ads),
        unknown_columns=list(extras),
        warnings=warnings,
        sha256=sha256_bytes(raw),
    )
    return ParsedWorkbook(
        ads=ads,
        headers=["" if cell is None else str(cell) for cell in header_row],
        metadata=[list(row) for row in rows[:HEADER_ROW_INDEX]],
        report=report,
    )


def parse_excel_bytes(raw: bytes) -> list[Ad]:
    """Parse template bytes and return the listings only."""
    return parse_workbook(raw).ads


def parse_excel_file(path: Path) -> list[Ad]:
    """Read *path* from disk and parse it as a bulk-upload template."""
    return parse_excel_bytes(read_bytes(path))
