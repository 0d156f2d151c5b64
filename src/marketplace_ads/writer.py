"""Template writer — produces Facebook_Marketplace_Bulk_Ads.xlsx."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from io import BytesIO
from numbers import Real
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from marketplace_ads import REQUIRED_HEADERS
from marketplace_ads.io import write_bytes
from marketplace_ads.models import (
    EXPORT_FILENAME,
    SHEET_NAME,
    TEMPLATE_INSTRUCTIONS,
    TEMPLATE_TITLE,
    Ad,
)

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11)
PRICE_FMT = "0.00"

HEADER_ROW = 3
FIRST_DATA_ROW = 4
PRICE_COLUMN = 2

_AUTO_WIDTH_SAMPLE_ROWS = 300
_MAX_COLUMN_WIDTH = 50


# ── Helpers ──────────────────────────────────────────────────────


def _export_price(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return round(number, 2)


def _escape_char(match: re.Match[str]) -> str:
    return f"_x{ord(match.group()):04X}_"


def _escape_text(value: str) -> str:
    """Replace XML-illegal control characters with OOXML ``_xHHHH_`` escapes."""
    return ILLEGAL_CHARACTERS_RE.sub(_escape_char, value)


def _extra_headers(ads: Sequence[Ad]) -> list[str]:
    seen: dict[str, None] = {}
    for ad in ads:
        for header in ad.other_fields:
            if header.strip().upper() not in REQUIRED_HEADERS:
                seen.setdefault(header)
    return list(seen)


def _row_values(ad: Ad, extras: list[str]) -> list[Any]:
    values: list[Any] = [
        ad.title,
        _export_price(ad.price),
        ad.condition,
        ad.description,
        ad.category,
        ad.offer_shipping,
    ]
    values.extend(ad.other_fields.get(header) for header in extras)
    return values


def _set_cell(ws: Worksheet, row: int, column: int, value: Any) -> None:
    if isinstance(value, str):
        value = _escape_text(value)
    cell = ws.cell(row=row, column=column, value=value)
    # openpyxl treats a leading "=" as a formula; listings are plain text.
    if isinstance(value, str) and value.startswith("="):
        cell.data_type = "s"


def _append_row(ws: Worksheet, row: int, values: Iterable[Any]) -> None:
    for c_idx, value in enumerate(values, 1):
        _set_cell(ws, row, c_idx, value)


def _auto_width(ws: Worksheet) -> None:
    # Skip the caption rows: they are single long cells.
    max_row = min(ws.max_row, HEADER_ROW + _AUTO_WIDTH_SAMPLE_ROWS)
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=HEADER_ROW, max_row=max_row, min_col=c_idx, max_col=c_idx):
            width = max(width, len(str(row[0].value or "")))
        ws.column_dimensions[letter].width = min(width + 4, _MAX_COLUMN_WIDTH)


# ── Public API ───────────────────────────────────────────────────


def build_workbook(ads: Iterable[Ad], *, include_other_fields: bool = False) -> Workbook:
    """Lay *ads* out in the bulk-upload template and return the workbook.

    Rows: caption, instructions, the fixed header row, then one row per ad
    in ``TITLE, PRICE, CONDITION, DESCRIPTION, CATEGORY, OFFER SHIPPING``
    order. With *include_other_fields*, extra imported columns are appended
    after the fixed ones so a read-then-write cycle keeps them.
    """
    ads = list(ads)
    extras = _extra_headers(ads) if include_other_fields else []

    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet()
    ws.title = SHEET_NAME

    _set_cell(ws, 1, 1, TEMPLATE_TITLE)
    _set_cell(ws, 2, 1, TEMPLATE_INSTRUCTIONS)
    _append_row(ws, HEADER_ROW, [*REQUIRED_HEADERS, *extras])
    for c_idx in range(1, len(REQUIRED_HEADERS) + len(extras) + 1):
        ws.cell(row=HEADER_ROW, column=c_idx).font = HEADER_FONT

    for r_idx, ad in enumerate(ads, FIRST_DATA_ROW):
        _append_row(ws, r_idx, _row_values(ad, extras))
        ws.cell(row=r_idx, column=PRICE_COLUMN).number_format = PRICE_FMT

    ws.freeze_panes = f"A{FIRST_DATA_ROW}"
    _auto_width(ws)
    return wb


def serialize_ads(ads: Iterable[Ad], *, include_other_fields: bool = False) -> bytes:
    """Return the ``.xlsx`` bytes for *ads*."""
    buffer = BytesIO()
    build_workbook(ads, include_other_fields=include_other_fields).save(buffer)
    return buffer.getvalue()


def export_ads_to_excel(
    ads: Iterable[Ad],
    out_dir: Path,
    *,
    filename: str = EXPORT_FILENAME,
    include_other_fields: bool = False,
) -> Path:
    """Write the template for *ads* into *out_dir* and return the path."""
    payload = serialize_ads(ads, include_other_fields=include_other_fields)
    return write_bytes(Path(out_dir) / filename, payload)
