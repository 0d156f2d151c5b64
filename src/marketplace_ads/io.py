"""I/O helpers — decode workbook payloads, write artifacts."""

from __future__ import annotations

import json
import zipfile
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from marketplace_ads.models import FormatError

# Compound File Binary signature used by legacy .xls workbooks.
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# ── Loading ──────────────────────────────────────────────────────


def read_bytes(path: Path) -> bytes:
    """Return the raw contents of *path*.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    return path.read_bytes()


def _excel_engine(raw: bytes) -> str:
    return "xlrd" if raw.startswith(_OLE2_MAGIC) else "openpyxl"


def _cell(value: Any) -> Any:
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    item = getattr(value, "item", None)
    if callable(item):
        return item()
    return value


def _trim_row(values: tuple[Any, ...]) -> list[Any]:
    row = [_cell(v) for v in values]
    while row and row[-1] is None:
        row.pop()
    return row


def read_sheet_rows(raw: bytes) -> list[list[Any]]:
    """Decode *raw* workbook bytes and return the first sheet as rows.

    Each row is a list of cell scalars (``str``, ``int``, ``float``,
    ``bool``, ``datetime``) with empty cells as ``None``. Trailing empty
    cells are dropped, so rows keep their ragged width.

    Raises
    ------
    FormatError
        If the payload is not a readable workbook (``code="unreadable"``).
    """
    engine = _excel_engine(raw)
    read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
    try:
        df = read_excel(
            BytesIO(raw),
            sheet_name=0,
            header=None,
            engine=engine,
            dtype=object,
            keep_default_na=False,
            na_values=[""],
        )
    except ImportError as exc:
        raise FormatError(
            "Legacy .xls input needs 'xlrd'. "
            "Either convert to .xlsx or add dependency: pip install xlrd",
            code="unreadable",
        ) from exc
    except (zipfile.BadZipFile, InvalidFileException, ValueError, KeyError, OSError) as exc:
        raise FormatError(
            "Could not read the file as a spreadsheet workbook.", code="unreadable"
        ) from exc
    except Exception as exc:
        # engine-specific decode errors, e.g. xlrd.XLRDError
        raise FormatError(
            f"Could not read the file as a spreadsheet workbook: {exc}", code="unreadable"
        ) from exc

    return [_trim_row(values) for values in df.itertuples(index=False, name=None)]


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_bytes(path: Path, payload: bytes) -> Path:
    """Write *payload* to *path* atomically and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_bytes(payload)
    tmp_path.replace(path)
    return path


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    return write_bytes(path, payload.encode("utf-8"))
