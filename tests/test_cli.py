"""CLI integration smoke tests for marketplace-ads."""

from __future__ import annotations

import json
from io import BytesIO
from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook
from typer.testing import CliRunner

import marketplace_ads.cli as cli_mod
from marketplace_ads import REQUIRED_HEADERS, __version__
from marketplace_ads.cli import app
from marketplace_ads.models import EXPORT_FILENAME

runner = CliRunner()

GOOD_ROW: list[object] = [
    "Garden Hose 50ft", 19.99, "Used - Good", "Lightly used hose", "Home & Garden > Tools", "Yes",
]
BAD_ROW: list[object] = ["Hose", -5, "New", "", "", "No"]


def _write_template(tmp_path: Path, name: str, *rows: list[object], header: list[object] | None = None) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.append(["Caption"])
    ws.append(["Instructions"])
    ws.append(list(header) if header is not None else list(REQUIRED_HEADERS))
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    path = tmp_path / name
    path.write_bytes(buffer.getvalue())
    return path


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_check_valid_template_passes_and_writes_report(tmp_path: Path) -> None:
    path = _write_template(tmp_path, "ok.xlsx", GOOD_ROW)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["check", "--input", str(path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 0
    report = json.loads((out_dir / "import_report.json").read_text(encoding="utf-8"))
    assert report["rows_out"] == 1
    assert report["invalid"] == {}


def test_check_invalid_listing_exits_2_with_field_errors(tmp_path: Path) -> None:
    # the empty CATEGORY cell falls back to the default category
    path = _write_template(tmp_path, "bad.xlsx", GOOD_ROW, BAD_ROW)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["check", "--input", str(path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    report = json.loads((out_dir / "import_report.json").read_text(encoding="utf-8"))
    (errors,) = report["invalid"].values()
    assert errors == {
        "title": "Title is too short (min 5 chars)",
        "price": "Price cannot be negative",
        "description": "Description is required",
    }


def test_check_strict_flags_unknown_condition(tmp_path: Path) -> None:
    row = list(GOOD_ROW)
    row[2] = "Mint"
    path = _write_template(tmp_path, "mint.xlsx", row)

    lenient = runner.invoke(app, ["check", "--input", str(path), "--quiet"])
    strict = runner.invoke(app, ["check", "--input", str(path), "--quiet", "--strict"])

    assert lenient.exit_code == 0
    assert strict.exit_code == 2


def test_check_rejects_template_without_price(tmp_path: Path) -> None:
    path = _write_template(tmp_path, "noprice.xlsx", ["Drill"], header=["TITLE", "CONDITION"])

    result = runner.invoke(app, ["check", "--input", str(path), "--quiet"])

    assert result.exit_code == 2
    assert "Invalid Template" in result.output


def test_check_rejects_non_workbook(tmp_path: Path) -> None:
    path = tmp_path / "notes.xlsx"
    path.write_text("just text", encoding="utf-8")

    result = runner.invoke(app, ["check", "--input", str(path), "--quiet"])

    assert result.exit_code == 2


def test_check_prints_listing_table(tmp_path: Path) -> None:
    path = _write_template(tmp_path, "ok.xlsx", GOOD_ROW)

    result = runner.invoke(app, ["check", "--input", str(path)])

    assert result.exit_code == 0
    assert "Listings" in result.output
    assert "ready" in result.output


def test_export_writes_canonical_template(tmp_path: Path) -> None:
    path = _write_template(
        tmp_path, "reordered.xlsx", [19.99, "Cordless Drill", "Tools", "Drill with case"],
        header=["Price", "Title", "Category", "Description"],
    )
    out_dir = tmp_path / "export"

    result = runner.invoke(
        app, ["export", "--input", str(path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 0
    ws = load_workbook(out_dir / EXPORT_FILENAME)["Marketplace Ads"]
    assert [ws.cell(row=3, column=c).value for c in range(1, 7)] == list(REQUIRED_HEADERS)
    assert [ws.cell(row=4, column=c).value for c in range(1, 7)] == [
        "Cordless Drill", 19.99, "New", "Drill with case", "Tools", "No",
    ]


def test_export_refuses_invalid_listings_unless_allowed(tmp_path: Path) -> None:
    path = _write_template(tmp_path, "bad.xlsx", BAD_ROW)
    out_dir = tmp_path / "export"

    refused = runner.invoke(
        app, ["export", "--input", str(path), "--out-dir", str(out_dir), "--quiet"]
    )
    assert refused.exit_code == 2
    assert not (out_dir / EXPORT_FILENAME).exists()

    allowed = runner.invoke(
        app,
        ["export", "--input", str(path), "--out-dir", str(out_dir), "--quiet", "--allow-invalid"],
    )
    assert allowed.exit_code == 0
    assert (out_dir / EXPORT_FILENAME).exists()


def test_export_keep_extra_columns(tmp_path: Path) -> None:
    header = [*REQUIRED_HEADERS, "SKU"]
    path = _write_template(tmp_path, "extra.xlsx", [*GOOD_ROW, "H-50"], header=header)
    out_dir = tmp_path / "export"

    result = runner.invoke(
        app,
        ["export", "--input", str(path), "--out-dir", str(out_dir), "--quiet", "--keep-extra-columns"],
    )

    assert result.exit_code == 0
    ws = load_workbook(out_dir / EXPORT_FILENAME).active
    assert ws.cell(row=3, column=7).value == "SKU"
    assert ws.cell(row=4, column=7).value == "H-50"


def test_template_command_writes_empty_template(tmp_path: Path) -> None:
    result = runner.invoke(app, ["template", "--out-dir", str(tmp_path)])

    assert result.exit_code == 0
    ws = load_workbook(tmp_path / EXPORT_FILENAME).active
    assert ws.max_row == 3
    assert ws.cell(row=3, column=6).value == "OFFER SHIPPING"


def test_export_unexpected_writer_failure_exits_1(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = _write_template(tmp_path, "ok.xlsx", GOOD_ROW)

    def _boom(*_args: object, **_kwargs: object) -> Path:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(cli_mod, "export_ads_to_excel", _boom)

    result = runner.invoke(
        app, ["export", "--input", str(path), "--out-dir", str(tmp_path / "export"), "--quiet"]
    )

    assert result.exit_code == 1
    assert "Unexpected internal error" in result.output
    assert "kaboom" in result.output


def test_export_write_failure_exits_2(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_template(tmp_path, "ok.xlsx", GOOD_ROW)

    def _disk_full(*_args: object, **_kwargs: object) -> Path:
        raise OSError("disk full")

    monkeypatch.setattr(cli_mod, "export_ads_to_excel", _disk_full)

    result = runner.invoke(
        app, ["export", "--input", str(path), "--out-dir", str(tmp_path / "export"), "--quiet"]
    )

    assert result.exit_code == 2
    assert "disk full" in result.output


def test_check_report_write_failure_exits_2(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = _write_template(tmp_path, "ok.xlsx", GOOD_ROW)

    def _disk_full(*_args: object, **_kwargs: object) -> Path:
        raise OSError("disk full")

    monkeypatch.setattr(cli_mod, "write_json", _disk_full)

    result = runner.invoke(
        app, ["check", "--input", str(path), "--out-dir", str(tmp_path / "out"), "--quiet"]
    )

    assert result.exit_code == 2
    assert "disk full" in result.output
    assert "Unexpected internal error" not in result.output
