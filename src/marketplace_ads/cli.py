"""CLI entry point for marketplace-ads."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from marketplace_ads import REQUIRED_HEADERS, __version__
from marketplace_ads.catalog import Catalog
from marketplace_ads.io import read_bytes, write_json
from marketplace_ads.models import EXPORT_FILENAME, FormatError, ParsedWorkbook
from marketplace_ads.reader import parse_workbook
from marketplace_ads.writer import export_ads_to_excel

app = typer.Typer(
    name="adcat",
    help="marketplace-ads — Build, check and bulk-export classified-ad listings.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"marketplace-ads v{__version__}")
        raise typer.Exit()


def _load(input_file: Path) -> ParsedWorkbook:
    """Parse *input_file*, turning structural failures into exit code 2."""
    try:
        return parse_workbook(read_bytes(input_file))
    except FormatError as exc:
        _err(str(exc))
        console.print(f"  Expected header row (row 3): {', '.join(REQUIRED_HEADERS)}")
        raise typer.Exit(code=2)
    except (FileNotFoundError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)


def _status_table(catalog: Catalog, errors: dict[str, dict[str, str]]) -> RichTable:
    tbl = RichTable(title="Listings", show_lines=True)
    tbl.add_column("#", justify="right")
    tbl.add_column("Title", style="bold")
    tbl.add_column("Price", justify="right")
    tbl.add_column("Condition")
    tbl.add_column("Category")
    tbl.add_column("Status")

    for idx, ad in enumerate(catalog, 1):
        price = ad.price if isinstance(ad.price, (int, float)) else 0.0
        problems = errors.get(ad.id)
        if problems:
            status = "[red]" + "; ".join(problems.values()) + "[/red]"
        else:
            status = "[green]ready[/green]"
        tbl.add_row(str(idx), ad.title, f"${price:.2f}", ad.condition, ad.category, status)
    return tbl


def _echo_warnings(echo: Callable[..., None], parsed: ParsedWorkbook) -> None:
    for w in parsed.report.warnings:
        echo(f"  [yellow]![/yellow] {w}")
    if parsed.report.unknown_columns:
        echo(f"  Extra columns: {', '.join(parsed.report.unknown_columns)}")


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """marketplace-ads CLI."""


# ── check command ────────────────────────────────────────────────


@app.command()
def check(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to a bulk-upload template (.xlsx or .xls).",
        exists=True, readable=True,
    ),
    out_dir: Path | None = typer.Option(
        None, "--out-dir", "-o",
        help="Write import_report.json into this directory.",
    ),
    strict: bool = typer.Option(
        False, "--strict",
        help="Also reject condition / offer shipping values outside the option lists.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output.",
    ),
) -> None:
    """Import a template and report which listings are ready to publish.

    Exit 0 = every listing valid, exit 2 = bad template or invalid listings.
    """
    echo = _printer(quiet)
    echo(Panel(
        f"[bold]marketplace-ads[/bold] v{__version__}  [dim]check mode[/dim]\n"
        f"Input: {input_file}",
        title="Check", border_style="cyan",
    ))

    parsed = _load(input_file)
    try:
        catalog = Catalog(parsed.ads)
        errors = catalog.errors(strict=strict)

        echo(f"  {parsed.report.rows_out} listings ({parsed.report.skipped_rows} empty rows skipped)")
        _echo_warnings(echo, parsed)
        if out_dir is not None:
            payload = parsed.report.to_dict()
            payload["invalid"] = errors
            report_path = write_json(out_dir / "import_report.json", payload)
            echo(f"  Report -> {report_path}")

        if not quiet and len(catalog):
            console.print(_status_table(catalog, errors))
    except OSError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)

    if errors:
        _err(f"{len(errors)} of {len(catalog)} listings are not ready to publish")
        raise typer.Exit(code=2)
    echo("[green]All listings are ready to publish[/green]")


# ── export command ───────────────────────────────────────────────


@app.command()
def export(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to a bulk-upload template (.xlsx or .xls).",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for the exported template.",
    ),
    keep_extra_columns: bool = typer.Option(
        False, "--keep-extra-columns",
        help="Re-emit columns the template does not define after the fixed ones.",
    ),
    allow_invalid: bool = typer.Option(
        False, "--allow-invalid",
        help="Export even when some listings fail validation.",
    ),
    strict: bool = typer.Option(
        False, "--strict",
        help="Also reject condition / offer shipping values outside the option lists.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output.",
    ),
) -> None:
    """Import a template and write it back out in the canonical layout."""
    echo = _printer(quiet)
    echo(Panel(
        f"[bold]marketplace-ads[/bold] v{__version__}\n"
        f"Input:  {input_file}\nOutput: {out_dir / EXPORT_FILENAME}",
        title="Export", border_style="blue",
    ))

    parsed = _load(input_file)
    try:
        catalog = Catalog(parsed.ads)
        _echo_warnings(echo, parsed)

        errors = catalog.errors(strict=strict)
        if errors and not allow_invalid:
            _err(f"{len(errors)} of {len(catalog)} listings are not ready to publish")
            console.print("  Hint: run 'adcat check' for details, or pass --allow-invalid")
            raise typer.Exit(code=2)

        path = export_ads_to_excel(catalog, out_dir, include_other_fields=keep_extra_columns)

        echo(Panel(
            f"[green]Done[/green] — {len(catalog)} listings -> {path}",
            title="Export Complete", border_style="green",
        ))
    except typer.Exit:
        raise
    except OSError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)


# ── template command ─────────────────────────────────────────────


@app.command()
def template(
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for the empty template.",
    ),
) -> None:
    """Write an empty bulk-upload template (captions + header row)."""
    try:
        path = export_ads_to_excel([], out_dir)
    except OSError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    console.print(f"  Template -> {path}")
