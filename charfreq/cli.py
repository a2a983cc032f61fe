"""charfreq CLI — Typer entry point with Rich formatting."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from charfreq.audit import read_audit
from charfreq.config import Settings, load_settings
from charfreq.errors import FetchError, StorageError
from charfreq.fetcher import canonical_repository
from charfreq.ranking import rank
from charfreq.report import render
from charfreq.scanner import collect, open_store

app = typer.Typer(
    name="charfreq",
    help="charfreq — character frequency statistics for source repositories.",
    no_args_is_help=True,
)
console = Console()

_DEFAULT_CONFIG = Path("charfreq.yaml")

ConfigOption = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to charfreq.yaml"),
]


def _load(config: Path) -> Settings:
    """Load settings; a missing default config file means built-in defaults."""
    if config == _DEFAULT_CONFIG and not config.exists():
        return Settings()
    try:
        return load_settings(config)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


@app.command()
def count(
    repository: Annotated[str, typer.Argument(help="Git URL, .tar.gz URL or local directory")],
    mask: Annotated[str, typer.Argument(help="File mask, e.g. '*.go'")],
    ignore_letters: Annotated[bool, typer.Option("--ignore-letters", "-a", help="Ignore letters")] = False,
    ignore_digits: Annotated[bool, typer.Option("--ignore-digits", "-n", help="Ignore digits")] = False,
    ignore_symbols: Annotated[bool, typer.Option("--ignore-symbols", "-s", help="Ignore symbols")] = False,
    case_sensitive: Annotated[bool, typer.Option("--case-sensitive", "--cs", help="Keep letter case")] = False,
    count_space: Annotated[bool, typer.Option("--count-space", "--sp", help="Count whitespace")] = False,
    top: Annotated[int | None, typer.Option("--top", help="Show top N characters (0 = all)")] = None,
    refresh: Annotated[bool, typer.Option("--refresh", help="Rescan even if cached")] = False,
    config: ConfigOption = _DEFAULT_CONFIG,
) -> None:
    """Show the most frequent characters in files matching MASK."""
    settings = _load(config)

    # Flags only switch options on; values from the config file are kept otherwise.
    ignore = settings.report.ignore.model_copy(
        update={
            "letters": ignore_letters or settings.report.ignore.letters,
            "digits": ignore_digits or settings.report.ignore.digits,
            "symbols": ignore_symbols or settings.report.ignore.symbols,
            "count_space": count_space or settings.report.ignore.count_space,
        }
    )
    report_update: dict[str, object] = {"ignore": ignore}
    if top is not None:
        if top < 0:
            console.print("[red]--top must not be negative[/red]")
            raise typer.Exit(code=1)
        report_update["top_n"] = top
    settings = settings.model_copy(
        update={
            "counting": settings.counting.model_copy(
                update={"case_sensitive": case_sensitive or settings.counting.case_sensitive}
            ),
            "report": settings.report.model_copy(update=report_update),
        }
    )

    try:
        result = collect(settings, repository, mask, refresh=refresh)
    except FetchError as exc:
        console.print(f"[red]Cannot fetch repository: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    except StorageError as exc:
        console.print(f"[red]Statistics database error: {exc}[/red]")
        raise typer.Exit(code=1) from exc

    if not result.from_cache:
        console.print(
            f"Scanned {result.files_scanned} files, "
            f"{len(result.buckets)} text extension(s) stored."
        )
        for bucket, n_files in result.buckets.items():
            console.print(f"  {bucket:12s} {n_files} file(s)")
        for err in result.file_errors:
            console.print(f"  [yellow]skipped[/yellow] {err}")
    else:
        console.print(
            "[dim]Served from cache; counting options such as --case-sensitive "
            "take effect with --refresh.[/dim]"
        )

    if not result.aggregate:
        console.print(f"[dim]No statistics for {result.bucket} in {result.repository}.[/dim]")
        return

    source = "cache" if result.from_cache else "fresh scan"
    render(
        rank(result.aggregate, settings.report),
        console,
        title=f"{result.bucket} in {result.repository} ({source})",
    )


@app.command()
def cached(
    repository: Annotated[str, typer.Argument(help="Repository to inspect")],
    config: ConfigOption = _DEFAULT_CONFIG,
) -> None:
    """List the extension buckets cached for a repository."""
    settings = _load(config)
    key = canonical_repository(repository)
    try:
        store = open_store(settings)
        buckets = store.buckets(key)
        totals = {bucket: sum(store.lookup(key, bucket).values()) for bucket in buckets}
    except StorageError as exc:
        console.print(f"[red]Statistics database error: {exc}[/red]")
        raise typer.Exit(code=1) from exc

    if not buckets:
        console.print(f"[dim]Nothing cached for {key}.[/dim]")
        return

    table = Table(title=f"Cached buckets for {key}")
    table.add_column("Bucket", style="cyan")
    table.add_column("Characters", justify="right")
    for bucket in buckets:
        table.add_row(bucket, str(totals[bucket]))
    console.print(table)


@app.command()
def audit(
    config: ConfigOption = _DEFAULT_CONFIG,
    count: Annotated[int, typer.Option("--count", "-n", help="Number of entries")] = 20,
) -> None:
    """Show recent audit log entries."""
    settings = _load(config)
    entries = read_audit(settings.state_path(), last_n=count)

    if not entries:
        console.print("[dim]No audit log entries found.[/dim]")
        return

    table = Table(title="Audit Log (most recent first)")
    table.add_column("Timestamp", style="cyan", no_wrap=True)
    table.add_column("Action", style="magenta")
    table.add_column("Status")
    table.add_column("Repository", max_width=40)
    table.add_column("Detail", max_width=60)

    for entry in entries:
        ts = entry.get("timestamp", "?")[:19]
        action = entry.get("action", "?")
        status = entry.get("status", "?")
        repo = entry.get("repository", "")
        detail = entry.get("detail", "")[:60]
        style = "red" if status == "error" else "green"
        table.add_row(ts, action, f"[{style}]{status}[/{style}]", repo, detail)

    console.print(table)


@app.command(name="config")
def show_config(
    config: ConfigOption = _DEFAULT_CONFIG,
) -> None:
    """Display the effective settings."""
    settings = _load(config)

    table = Table(title="charfreq Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    ignore = settings.report.ignore
    table.add_row("Database", str(settings.database_path()))
    table.add_row("State directory", str(settings.state_path()))
    table.add_row("Case sensitive", "yes" if settings.counting.case_sensitive else "no")
    table.add_row("Encoding", settings.counting.encoding)
    table.add_row("Top N", str(settings.report.top_n) if settings.report.top_n else "all")
    table.add_row(
        "Ignored classes",
        ", ".join(
            name
            for name, on in (
                ("letters", ignore.letters),
                ("digits", ignore.digits),
                ("symbols", ignore.symbols),
                ("whitespace", not ignore.count_space),
            )
            if on
        )
        or "(none)",
    )
    table.add_row("Max file size", f"{settings.limits.max_file_mb} MB")
    table.add_row("Max files", str(settings.limits.max_files))
    table.add_row("Workers", str(settings.limits.workers))
    table.add_row("Clone depth", str(settings.fetch.clone_depth))

    console.print(table)
