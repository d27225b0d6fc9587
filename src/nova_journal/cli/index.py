"""nova index: incremental update, full rebuild and removal of the embedding index."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from nova_journal.cli.errors import err_no_journal_folder, err_not_configured, warn_update_skipped
from nova_journal.cli.runtime import DbOpt, DebugOpt, Runtime, VaultOpt, console, open_runtime
from nova_journal.errors import NotConfiguredError, UpdateInProgressError
from nova_journal.index.indexer import UpdateReport, UpdateStatus

index_app = typer.Typer(help="Maintain the journal embedding index.", add_completion=False)


@index_app.command("update")
def update_cmd(
    vault: VaultOpt = Path("."),
    db: DbOpt = None,
    debug: DebugOpt = False,
) -> None:
    """Re-embed new or changed notes and drop deleted ones."""
    with open_runtime(vault, db, debug) as rt:
        _precheck(rt)
        report = _run(rt, rebuild=False)
    _print_report(report)


@index_app.command("rebuild")
def rebuild_cmd(
    vault: VaultOpt = Path("."),
    db: DbOpt = None,
    debug: DebugOpt = False,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt."),
) -> None:
    """Discard the index and rebuild it from every note in the retention window."""
    with open_runtime(vault, db, debug) as rt:
        _precheck(rt)
        if not yes and rt.indexer.snapshot() is not None:
            typer.confirm("Discard the existing index and re-embed all notes?", abort=True)
        report = _run(rt, rebuild=True)
    _print_report(report)


@index_app.command("clear")
def clear_cmd(
    vault: VaultOpt = Path("."),
    db: DbOpt = None,
    debug: DebugOpt = False,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt."),
) -> None:
    """Delete this vault's stored index (notes are not touched)."""
    with open_runtime(vault, db, debug) as rt:
        if rt.indexer.snapshot() is None:
            console.print("[dim]No index stored for this vault.[/]")
            return
        if not yes:
            typer.confirm("Delete the stored index for this vault?", abort=True)
        try:
            rt.indexer.clear()
        except UpdateInProgressError as exc:
            console.print(warn_update_skipped(str(exc)))
            raise typer.Exit(1) from exc
    console.print("[green]✓[/] Index cleared. Run: nova index update")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _precheck(rt: Runtime) -> None:
    try:
        rt.embedder.check()
    except NotConfiguredError as exc:
        console.print(err_not_configured(exc, rt.cfg.ai.api_key_env))
        raise typer.Exit(1) from exc
    if not rt.journal_dir.is_dir():
        console.print(err_no_journal_folder(rt.journal_dir))
        raise typer.Exit(1)


def _run(rt: Runtime, rebuild: bool) -> UpdateReport:
    label = "Rebuilding index…" if rebuild else "Updating index…"
    with Progress(SpinnerColumn(), TextColumn("{task.description}"), console=console, transient=True) as progress:
        progress.add_task(label, total=None)
        return rt.indexer.rebuild() if rebuild else rt.indexer.update()


def _print_report(report: UpdateReport) -> None:
    if report.status is UpdateStatus.SKIPPED:
        console.print(warn_update_skipped(report.reason))
        return
    if report.status is UpdateStatus.FAILED:
        console.print(f"[red]Error:[/] Index update failed: {report.reason}")
        raise typer.Exit(1)
    if report.status is UpdateStatus.UP_TO_DATE:
        console.print("[green]✓[/] Index is up to date.")
        return

    verb = "Rebuilt" if report.status is UpdateStatus.REBUILT else "Updated"
    console.print(
        f"[green]✓[/] {verb}: {len(report.updated)} notes embedded, "
        f"{len(report.removed)} removed, {report.chunks} chunks in index."
    )
    for path in report.failed:
        console.print(f"  [yellow]✗ {path}[/] (will retry on next update)")
