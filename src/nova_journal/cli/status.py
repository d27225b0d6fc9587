"""nova status: vault, provider and index overview."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from pathlib import Path

from rich.panel import Panel
from rich.table import Table

from nova_journal.cli.errors import warn_no_index
from nova_journal.cli.runtime import DbOpt, DebugOpt, Runtime, VaultOpt, console, open_runtime
from nova_journal.db.repository import KeyValueRepository
from nova_journal.errors import NotConfiguredError
from nova_journal.index.indexer import detect_changes
from nova_journal.index.models import ContextType, IndexData
from nova_journal.index.notes import scan_notes
from nova_journal.index.store import INDEX_KEY_PREFIX
from nova_journal.index.temporal import now_ms


def status_cmd(
    vault: VaultOpt = Path("."),
    db: DbOpt = None,
    debug: DebugOpt = False,
) -> None:
    """Show vault, AI provider and index status."""
    with open_runtime(vault, db, debug) as rt:
        notes = scan_notes(rt.vault, rt.cfg.index.folder)
        _show_vault_panel(rt, len(notes))

        index = rt.indexer.snapshot()
        if index is None:
            console.print(Panel(warn_no_index(), title="[bold]Index[/]", expand=False))
            return
        changes = detect_changes(index, notes, rt.cfg.index, now_ms())
        _show_index_panel(rt, index, len(changes.to_update), len(changes.to_remove))


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_vault_panel(rt: Runtime, note_count: int) -> None:
    folder = rt.journal_dir
    folder_status = "[green]✓[/]" if folder.is_dir() else "[yellow]✗ missing[/]"

    try:
        rt.embedder.check()
        ai_status = "[green]✓ configured[/]"
    except NotConfiguredError as exc:
        ai_status = f"[yellow]✗ {exc}[/]"

    lines = [
        f"Vault:     [bold]{rt.vault}[/]",
        f"Journal:   {folder} {folder_status}  ({note_count} notes)",
        f"Database:  {_db_info(rt)}",
        f"Indexes:   {_stored_indexes(rt)}",
        f"AI:        {ai_status}",
        f"Embedding: [dim]{rt.cfg.ai.embedding_model}[/]",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Vault[/]", expand=False))


def _show_index_panel(rt: Runtime, index: IndexData, pending: int, removed: int) -> None:
    updated = datetime.fromtimestamp(index.updated_at / 1000).strftime("%Y-%m-%d %H:%M")
    lines = [
        f"Key:      [dim]{rt.store.key}[/]",
        f"Version:  {index.version}  |  Model: [dim]{index.model}[/]",
        f"Files:    [bold]{len(index.file_hashes)}[/]  |  Chunks: [bold]{len(index.items):,}[/]",
        f"Updated:  [dim]{updated}[/]",
    ]
    if pending or removed:
        lines.append(
            f"[yellow]Stale:[/]    {pending} to update, {removed} to remove  "
            "(run: nova index update)"
        )
    else:
        lines.append("[green]✓[/] Up to date")

    counts = Counter(chunk.context_type for chunk in index.items)
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Type", style="cyan")
    table.add_column("Chunks", justify="right")
    for ctype in ContextType:
        table.add_row(ctype.value, f"{counts.get(ctype, 0):,}")

    console.print(Panel("\n".join(lines), title="[bold]Index[/]", expand=False))
    console.print(Panel(table, title="[bold]Context types[/]", expand=False))


def _db_info(rt: Runtime) -> str:
    row = rt.conn.execute("PRAGMA database_list").fetchone()
    path = Path(row["file"]) if row and row["file"] else None
    if path is None or not path.exists():
        return "(in memory)"
    size_mb = path.stat().st_size / (1024 * 1024)
    return f"{path} ({size_mb:.1f} MB)"


def _stored_indexes(rt: Runtime) -> str:
    keys = KeyValueRepository(rt.conn).list_keys(INDEX_KEY_PREFIX)
    mine = "this vault included" if rt.store.key in keys else "none for this vault"
    return f"{len(keys)} stored ({mine})"
