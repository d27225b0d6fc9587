"""Shared wiring for CLI commands: config → database → indexer/engine/assembler."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from nova_journal.cli.errors import err_config
from nova_journal.config import ConfigError, NovaConfig, load_config
from nova_journal.db.connection import Database
from nova_journal.db.migrations import run_migrations
from nova_journal.db.repository import KeyValueRepository
from nova_journal.index.indexer import Indexer
from nova_journal.index.store import IndexStore
from nova_journal.log import configure_logging
from nova_journal.rag.assembler import RagContextAssembler
from nova_journal.rag.llm_client import EmbeddingClient
from nova_journal.rag.retriever import RetrievalEngine

console = Console()

VaultOpt = Annotated[
    Path,
    typer.Option("--vault", "-v", help="Vault root directory (default: current directory)."),
]
DbOpt = Annotated[
    Path | None,
    typer.Option("--db", help="Index database path (default: index.storage from config)."),
]
DebugOpt = Annotated[
    bool,
    typer.Option("--debug", help="Verbose logging."),
]


@dataclass
class Runtime:
    cfg: NovaConfig
    vault: Path
    conn: sqlite3.Connection
    embedder: EmbeddingClient
    store: IndexStore
    indexer: Indexer
    engine: RetrievalEngine
    assembler: RagContextAssembler

    @property
    def journal_dir(self) -> Path:
        return self.vault / self.cfg.index.folder


def load_config_or_exit(vault: Path) -> NovaConfig:
    try:
        return load_config(vault)
    except ConfigError as exc:
        console.print(err_config(exc))
        raise typer.Exit(1) from exc


@contextmanager
def open_runtime(vault: Path, db: Path | None = None, debug: bool = False) -> Iterator[Runtime]:
    """Build every collaborator for *vault*; the database is closed on exit."""
    vault = vault.resolve()
    cfg = load_config_or_exit(vault)
    configure_logging(debug or cfg.logging.debug)

    conn = Database(db if db is not None else Path(cfg.index.storage)).connect()
    try:
        run_migrations(conn)
        embedder = EmbeddingClient(cfg.ai)
        store = IndexStore(KeyValueRepository(conn), vault.name, model=embedder.model)
        indexer = Indexer(vault, store, embedder, cfg.index)
        engine = RetrievalEngine(embedder, indexer.snapshot, cfg.search)
        yield Runtime(
            cfg=cfg,
            vault=vault,
            conn=conn,
            embedder=embedder,
            store=store,
            indexer=indexer,
            engine=engine,
            assembler=RagContextAssembler(engine, cfg.rag),
        )
    finally:
        conn.close()
