"""CLI fixtures: a vault with recent notes, isolated config and an offline embedder."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest
import yaml

from nova_journal.cli.runtime import console

RECENT_NOTES = {
    10: "Had a great day with my sister Julia, feeling really happy",
    1: "Stressful meeting at work, felt anxious",
}


def note_name(days_ago: int) -> str:
    return f"{date.today() - timedelta(days=days_ago):%Y-%m-%d}.md"


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.setattr("nova_journal.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    # Long tmp paths must not wrap mid-message.
    monkeypatch.setattr(console, "width", 240)
    for var in ("NOVA_EMBEDDING_MODEL", "NOVA_COMPLETION_MODEL", "NOVA_JOURNAL_FOLDER"):
        monkeypatch.delenv(var, raising=False)
    logger = logging.getLogger("nova_journal")
    handlers, propagate, level = list(logger.handlers), logger.propagate, logger.level
    yield
    logger.handlers[:] = handlers
    logger.propagate = propagate
    logger.setLevel(level)


@pytest.fixture
def cli_vault(tmp_path) -> SimpleNamespace:
    """Vault with two recent notes plus a db path; returns .root, .db, .args."""
    root = tmp_path / "vault"
    journal = root / "Journal"
    journal.mkdir(parents=True)
    for days_ago, text in RECENT_NOTES.items():
        (journal / note_name(days_ago)).write_text(text, encoding="utf-8")
    (root / "nova.yaml").write_text(
        yaml.dump({"index": {"min_chunk_chars": 10}}), encoding="utf-8"
    )
    db = tmp_path / "index.db"
    return SimpleNamespace(root=root, db=db, args=["--vault", str(root), "--db", str(db)])


@pytest.fixture
def offline(monkeypatch, make_embedder):
    """Swap the provider-backed embedder for the keyword embedder."""
    embedder = make_embedder()
    monkeypatch.setattr("nova_journal.cli.runtime.EmbeddingClient", lambda cfg: embedder)
    return embedder
