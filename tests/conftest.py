"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from nova_journal.config import IndexCfg
from nova_journal.db.connection import Database
from nova_journal.db.migrations import run_migrations
from nova_journal.db.repository import KeyValueRepository
from nova_journal.errors import ProviderError
from nova_journal.index.store import IndexStore

FAKE_MODEL = "fake/keyword-embedder"

# One dimension per keyword group; a text scores 1.0 on a dimension if any
# keyword of the group occurs in it.
KEYWORD_DIMS: tuple[tuple[str, ...], ...] = (
    ("family", "sister", "julia"),
    ("happy", "great"),
    ("work", "meeting"),
    ("anxious", "stress"),
    ("feel", "felt"),
)


def keyword_vector(text: str) -> list[float]:
    lower = text.lower()
    return [1.0 if any(w in lower for w in group) else 0.0 for group in KEYWORD_DIMS]


class KeywordEmbedder:
    """Deterministic offline embedder.

    Args:
        fail_on: Raise ProviderError for any batch containing this substring.
        on_embed: Called before each batch (lets tests re-enter the indexer).
    """

    def __init__(self, fail_on: str | None = None, on_embed=None) -> None:
        self.fail_on = fail_on
        self.on_embed = on_embed
        self.calls: list[list[str]] = []
        self.model = FAKE_MODEL

    def check(self) -> None:
        pass

    def embed(self, inputs: list[str]) -> list[list[float]]:
        self.calls.append(list(inputs))
        if self.on_embed is not None:
            self.on_embed()
        if self.fail_on and any(self.fail_on in text for text in inputs):
            raise ProviderError(f"simulated failure for {self.fail_on!r}")
        return [keyword_vector(t) if t.strip() else [] for t in inputs]


def ms(year: int, month: int, day: int, hour: int = 0) -> int:
    """Local-time epoch milliseconds."""
    return int(datetime(year, month, day, hour).timestamp() * 1000)


# As-of time for the journal scenario: 2024-01-11 noon.
AS_OF = ms(2024, 1, 11, 12)

JOURNAL_NOTES = {
    "2024-01-01.md": "Had a great day with my sister Julia, feeling really happy",
    "2024-01-10.md": "Stressful meeting at work, felt anxious",
}


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with migrations applied, closed after test."""
    db = Database(tmp_path / "index.db")
    conn = db.connect()
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def kv_repo(tmp_db):
    return KeyValueRepository(tmp_db)


@pytest.fixture
def store(kv_repo):
    return IndexStore(kv_repo, "My Vault", model=FAKE_MODEL)


@pytest.fixture
def make_embedder():
    return KeywordEmbedder


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def index_cfg():
    """Small-note friendly indexing settings."""
    return IndexCfg(folder="Journal", min_chunk_chars=10)


@pytest.fixture
def vault(tmp_path) -> Path:
    """Vault with the two-note journal scenario under Journal/."""
    root = tmp_path / "vault"
    journal = root / "Journal"
    journal.mkdir(parents=True)
    for name, text in JOURNAL_NOTES.items():
        (journal / name).write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def clock():
    return lambda: AS_OF
