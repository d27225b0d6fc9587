"""Incremental maintenance of the contextual embedding index.

Update cycle:
  1. Load the persisted index; absent / other version → full rebuild.
  2. Detect changes: notes inside the retention window whose
     hash(content + mtime) differs from ``file_hashes`` are *to update*;
     hashed paths that no longer exist are *to remove*. Notes older than the
     window are ignored (neither updated nor removed).
  3. Nothing changed → stop.
  4. Drop chunks + hashes of removed files.
  5. Per updated file: drop its chunks FIRST, then chunk, classify, embed
     (one batch, capped at ``max_batch``) and insert. If embedding fails the
     file keeps its old hash and is retried next cycle; until then it has no
     chunks.
  6. Stamp ``updated_at`` and persist.

Updates run on a copy of the current index; the new snapshot is published
only after it has been saved, so readers never see a half-applied cycle.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TypeVar

from nova_journal.config import IndexCfg
from nova_journal.errors import NotConfiguredError, ProviderError, UpdateInProgressError
from nova_journal.index.classifier import (
    determine_context_type,
    extract_emotional_tags,
    extract_temporal_markers,
    extract_thematic_tags,
)
from nova_journal.index.models import INDEX_VERSION, Chunk, IndexData
from nova_journal.index.notes import NoteFile, scan_notes
from nova_journal.index.store import IndexStore
from nova_journal.index.temporal import MS_PER_DAY, now_ms
from nova_journal.index.vectors import hash_string, split_into_chunks
from nova_journal.rag.llm_client import Embedder

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class UpdateStatus(str, enum.Enum):
    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"
    REBUILT = "rebuilt"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class UpdateReport:
    """Outcome of one update or rebuild cycle."""

    status: UpdateStatus
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    chunks: int = 0
    reason: str = ""


@dataclass(frozen=True)
class PendingFile:
    """A note that needs (re-)embedding, with the content it was hashed from."""

    note: NoteFile
    content: str
    file_hash: str


@dataclass
class ChangeSet:
    to_update: list[PendingFile] = field(default_factory=list)
    to_remove: set[str] = field(default_factory=set)

    @property
    def empty(self) -> bool:
        return not self.to_update and not self.to_remove


# ------------------------------------------------------------------
# Per-file processing
# ------------------------------------------------------------------


def file_hash(content: str, mtime: int) -> str:
    """Change-detection fingerprint of a note: its full text plus its mtime."""
    return hash_string(content + str(mtime))


def prepare_chunks(note: NoteFile, content: str, cfg: IndexCfg) -> list[Chunk]:
    """Split *content* into classified chunks with empty vectors.

    Chunks shorter than ``cfg.min_chunk_chars`` are discarded. Every chunk's
    ``hash`` is the hash of the whole file text.
    """
    source_hash = hash_string(content)
    chunks: list[Chunk] = []
    for text in split_into_chunks(content, cfg.chunk_size, cfg.overlap):
        text = text.strip()
        if len(text) < cfg.min_chunk_chars:
            continue
        chunks.append(
            Chunk(
                path=note.path,
                date=note.date,
                last_modified=note.date,
                text=text,
                vector=[],
                context_type=determine_context_type(text),
                hash=source_hash,
                emotional_tags=extract_emotional_tags(text),
                thematic_tags=extract_thematic_tags(text),
                temporal_markers=extract_temporal_markers(text),
            )
        )
    return chunks


def update_file_chunks(
    index: IndexData,
    pending: PendingFile,
    embedder: Embedder,
    cfg: IndexCfg,
) -> int:
    """Replace all chunks of one file in *index*. Returns the number stored.

    The file's old chunks are removed before anything else happens; its hash
    is only updated once new vectors are stored.

    Raises:
        ProviderError: If the embedding call fails or returns nothing. The
            file then has no chunks and keeps its previous hash.
    """
    path = pending.note.path
    index.remove_paths({path}, drop_hashes=False)

    drafts = prepare_chunks(pending.note, pending.content, cfg)
    if not drafts:
        index.file_hashes[path] = pending.file_hash
        return 0

    batch = drafts[: cfg.max_batch]
    if len(drafts) > len(batch):
        logger.warning(
            "%s: %d chunks exceed the batch cap of %d; extra chunks dropped",
            path, len(drafts), cfg.max_batch,
        )

    embeddings = embedder.embed([c.text for c in batch])
    if not embeddings:
        raise ProviderError(f"No embeddings returned for {path}")

    stored = 0
    for draft, vector in zip(batch, embeddings):
        if not vector:
            continue
        index.items.append(replace(draft, vector=list(vector)))
        stored += 1

    index.file_hashes[path] = pending.file_hash
    return stored


def _process_files(
    index: IndexData,
    pending_files: list[PendingFile],
    embedder: Embedder,
    cfg: IndexCfg,
    report: UpdateReport,
) -> None:
    for pending in pending_files:
        path = pending.note.path
        try:
            report.chunks += update_file_chunks(index, pending, embedder, cfg)
            report.updated.append(path)
        except NotConfiguredError:
            raise
        except Exception as exc:
            logger.error("Failed to update chunks for %s: %s", path, exc)
            report.failed.append(path)


# ------------------------------------------------------------------
# Change detection
# ------------------------------------------------------------------


def _pending(note: NoteFile) -> PendingFile:
    content = note.read_text()
    return PendingFile(note=note, content=content, file_hash=file_hash(content, note.mtime))


def detect_changes(
    index: IndexData,
    notes: list[NoteFile],
    cfg: IndexCfg,
    now: int,
) -> ChangeSet:
    """Compare *notes* against ``index.file_hashes``."""
    cutoff = now - cfg.retention_days * MS_PER_DAY
    changes = ChangeSet()

    for note in notes:
        if note.date < cutoff:
            continue
        pending = _pending(note)
        if index.file_hashes.get(note.path) != pending.file_hash:
            changes.to_update.append(pending)

    current = {note.path for note in notes}
    changes.to_remove = {path for path in index.file_hashes if path not in current}
    return changes


# ------------------------------------------------------------------
# Cycles on an explicit index handle
# ------------------------------------------------------------------


def apply_incremental_update(
    index: IndexData,
    notes: list[NoteFile],
    embedder: Embedder,
    cfg: IndexCfg,
    now: int,
) -> tuple[IndexData, UpdateReport]:
    """Run one incremental cycle on a copy of *index*.

    Returns *index* itself (untouched) when nothing changed, otherwise the
    updated copy.
    """
    changes = detect_changes(index, notes, cfg, now)
    if changes.empty:
        return index, UpdateReport(status=UpdateStatus.UP_TO_DATE)

    logger.info(
        "Updating %d files, removing %d files",
        len(changes.to_update), len(changes.to_remove),
    )
    new_index = index.copy()
    report = UpdateReport(status=UpdateStatus.UPDATED, removed=sorted(changes.to_remove))

    new_index.remove_paths(changes.to_remove)
    _process_files(new_index, changes.to_update, embedder, cfg, report)

    new_index.updated_at = now
    return new_index, report


def build_full_index(
    notes: list[NoteFile],
    embedder: Embedder,
    cfg: IndexCfg,
    model: str,
    now: int,
    version: str = INDEX_VERSION,
) -> tuple[IndexData, UpdateReport]:
    """Build a fresh index from every note inside the retention window.

    Older notes are left out entirely (unlike incremental mode, which keeps
    their existing chunks).
    """
    cutoff = now - cfg.retention_days * MS_PER_DAY
    index = IndexData(model=model, version=version, updated_at=now)
    report = UpdateReport(status=UpdateStatus.REBUILT)

    pending_files: list[PendingFile] = []
    for note in notes:
        if note.date < cutoff:
            continue
        try:
            pending_files.append(_pending(note))
        except OSError as exc:
            logger.error("Failed to read %s: %s", note.path, exc)
            report.failed.append(note.path)

    _process_files(index, pending_files, embedder, cfg, report)
    return index, report


# ------------------------------------------------------------------
# Indexer service
# ------------------------------------------------------------------


class Indexer:
    """Owns one vault's index: loading, update cycles, and the current snapshot.

    Only one update cycle runs at a time; a cycle requested while another is
    running is reported as SKIPPED. ``update()`` and ``rebuild()`` never
    raise: failures come back as a FAILED/SKIPPED report.

    Args:
        vault_dir: Vault root; notes are scanned under ``vault_dir / cfg.folder``.
        store:     Persistence for this vault's index.
        embedder:  Embedding provider.
        cfg:       Indexing settings.
        clock:     Returns "now" in epoch milliseconds (injectable for tests).
    """

    def __init__(
        self,
        vault_dir: Path,
        store: IndexStore,
        embedder: Embedder,
        cfg: IndexCfg,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._vault_dir = Path(vault_dir)
        self._store = store
        self._embedder = embedder
        self._cfg = cfg
        self._clock = clock
        self._lock = threading.Lock()
        self._index: IndexData | None = None
        self._loaded = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> IndexData | None:
        """Return the current index snapshot (loaded lazily), or None."""
        if not self._loaded:
            self._index = self._store.load()
            self._loaded = True
        return self._index

    # ------------------------------------------------------------------
    # Update cycles
    # ------------------------------------------------------------------

    def update(self) -> UpdateReport:
        """Run an incremental update (falls back to a full rebuild when needed)."""
        return self._run(self._update_locked)

    def rebuild(self) -> UpdateReport:
        """Discard the index and rebuild it from all eligible notes."""
        return self._run(self._rebuild_locked)

    def clear(self) -> bool:
        """Delete the persisted index. Returns False if nothing was stored.

        Raises:
            UpdateInProgressError: If an update cycle is running.
        """
        return self._guarded(self._clear_locked)

    def _run(self, cycle: Callable[[], UpdateReport]) -> UpdateReport:
        try:
            return self._guarded(cycle)
        except (UpdateInProgressError, NotConfiguredError) as exc:
            logger.info("Index update skipped: %s", exc)
            return UpdateReport(status=UpdateStatus.SKIPPED, reason=str(exc))
        except Exception as exc:
            logger.exception("Index update failed")
            return UpdateReport(status=UpdateStatus.FAILED, reason=str(exc))

    def _guarded(self, cycle: Callable[[], _T]) -> _T:
        if not self._lock.acquire(blocking=False):
            raise UpdateInProgressError("Another index update is already running.")
        try:
            return cycle()
        finally:
            self._lock.release()

    def _scan(self) -> list[NoteFile]:
        return scan_notes(self._vault_dir, self._cfg.folder)

    def _update_locked(self) -> UpdateReport:
        self._embedder.check()
        current = self.snapshot()
        if current is None:
            return self._rebuild_locked()

        try:
            new_index, report = apply_incremental_update(
                current, self._scan(), self._embedder, self._cfg, self._clock()
            )
        except NotConfiguredError:
            raise
        except Exception:
            logger.exception("Incremental update failed; performing full rebuild")
            return self._rebuild_locked()

        if report.status is UpdateStatus.UP_TO_DATE:
            logger.info("Index is up to date")
            return report

        self._publish(new_index)
        report.chunks = len(new_index.items)
        return report

    def _rebuild_locked(self) -> UpdateReport:
        self._embedder.check()
        logger.info("Performing full rebuild")
        new_index, report = build_full_index(
            self._scan(),
            self._embedder,
            self._cfg,
            model=self._store.model,
            now=self._clock(),
            version=self._store.version,
        )
        self._publish(new_index)
        report.chunks = len(new_index.items)
        return report

    def _clear_locked(self) -> bool:
        removed = self._store.clear()
        self._index = None
        self._loaded = True
        logger.info("Index cleared")
        return removed

    def _publish(self, index: IndexData) -> None:
        self._store.save(index)
        self._index = index
        self._loaded = True
