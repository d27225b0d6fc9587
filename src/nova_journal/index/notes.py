"""Eligible-note discovery under the vault's journal folder, plus note frontmatter."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from nova_journal.index.temporal import extract_date_from_filename

logger = logging.getLogger(__name__)

_NOTE_EXTS = {".md"}
# Vault-internal folders that never hold journal entries.
_EXCLUDED_DIRS = {".trash", ".obsidian", ".git"}
_FRONTMATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)


@dataclass(frozen=True)
class NoteFile:
    """A markdown note eligible for indexing.

    Attributes:
        path: Vault-relative POSIX path; the note's identity in the index.
        abs_path: Absolute filesystem path.
        mtime: Modification time in epoch milliseconds (change marker).
        date: Logical date in epoch milliseconds, from the filename
            (``YYYY-MM-DD[_HH-mm]``) or the mtime if the name has none.
    """

    path: str
    abs_path: Path
    mtime: int
    date: int

    def read_text(self) -> str:
        return self.abs_path.read_text(encoding="utf-8", errors="replace")


def scan_notes(vault_dir: Path, folder: str) -> list[NoteFile]:
    """Return markdown notes under ``vault_dir / folder`` (recursive), sorted by path.

    Trash and system folders are skipped. A missing folder yields [].
    """
    root = vault_dir / folder if folder else vault_dir
    if not root.is_dir():
        return []

    notes: list[NoteFile] = []
    for entry in root.rglob("*"):
        if not entry.is_file() or entry.suffix.lower() not in _NOTE_EXTS:
            continue
        rel_parts = entry.relative_to(vault_dir).parts
        if any(part in _EXCLUDED_DIRS for part in rel_parts[:-1]):
            continue
        mtime = int(entry.stat().st_mtime * 1000)
        date = extract_date_from_filename(entry.name)
        notes.append(
            NoteFile(
                path="/".join(rel_parts),
                abs_path=entry,
                mtime=mtime,
                date=date if date is not None else mtime,
            )
        )
    return sorted(notes, key=lambda n: n.path)


def read_frontmatter(path: Path) -> dict:
    """Return the YAML frontmatter of the note at *path*, or {}.

    Frontmatter is the block between a leading ``---`` line and the next
    ``---`` line. Malformed YAML is logged and treated as absent.
    """
    text = path.read_text(encoding="utf-8", errors="replace")
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return {}
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        logger.warning("Ignoring malformed frontmatter in %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}
