"""Tests for eligible-note discovery."""

from __future__ import annotations

import os

import pytest

from nova_journal.index.notes import read_frontmatter, scan_notes
from nova_journal.index.temporal import extract_date_from_filename


def _write(path, text="entry"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_scan_finds_markdown_recursively(tmp_path):
    _write(tmp_path / "Journal" / "2024-01-01.md")
    _write(tmp_path / "Journal" / "2024" / "01" / "2024-01-02.md")
    _write(tmp_path / "Journal" / "image.png")
    _write(tmp_path / "Other" / "2024-01-03.md")

    notes = scan_notes(tmp_path, "Journal")
    assert [n.path for n in notes] == [
        "Journal/2024-01-01.md",
        "Journal/2024/01/2024-01-02.md",
    ]


def test_scan_skips_trash_and_system_folders(tmp_path):
    _write(tmp_path / "Journal" / ".trash" / "2024-01-01.md")
    _write(tmp_path / "Journal" / ".obsidian" / "notes.md")
    _write(tmp_path / "Journal" / "2024-01-05.md")
    assert [n.path for n in scan_notes(tmp_path, "Journal")] == ["Journal/2024-01-05.md"]


def test_date_from_filename(tmp_path):
    _write(tmp_path / "Journal" / "2024-01-10_08-30.md")
    (note,) = scan_notes(tmp_path, "Journal")
    assert note.date == extract_date_from_filename("2024-01-10_08-30.md")


def test_date_falls_back_to_mtime(tmp_path):
    path = _write(tmp_path / "Journal" / "undated.md")
    os.utime(path, (1_700_000_000, 1_700_000_000))
    (note,) = scan_notes(tmp_path, "Journal")
    assert note.mtime == 1_700_000_000_000
    assert note.date == note.mtime


def test_missing_folder_yields_empty(tmp_path):
    assert scan_notes(tmp_path, "Journal") == []


def test_read_text(tmp_path):
    _write(tmp_path / "Journal" / "2024-01-01.md", "Dear diary")
    (note,) = scan_notes(tmp_path, "Journal")
    assert note.read_text() == "Dear diary"


# ------------------------------------------------------------------
# read_frontmatter
# ------------------------------------------------------------------


def test_read_frontmatter(tmp_path):
    path = _write(
        tmp_path / "note.md",
        "---\nsentiment: negative\ndominant_emotions: [anxious, tired]\n---\nLong day.\n",
    )
    assert read_frontmatter(path) == {
        "sentiment": "negative",
        "dominant_emotions": ["anxious", "tired"],
    }


@pytest.mark.parametrize(
    "text",
    [
        "No frontmatter here",
        "---\nsentiment: [unclosed\n---\nbody",
        "---\n- a\n- b\n---\nbody",
        "text first\n---\nsentiment: positive\n---\n",
    ],
)
def test_read_frontmatter_falls_back_to_empty(tmp_path, text):
    assert read_frontmatter(_write(tmp_path / "note.md", text)) == {}
