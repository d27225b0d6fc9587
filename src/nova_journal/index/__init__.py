"""Contextual embedding index: chunking, classification, persistence, updates."""

from nova_journal.index.indexer import Indexer, UpdateReport, UpdateStatus
from nova_journal.index.models import (
    Chunk,
    ContextType,
    IndexData,
    Mood,
    SearchOptions,
    SearchResult,
    TimeRange,
)
from nova_journal.index.store import IndexStore

__all__ = [
    "Chunk",
    "ContextType",
    "IndexData",
    "IndexStore",
    "Indexer",
    "Mood",
    "SearchOptions",
    "SearchResult",
    "TimeRange",
    "UpdateReport",
    "UpdateStatus",
]
