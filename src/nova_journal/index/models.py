"""Domain models for the contextual embedding index."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from nova_journal.index.vectors import hash_string

INDEX_VERSION = "2.0.0"


class ContextType(str, enum.Enum):
    EMOTIONAL = "emotional"
    TEMPORAL = "temporal"
    THEMATIC = "thematic"
    GENERAL = "general"


# Tie-break order when several keyword classes share the top count.
CONTEXT_TYPE_PRIORITY: tuple[ContextType, ...] = (
    ContextType.EMOTIONAL,
    ContextType.TEMPORAL,
    ContextType.THEMATIC,
)


@dataclass(frozen=True)
class Chunk:
    """One indexed passage of a note.

    ``date`` and ``last_modified`` are epoch milliseconds of the note's
    logical date (from its filename). ``hash`` fingerprints the whole source
    file text, so any edit to the file invalidates all of its chunks.
    """

    path: str
    date: int
    last_modified: int
    text: str
    vector: list[float]
    context_type: ContextType
    hash: str
    emotional_tags: frozenset[str] = frozenset()
    thematic_tags: frozenset[str] = frozenset()
    temporal_markers: frozenset[str] = frozenset()

    @property
    def key(self) -> str:
        """Identity of this chunk across searches (source hash + chunk text)."""
        return f"{self.hash}:{hash_string(self.text)}"

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "date": self.date,
            "lastModified": self.last_modified,
            "text": self.text,
            "vector": list(self.vector),
            "contextType": self.context_type.value,
            "emotionalTags": sorted(self.emotional_tags),
            "thematicTags": sorted(self.thematic_tags),
            "temporalMarkers": sorted(self.temporal_markers),
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Chunk:
        return cls(
            path=str(data["path"]),
            date=int(data["date"]),
            last_modified=int(data.get("lastModified", data["date"])),
            text=str(data["text"]),
            vector=[float(v) for v in data["vector"]],
            context_type=ContextType(data.get("contextType", "general")),
            hash=str(data["hash"]),
            emotional_tags=frozenset(data.get("emotionalTags") or ()),
            thematic_tags=frozenset(data.get("thematicTags") or ()),
            temporal_markers=frozenset(data.get("temporalMarkers") or ()),
        )


@dataclass
class IndexData:
    """The persisted index: chunks plus per-file change-detection hashes."""

    model: str
    version: str = INDEX_VERSION
    updated_at: int = 0
    items: list[Chunk] = field(default_factory=list)
    file_hashes: dict[str, str] = field(default_factory=dict)

    def copy(self) -> IndexData:
        """Return a copy that can be mutated without touching this snapshot."""
        return IndexData(
            model=self.model,
            version=self.version,
            updated_at=self.updated_at,
            items=list(self.items),
            file_hashes=dict(self.file_hashes),
        )

    def remove_paths(self, paths: set[str], *, drop_hashes: bool = True) -> None:
        """Drop every chunk whose path is in *paths* (and their file hashes)."""
        if not paths:
            return
        self.items = [c for c in self.items if c.path not in paths]
        if drop_hashes:
            for path in paths:
                self.file_hashes.pop(path, None)

    def to_dict(self) -> dict:
        return {
            "model": self.model,
            "version": self.version,
            "updatedAt": self.updated_at,
            "items": [c.to_dict() for c in self.items],
            "fileHashes": dict(self.file_hashes),
        }

    @classmethod
    def from_dict(cls, data: dict) -> IndexData:
        return cls(
            model=str(data["model"]),
            version=str(data["version"]),
            updated_at=int(data.get("updatedAt", 0)),
            items=[Chunk.from_dict(item) for item in data.get("items", [])],
            file_hashes={str(k): str(v) for k, v in (data.get("fileHashes") or {}).items()},
        )


@dataclass(frozen=True)
class TimeRange:
    """Inclusive [start, end] window in epoch milliseconds."""

    start: int
    end: int

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp <= self.end


@dataclass
class SearchOptions:
    """Filters and ranking switches for a contextual search.

    All supplied filters are AND-ed. ``diversity_threshold=None`` means the
    engine default; ``0`` disables diversity filtering.
    """

    context_types: frozenset[ContextType] | None = None
    emotional_filter: frozenset[str] | None = None
    thematic_filter: frozenset[str] | None = None
    temporal_range: TimeRange | None = None
    boost_recent: bool = False
    diversity_threshold: float | None = None


@dataclass(frozen=True)
class Mood:
    """Mood analysis of the current note (frontmatter ``sentiment`` etc.)."""

    sentiment: str | None = None
    dominant_emotions: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    @classmethod
    def from_frontmatter(cls, data: dict) -> Mood:
        def _strings(value: object) -> tuple[str, ...]:
            if isinstance(value, str):
                return (value,)
            if isinstance(value, (list, tuple)):
                return tuple(str(v) for v in value if v)
            return ()

        sentiment = data.get("sentiment")
        return cls(
            sentiment=str(sentiment) if sentiment else None,
            dominant_emotions=_strings(data.get("dominant_emotions")),
            tags=_strings(data.get("tags")),
        )


@dataclass(frozen=True)
class SearchResult:
    """A ranked chunk plus its final score and date-prefixed display text."""

    chunk: Chunk
    score: float
    display_text: str
