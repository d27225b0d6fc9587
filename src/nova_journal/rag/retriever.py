"""Contextual retrieval over the embedding index.

Pipeline for one query:
  1. Empty index → [].
  2. Embed the query (single-item batch); no vector → [].
  3. Candidate filter: non-empty vector AND every supplied option filter
     (context types, emotional tags, thematic tags, date range).
  4. Score = cosine(query, chunk), then in this order:
       recency      × (1 + exp(-age_days / divisor) * weight)   if boost_recent
       exact match  × exact_match_boost     if the query occurs in the chunk text
       context type × context_type_boost    if the chunk is not "general"
  5. Sort by score, best first.
  6. Diversity filter over the sorted list.
  7. Truncate to k.

The specialised modes (emotional / temporal / thematic) are presets over the
same pipeline. Public search methods never raise; internal failures are
logged and surface as an empty result list.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable

from nova_journal.config import SearchCfg
from nova_journal.errors import IndexDataError, ProviderError
from nova_journal.index.classifier import emotions_to_categories
from nova_journal.index.models import (
    Chunk,
    ContextType,
    IndexData,
    Mood,
    SearchOptions,
    SearchResult,
)
from nova_journal.index.temporal import age_in_days, format_date, get_time_range_for_frame, now_ms
from nova_journal.index.vectors import apply_diversity_filter, cosine_similarity
from nova_journal.rag.llm_client import Embedder

logger = logging.getLogger(__name__)

IndexProvider = Callable[[], "IndexData | None"]


# ------------------------------------------------------------------
# Pipeline stages
# ------------------------------------------------------------------


def matches_options(chunk: Chunk, options: SearchOptions) -> bool:
    """True if *chunk* is a candidate under every filter set in *options*.

    Empty filter sets count as not supplied.
    """
    if not chunk.vector:
        return False
    if options.context_types and chunk.context_type not in options.context_types:
        return False
    if options.emotional_filter and not (chunk.emotional_tags & options.emotional_filter):
        return False
    if options.thematic_filter and not (chunk.thematic_tags & options.thematic_filter):
        return False
    if options.temporal_range is not None and not options.temporal_range.contains(chunk.date):
        return False
    return True


def score_chunk(
    chunk: Chunk,
    query: str,
    query_vector: list[float],
    options: SearchOptions,
    cfg: SearchCfg,
    now: int,
) -> float:
    score = cosine_similarity(query_vector, chunk.vector)

    if options.boost_recent:
        age = max(0.0, age_in_days(chunk.date, now))
        score *= 1 + math.exp(-age / cfg.recency_divisor_days) * cfg.recency_weight

    if query.lower() in chunk.text.lower():
        score *= cfg.exact_match_boost

    if chunk.context_type is not ContextType.GENERAL:
        score *= cfg.context_type_boost

    return score


def rank_chunks(
    chunks: Iterable[Chunk],
    query: str,
    query_vector: list[float],
    k: int,
    options: SearchOptions,
    cfg: SearchCfg,
    now: int,
) -> list[tuple[Chunk, float]]:
    """Filter, score, sort, diversify and truncate. Pure: no I/O."""
    if k <= 0:
        return []

    scored = [
        (chunk, score_chunk(chunk, query, query_vector, options, cfg, now))
        for chunk in chunks
        if matches_options(chunk, options)
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)

    threshold = (
        options.diversity_threshold
        if options.diversity_threshold is not None
        else cfg.diversity_threshold
    )
    diverse = apply_diversity_filter(scored, threshold, vector_of=lambda c: c.vector)
    return diverse[:k]


# ------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------


class RetrievalEngine:
    """Searches the current index snapshot.

    Args:
        embedder:       Used to embed query text.
        index_provider: Returns the current IndexData snapshot (or None).
        cfg:            Ranking constants.
        clock:          Returns "now" in epoch milliseconds.
    """

    def __init__(
        self,
        embedder: Embedder,
        index_provider: IndexProvider,
        cfg: SearchCfg | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._embedder = embedder
        self._index_provider = index_provider
        self._cfg = cfg or SearchCfg()
        self._clock = clock

    @property
    def cfg(self) -> SearchCfg:
        return self._cfg

    def now(self) -> int:
        return self._clock()

    def search(
        self,
        query: str,
        k: int = 5,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """Run the pipeline, raising on failure.

        Raises:
            NotConfiguredError: AI disabled or key missing.
            ProviderError: The query could not be embedded.
            IndexDataError: The index snapshot could not be read.
        """
        options = options or SearchOptions()
        index = self._index_provider()
        if index is None or not index.items or k <= 0:
            return []

        vectors = self._embedder.embed([query])
        if not vectors or not vectors[0]:
            raise ProviderError("Query embedding came back empty")

        now = self._clock()
        ranked = rank_chunks(index.items, query, vectors[0], k, options, self._cfg, now)
        return [
            SearchResult(
                chunk=chunk,
                score=score,
                display_text=f"[{format_date(chunk.date, now)}] {chunk.text}",
            )
            for chunk, score in ranked
        ]

    def contextual_search(
        self,
        query: str,
        k: int = 5,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """Ranked results for *query*; [] on an empty index or any failure."""
        if not query or not query.strip():
            return []
        try:
            return self.search(query, k, options)
        except (ProviderError, IndexDataError) as exc:
            logger.warning("Contextual search failed: %s", exc)
            return []
        except Exception as exc:
            logger.debug("Contextual search unavailable: %s", exc, exc_info=True)
            return []

    def emotional_search(self, query: str, mood: Mood, k: int = 5) -> list[SearchResult]:
        """Search emotional/general chunks sharing the mood's emotion categories.

        Recency is boosted when the mood's sentiment is negative.
        """
        emotions = emotions_to_categories(mood.dominant_emotions)
        options = SearchOptions(
            context_types=frozenset({ContextType.EMOTIONAL, ContextType.GENERAL}),
            emotional_filter=emotions or None,
            boost_recent="negative" in (mood.sentiment or "").lower(),
            diversity_threshold=self._cfg.emotional_diversity_threshold,
        )
        return self.contextual_search(query, k, options)

    def temporal_search(self, query: str, time_frame: str, k: int = 5) -> list[SearchResult]:
        """Search temporal/general chunks dated inside *time_frame* (recent/week/month)."""
        try:
            time_range = get_time_range_for_frame(
                time_frame, now=self._clock(), frames=self._cfg.time_frames
            )
        except ValueError as exc:
            logger.warning("Temporal search skipped: %s", exc)
            return []
        options = SearchOptions(
            context_types=frozenset({ContextType.TEMPORAL, ContextType.GENERAL}),
            temporal_range=time_range,
            boost_recent=True,
        )
        return self.contextual_search(query, k, options)

    def thematic_search(self, query: str, themes: Iterable[str], k: int = 5) -> list[SearchResult]:
        wanted = frozenset(t.strip().lower() for t in themes if t and t.strip())
        options = SearchOptions(
            context_types=frozenset({ContextType.THEMATIC, ContextType.GENERAL}),
            thematic_filter=wanted or None,
            diversity_threshold=self._cfg.thematic_diversity_threshold,
        )
        return self.contextual_search(query, k, options)
