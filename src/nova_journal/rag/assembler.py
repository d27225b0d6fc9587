"""RAG context assembly: turn conversational text into a prompt-ready context string.

Flow for get_context():
  query extraction → primary search (wide, no diversity) → substantial-content
  filter → full-history fallback if nothing survived → expansion search →
  recent/historical prioritisation → numbered "[age] text" lines.

Format of the returned string (max ``rag.max_context_chunks`` entries):

    1. [3d] first 500 chars of the chunk...

    2. [2w] ...

Every public method returns "" on any failure.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Callable, Sequence

from nova_journal.config import RagCfg
from nova_journal.index.models import SearchOptions, SearchResult
from nova_journal.index.temporal import MS_PER_DAY, relative_age
from nova_journal.rag.retriever import RetrievalEngine

logger = logging.getLogger(__name__)

# Substantial-content thresholds (characters).
MIN_CONTENT_CHARS = 50
MIN_SUBSTANTIAL_CHARS = 200
EMPTY_PROMPT_MAX_CHARS = 300
MARKUP_HEAVY_MAX_CHARS = 400
MAX_BUTTONS = 2
USER_SECTION_MIN_CHARS = 20
USER_SECTION_MAX_CAPTURE = 500

# Expanded search terms.
TERM_MIN_CHARS = 4
TERM_MAX_CHARS = 19
SENTENCE_LEAD_WORDS = 3
TOP_FREQUENT_WORDS = 5
MAX_EXPANDED_TERMS = 10

# Result counts for the secondary searches.
EXPANSION_RESULTS = 10
ALL_RECENT_RESULTS = 30
HISTORY_RESULTS = 30
HISTORY_DIVERSITY = 0.5

_HEADING_RE = re.compile(r"^\s*#{1,6}\s*\S", re.MULTILINE)
_SPEAKER_PREFIX_RE = re.compile(r"^\*\*.*?\*\*.*?:\s*")
_USER_LABEL_RE = re.compile(r"\*\*[^*]+\*\*\s*\(you\)\s*:", re.IGNORECASE)
_USER_SECTION_RE = re.compile(
    r"\*\*[^*]+\*\*\s*[:\-]\s*([\s\S]{0,%d}?)(?=\*\*[^*]+\*\*|<button|$)" % USER_SECTION_MAX_CAPTURE,
    re.IGNORECASE,
)
_TAG_RE = re.compile(r"<[^>]*>")
_NON_WORD_RE = re.compile(r"\W")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


# ------------------------------------------------------------------
# Query extraction
# ------------------------------------------------------------------


def _is_markup_line(line: str, marker: str) -> bool:
    return (
        marker in line
        or "##" in line
        or line.startswith("<button")
        or line.startswith("<a")
        or 'class="nova-' in line
    )


def extract_search_text(
    text: str,
    target_line: str | None = None,
    assistant_name: str = "Nova",
) -> str:
    """Pick the query out of conversational *text*.

    A non-blank *target_line* wins. Otherwise, when *text* contains assistant
    turns (``**Nova**:``), the last user-written line is used with any
    ``**Name**:`` prefix removed. Otherwise the whole text.
    """
    if target_line is not None and target_line.strip():
        return target_line

    marker = f"**{assistant_name}**:"
    if marker not in text:
        return text

    user_lines = [
        line.strip()
        for line in text.split("\n")
        if line.strip() and not _is_markup_line(line.strip(), marker)
    ]
    if not user_lines:
        return text
    last = _SPEAKER_PREFIX_RE.sub("", user_lines[-1]).strip()
    return last or text


def extract_expanded_search_terms(original_query: str, first_text: str) -> list[str]:
    """Related terms from the top result: sentence-leading words plus repeated words.

    Order: sentence-leading words first (in text order), then the most frequent
    words not already in the query. At most MAX_EXPANDED_TERMS.
    """
    if not first_text:
        return []
    query_lower = original_query.lower()
    terms: dict[str, None] = {}

    for sentence in _SENTENCE_SPLIT_RE.split(first_text):
        for word in sentence.split()[:SENTENCE_LEAD_WORDS]:
            clean = _NON_WORD_RE.sub("", word)
            if TERM_MIN_CHARS <= len(clean) <= TERM_MAX_CHARS:
                terms.setdefault(clean)

    counts: Counter[str] = Counter()
    for word in first_text.split():
        clean = _NON_WORD_RE.sub("", word)
        if TERM_MIN_CHARS <= len(clean) <= TERM_MAX_CHARS and clean.lower() not in query_lower:
            counts[clean.lower()] += 1
    frequent = [word for word, count in counts.most_common() if count > 1]
    for word in frequent[:TOP_FREQUENT_WORDS]:
        terms.setdefault(word)

    return list(terms)[:MAX_EXPANDED_TERMS]


# ------------------------------------------------------------------
# Content heuristics
# ------------------------------------------------------------------


def has_substantial_content(text: str, assistant_name: str = "Nova") -> bool:
    """False for short chunks, empty prompt scaffolds and button-heavy markup."""
    if not text:
        return False
    lower = text.lower()
    length = len(text)
    marker = f"**{assistant_name.lower()}**:"

    empty_prompt = (
        marker in lower
        and _USER_LABEL_RE.search(lower) is not None
        and "</button>" not in lower
        and length < EMPTY_PROMPT_MAX_CHARS
    )
    if empty_prompt or length < MIN_CONTENT_CHARS:
        return False
    if lower.count("<button") > MAX_BUTTONS and length < MARKUP_HEAVY_MAX_CHARS:
        return False
    return length > MIN_SUBSTANTIAL_CHARS or (length > MIN_CONTENT_CHARS and marker not in lower)


def has_user_content(text: str) -> bool:
    """True if a ``**Name**:`` section carries a real answer, not just a label."""
    if not text:
        return False
    match = _USER_SECTION_RE.search(text)
    if match is None:
        return False
    answer = _TAG_RE.sub("", match.group(1).strip()).strip()
    return len(answer) > USER_SECTION_MIN_CHARS


def prioritize_by_substance(results: Sequence[SearchResult]) -> list[SearchResult]:
    """Chunks with user-written answers first, then longer chunks first."""
    return sorted(
        results,
        key=lambda r: (not has_user_content(r.chunk.text), -len(r.chunk.text)),
    )


def merge_results(
    primary: Sequence[SearchResult],
    extra: Sequence[SearchResult],
    limit: int,
) -> list[SearchResult]:
    """Append *extra* results not already in *primary* (by chunk key), capped at *limit*."""
    seen = {r.chunk.key for r in primary}
    merged = list(primary)
    for result in extra:
        if result.chunk.key not in seen:
            seen.add(result.chunk.key)
            merged.append(result)
    return merged[:limit]


# ------------------------------------------------------------------
# Assembler
# ------------------------------------------------------------------


class RagContextAssembler:
    """Builds the historical-context block handed to the completion model.

    Args:
        engine: Retrieval engine over the current index snapshot.
        cfg:    Assembly limits.
        clock:  Returns "now" in epoch milliseconds; defaults to the engine's clock.
    """

    def __init__(
        self,
        engine: RetrievalEngine,
        cfg: RagCfg | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._engine = engine
        self._cfg = cfg or RagCfg()
        self._clock = clock or engine.now

    # -- public --------------------------------------------------------

    def get_context(self, text: str, target_line: str | None = None) -> str:
        """Context string for conversational *text*; "" when nothing relevant or on failure."""
        if not text or not text.strip():
            return ""
        try:
            query = extract_search_text(text, target_line, self._cfg.assistant_name)
            results = self._search_substantial(
                query,
                self._cfg.primary_results,
                SearchOptions(boost_recent=False, diversity_threshold=0.0),
            )
            if not results:
                results = self._search_all_history(query)
            if not results:
                return ""
            results = self._expand(query, results)
            results = self.prioritize_relevant_context(results, query)
            return self.format_context(results)
        except Exception as exc:
            logger.error("Failed to assemble RAG context: %s", exc)
            return ""

    def get_recent_context(self, style: str) -> str:
        """Recent-leaning context for a prompt *style* (used as the query)."""
        if not style or not style.strip():
            return ""
        try:
            results = self._search_substantial(
                style,
                self._cfg.primary_results,
                SearchOptions(boost_recent=True),
            )
            if not results:
                results = self._search_all_history(style)
            if not results:
                return ""
            return self.format_context(prioritize_by_substance(results))
        except Exception as exc:
            logger.error("Failed to assemble recent context: %s", exc)
            return ""

    # -- stages --------------------------------------------------------

    def _search_substantial(
        self, query: str, k: int, options: SearchOptions
    ) -> list[SearchResult]:
        results = self._engine.contextual_search(query, k, options)
        return [
            r for r in results if has_substantial_content(r.chunk.text, self._cfg.assistant_name)
        ]

    def _search_all_history(self, query: str) -> list[SearchResult]:
        logger.debug("No substantial primary results; searching all history")
        return self._search_substantial(
            query,
            HISTORY_RESULTS,
            SearchOptions(boost_recent=False, diversity_threshold=HISTORY_DIVERSITY),
        )

    def _is_recent(self, result: SearchResult, now: int) -> bool:
        return (now - result.chunk.date) // MS_PER_DAY <= self._cfg.recent_days

    def _expand(self, query: str, results: list[SearchResult]) -> list[SearchResult]:
        now = self._clock()
        all_recent = all(self._is_recent(r, now) for r in results)
        terms = extract_expanded_search_terms(query, results[0].chunk.text)
        if not terms and not all_recent:
            return results

        logger.debug("Expanding search (all_recent=%s, terms=%s)", all_recent, terms)
        extra = self._search_substantial(
            " ".join(terms) if terms else query,
            ALL_RECENT_RESULTS if all_recent else EXPANSION_RESULTS,
            SearchOptions(
                boost_recent=False,
                diversity_threshold=0.0 if all_recent else self._engine.cfg.diversity_threshold,
            ),
        )
        return merge_results(results, extra, self._cfg.combined_max)

    def prioritize_relevant_context(
        self, results: Sequence[SearchResult], query: str
    ) -> list[SearchResult]:
        """Reorder so substantive historical entries are not crowded out by recent ones.

        - historical has substance, recent doesn't → all historical, then recent
        - both have substance → up to historical_limit historical + recent_limit recent
        - otherwise → unchanged
        """
        now = self._clock()
        recent = [r for r in results if self._is_recent(r, now)]
        historical = [r for r in results if not self._is_recent(r, now)]
        query_lower = query.lower()
        marker = f"**{self._cfg.assistant_name.lower()}**:"

        def _matches(text: str) -> bool:
            lower = text.lower()
            return query_lower in lower and len(lower) > MIN_CONTENT_CHARS

        recent_has = any(
            _matches(r.chunk.text)
            and marker not in r.chunk.text.lower()
            and _HEADING_RE.search(r.chunk.text) is None
            for r in recent
        )
        historical_has = any(_matches(r.chunk.text) for r in historical)

        if historical_has and not recent_has:
            return historical + recent
        if historical_has and recent_has:
            return historical[: self._cfg.historical_limit] + recent[: self._cfg.recent_limit]
        return list(results)

    def format_context(self, results: Sequence[SearchResult]) -> str:
        now = self._clock()
        lines = [
            f"{i}. [{relative_age(r.chunk.date, now)}] {r.chunk.text[: self._cfg.preview_chars]}"
            for i, r in enumerate(results[: self._cfg.max_context_chunks], start=1)
        ]
        return "\n\n".join(lines)
