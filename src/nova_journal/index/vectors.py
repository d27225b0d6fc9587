"""Vector math helpers: cosine similarity, token-window chunking, hashing, diversity."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence
from typing import TypeVar

T = TypeVar("T")

_WHITESPACE_RE = re.compile(r"\s+")
_EPS = 1e-12


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of *a* and *b* in [-1, 1].

    Vectors of different length are compared over their shared prefix.
    Returns 0.0 if either vector is empty or has zero magnitude.
    """
    length = min(len(a), len(b))
    if length == 0:
        return 0.0

    dot = na = nb = 0.0
    for i in range(length):
        ai = a[i] or 0.0
        bi = b[i] or 0.0
        dot += ai * bi
        na += ai * ai
        nb += bi * bi

    denom = math.sqrt(na) * math.sqrt(nb)
    if not math.isfinite(denom) or denom < _EPS:
        return 0.0
    # Clamp float drift.
    return max(-1.0, min(1.0, dot / denom))


def split_into_chunks(text: str, chunk_size: int = 250, overlap: int = 75) -> list[str]:
    """Split *text* into whitespace-token windows of *chunk_size* tokens.

    Consecutive windows share *overlap* tokens. Callers must pass
    ``overlap < chunk_size``; the advance is clamped to at least one token so
    the loop always terminates.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")

    tokens = [t for t in _WHITESPACE_RE.split(text) if t]
    step = max(1, chunk_size - overlap)

    chunks: list[str] = []
    i = 0
    while i < len(tokens):
        part = " ".join(tokens[i : i + chunk_size]).strip()
        if part:
            chunks.append(part)
        if i + chunk_size >= len(tokens):
            break
        i += step
    return chunks


def hash_string(value: str) -> str:
    """Deterministic 32-bit rolling hash (``h * 31 + c``), as a signed decimal string.

    Collisions are tolerated: the hash only decides whether re-embedding is
    needed.
    """
    h = 0
    for ch in value:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return str(h)


def apply_diversity_filter(
    scored: Sequence[tuple[T, float]],
    threshold: float,
    vector_of: Callable[[T], Sequence[float]],
) -> list[tuple[T, float]]:
    """Greedily drop near-duplicates from *scored* ``(item, score)`` pairs.

    Candidates are walked best-first; one is kept only if its cosine
    similarity to every already-kept item is <= *threshold*. Items without a
    vector are dropped. ``threshold <= 0`` disables filtering and returns
    the input unchanged.
    """
    if threshold <= 0:
        return list(scored)

    ordered = sorted(scored, key=lambda pair: pair[1], reverse=True)
    kept: list[tuple[T, float]] = []
    for item, score in ordered:
        vector = vector_of(item)
        if not vector:
            continue
        if all(
            cosine_similarity(vector, vector_of(existing)) <= threshold
            for existing, _ in kept
        ):
            kept.append((item, score))
    return kept
