"""Tests for vector math: cosine, chunking, hashing, diversity filter."""

from __future__ import annotations

import math

import pytest

from nova_journal.index.vectors import (
    apply_diversity_filter,
    cosine_similarity,
    hash_string,
    split_into_chunks,
)


# ------------------------------------------------------------------
# cosine_similarity
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "vec",
    [[1.0, 2.0, 3.0], [-0.5, 0.25], [1e-3, 7.0, -2.0, 0.0]],
)
def test_cosine_self_similarity_is_one(vec):
    assert math.isclose(cosine_similarity(vec, vec), 1.0, rel_tol=1e-9)


def test_cosine_against_zero_vector_is_zero():
    assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0


def test_cosine_empty_is_zero():
    assert cosine_similarity([], [1.0]) == 0.0


def test_cosine_opposite_is_minus_one():
    assert math.isclose(cosine_similarity([1.0, 1.0], [-1.0, -1.0]), -1.0)


def test_cosine_orthogonal_is_zero():
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0


def test_cosine_uses_shared_prefix_on_length_mismatch():
    assert math.isclose(cosine_similarity([1.0, 0.0, 5.0], [1.0, 0.0]), 1.0)


def test_cosine_bounds_on_varied_pairs():
    pairs = [
        ([3.0, -4.0, 12.0], [0.1, 0.2, 0.3]),
        ([1e10, 1e10], [1e10, 1e10 + 1]),
        ([-2.0, 0.5, 9.0, 1.0], [4.0, -8.0, 0.0, 1.0]),
    ]
    for a, b in pairs:
        assert -1.0 <= cosine_similarity(a, b) <= 1.0


# ------------------------------------------------------------------
# split_into_chunks
# ------------------------------------------------------------------


def _reconstruct(chunks: list[str], step: int) -> list[str]:
    tokens: list[str] = []
    for i, chunk in enumerate(chunks):
        words = chunk.split()
        tokens.extend(words if i == len(chunks) - 1 else words[:step])
    return tokens


@pytest.mark.parametrize("n_tokens,size,overlap", [(1, 5, 2), (10, 5, 2), (23, 7, 3), (100, 25, 0), (250, 250, 75)])
def test_chunks_reconstruct_original_tokens(n_tokens, size, overlap):
    tokens = [f"w{i}" for i in range(n_tokens)]
    chunks = split_into_chunks(" ".join(tokens), size, overlap)
    assert _reconstruct(chunks, size - overlap) == tokens


def test_chunks_respect_size_and_overlap():
    text = " ".join(str(i) for i in range(12))
    chunks = split_into_chunks(text, chunk_size=5, overlap=2)
    assert chunks[0] == "0 1 2 3 4"
    assert chunks[1] == "3 4 5 6 7"
    assert chunks[-1].endswith("11")
    assert all(len(c.split()) <= 5 for c in chunks)


def test_chunks_normalise_whitespace():
    assert split_into_chunks("a\n\n b\tc   d", chunk_size=10, overlap=0) == ["a b c d"]


def test_chunks_empty_text():
    assert split_into_chunks("", 10, 2) == []
    assert split_into_chunks("   \n ", 10, 2) == []


def test_chunks_terminate_when_overlap_not_below_size():
    chunks = split_into_chunks("a b c d e f", chunk_size=3, overlap=5)
    assert chunks[0] == "a b c"
    assert chunks[-1] == "d e f"


def test_chunks_reject_non_positive_size():
    with pytest.raises(ValueError):
        split_into_chunks("a b", chunk_size=0)


# ------------------------------------------------------------------
# hash_string
# ------------------------------------------------------------------


def test_hash_is_stable():
    assert hash_string("journal entry") == hash_string("journal entry")


def test_hash_known_value():
    assert hash_string("abc") == "96354"
    assert hash_string("") == "0"


def test_hash_is_signed_32bit():
    value = int(hash_string("a fairly long string that wraps around several times"))
    assert -(2**31) <= value < 2**31


def test_hash_is_order_sensitive():
    assert hash_string("ab") != hash_string("ba")


def test_hash_no_collisions_in_sample():
    base = "Had a great day with my sister Julia"
    variants = {base[:i] + "X" + base[i + 1 :] for i in range(len(base))}
    variants.add(base)
    assert len({hash_string(v) for v in variants}) == len(variants)


# ------------------------------------------------------------------
# apply_diversity_filter
# ------------------------------------------------------------------

_VECTORS = {
    "a": [1.0, 0.0, 0.0],
    "a2": [0.95, 0.05, 0.0],
    "b": [0.0, 1.0, 0.0],
    "ab": [0.7, 0.7, 0.0],
    "c": [0.0, 0.0, 1.0],
}
_SCORED = [("a", 0.9), ("a2", 0.85), ("ab", 0.7), ("b", 0.6), ("c", 0.1)]


def _filter(threshold: float) -> list[tuple[str, float]]:
    return apply_diversity_filter(_SCORED, threshold, vector_of=_VECTORS.__getitem__)


def test_diversity_disabled_returns_input():
    assert _filter(0) == _SCORED
    assert _filter(-1) == _SCORED


def test_diversity_drops_near_duplicates():
    names = [name for name, _ in _filter(0.3)]
    assert names == ["a", "b", "c"]


def test_diversity_keeps_highest_scored_of_duplicates():
    shuffled = [_SCORED[1], _SCORED[0]]
    kept = apply_diversity_filter(shuffled, 0.5, vector_of=_VECTORS.__getitem__)
    assert kept == [("a", 0.9)]


def test_diversity_output_is_ordered_subset():
    for threshold in (0.1, 0.3, 0.75, 0.99):
        kept = _filter(threshold)
        assert set(kept) <= set(_SCORED)
        scores = [s for _, s in kept]
        assert scores == sorted(scores, reverse=True)


def test_diversity_stricter_threshold_never_admits_more():
    thresholds = [0.05, 0.3, 0.72, 0.99]
    sizes = [len(_filter(t)) for t in thresholds]
    assert sizes == sorted(sizes)


def test_diversity_drops_items_without_vectors():
    kept = apply_diversity_filter([("x", 1.0), ("a", 0.5)], 0.3, vector_of=lambda n: _VECTORS.get(n, []))
    assert kept == [("a", 0.5)]
