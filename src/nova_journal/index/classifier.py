"""Keyword-based classification of note chunks.

A chunk gets exactly one ContextType (the keyword class with the most
matches, ties broken by CONTEXT_TYPE_PRIORITY) plus optional emotion
categories, themes and temporal markers.

Tag extraction uses *substring* membership on the lowercased text, not word
boundaries: "worried" also fires inside "unworried".
"""

from __future__ import annotations

import re

from nova_journal.index.models import CONTEXT_TYPE_PRIORITY, ContextType

_EMOTIONAL_WORDS = (
    "feel", "felt", "emotion", "mood", "happy", "sad", "angry", "frustrated",
    "excited", "anxious", "calm", "stressed", "peaceful", "worried", "hopeful",
    "disappointed", "grateful", "proud", "embarrassed", "confused", "overwhelmed",
    "content", "joy", "fear", "love", "hate", "surprise", "disgust", "trust",
    "anticipation",
)

_TEMPORAL_WORDS = (
    "today", "yesterday", "tomorrow", "this week", "last week", "next week",
    "this month", "last month", "recently", "soon", "now", "then", "when",
    "during", "after", "before", "while", "since", "until", "ago", "later",
)

_THEMATIC_WORDS = (
    "work", "job", "career", "family", "friends", "health", "fitness", "travel",
    "hobby", "project", "goal", "plan", "study", "learn", "relationship", "love",
    "home", "money", "finance", "food", "exercise", "book", "movie", "music",
    "art", "creative",
)


def _keyword_re(words: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile(r"\b(" + "|".join(re.escape(w) for w in words) + r")\b", re.IGNORECASE)


_KEYWORD_CLASSES: dict[ContextType, re.Pattern[str]] = {
    ContextType.EMOTIONAL: _keyword_re(_EMOTIONAL_WORDS),
    ContextType.TEMPORAL: _keyword_re(_TEMPORAL_WORDS),
    ContextType.THEMATIC: _keyword_re(_THEMATIC_WORDS),
}

EMOTION_CATEGORIES: dict[str, tuple[str, ...]] = {
    "positive": (
        "happy", "excited", "calm", "peaceful", "hopeful", "grateful", "proud",
        "content", "joy", "love",
    ),
    "negative": (
        "sad", "angry", "frustrated", "anxious", "stressed", "worried",
        "disappointed", "embarrassed", "overwhelmed", "fear", "hate",
    ),
    "neutral": ("confused", "surprised", "curious", "interested"),
}

THEMES: dict[str, tuple[str, ...]] = {
    "work": ("work", "job", "career", "office", "meeting", "project", "colleague", "boss", "deadline"),
    "personal": ("family", "friends", "relationship", "love", "home", "personal"),
    "health": ("health", "fitness", "exercise", "doctor", "wellness", "sleep", "tired"),
    "learning": ("study", "learn", "book", "course", "education", "knowledge", "skill"),
    "creativity": ("art", "creative", "music", "write", "paint", "design", "create"),
    "leisure": ("hobby", "travel", "movie", "game", "fun", "vacation", "relax"),
}

_TEMPORAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:today|yesterday|tomorrow)\b", re.IGNORECASE),
    re.compile(r"\b(?:this|last|next)\s+(?:week|month|year)\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}:\d{2}\b"),
    re.compile(r"\b(?:morning|afternoon|evening|night)\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}\s+(?:days?|weeks?|months?)\s+ago\b", re.IGNORECASE),
)


def context_scores(text: str) -> dict[ContextType, int]:
    """Count keyword matches per class (case-insensitive, whole words)."""
    return {ctype: len(pattern.findall(text)) for ctype, pattern in _KEYWORD_CLASSES.items()}


def determine_context_type(text: str) -> ContextType:
    scores = context_scores(text)
    best = max(scores.values())
    if best == 0:
        return ContextType.GENERAL
    for ctype in CONTEXT_TYPE_PRIORITY:
        if scores[ctype] == best:
            return ctype
    return ContextType.GENERAL


def extract_emotional_tags(text: str) -> frozenset[str]:
    """Return the emotion categories (positive/negative/neutral) present in *text*."""
    lower = text.lower()
    return frozenset(
        category
        for category, words in EMOTION_CATEGORIES.items()
        if any(word in lower for word in words)
    )


def extract_thematic_tags(text: str) -> frozenset[str]:
    lower = text.lower()
    return frozenset(theme for theme, words in THEMES.items() if any(w in lower for w in words))


def extract_temporal_markers(text: str) -> frozenset[str]:
    """Return lowercased time expressions ("today", "last week", "14:30", "3 days ago")."""
    found: set[str] = set()
    for pattern in _TEMPORAL_PATTERNS:
        found.update(m.group(0).lower() for m in pattern.finditer(text))
    return frozenset(found)


def emotions_to_categories(emotions: tuple[str, ...] | list[str]) -> frozenset[str]:
    """Map free-form emotion words ("happy") to classifier categories ("positive").

    Category names pass through unchanged; unknown words are dropped.
    """
    categories: set[str] = set()
    for emotion in emotions:
        word = emotion.strip().lower()
        if word in EMOTION_CATEGORIES:
            categories.add(word)
            continue
        for category, words in EMOTION_CATEGORIES.items():
            if any(w in word for w in words):
                categories.add(category)
    return frozenset(categories)
