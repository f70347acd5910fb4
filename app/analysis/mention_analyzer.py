"""Brand / competitor mention analysis for provider answers.

Keyword heuristics only: case-insensitive substring search for mentions and
keyword proximity for sentiment. Outputs stay comparable across runs because
the wordlists and window size are fixed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

SENTIMENT_WINDOW = 100  # characters on each side of the first brand mention
SENTIMENT_STEP = 0.1

POSITIVE_WORDS = (
    "excellent",
    "great",
    "amazing",
    "outstanding",
    "superior",
    "best",
    "leading",
    "innovative",
    "reliable",
    "reliability",
    "trusted",
    "quality",
    "effective",
    "successful",
    "popular",
    "recommend",
)

NEGATIVE_WORDS = (
    "poor",
    "bad",
    "terrible",
    "awful",
    "inferior",
    "worst",
    "failing",
    "unreliable",
    "problematic",
    "disappointing",
    "ineffective",
    "unsuccessful",
    "criticized",
)


@dataclass
class CompetitorMention:
    name: str
    count: int
    position: int  # char offset of the first mention

    def to_dict(self) -> dict:
        return {"name": self.name, "count": self.count, "position": self.position}


@dataclass
class MentionAnalysis:
    """Result of scanning one answer text."""

    mentioned: bool = False
    mention_count: int = 0
    position: int = -1  # -1 when the brand is absent
    sentiment: float = 0.0
    competitor_mentions: list[CompetitorMention] = field(default_factory=list)


def find_occurrences(text: str, needle: str) -> list[int]:
    """Return every case-insensitive start index of ``needle`` in ``text``."""
    if not text or not needle:
        return []
    haystack = text.lower()
    target = needle.lower()
    indices: list[int] = []
    idx = haystack.find(target)
    while idx != -1:
        indices.append(idx)
        idx = haystack.find(target, idx + 1)
    return indices


def score_sentiment(text: str, brand_name: str, first_index: int) -> float:
    """Keyword-proximity sentiment around the first brand mention, in [-1, 1]."""
    lower = text.lower()
    start = max(0, first_index - SENTIMENT_WINDOW)
    end = first_index + len(brand_name) + SENTIMENT_WINDOW
    window = lower[start:end]

    score = 0.0
    for word in POSITIVE_WORDS:
        if word in window:
            score += SENTIMENT_STEP
    for word in NEGATIVE_WORDS:
        if word in window:
            score -= SENTIMENT_STEP

    return round(max(-1.0, min(1.0, score)), 2)


def analyze_mentions(text: str | None, brand_name: str, competitors: list[str] | None = None) -> MentionAnalysis:
    """Detect brand and competitor mentions in an answer text.

    Args:
        text: Provider answer text.
        brand_name: Tracked brand.
        competitors: Competitor names; only those found at least once are returned.

    Returns:
        MentionAnalysis with the brand's first position (-1 if absent) and a
        sentiment score computed only when the brand is mentioned.
    """
    text = text or ""
    brand_hits = find_occurrences(text, brand_name)

    competitor_mentions: list[CompetitorMention] = []
    for name in competitors or []:
        hits = find_occurrences(text, name)
        if hits:
            competitor_mentions.append(CompetitorMention(name=name, count=len(hits), position=hits[0]))

    if not brand_hits:
        return MentionAnalysis(competitor_mentions=competitor_mentions)

    return MentionAnalysis(
        mentioned=True,
        mention_count=len(brand_hits),
        position=brand_hits[0],
        sentiment=score_sentiment(text, brand_name, brand_hits[0]),
        competitor_mentions=competitor_mentions,
    )
