"""Content-structure classification of cited pages.

Two stages:
  1. URL/title heuristics for unambiguous cases (forums, video hosts, news
     wires, /docs/ paths, "Top N" and "X vs Y" titles).
  2. gpt-4o-mini in JSON mode for everything else, in batches of 10.

A failed or unparseable LLM call never blocks the pipeline: affected URLs get
DEFAULT_CATEGORY with low confidence.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urlparse

from app.analysis.urls import extract_domain
from app.collectors.openai_chat import chat_json

logger = logging.getLogger(__name__)

CATEGORIES = (
    "OFFICIAL_DOCS",
    "HOW_TO_GUIDE",
    "COMPARISON_ANALYSIS",
    "PRODUCT_PAGE",
    "THOUGHT_LEADERSHIP",
    "CASE_STUDY",
    "TECHNICAL_DEEP_DIVE",
    "NEWS_ANNOUNCEMENT",
    "COMMUNITY_DISCUSSION",
    "VIDEO_CONTENT",
    "OTHER_LOW_CONFIDENCE",
)

DEFAULT_CATEGORY = "OTHER_LOW_CONFIDENCE"

HEURISTIC_VERSION = "heuristic-v1"
LLM_VERSION = "llm-v1"
DEFAULT_VERSION = "default"

LLM_BATCH_SIZE = 10

_COMMUNITY_DOMAINS = {
    "reddit.com",
    "quora.com",
    "stackoverflow.com",
    "stackexchange.com",
    "news.ycombinator.com",
    "community.hubspot.com",
    "discord.com",
}
_VIDEO_DOMAINS = {"youtube.com", "youtu.be", "m.youtube.com", "vimeo.com", "tiktok.com", "loom.com"}
_NEWS_DOMAINS = {
    "reuters.com",
    "bloomberg.com",
    "techcrunch.com",
    "theverge.com",
    "cnbc.com",
    "apnews.com",
    "prnewswire.com",
    "businesswire.com",
    "globenewswire.com",
}

_TOP_N_RE = re.compile(r"\btop\s+\d+\b", re.IGNORECASE)
_VERSUS_RE = re.compile(r"\b(vs\.?|versus)\b", re.IGNORECASE)
_VERSUS_PATH_RE = re.compile(r"[-/]vs[-/]")


@dataclass
class ClassificationInput:
    url: str
    title: str = ""
    description: str = ""
    content_snippet: str = ""


@dataclass
class Classification:
    category: str = DEFAULT_CATEGORY
    confidence: float = 0.0
    scores: dict[str, float] = field(default_factory=dict)
    classifier_version: str = DEFAULT_VERSION


def _domain_matches(domain: str, known: set[str]) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in known)


def classify_by_heuristics(item: ClassificationInput) -> Classification | None:
    """Return a classification for obvious cases, or None to defer to the LLM."""
    domain = extract_domain(item.url)
    path = urlparse(item.url).path.lower()
    title = item.title or ""

    category = None
    if _domain_matches(domain, _COMMUNITY_DOMAINS) or domain.startswith(("forum.", "forums.", "community.")):
        category = "COMMUNITY_DISCUSSION"
    elif _domain_matches(domain, _VIDEO_DOMAINS):
        category = "VIDEO_CONTENT"
    elif _domain_matches(domain, _NEWS_DOMAINS):
        category = "NEWS_ANNOUNCEMENT"
    elif "/docs/" in path or path.endswith("/docs") or domain.startswith("docs."):
        category = "OFFICIAL_DOCS"
    elif _TOP_N_RE.search(title) or _VERSUS_RE.search(title) or _VERSUS_PATH_RE.search(path):
        category = "COMPARISON_ANALYSIS"

    if category is None:
        return None
    return Classification(
        category=category,
        confidence=0.9,
        scores={category: 0.9},
        classifier_version=HEURISTIC_VERSION,
    )


_SYSTEM_PROMPT = (
    "You are a content classification expert. Classify web pages into content-structure "
    "categories based on URL, title, description and a content snippet."
)


def _build_prompt(batch: list[ClassificationInput]) -> str:
    lines = [
        f"Categories: {', '.join(CATEGORIES)}",
        "",
        "For every page return its best category and a 0-1 score for each category.",
        'Reply as JSON: {"results": [{"index": 1, "category": "...", "scores": {"CATEGORY": 0.0}}]}',
        "",
    ]
    for i, item in enumerate(batch, start=1):
        lines.append(f"Page {i}:")
        lines.append(f"URL: {item.url}")
        lines.append(f"Title: {item.title}")
        lines.append(f"Description: {item.description[:200]}")
        lines.append(f"Content Snippet: {item.content_snippet[:300]}")
        lines.append("")
    return "\n".join(lines)


def _parse_llm_results(data: dict, count: int) -> list[Classification]:
    by_index: dict[int, dict] = {}
    for entry in data.get("results") or []:
        if isinstance(entry, dict) and isinstance(entry.get("index"), int):
            by_index[entry["index"]] = entry

    results: list[Classification] = []
    for i in range(1, count + 1):
        entry = by_index.get(i)
        category = str(entry.get("category", "")).upper() if entry else ""
        if category not in CATEGORIES:
            results.append(Classification())
            continue

        scores: dict[str, float] = {}
        for name, value in (entry.get("scores") or {}).items():
            if str(name).upper() in CATEGORIES and isinstance(value, (int, float)):
                scores[str(name).upper()] = max(0.0, min(1.0, float(value)))
        confidence = scores.get(category, 0.8)
        results.append(
            Classification(
                category=category,
                confidence=confidence,
                scores=scores,
                classifier_version=LLM_VERSION,
            )
        )
    return results


class ContentClassifier:
    """Heuristic-first classifier with an OpenAI fallback."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        self.api_key = api_key
        self.model = model

    async def classify_batch(self, items: list[ClassificationInput]) -> list[Classification]:
        results: list[Classification | None] = [classify_by_heuristics(item) for item in items]
        pending = [i for i, r in enumerate(results) if r is None]
        if pending:
            logger.info(
                "Classifying %d URLs via LLM (%d resolved by heuristics)",
                len(pending),
                len(items) - len(pending),
            )

        for start in range(0, len(pending), LLM_BATCH_SIZE):
            idxs = pending[start : start + LLM_BATCH_SIZE]
            batch = [items[i] for i in idxs]
            try:
                data = await chat_json(
                    _SYSTEM_PROMPT,
                    _build_prompt(batch),
                    api_key=self.api_key,
                    model=self.model,
                    max_tokens=300 * len(batch),
                )
                classified = _parse_llm_results(data, len(batch))
            except Exception as e:
                logger.warning("LLM classification failed for %d URLs: %s", len(batch), e)
                classified = [Classification() for _ in batch]

            for i, result in zip(idxs, classified):
                results[i] = result

        return [r or Classification() for r in results]
