"""Visibility score: 40% mention rate, 30% position, 30% mention dominance.

Computed over a report's ``ok`` prompt results and stored 0-100 with two
decimals.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.daily_report import DailyReport
from app.models.prompt_result import PromptResult

logger = logging.getLogger(__name__)

MENTION_RATE_WEIGHT = 40
POSITION_WEIGHT = 30
DOMINANCE_WEIGHT = 30

TIED_POSITION_SCORE = 0.7
MIN_TRAILING_POSITION_SCORE = 0.3


@dataclass
class VisibilityBreakdown:
    mention_rate: float = 0.0
    position_score: float = 0.0
    mention_dominance: float = 0.0
    score: float = 0.0


def visibility_score(mention_rate: float, position_score: float, mention_dominance: float) -> float:
    return round(
        MENTION_RATE_WEIGHT * mention_rate + POSITION_WEIGHT * position_score + DOMINANCE_WEIGHT * mention_dominance,
        2,
    )


def position_score_for(brand_position: int, competitor_mentions: list[dict] | None) -> float:
    """1.0 when the brand leads (or stands alone), 0.7 when tied, decaying with the gap otherwise."""
    positions = [
        c["position"]
        for c in competitor_mentions or []
        if isinstance(c.get("position"), int) and c["position"] >= 0
    ]
    if not positions:
        return 1.0
    earliest = min(positions)
    if brand_position < earliest:
        return 1.0
    if brand_position == earliest:
        return TIED_POSITION_SCORE
    gap = brand_position - earliest
    return max(MIN_TRAILING_POSITION_SCORE, 1 / (1 + gap / 100) * 0.5)


def compute_visibility(results: list[PromptResult]) -> VisibilityBreakdown:
    if not results:
        return VisibilityBreakdown()

    mentioned = [r for r in results if r.brand_mentioned]
    mention_rate = len(mentioned) / len(results)

    position_scores = [
        position_score_for(r.brand_position, r.competitor_mentions)
        for r in mentioned
        if r.brand_position is not None and r.brand_position >= 0
    ]
    position_score = sum(position_scores) / len(position_scores) if position_scores else 0.0

    brand_count = sum(r.brand_mention_count or 0 for r in results)
    competitor_count = sum(c.get("count", 0) for r in results for c in r.competitor_mentions or [])
    total = brand_count + competitor_count
    mention_dominance = brand_count / total if total else 0.0

    return VisibilityBreakdown(
        mention_rate=mention_rate,
        position_score=position_score,
        mention_dominance=mention_dominance,
        score=visibility_score(mention_rate, position_score, mention_dominance),
    )


async def calculate_visibility_score(db: AsyncSession, report_id: UUID) -> VisibilityBreakdown:
    rows = await db.execute(
        select(PromptResult).where(
            PromptResult.daily_report_id == report_id,
            PromptResult.provider_status == "ok",
        )
    )
    breakdown = compute_visibility(list(rows.scalars().all()))

    report = await db.get(DailyReport, report_id)
    report.visibility_score = breakdown.score
    await db.commit()

    logger.info(
        "Report %s visibility=%.2f (rate=%.2f position=%.2f dominance=%.2f)",
        report_id,
        breakdown.score,
        breakdown.mention_rate,
        breakdown.position_score,
        breakdown.mention_dominance,
    )
    return breakdown
