"""Mention totals, average rank position and sentiment buckets for a report."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.daily_report import DailyReport
from app.models.prompt_result import PromptResult

logger = logging.getLogger(__name__)

POSITIVE_THRESHOLD = 0.1
NEGATIVE_THRESHOLD = -0.1


def _valid_position(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def prompt_rank(brand_position: int | None, competitor_mentions: list[dict] | None) -> int | None:
    """Brand's 1-based order among brand + competitors by first mention offset.

    None unless both the brand and at least one competitor have a position.
    """
    if not _valid_position(brand_position):
        return None
    entities = [("__brand__", brand_position)]
    for comp in competitor_mentions or []:
        if _valid_position(comp.get("position")):
            entities.append((comp.get("name", ""), comp["position"]))
    if len(entities) < 2:
        return None
    entities.sort(key=lambda e: e[1])
    return next(i for i, (name, _) in enumerate(entities, start=1) if name == "__brand__")


def sentiment_bucket(score: float | None) -> str:
    score = score or 0.0
    if score > POSITIVE_THRESHOLD:
        return "positive"
    if score < NEGATIVE_THRESHOLD:
        return "negative"
    return "neutral"


async def aggregate_rank_and_sentiment(db: AsyncSession, report_id: UUID) -> dict:
    rows = await db.execute(select(PromptResult).where(PromptResult.daily_report_id == report_id))
    results = list(rows.scalars().all())

    mentioned = [r for r in results if r.brand_mentioned]
    ranks = [rank for r in mentioned if (rank := prompt_rank(r.brand_position, r.competitor_mentions)) is not None]
    buckets = {"positive": 0, "neutral": 0, "negative": 0}
    for r in mentioned:
        buckets[sentiment_bucket(r.sentiment_score)] += 1

    completed_prompts = len({r.brand_prompt_id for r in results if r.provider_status == "ok"})
    average_position = round(sum(ranks) / len(ranks), 2) if ranks else None

    report = await db.get(DailyReport, report_id)
    report.total_mentions = len(mentioned)
    report.average_position = average_position
    report.sentiment_positive = buckets["positive"]
    report.sentiment_neutral = buckets["neutral"]
    report.sentiment_negative = buckets["negative"]
    report.completed_prompts = completed_prompts
    await db.commit()

    logger.info(
        "Report %s aggregates: mentions=%d avg_position=%s sentiment=%s",
        report_id,
        len(mentioned),
        average_position,
        buckets,
    )
    return {
        "total_mentions": len(mentioned),
        "average_position": average_position,
        "sentiment": buckets,
        "completed_prompts": completed_prompts,
    }
