"""Per-competitor metrics for a report.

For each active competitor: share of answer texts mentioning it, plus its
citation share and share of voice when those were calculated. Stored in
``daily_reports.competitor_metrics`` next to the same figures for the brand.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.brand import Brand, BrandCompetitor
from app.models.citation_share import CitationShareStats
from app.models.daily_report import DailyReport
from app.models.prompt_result import PromptResult

logger = logging.getLogger(__name__)


def _pct(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def share_of_voice_map(sov_data: dict | None) -> dict[str, float]:
    """Lowercased entity name -> percent of all entity mentions."""
    if not sov_data or not sov_data.get("total_mentions"):
        return {}
    total = sov_data["total_mentions"]
    return {e["name"].lower(): round(e["mentions"] / total * 100, 1) for e in sov_data.get("entities") or []}


def build_competitor_metrics(
    responses: list[tuple[str, bool]],
    brand_name: str,
    competitors: list[tuple[int, str]],
    citation_shares: dict[str, float] | None = None,
    sov_data: dict | None = None,
) -> dict:
    """Metrics payload for the brand and each competitor.

    ``responses`` holds (answer text, brand mentioned) pairs and ``competitors``
    (id, name) pairs. ``citation_shares`` is keyed by entity name, with the
    brand's share under ``brand_name``.
    """
    citation_shares = citation_shares or {}
    sov = share_of_voice_map(sov_data)
    total = len(responses)
    lowered = [text.lower() for text, _ in responses]
    brand_mentions = sum(1 for _, mentioned in responses if mentioned)

    rows = []
    for competitor_id, name in competitors:
        needle = name.lower()
        mentions = sum(1 for text in lowered if needle and needle in text)
        rate = _pct(mentions, total)
        rows.append(
            {
                "name": name,
                "competitor_id": competitor_id,
                "visibility_score": rate,
                "mention_rate": rate,
                "mention_count": mentions,
                "total_responses": total,
                "citation_share": citation_shares.get(name),
                "share_of_voice": sov.get(needle),
            }
        )

    brand_rate = _pct(brand_mentions, total)
    return {
        "competitors": rows,
        "brand_visibility_score": brand_rate,
        "brand_mention_count": brand_mentions,
        "brand_mention_rate": brand_rate,
        "brand_citation_share": citation_shares.get(brand_name),
        "brand_share_of_voice": sov.get(brand_name.lower()),
        "total_responses": total,
        "calculated_at": datetime.now(timezone.utc).isoformat(),
    }


async def calculate_competitor_metrics(db: AsyncSession, report_id: UUID) -> dict | None:
    """Compute and store ``competitor_metrics``. None when the brand has no active competitors."""
    report = await db.get(DailyReport, report_id)
    brand = await db.get(Brand, report.brand_id)

    comp_rows = await db.execute(
        select(BrandCompetitor.id, BrandCompetitor.competitor_name)
        .where(
            BrandCompetitor.brand_id == report.brand_id,
            BrandCompetitor.is_active == True,  # noqa: E712
        )
        .order_by(BrandCompetitor.id)
    )
    competitors = [(row.id, row.competitor_name) for row in comp_rows.all()]
    if not competitors:
        logger.info("Report %s: no active competitors, skipping competitor metrics", report_id)
        return None

    result_rows = await db.execute(
        select(PromptResult.response_text, PromptResult.brand_mentioned).where(
            PromptResult.daily_report_id == report_id,
            PromptResult.provider_status == "ok",
        )
    )
    responses = [(text, bool(mentioned)) for text, mentioned in result_rows.all() if text and text.strip()]

    share_rows = await db.execute(
        select(
            CitationShareStats.domain_type,
            CitationShareStats.entity_name,
            CitationShareStats.share_percentage,
        ).where(CitationShareStats.daily_report_id == report_id)
    )
    citation_shares = {}
    for domain_type, entity_name, share in share_rows.all():
        citation_shares[brand.name if domain_type == "brand" else entity_name] = share

    data = build_competitor_metrics(responses, brand.name, competitors, citation_shares, report.share_of_voice_data)
    report.competitor_metrics = data
    await db.commit()

    logger.info(
        "Report %s competitor metrics: brand=%.1f%% over %d responses, %d competitors",
        report_id,
        data["brand_visibility_score"],
        data["total_responses"],
        len(competitors),
    )
    return data
