"""Citation share by domain for the brand and its competitors.

Counts the report's url_citations per domain and replaces the report's
citation_share_stats rows wholesale (delete + insert).
"""

import logging
from collections import Counter
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.analysis.urls import extract_domain
from app.models.brand import Brand, BrandCompetitor
from app.models.citation_share import CitationShareStats
from app.models.daily_report import DailyReport
from app.models.prompt_result import PromptResult
from app.models.url_inventory import UrlCitation, UrlInventory

logger = logging.getLogger(__name__)


def bare_domain(value: str) -> str:
    """'https://www.Acme.com/x' or 'www.acme.com' -> 'acme.com'."""
    value = value.strip()
    if "://" in value:
        return extract_domain(value)
    value = value.split("/", 1)[0].lower()
    return value[4:] if value.startswith("www.") else value


def build_share_rows(
    domain_counts: Counter,
    brand_domain: str,
    competitors: list[tuple[str, str]],
) -> list[dict]:
    """Share rows for the brand and each competitor domain, ranked by share descending.

    ``competitors`` is a list of (name, domain). Ties keep brand-first order.
    """
    total = sum(domain_counts.values())
    rows = []
    seen: set[str] = set()
    for domain, domain_type, name in [(brand_domain, "brand", None)] + [
        (d, "competitor", n) for n, d in competitors
    ]:
        if not domain or domain in seen:
            continue
        seen.add(domain)
        count = domain_counts.get(domain, 0)
        rows.append(
            {
                "domain": domain,
                "domain_type": domain_type,
                "entity_name": name,
                "citation_count": count,
                "share_percentage": round(count / total * 100, 2) if total else 0.0,
                "total_citations": total,
            }
        )

    rows.sort(key=lambda r: r["share_percentage"], reverse=True)
    for rank, row in enumerate(rows, start=1):
        row["rank"] = rank
    return rows


async def calculate_citation_share(db: AsyncSession, report_id: UUID) -> list[dict]:
    report = await db.get(DailyReport, report_id)
    await db.execute(delete(CitationShareStats).where(CitationShareStats.daily_report_id == report_id))

    brand = await db.get(Brand, report.brand_id)
    if brand is None or not brand.domain:
        logger.info("Report %s: brand domain not configured, skipping citation share", report_id)
        await db.commit()
        return []

    comp_rows = await db.execute(
        select(BrandCompetitor).where(
            BrandCompetitor.brand_id == brand.id,
            BrandCompetitor.is_active == True,  # noqa: E712
            BrandCompetitor.competitor_domain.is_not(None),
        )
    )
    competitors = [
        (c.competitor_name, bare_domain(c.competitor_domain)) for c in comp_rows.scalars().all() if c.competitor_domain
    ]

    url_rows = await db.execute(
        select(UrlInventory.url)
        .join(UrlCitation, UrlCitation.url_id == UrlInventory.id)
        .join(PromptResult, PromptResult.id == UrlCitation.prompt_result_id)
        .where(PromptResult.daily_report_id == report_id)
    )
    domain_counts = Counter(d for d in (extract_domain(u) for u in url_rows.scalars().all()) if d)

    if not domain_counts:
        logger.info("Report %s: no citations to analyze", report_id)
        await db.commit()
        return []

    rows = build_share_rows(domain_counts, bare_domain(brand.domain), competitors)

    db.add_all(CitationShareStats(daily_report_id=report_id, **row) for row in rows)
    await db.commit()

    logger.info(
        "Report %s citation share: %d domains, %d citations",
        report_id,
        len(rows),
        sum(domain_counts.values()),
    )
    return rows
