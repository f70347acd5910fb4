"""Citation URL pipeline: inventory, content extraction and classification.

For one report:
  1. Union of normalized citation URLs across its ``ok`` prompt results.
  2. Inventory upsert (one row per distinct URL) + url_citations links.
  3. Tavily extraction for URLs that are new or unextracted,
     skipping those that already hit the retry cap.
  4. Heuristic/LLM classification of extracted pages; URLs extracted earlier
     but left unclassified are classified from their stored content.
  5. Content facts upsert; failures bump ``retry_count`` up to the cap.

Per-batch failures are absorbed. Only a total extraction failure (nothing
extracted out of a non-empty work set) marks the stage ``failed``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.analysis.content_classifier import ClassificationInput, ContentClassifier
from app.analysis.urls import extract_domain, normalized_citation_urls
from app.collectors.tavily import ExtractedPage, TavilyClient
from app.core.config import settings
from app.core.metrics import URL_EXTRACTIONS
from app.db.upsert import upsert
from app.models.daily_report import STATUS_COMPLETE, STATUS_FAILED, STATUS_RUNNING, DailyReport
from app.models.prompt_result import PromptResult
from app.models.url_inventory import UrlCitation, UrlContentFacts, UrlInventory

logger = logging.getLogger(__name__)

SNIPPET_LIMIT = 2000


@dataclass
class UrlProcessingSummary:
    total_urls: int = 0
    new_urls: int = 0
    extracted_urls: int = 0
    classified_urls: int = 0
    errors: int = 0
    failed: bool = False


@dataclass
class _CitationMeta:
    title: str = ""
    snippet: str = ""


def _citation_meta(results: list[PromptResult]) -> tuple[list[str], dict[str, _CitationMeta]]:
    """Ordered union of normalized URLs plus the first title/snippet seen for each."""
    urls: list[str] = []
    meta: dict[str, _CitationMeta] = {}
    for result in results:
        for citation in result.citations or []:
            for url in normalized_citation_urls([citation]):
                if url not in meta:
                    urls.append(url)
                    meta[url] = _CitationMeta()
                if isinstance(citation, dict):
                    meta[url].title = meta[url].title or citation.get("title") or ""
                    meta[url].snippet = meta[url].snippet or citation.get("snippet") or ""
    return urls, meta


async def _inventory_map(db: AsyncSession, urls: list[str]) -> dict[str, UrlInventory]:
    if not urls:
        return {}
    rows = await db.execute(select(UrlInventory).where(UrlInventory.url.in_(urls)))
    return {row.url: row for row in rows.scalars().all()}


async def _classified_ids(db: AsyncSession, url_ids: list[int]) -> set[int]:
    if not url_ids:
        return set()
    rows = await db.execute(
        select(UrlContentFacts.url_id).where(
            UrlContentFacts.url_id.in_(url_ids),
            UrlContentFacts.content_structure_category.is_not(None),
        )
    )
    return set(rows.scalars().all())


async def extract_and_store(
    db: AsyncSession,
    targets: list[UrlInventory],
    meta: dict[str, _CitationMeta],
    extractor: TavilyClient,
    classifier: ContentClassifier,
    max_retries: int,
) -> tuple[int, int, int]:
    """Extract, classify and persist a set of inventory URLs.

    Returns (extracted, classified, failed) counts.
    """
    if not targets:
        return 0, 0, 0

    by_url = {t.url: t for t in targets}
    pages = await extractor.extract_batched(list(by_url))

    succeeded: list[ExtractedPage] = []
    failed: dict[str, str] = {}
    for page in pages:
        if page.url not in by_url:
            logger.debug("Ignoring extraction result for unrequested URL %s", page.url)
            continue
        if page.failed:
            failed.setdefault(page.url, page.error or "extraction failed")
        else:
            succeeded.append(page)
            failed.pop(page.url, None)

    now = datetime.now(timezone.utc)
    classified = 0
    if succeeded:
        inputs = [
            ClassificationInput(
                url=p.url,
                title=p.title or meta.get(p.url, _CitationMeta()).title,
                description=meta.get(p.url, _CitationMeta()).snippet,
                content_snippet=p.raw_content[:SNIPPET_LIMIT],
            )
            for p in succeeded
        ]
        classifications = await classifier.classify_batch(inputs)

        for page, item, result in zip(succeeded, inputs, classifications):
            inv = by_url[page.url]
            await upsert(
                db,
                UrlContentFacts,
                {
                    "url_id": inv.id,
                    "title": item.title or None,
                    "description": item.description or None,
                    "raw_content": page.raw_content,
                    "content_snippet": page.raw_content[:SNIPPET_LIMIT],
                    "content_structure_category": result.category,
                    "classification_confidence": result.confidence,
                    "category_scores": result.scores,
                    "classifier_version": result.classifier_version,
                    "extracted_at": now,
                },
                conflict_cols=["url_id"],
            )
            inv.content_extracted = True
            inv.content_extracted_at = now
            inv.last_retry_error = None
            if result.category:
                classified += 1

    for url, error in failed.items():
        inv = by_url[url]
        inv.retry_count = min((inv.retry_count or 0) + 1, max_retries)
        inv.last_retry_at = now
        inv.last_retry_error = error[:1000]

    await db.commit()

    URL_EXTRACTIONS.labels(outcome="extracted").inc(len(succeeded))
    URL_EXTRACTIONS.labels(outcome="failed").inc(len(failed))
    return len(succeeded), classified, len(failed)


async def classify_stored(db: AsyncSession, targets: list[UrlInventory], classifier: ContentClassifier) -> int:
    """Classify already extracted URLs from their stored content, without refetching."""
    if not targets:
        return 0
    rows = await db.execute(select(UrlContentFacts).where(UrlContentFacts.url_id.in_([t.id for t in targets])))
    facts = list(rows.scalars().all())
    if not facts:
        return 0

    url_by_id = {t.id: t.url for t in targets}
    inputs = [
        ClassificationInput(
            url=url_by_id[f.url_id],
            title=f.title or "",
            description=f.description or "",
            content_snippet=f.content_snippet or (f.raw_content or "")[:SNIPPET_LIMIT],
        )
        for f in facts
    ]
    classifications = await classifier.classify_batch(inputs)

    classified = 0
    for fact, result in zip(facts, classifications):
        fact.content_structure_category = result.category
        fact.classification_confidence = result.confidence
        fact.category_scores = result.scores
        fact.classifier_version = result.classifier_version
        if result.category:
            classified += 1
    await db.commit()
    return classified


async def _report_url_totals(db: AsyncSession, urls: list[str]) -> tuple[int, int]:
    inventory = await _inventory_map(db, urls)
    extracted = [inv.id for inv in inventory.values() if inv.content_extracted]
    return len(extracted), len(await _classified_ids(db, extracted))


async def process_report_urls(
    db: AsyncSession,
    report_id: UUID,
    extractor: TavilyClient,
    classifier: ContentClassifier,
    max_retries: int | None = None,
) -> UrlProcessingSummary:
    """Run the URL pipeline for one report and record ``url_processing_status``."""
    max_retries = settings.url_max_retries if max_retries is None else max_retries
    report = await db.get(DailyReport, report_id)
    if report is None:
        raise ValueError(f"Daily report {report_id} not found")

    report.url_processing_status = STATUS_RUNNING
    await db.commit()

    summary = UrlProcessingSummary()
    try:
        rows = await db.execute(
            select(PromptResult).where(
                PromptResult.daily_report_id == report_id,
                PromptResult.provider_status == "ok",
            )
        )
        results = list(rows.scalars().all())
        all_urls, meta = _citation_meta(results)
        summary.total_urls = len(all_urls)
        logger.info("Report %s: %d unique citation URLs", report_id, len(all_urls))

        existing = await _inventory_map(db, all_urls)
        new_urls = [u for u in all_urls if u not in existing]
        summary.new_urls = len(new_urls)

        if new_urls:
            await upsert(
                db,
                UrlInventory,
                [
                    {
                        "url": u,
                        "normalized_url": u,
                        "domain": extract_domain(u),
                        "content_extracted": False,
                        "retry_count": 0,
                    }
                    for u in new_urls
                ],
                conflict_cols=["url"],
                update_cols=["normalized_url", "domain"],
            )
            existing = await _inventory_map(db, all_urls)

        links = []
        for result in results:
            for url in normalized_citation_urls(result.citations):
                if url in existing:
                    links.append({"url_id": existing[url].id, "prompt_result_id": result.id, "provider": result.provider})
        if links:
            await upsert(db, UrlCitation, links, conflict_cols=["url_id", "prompt_result_id", "provider"], update_cols=[])
        await db.commit()

        classified_ids = await _classified_ids(db, [inv.id for inv in existing.values()])
        known = [existing[u] for u in all_urls if u in existing]
        targets = [inv for inv in known if not inv.content_extracted and (inv.retry_count or 0) < max_retries]
        unclassified = [inv for inv in known if inv.content_extracted and inv.id not in classified_ids]
        logger.info(
            "Report %s: %d new URLs, %d need extraction, %d need classification",
            report_id,
            len(new_urls),
            len(targets),
            len(unclassified),
        )

        extracted, classified, failed = await extract_and_store(db, targets, meta, extractor, classifier, max_retries)
        reclassified = await classify_stored(db, unclassified, classifier)
        summary.extracted_urls = extracted
        summary.classified_urls = classified + reclassified
        summary.errors = failed

        report.urls_total = summary.total_urls
        report.urls_extracted, report.urls_classified = await _report_url_totals(db, all_urls)
        if targets and extracted == 0:
            summary.failed = True
            report.url_processing_status = STATUS_FAILED
            logger.error("Report %s: all %d URL extractions failed", report_id, len(targets))
        else:
            report.url_processing_status = STATUS_COMPLETE
        await db.commit()
        return summary

    except Exception:
        logger.exception("URL processing failed for report %s", report_id)
        await db.rollback()
        await db.execute(
            update(DailyReport).where(DailyReport.id == report_id).values(url_processing_status=STATUS_FAILED)
        )
        await db.commit()
        raise


async def retry_failed_urls(
    db: AsyncSession,
    extractor: TavilyClient,
    classifier: ContentClassifier,
    include_capped: bool = False,
    limit: int = 500,
    max_retries: int | None = None,
) -> UrlProcessingSummary:
    """Manual backfill for URLs that never got extracted.

    Capped URLs are left alone unless ``include_capped`` is set, in which case
    their retry counters are reset first.
    """
    max_retries = settings.url_max_retries if max_retries is None else max_retries
    query = select(UrlInventory).where(UrlInventory.content_extracted == False)  # noqa: E712
    if not include_capped:
        query = query.where(UrlInventory.retry_count < max_retries)
    rows = await db.execute(query.order_by(UrlInventory.id).limit(limit))
    targets = list(rows.scalars().all())

    if include_capped:
        for inv in targets:
            inv.retry_count = 0
        await db.commit()

    logger.info("Retrying %d unextracted URLs (include_capped=%s)", len(targets), include_capped)
    extracted, classified, failed = await extract_and_store(db, targets, {}, extractor, classifier, max_retries)
    return UrlProcessingSummary(
        total_urls=len(targets),
        extracted_urls=extracted,
        classified_urls=classified,
        errors=failed,
    )
