"""Daily report orchestrator.

Per brand and day:
  1. Lookup-or-insert today's DailyReport (nothing to do once ``generated``).
  2. Provider passes that are not complete yet (perplexity, google, chatgpt).
  3. URL pipeline once every scheduled pass has been attempted.
  4. Aggregators: rank/sentiment, citation share, share of voice,
     competitor metrics, visibility.
  5. Completion reconciler.

Every stage commits its own writes, so an interrupted run resumes on the
next invocation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.analysis.content_classifier import ContentClassifier
from app.collectors.base import CHATGPT, GOOGLE_AI_OVERVIEW, PERPLEXITY, PROVIDER_ORDER, BaseProvider
from app.collectors.chatgpt import ChatGptProvider
from app.collectors.google_search import GoogleSearchProvider
from app.collectors.perplexity import PerplexityProvider
from app.collectors.tavily import TavilyClient
from app.core.config import settings
from app.core.metrics import REPORT_RUNS
from app.db.upsert import upsert
from app.models.brand import Brand, BrandCompetitor, BrandPrompt
from app.models.daily_report import STATUS_COMPLETE, STATUS_NOT_STARTED, STATUS_SKIPPED, DailyReport
from app.models.user import User
from app.services.citation_share import calculate_citation_share
from app.services.competitor_metrics import calculate_competitor_metrics
from app.services.completion import provider_attempted, reconcile_completion
from app.services.provider_pass import execute_provider_pass
from app.services.rank_aggregator import aggregate_rank_and_sentiment
from app.services.share_of_voice import EntityExtractor, calculate_share_of_voice
from app.services.url_pipeline import process_report_urls
from app.services.visibility_score import calculate_visibility_score

logger = logging.getLogger(__name__)

# Summary keys used by the HTTP trigger response
SUMMARY_KEYS = {
    PERPLEXITY: "perplexity",
    GOOGLE_AI_OVERVIEW: "googleAIOverview",
    CHATGPT: "chatgpt",
}


@dataclass
class ProviderSet:
    """External collaborators used by a report run."""

    providers: dict[str, BaseProvider]
    extractor: TavilyClient
    classifier: ContentClassifier
    entity_extractor: EntityExtractor | None = None
    prompt_delay: float | None = None


def build_provider_set() -> ProviderSet:
    """Instantiate the configured providers from settings.

    ChatGPT is only scheduled when an executor URL is configured.
    """
    providers: dict[str, BaseProvider] = {
        PERPLEXITY: PerplexityProvider(api_key=settings.perplexity_api_key, model=settings.perplexity_model),
        GOOGLE_AI_OVERVIEW: GoogleSearchProvider(
            api_key=settings.google_cse_api_key,
            search_engine_id=settings.google_cse_id,
        ),
    }
    if settings.chatgpt_executor_url:
        providers[CHATGPT] = ChatGptProvider(
            executor_url=settings.chatgpt_executor_url,
            token=settings.chatgpt_executor_token,
            timeout=settings.chatgpt_executor_timeout,
        )
    return ProviderSet(
        providers=providers,
        extractor=TavilyClient(
            api_key=settings.tavily_api_key,
            batch_size=settings.url_batch_size,
            batch_delay=settings.url_batch_delay_seconds,
        ),
        classifier=ContentClassifier(api_key=settings.openai_api_key),
    )


@dataclass
class ReportSummary:
    report_id: UUID
    generated: bool
    providers: dict[str, dict[str, int]] = field(default_factory=dict)
    is_complete: bool = False
    status: str = "running"
    error: str | None = None

    def to_dict(self) -> dict:
        data = {"reportId": str(self.report_id), "generated": self.generated}
        for provider in PROVIDER_ORDER:
            data[SUMMARY_KEYS[provider]] = self.providers.get(
                provider, {"attempted": 0, "ok": 0, "noResult": 0, "errors": 0}
            )
        data["isComplete"] = self.is_complete
        data["status"] = self.status
        if self.error:
            data["error"] = self.error
        return data


def summarize(report: DailyReport) -> ReportSummary:
    return ReportSummary(
        report_id=report.id,
        generated=bool(report.generated),
        providers={p: report.provider_counts(p) for p in PROVIDER_ORDER},
        is_complete=bool(report.generated),
        status=report.status,
        error=report.error_message,
    )


async def get_or_create_report(db: AsyncSession, brand_id: UUID, report_date: date, total_prompts: int) -> DailyReport:
    """Idempotent lookup-or-insert keyed by (brand_id, report_date)."""
    query = select(DailyReport).where(DailyReport.brand_id == brand_id, DailyReport.report_date == report_date)
    report = (await db.execute(query)).scalar_one_or_none()
    if report is not None:
        return report

    await upsert(
        db,
        DailyReport,
        {
            "brand_id": brand_id,
            "report_date": report_date,
            "status": "running",
            "total_prompts": total_prompts,
        },
        conflict_cols=["brand_id", "report_date"],
        update_cols=[],
    )
    await db.commit()
    report = (await db.execute(query)).scalar_one()
    logger.info("Created daily report %s for brand %s (%s)", report.id, brand_id, report_date)
    return report


async def generate_brand_report(
    db: AsyncSession,
    brand_id: UUID,
    provider_set: ProviderSet,
    today: date | None = None,
) -> ReportSummary:
    """Create or resume today's report for one brand and drive it as far as possible.

    A fatal error marks the report ``failed`` with the error message and is re-raised.
    """
    today = today or datetime.now(timezone.utc).date()

    brand = await db.get(Brand, brand_id)
    if brand is None:
        raise ValueError(f"Brand {brand_id} not found")
    brand_name = brand.name

    prompt_rows = await db.execute(
        select(BrandPrompt)
        .where(BrandPrompt.brand_id == brand_id, BrandPrompt.is_active == True)  # noqa: E712
        .order_by(BrandPrompt.id)
    )
    prompts = list(prompt_rows.scalars().all())
    comp_rows = await db.execute(
        select(BrandCompetitor.competitor_name).where(
            BrandCompetitor.brand_id == brand_id,
            BrandCompetitor.is_active == True,  # noqa: E712
        )
    )
    competitors = list(comp_rows.scalars().all())

    report = await get_or_create_report(db, brand_id, today, len(prompts))
    report_id = report.id
    if report.generated:
        logger.info("Report %s for %s already generated, nothing to do", report_id, brand_name)
        REPORT_RUNS.labels(status="skipped").inc()
        return summarize(report)

    logger.info(
        "Generating report %s for brand %s (%d prompts)",
        report_id,
        brand_name,
        len(prompts),
        extra={"report_id": report_id, "brand_id": brand_id},
    )
    try:
        report.status = "running"
        report.error_message = None
        report.total_prompts = len(prompts)
        await db.commit()

        scheduled = tuple(p for p in PROVIDER_ORDER if p in provider_set.providers)
        passes_ran = False
        for name in PROVIDER_ORDER:
            client = provider_set.providers.get(name)
            if client is None:
                if report.provider_status(name) == STATUS_NOT_STARTED:
                    setattr(report, f"{name}_status", STATUS_SKIPPED)
                    await db.commit()
                continue
            counts = await execute_provider_pass(
                db,
                report,
                client,
                prompts,
                brand_name,
                competitors,
                today=today,
                delay=provider_set.prompt_delay,
            )
            passes_ran = passes_ran or counts is not None

        all_attempted = all(
            provider_attempted(p, report.provider_status(p), report.report_date, today) for p in scheduled
        )
        if all_attempted and (passes_ran or report.url_processing_status != STATUS_COMPLETE):
            await process_report_urls(db, report_id, provider_set.extractor, provider_set.classifier)

        await aggregate_rank_and_sentiment(db, report_id)
        await calculate_citation_share(db, report_id)
        try:
            await calculate_share_of_voice(db, report_id, extractor=provider_set.entity_extractor)
        except Exception as e:
            logger.warning("Share of voice failed for report %s: %s", report_id, e)
            await db.rollback()
        await calculate_competitor_metrics(db, report_id)
        await calculate_visibility_score(db, report_id)

        decision = await reconcile_completion(db, report_id, today=today)
    except Exception as e:
        logger.exception("Report %s for brand %s failed", report_id, brand_name)
        await db.rollback()
        await db.execute(
            update(DailyReport)
            .where(DailyReport.id == report_id)
            .values(status="failed", generated=False, error_message=f"{type(e).__name__}: {e}"[:2000])
        )
        await db.commit()
        REPORT_RUNS.labels(status="failed").inc()
        raise

    report = await db.get(DailyReport, report_id)
    summary = summarize(report)
    summary.is_complete = decision.is_complete
    REPORT_RUNS.labels(status=report.status).inc()
    return summary


async def eligible_brand_ids(db: AsyncSession) -> list[UUID]:
    """Brands with completed onboarding, an eligible owner plan and at least one active prompt."""
    has_prompts = exists().where(BrandPrompt.brand_id == Brand.id, BrandPrompt.is_active == True)  # noqa: E712
    rows = await db.execute(
        select(Brand.id)
        .join(User, User.id == Brand.owner_user_id)
        .where(
            User.is_active == True,  # noqa: E712
            User.subscription_plan.in_(settings.eligible_plans),
            Brand.onboarding_completed == True,  # noqa: E712
            Brand.is_active == True,  # noqa: E712
            has_prompts,
        )
        .order_by(Brand.created_at)
    )
    return list(rows.scalars().all())


async def generate_daily_reports(
    session_factory: async_sessionmaker,
    provider_set: ProviderSet,
    today: date | None = None,
    brand_delay: float | None = None,
) -> dict:
    """Run the daily report for every eligible brand, one brand at a time."""
    brand_delay = settings.brand_delay_seconds if brand_delay is None else brand_delay

    async with session_factory() as db:
        brand_ids = await eligible_brand_ids(db)

    if not brand_ids:
        logger.info("No eligible brands for daily reports")
        return {"processedBrands": 0, "results": []}

    logger.info("Daily reports: %d eligible brands", len(brand_ids))
    results = []
    for i, brand_id in enumerate(brand_ids):
        async with session_factory() as db:
            try:
                summary = await generate_brand_report(db, brand_id, provider_set, today=today)
                results.append({"brandId": str(brand_id), **summary.to_dict()})
            except Exception as e:
                logger.error("Daily report failed for brand %s: %s", brand_id, e)
                results.append({"brandId": str(brand_id), "error": str(e)})

        if brand_delay and i < len(brand_ids) - 1:
            await asyncio.sleep(brand_delay)

    return {"processedBrands": len(brand_ids), "results": results}
