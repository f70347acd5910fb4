"""Celery tasks for daily report generation.

Reports are generated sequentially (one brand, one provider, one prompt at a
time); the task layer only provides a fresh event loop and DB engine.
"""

import asyncio
import logging
from uuid import UUID

from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run an async coroutine from sync Celery task context.

    Creates a fresh event loop each time to avoid conflicts with
    the module-level SQLAlchemy engine (which may be bound to a
    different loop created by uvicorn).
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _make_session_factory():
    """Create a fresh async engine + session factory for the worker's event loop."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from app.core.config import settings

    engine = create_async_engine(
        settings.postgres_url,
        echo=False,
        pool_size=5,
        max_overflow=5,
        pool_pre_ping=True,
    )
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False), engine


async def _generate_daily_reports_async() -> dict:
    from app.services.report_generator import build_provider_set, generate_daily_reports

    session_factory, engine = _make_session_factory()
    try:
        return await generate_daily_reports(session_factory, build_provider_set())
    finally:
        await engine.dispose()


async def _generate_brand_report_async(brand_id: str) -> dict:
    from app.services.report_generator import build_provider_set, generate_brand_report

    session_factory, engine = _make_session_factory()
    try:
        async with session_factory() as db:
            summary = await generate_brand_report(db, UUID(brand_id), build_provider_set())
            return summary.to_dict()
    finally:
        await engine.dispose()


async def _retry_failed_urls_async(include_capped: bool, limit: int) -> dict:
    from app.services.report_generator import build_provider_set
    from app.services.url_pipeline import retry_failed_urls

    provider_set = build_provider_set()
    session_factory, engine = _make_session_factory()
    try:
        async with session_factory() as db:
            summary = await retry_failed_urls(
                db,
                provider_set.extractor,
                provider_set.classifier,
                include_capped=include_capped,
                limit=limit,
            )
            return {
                "total": summary.total_urls,
                "extracted": summary.extracted_urls,
                "classified": summary.classified_urls,
                "failed": summary.errors,
            }
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name="generate_daily_reports", max_retries=0)
def generate_daily_reports_task(self):
    """Celery Beat entry point: daily report for every eligible brand.

    Celery retries stay disabled: every stage is idempotent and the next run
    resumes unfinished reports.
    """
    logger.info("Starting daily report run")
    try:
        result = _run_async(_generate_daily_reports_async())
        logger.info("Daily report run done: %d brands", result.get("processedBrands", 0))
        return result
    except Exception as exc:
        logger.error("Daily report run failed: %s", exc)
        return {"error": str(exc)}


@celery_app.task(bind=True, name="generate_brand_report", max_retries=0)
def generate_brand_report_task(self, brand_id: str):
    logger.info("Starting report for brand=%s", brand_id)
    try:
        return _run_async(_generate_brand_report_async(brand_id))
    except Exception as exc:
        logger.error("Report for brand %s failed: %s", brand_id, exc)
        return {"error": str(exc), "brandId": brand_id}


@celery_app.task(bind=True, name="retry_failed_urls", max_retries=0)
def retry_failed_urls_task(self, include_capped: bool = False, limit: int = 500):
    """Manual backfill for citation URLs whose extraction never succeeded."""
    logger.info("Retrying failed URLs (include_capped=%s, limit=%d)", include_capped, limit)
    try:
        return _run_async(_retry_failed_urls_async(include_capped, limit))
    except Exception as exc:
        logger.error("Failed URL retry run failed: %s", exc)
        return {"error": str(exc)}
