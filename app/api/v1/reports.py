"""Daily report API: trigger generation and poll progress."""

import asyncio
import logging
import uuid

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import Caller, get_current_user, verify_cron_secret
from app.core.exceptions import BadRequestError, ForbiddenError, GatewayTimeoutError, NotFoundError
from app.core.rate_limit import limiter
from app.db.postgres import get_db
from app.models.brand import Brand, BrandPrompt
from app.models.daily_report import DailyReport
from app.models.user import User
from app.schemas.report import GenerateDailyRequest, ReportStatusResponse, ReportSummaryResponse
from app.services.report_generator import ProviderSet, build_provider_set, generate_brand_report
from app.services.report_status import report_progress

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


def get_provider_set() -> ProviderSet:
    return build_provider_set()


@router.post("/generate-daily", response_model=ReportSummaryResponse)
@limiter.limit("10/minute")
async def generate_daily_report(
    request: Request,
    body: GenerateDailyRequest,
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
    provider_set: ProviderSet = Depends(get_provider_set),
):
    """Create or resume today's report for one brand.

    Scheduler calls authenticate with the cron secret; user calls with a JWT
    and must own the brand. Manual runs are limited to allow-listed accounts
    and bounded by a timeout.
    """
    if body.brand_id is None:
        raise BadRequestError("Brand ID is required")

    if body.from_cron:
        caller = verify_cron_secret(authorization)
    else:
        caller = Caller(user=await get_current_user(db=db, authorization=authorization))

    if body.manual and not caller.is_cron and caller.email not in settings.manual_allowed_emails:
        raise ForbiddenError("Manual reports are not available for this account")

    brand = await db.get(Brand, body.brand_id)
    if brand is None:
        raise NotFoundError("Brand not found")
    if not caller.is_cron and brand.owner_user_id != caller.user.id:
        raise ForbiddenError("Brand access denied")

    active_prompts = await db.execute(
        select(func.count())
        .select_from(BrandPrompt)
        .where(BrandPrompt.brand_id == brand.id, BrandPrompt.is_active == True)  # noqa: E712
    )
    if active_prompts.scalar() == 0:
        raise BadRequestError("No active prompts found for this brand")

    logger.info(
        "Daily report requested for brand %s (%s)",
        brand.id,
        "cron" if caller.is_cron else ("manual" if body.manual else caller.email),
    )
    run = generate_brand_report(db, brand.id, provider_set)
    if body.manual:
        try:
            summary = await asyncio.wait_for(run, timeout=settings.manual_report_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Manual report for brand %s timed out, partial results kept", brand.id)
            raise GatewayTimeoutError("Report generation timed out; it will resume on the next run")
    else:
        summary = await run
    return summary.to_dict()


@router.get("/{report_id}/status", response_model=ReportStatusResponse)
async def get_report_status(
    report_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Stage-by-stage progress of a report, for polling clients."""
    report = await db.get(DailyReport, report_id)
    if report is None:
        raise NotFoundError("Report not found")
    brand = await db.get(Brand, report.brand_id)
    if brand is None or brand.owner_user_id != user.id:
        raise ForbiddenError("Report access denied")
    return report_progress(report)
