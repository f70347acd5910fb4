"""Report completion reconciler.

Completion is re-derived from the current status fields on every run rather
than tracked as transitions, so calling it repeatedly is safe. The reconciler
is the only writer of ``generated``, ``status`` and ``completed_at``.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.collectors.base import GOOGLE_AI_OVERVIEW, PERPLEXITY, PROVIDER_ORDER
from app.models.daily_report import (
    STATUS_COMPLETE,
    STATUS_EXPIRED,
    STATUS_FAILED,
    STATUS_NOT_STARTED,
    STATUS_RUNNING,
    STATUS_SKIPPED,
    DailyReport,
)

logger = logging.getLogger(__name__)

PRIMARY_PROVIDER = PERPLEXITY

# A pass counts as attempted once it left not_started
ATTEMPTED_STATUSES = frozenset({STATUS_COMPLETE, STATUS_FAILED, STATUS_EXPIRED, STATUS_SKIPPED, STATUS_RUNNING})


@dataclass
class CompletionFlags:
    provider_statuses: dict[str, str]
    url_processing_status: str
    report_date: date
    today: date
    scheduled_providers: tuple[str, ...] = PROVIDER_ORDER


@dataclass
class CompletionDecision:
    is_complete: bool
    providers_attempted: dict[str, bool] = field(default_factory=dict)
    reason: str = ""


def provider_attempted(provider: str, status: str | None, report_date: date, today: date) -> bool:
    status = status or STATUS_NOT_STARTED
    if status in ATTEMPTED_STATUSES:
        return True
    # Web search cannot run for a past date; nothing left to wait for
    if provider == GOOGLE_AI_OVERVIEW and report_date < today:
        return True
    return False


def derive_completion(flags: CompletionFlags) -> CompletionDecision:
    attempted = {
        p: provider_attempted(p, flags.provider_statuses.get(p), flags.report_date, flags.today)
        for p in flags.scheduled_providers
    }

    primary_status = flags.provider_statuses.get(PRIMARY_PROVIDER, STATUS_NOT_STARTED)
    if primary_status != STATUS_COMPLETE:
        return CompletionDecision(False, attempted, f"{PRIMARY_PROVIDER} is {primary_status}")

    pending = [p for p, done in attempted.items() if not done]
    if pending:
        return CompletionDecision(False, attempted, f"not attempted: {', '.join(pending)}")

    if flags.url_processing_status != STATUS_COMPLETE:
        return CompletionDecision(False, attempted, f"url processing is {flags.url_processing_status}")

    return CompletionDecision(True, attempted, "complete")


def flags_for(report: DailyReport, today: date, scheduled_providers: tuple[str, ...] = PROVIDER_ORDER) -> CompletionFlags:
    return CompletionFlags(
        provider_statuses={p: report.provider_status(p) for p in PROVIDER_ORDER},
        url_processing_status=report.url_processing_status,
        report_date=report.report_date,
        today=today,
        scheduled_providers=scheduled_providers,
    )


async def reconcile_completion(
    db: AsyncSession,
    report_id: UUID,
    today: date | None = None,
    scheduled_providers: tuple[str, ...] = PROVIDER_ORDER,
) -> CompletionDecision:
    """Write generated/status/completed_at from the current flags."""
    today = today or datetime.now(timezone.utc).date()
    report = await db.get(DailyReport, report_id)
    decision = derive_completion(flags_for(report, today, scheduled_providers))

    if decision.is_complete:
        report.generated = True
        report.status = "completed"
        report.completed_at = datetime.now(timezone.utc)
    else:
        report.generated = False
        report.status = "running"
        report.completed_at = None
    await db.commit()

    logger.info("Report %s completion: %s (%s)", report_id, decision.is_complete, decision.reason)
    return decision
