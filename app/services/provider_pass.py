"""Provider pass runner: one provider over all active prompts of a report.

Every prompt yields exactly one upserted PromptResult keyed by
(daily_report_id, brand_prompt_id, provider), whatever the outcome, so a
re-run overwrites instead of duplicating.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.analysis.mention_analyzer import analyze_mentions
from app.collectors.base import GOOGLE_AI_OVERVIEW, BaseProvider
from app.core.config import settings
from app.core.metrics import PROVIDER_CALL_DURATION, PROVIDER_CALLS
from app.db.upsert import upsert
from app.models.brand import BrandPrompt
from app.models.daily_report import (
    STATUS_COMPLETE,
    STATUS_EXPIRED,
    STATUS_FAILED,
    STATUS_RUNNING,
    DailyReport,
)
from app.models.prompt_result import PromptResult

logger = logging.getLogger(__name__)

RESULT_KEY = ["daily_report_id", "brand_prompt_id", "provider"]


@dataclass
class PassCounts:
    attempted: int = 0
    ok: int = 0
    no_result: int = 0
    errors: int = 0

    @property
    def status(self) -> str:
        """``failed`` when nothing succeeded out of at least one attempt."""
        if self.ok == 0 and self.attempted > 0:
            return STATUS_FAILED
        return STATUS_COMPLETE

    def to_summary(self) -> dict[str, int]:
        return {
            "attempted": self.attempted,
            "ok": self.ok,
            "noResult": self.no_result,
            "errors": self.errors,
        }


def _result_row(report: DailyReport, prompt: BrandPrompt, provider: str, prompt_text: str) -> dict:
    return {
        "daily_report_id": report.id,
        "brand_prompt_id": prompt.id,
        "provider": provider,
        "prompt_text": prompt_text,
        "provider_error_message": None,
        "response_text": None,
        "citations": [],
        "response_time_ms": None,
        "brand_mentioned": False,
        "brand_mention_count": 0,
        "brand_position": None,
        "competitor_mentions": [],
        "sentiment_score": None,
        "updated_at": datetime.now(timezone.utc),
    }


async def run_provider_pass(
    db: AsyncSession,
    report: DailyReport,
    prompts: list[BrandPrompt],
    brand_name: str,
    competitors: list[str],
    provider: BaseProvider,
    delay: float | None = None,
) -> PassCounts:
    """Ask every prompt to one provider and store the analyzed answers.

    A failing prompt is recorded as ``error`` and the loop moves on.
    """
    delay = settings.prompt_delay_seconds if delay is None else delay
    counts = PassCounts()

    for i, prompt in enumerate(prompts):
        prompt_text = prompt.prompt_text
        row = _result_row(report, prompt, provider.provider, prompt_text)
        counts.attempted += 1

        start = time.perf_counter()
        try:
            response = await provider.call(prompt_text)
        except Exception as e:
            counts.errors += 1
            row["provider_status"] = "error"
            row["provider_error_message"] = f"{type(e).__name__}: {e}"[:2000]
            logger.warning(
                "[%s] prompt %d failed for report %s: %s",
                provider.provider,
                prompt.id,
                report.id,
                e,
            )
        else:
            row["response_time_ms"] = response.response_time_ms
            if response.no_result or not response.content.strip():
                counts.no_result += 1
                row["provider_status"] = "no_result"
            else:
                counts.ok += 1
                analysis = analyze_mentions(response.content, brand_name, competitors)
                row.update(
                    provider_status="ok",
                    response_text=response.content,
                    citations=response.citations,
                    brand_mentioned=analysis.mentioned,
                    brand_mention_count=analysis.mention_count,
                    brand_position=analysis.position if analysis.mentioned else None,
                    competitor_mentions=[c.to_dict() for c in analysis.competitor_mentions],
                    sentiment_score=analysis.sentiment if analysis.mentioned else None,
                )
        finally:
            PROVIDER_CALL_DURATION.labels(provider=provider.provider).observe(time.perf_counter() - start)

        PROVIDER_CALLS.labels(provider=provider.provider, outcome=row["provider_status"]).inc()
        await upsert(db, PromptResult, row, conflict_cols=RESULT_KEY)
        await db.commit()

        if delay and i < len(prompts) - 1:
            await asyncio.sleep(delay)

    logger.info(
        "[%s] pass done for report %s: attempted=%d ok=%d no_result=%d errors=%d",
        provider.provider,
        report.id,
        counts.attempted,
        counts.ok,
        counts.no_result,
        counts.errors,
        extra={"report_id": report.id, "provider": provider.provider},
    )
    return counts


async def execute_provider_pass(
    db: AsyncSession,
    report: DailyReport,
    provider: BaseProvider,
    prompts: list[BrandPrompt],
    brand_name: str,
    competitors: list[str],
    today: date,
    delay: float | None = None,
) -> PassCounts | None:
    """Run a provider pass unless it already completed, persisting status and counters.

    The web-search pass only makes sense on the report's own date; for any other
    date it is marked ``expired`` without calling the provider. Returns None when
    the pass was not run.
    """
    name = provider.provider
    if report.provider_status(name) == STATUS_COMPLETE:
        logger.info("[%s] already complete for report %s, skipping", name, report.id)
        return None

    if name == GOOGLE_AI_OVERVIEW and report.report_date != today:
        logger.info("[%s] report %s is for %s, marking expired", name, report.id, report.report_date)
        setattr(report, f"{name}_status", STATUS_EXPIRED)
        await db.commit()
        return None

    setattr(report, f"{name}_status", STATUS_RUNNING)
    await db.commit()

    counts = await run_provider_pass(db, report, prompts, brand_name, competitors, provider, delay=delay)

    setattr(report, f"{name}_attempted", counts.attempted)
    setattr(report, f"{name}_ok", counts.ok)
    setattr(report, f"{name}_no_result", counts.no_result)
    setattr(report, f"{name}_errors", counts.errors)
    setattr(report, f"{name}_status", counts.status)
    await db.commit()
    return counts
