import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JsonType

# Provider pass statuses
STATUS_NOT_STARTED = "not_started"
STATUS_RUNNING = "running"
STATUS_COMPLETE = "complete"
STATUS_FAILED = "failed"
STATUS_EXPIRED = "expired"
STATUS_SKIPPED = "skipped"


class DailyReport(Base):
    """Per-brand, per-date report populated by the daily pipeline."""

    __tablename__ = "daily_reports"
    __table_args__ = (UniqueConstraint("brand_id", "report_date", name="uq_daily_report_brand_date"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    brand_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True
    )
    report_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="running")  # running | completed | failed
    generated: Mapped[bool] = mapped_column(Boolean, default=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_prompts: Mapped[int] = mapped_column(Integer, default=0)
    completed_prompts: Mapped[int] = mapped_column(Integer, default=0)

    # Provider passes: not_started | running | complete | failed | expired | skipped
    perplexity_status: Mapped[str] = mapped_column(String(20), default=STATUS_NOT_STARTED)
    perplexity_attempted: Mapped[int] = mapped_column(Integer, default=0)
    perplexity_ok: Mapped[int] = mapped_column(Integer, default=0)
    perplexity_no_result: Mapped[int] = mapped_column(Integer, default=0)
    perplexity_errors: Mapped[int] = mapped_column(Integer, default=0)

    google_ai_overview_status: Mapped[str] = mapped_column(String(20), default=STATUS_NOT_STARTED)
    google_ai_overview_attempted: Mapped[int] = mapped_column(Integer, default=0)
    google_ai_overview_ok: Mapped[int] = mapped_column(Integer, default=0)
    google_ai_overview_no_result: Mapped[int] = mapped_column(Integer, default=0)
    google_ai_overview_errors: Mapped[int] = mapped_column(Integer, default=0)

    chatgpt_status: Mapped[str] = mapped_column(String(20), default=STATUS_NOT_STARTED)
    chatgpt_attempted: Mapped[int] = mapped_column(Integer, default=0)
    chatgpt_ok: Mapped[int] = mapped_column(Integer, default=0)
    chatgpt_no_result: Mapped[int] = mapped_column(Integer, default=0)
    chatgpt_errors: Mapped[int] = mapped_column(Integer, default=0)

    # URL processing: not_started | running | complete | failed
    url_processing_status: Mapped[str] = mapped_column(String(20), default=STATUS_NOT_STARTED)
    urls_total: Mapped[int] = mapped_column(Integer, default=0)
    urls_extracted: Mapped[int] = mapped_column(Integer, default=0)
    urls_classified: Mapped[int] = mapped_column(Integer, default=0)

    # Aggregates
    total_mentions: Mapped[int] = mapped_column(Integer, default=0)
    average_position: Mapped[float | None] = mapped_column(Float, nullable=True)
    sentiment_positive: Mapped[int] = mapped_column(Integer, default=0)
    sentiment_neutral: Mapped[int] = mapped_column(Integer, default=0)
    sentiment_negative: Mapped[int] = mapped_column(Integer, default=0)
    visibility_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    share_of_voice_data: Mapped[dict | None] = mapped_column(JsonType, nullable=True)
    # {"entities": [{"name": "Acme", "mentions": 3, "type": "brand"}], "total_mentions": 3, "calculated_at": "..."}
    competitor_metrics: Mapped[dict | None] = mapped_column(JsonType, nullable=True)
    # {"competitors": [{"name": "BetaCorp", "visibility_score": 50.0, ...}], "brand_visibility_score": 75.0, ...}

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def provider_status(self, provider: str) -> str:
        return getattr(self, f"{provider}_status")

    def provider_counts(self, provider: str) -> dict[str, int]:
        return {
            "attempted": getattr(self, f"{provider}_attempted") or 0,
            "ok": getattr(self, f"{provider}_ok") or 0,
            "noResult": getattr(self, f"{provider}_no_result") or 0,
            "errors": getattr(self, f"{provider}_errors") or 0,
        }
