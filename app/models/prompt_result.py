import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, BigIntPk, JsonType


class PromptResult(Base):
    """Answer of one provider to one brand prompt inside a daily report."""

    __tablename__ = "prompt_results"
    __table_args__ = (
        UniqueConstraint("daily_report_id", "brand_prompt_id", "provider", name="uq_prompt_result"),
    )

    id: Mapped[int] = mapped_column(BigIntPk, primary_key=True, autoincrement=True)
    daily_report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("daily_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    brand_prompt_id: Mapped[int] = mapped_column(
        ForeignKey("brand_prompts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(30), nullable=False)  # perplexity | google_ai_overview | chatgpt
    prompt_text: Mapped[str] = mapped_column(Text, nullable=False)

    provider_status: Mapped[str] = mapped_column(String(20), nullable=False)  # ok | no_result | error
    provider_error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    citations: Mapped[list | None] = mapped_column(JsonType, nullable=True)  # ["https://...", ...]
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Mention analysis
    brand_mentioned: Mapped[bool] = mapped_column(Boolean, default=False)
    brand_mention_count: Mapped[int] = mapped_column(Integer, default=0)
    brand_position: Mapped[int | None] = mapped_column(Integer, nullable=True)  # char offset of first mention
    competitor_mentions: Mapped[list | None] = mapped_column(JsonType, nullable=True)
    # [{"name": "BetaCorp", "count": 1, "position": 40}]
    sentiment_score: Mapped[float | None] = mapped_column(Float, nullable=True)  # -1.0 .. 1.0

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )
