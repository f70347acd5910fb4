from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, BigIntPk, JsonType


class UrlInventory(Base):
    """One row per distinct cited URL, shared across brands and reports."""

    __tablename__ = "url_inventory"

    id: Mapped[int] = mapped_column(BigIntPk, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    normalized_url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    content_extracted: Mapped[bool] = mapped_column(Boolean, default=False)
    content_extracted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Extraction retries, capped by settings.url_max_retries
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    last_retry_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_retry_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class UrlCitation(Base):
    """Link between a cited URL and the prompt result that cited it."""

    __tablename__ = "url_citations"
    __table_args__ = (UniqueConstraint("url_id", "prompt_result_id", "provider", name="uq_url_citation"),)

    id: Mapped[int] = mapped_column(BigIntPk, primary_key=True, autoincrement=True)
    url_id: Mapped[int] = mapped_column(ForeignKey("url_inventory.id", ondelete="CASCADE"), nullable=False, index=True)
    prompt_result_id: Mapped[int] = mapped_column(
        ForeignKey("prompt_results.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(30), nullable=False)
    cited_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class UrlContentFacts(Base):
    """Extracted page content and its content-structure classification."""

    __tablename__ = "url_content_facts"

    id: Mapped[int] = mapped_column(BigIntPk, primary_key=True, autoincrement=True)
    url_id: Mapped[int] = mapped_column(
        ForeignKey("url_inventory.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_snippet: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    content_structure_category: Mapped[str | None] = mapped_column(String(40), nullable=True)
    classification_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    category_scores: Mapped[dict | None] = mapped_column(JsonType, nullable=True)  # {"HOW_TO_GUIDE": 0.8, ...}
    classifier_version: Mapped[str | None] = mapped_column(String(40), nullable=True)  # heuristic-v1 | llm-v1 | default

    extracted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
