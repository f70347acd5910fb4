import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class CitationShareStats(Base):
    """Per-domain citation share snapshot for a report (replaced on every recalculation)."""

    __tablename__ = "citation_share_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    daily_report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("daily_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    domain_type: Mapped[str] = mapped_column(String(20), nullable=False)  # brand | competitor | other
    entity_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    citation_count: Mapped[int] = mapped_column(Integer, default=0)
    share_percentage: Mapped[float] = mapped_column(Float, default=0.0)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    total_citations: Mapped[int] = mapped_column(Integer, default=0)
    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
