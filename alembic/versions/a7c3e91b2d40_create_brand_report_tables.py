"""create brand visibility report tables

Revision ID: a7c3e91b2d40
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "a7c3e91b2d40"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _provider_columns(provider: str) -> list[sa.Column]:
    return [
        sa.Column(f"{provider}_status", sa.String(20), nullable=False, server_default="not_started"),
        sa.Column(f"{provider}_attempted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(f"{provider}_ok", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(f"{provider}_no_result", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(f"{provider}_errors", sa.Integer(), nullable=False, server_default="0"),
    ]


def upgrade() -> None:
    # =========================================================
    # 1. Accounts and brands
    # =========================================================
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("subscription_plan", sa.String(20), nullable=False, server_default="free"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "brands",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "owner_user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "brand_competitors",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "brand_id", UUID(as_uuid=True), sa.ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True
        ),
        sa.Column("competitor_name", sa.String(255), nullable=False),
        sa.Column("competitor_domain", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
    )

    op.create_table(
        "brand_prompts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "brand_id", UUID(as_uuid=True), sa.ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True
        ),
        sa.Column("raw_prompt", sa.Text(), nullable=False),
        sa.Column("improved_prompt", sa.Text(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # =========================================================
    # 2. Daily reports and per-provider prompt results
    # =========================================================
    op.create_table(
        "daily_reports",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "brand_id", UUID(as_uuid=True), sa.ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True
        ),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="running"),
        sa.Column("generated", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("total_prompts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_prompts", sa.Integer(), nullable=False, server_default="0"),
        *_provider_columns("perplexity"),
        *_provider_columns("google_ai_overview"),
        *_provider_columns("chatgpt"),
        sa.Column("url_processing_status", sa.String(20), nullable=False, server_default="not_started"),
        sa.Column("urls_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("urls_extracted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("urls_classified", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_mentions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_position", sa.Float(), nullable=True),
        sa.Column("sentiment_positive", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sentiment_neutral", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sentiment_negative", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("visibility_score", sa.Float(), nullable=True),
        sa.Column("share_of_voice_data", JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("brand_id", "report_date", name="uq_daily_report_brand_date"),
    )

    op.create_table(
        "prompt_results",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "daily_report_id",
            UUID(as_uuid=True),
            sa.ForeignKey("daily_reports.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "brand_prompt_id",
            sa.Integer(),
            sa.ForeignKey("brand_prompts.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("provider", sa.String(30), nullable=False),
        sa.Column("prompt_text", sa.Text(), nullable=False),
        sa.Column("provider_status", sa.String(20), nullable=False),
        sa.Column("provider_error_message", sa.Text(), nullable=True),
        sa.Column("response_text", sa.Text(), nullable=True),
        sa.Column("citations", JSONB(), nullable=True),
        sa.Column("response_time_ms", sa.Integer(), nullable=True),
        sa.Column("brand_mentioned", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("brand_mention_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("brand_position", sa.Integer(), nullable=True),
        sa.Column("competitor_mentions", JSONB(), nullable=True),
        sa.Column("sentiment_score", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("daily_report_id", "brand_prompt_id", "provider", name="uq_prompt_result"),
    )

    # =========================================================
    # 3. Citation URL inventory (shared across brands)
    # =========================================================
    op.create_table(
        "url_inventory",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("url", sa.Text(), nullable=False, unique=True),
        sa.Column("normalized_url", sa.Text(), nullable=False, index=True),
        sa.Column("domain", sa.String(255), nullable=False, index=True),
        sa.Column("content_extracted", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("content_extracted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_retry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_retry_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    # Backfill job scans for unextracted URLs below the retry cap
    op.execute(
        "CREATE INDEX ix_url_inventory_pending ON url_inventory (retry_count) WHERE content_extracted = false"
    )

    op.create_table(
        "url_citations",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "url_id", sa.BigInteger(), sa.ForeignKey("url_inventory.id", ondelete="CASCADE"), nullable=False, index=True
        ),
        sa.Column(
            "prompt_result_id",
            sa.BigInteger(),
            sa.ForeignKey("prompt_results.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("provider", sa.String(30), nullable=False),
        sa.Column("cited_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("url_id", "prompt_result_id", "provider", name="uq_url_citation"),
    )

    op.create_table(
        "url_content_facts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "url_id", sa.BigInteger(), sa.ForeignKey("url_inventory.id", ondelete="CASCADE"), nullable=False, unique=True
        ),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("raw_content", sa.Text(), nullable=True),
        sa.Column("content_snippet", sa.String(2000), nullable=True),
        sa.Column("content_structure_category", sa.String(40), nullable=True),
        sa.Column("classification_confidence", sa.Float(), nullable=True),
        sa.Column("category_scores", JSONB(), nullable=True),
        sa.Column("classifier_version", sa.String(40), nullable=True),
        sa.Column("extracted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # =========================================================
    # 4. Citation share snapshots
    # =========================================================
    op.create_table(
        "citation_share_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "daily_report_id",
            UUID(as_uuid=True),
            sa.ForeignKey("daily_reports.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("domain_type", sa.String(20), nullable=False),
        sa.Column("entity_name", sa.String(255), nullable=True),
        sa.Column("citation_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("share_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("total_citations", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("citation_share_stats")
    op.drop_table("url_content_facts")
    op.drop_table("url_citations")
    op.execute("DROP INDEX IF EXISTS ix_url_inventory_pending")
    op.drop_table("url_inventory")
    op.drop_table("prompt_results")
    op.drop_table("daily_reports")
    op.drop_table("brand_prompts")
    op.drop_table("brand_competitors")
    op.drop_table("brands")
    op.drop_table("users")
