"""Share of voice: which companies/products the answers talk about.

All ``ok`` answer texts of a report go to gpt-4o-mini in one request; each
returned entity carries the number of distinct responses that mention it.
Entities are then tagged brand / competitor / other by substring match and
merged by name.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.collectors.openai_chat import chat_json
from app.core.config import settings
from app.models.brand import Brand, BrandCompetitor
from app.models.daily_report import DailyReport
from app.models.prompt_result import PromptResult

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 12000

EntityExtractor = Callable[[str], Awaitable[list[dict]]]

_SYSTEM_PROMPT = (
    "You are an entity extraction expert. Extract all company names, software tools, platforms, "
    "and product names mentioned in the provided AI responses. Count how many separate responses "
    "mention each entity (not total occurrences within a single response). Always respond with valid JSON."
)

_USER_PROMPT = """Extract all company/software/tool/platform entities from these AI responses. For each entity, count in how many separate responses it appears (each "--- Response N ---" block counts as one response).

Return JSON format:
{{"entities": [{{"name": "EntityName", "mentions": 5}}]}}

Rules:
- Normalize names and merge obvious variants
- Only include companies, software tools, platforms, and products
- Do NOT include generic terms like "AI" or "cloud"
- Count = number of distinct responses mentioning the entity

Responses:
{responses}"""


def build_responses_block(texts: list[str]) -> str:
    combined = "\n\n".join(f"--- Response {i + 1} ---\n{text}" for i, text in enumerate(texts))
    if len(combined) > MAX_PROMPT_CHARS:
        combined = combined[:MAX_PROMPT_CHARS] + "\n[... truncated]"
    return combined


async def extract_entities_with_llm(responses_block: str) -> list[dict]:
    data = await chat_json(
        _SYSTEM_PROMPT,
        _USER_PROMPT.format(responses=responses_block),
        api_key=settings.openai_api_key,
        temperature=0.1,
        max_tokens=2000,
    )
    return data.get("entities") or []


def _matches(name: str, target: str) -> bool:
    return bool(target) and (name == target or target in name or name in target)


def categorize_entities(entities: list[dict], brand_name: str, competitor_names: list[str]) -> list[dict]:
    """Tag entities and rename brand/competitor matches to their canonical names."""
    brand_lower = brand_name.lower()
    categorized = []
    for entity in entities:
        name = str(entity.get("name") or "").strip()
        if not name:
            continue
        try:
            mentions = int(entity.get("mentions") or 0)
        except (TypeError, ValueError):
            mentions = 0
        lower = name.lower()

        if _matches(lower, brand_lower):
            categorized.append({"name": brand_name, "mentions": mentions, "type": "brand"})
            continue
        competitor = next((c for c in competitor_names if _matches(lower, c.lower())), None)
        if competitor:
            categorized.append({"name": competitor, "mentions": mentions, "type": "competitor"})
        else:
            categorized.append({"name": name, "mentions": mentions, "type": "other"})
    return categorized


def merge_entities(entities: list[dict]) -> list[dict]:
    merged: dict[str, dict] = {}
    for entity in entities:
        key = entity["name"].lower()
        if key in merged:
            merged[key]["mentions"] += entity["mentions"]
        else:
            merged[key] = dict(entity)
    return sorted(merged.values(), key=lambda e: e["mentions"], reverse=True)


async def calculate_share_of_voice(
    db: AsyncSession,
    report_id: UUID,
    extractor: EntityExtractor | None = None,
) -> dict | None:
    """Compute and store ``share_of_voice_data`` for a report. None when there is no text."""
    extractor = extractor or extract_entities_with_llm
    report = await db.get(DailyReport, report_id)
    brand = await db.get(Brand, report.brand_id)

    comp_rows = await db.execute(
        select(BrandCompetitor.competitor_name).where(
            BrandCompetitor.brand_id == report.brand_id,
            BrandCompetitor.is_active == True,  # noqa: E712
        )
    )
    competitor_names = list(comp_rows.scalars().all())

    text_rows = await db.execute(
        select(PromptResult.response_text)
        .where(
            PromptResult.daily_report_id == report_id,
            PromptResult.provider_status == "ok",
        )
        .order_by(PromptResult.id)
    )
    texts = [t for t in text_rows.scalars().all() if t and t.strip()]
    if not texts:
        logger.info("Report %s: no response texts, skipping share of voice", report_id)
        return None

    raw_entities = await extractor(build_responses_block(texts))
    entities = merge_entities(categorize_entities(raw_entities, brand.name, competitor_names))
    data = {
        "entities": entities,
        "total_mentions": sum(e["mentions"] for e in entities),
        "calculated_at": datetime.now(timezone.utc).isoformat(),
    }

    report.share_of_voice_data = data
    await db.commit()
    logger.info("Report %s share of voice: %d entities", report_id, len(entities))
    return data
