"""Google Custom Search provider (reported as "Google AI Overview").

Real AI Overviews are only visible on live result pages, so this pass runs
for the current day only; the orchestrator expires it for past dates.
"""

import logging
import time

import httpx

from app.analysis.urls import extract_domain
from app.collectors.base import GOOGLE_AI_OVERVIEW, BaseProvider, ProviderResponse

logger = logging.getLogger(__name__)

API_URL = "https://www.googleapis.com/customsearch/v1"
RESULTS_PER_QUERY = 10
TIMEOUT = 30


class GoogleSearchProvider(BaseProvider):
    provider = GOOGLE_AI_OVERVIEW

    def __init__(self, api_key: str, search_engine_id: str):
        self.api_key = api_key
        self.search_engine_id = search_engine_id

    async def call(self, prompt: str) -> ProviderResponse:
        params = {
            "key": self.api_key,
            "cx": self.search_engine_id,
            "q": prompt,
            "num": RESULTS_PER_QUERY,
        }

        start = time.perf_counter()
        async with httpx.AsyncClient(timeout=TIMEOUT) as client:
            resp = await client.get(API_URL, params=params)
            resp.raise_for_status()
            data = resp.json()
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        items = data.get("items") or []
        if not items:
            logger.info("Google CSE returned no items for prompt %r", prompt[:80])
            return ProviderResponse(response_time_ms=elapsed_ms, model="custom-search", no_result=True)

        snippets = [item.get("snippet", "").strip() for item in items if item.get("snippet")]
        citations = [
            {
                "url": item["link"],
                "title": item.get("title") or "",
                "snippet": item.get("snippet") or "",
                "domain": extract_domain(item["link"]),
            }
            for item in items
            if item.get("link")
        ]

        return ProviderResponse(
            content="\n\n".join(snippets),
            citations=citations,
            response_time_ms=elapsed_ms,
            model="custom-search",
        )
