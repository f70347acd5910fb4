"""Perplexity provider (search-augmented chat completions with native citations)."""

import logging
import time

import httpx

from app.collectors.base import PERPLEXITY, BaseProvider, ProviderResponse

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sonar"
API_URL = "https://api.perplexity.ai/chat/completions"
TIMEOUT = 90

SYSTEM_PROMPT = (
    "You are a helpful assistant that provides comprehensive, well-researched answers. "
    "Include relevant brands, products and sources where appropriate."
)


class PerplexityProvider(BaseProvider):
    """Primary report provider.

    Perplexity returns sources either as ``search_results`` (url/title/snippet)
    or, on older responses, as a flat ``citations`` URL array.
    """

    provider = PERPLEXITY

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL):
        self.api_key = api_key
        self.model = model

    async def call(self, prompt: str) -> ProviderResponse:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 1000,
            "temperature": 0.2,
            "top_p": 0.9,
            "return_citations": True,
            "search_recency_filter": "month",
        }

        start = time.perf_counter()
        async with httpx.AsyncClient(timeout=TIMEOUT) as client:
            resp = await client.post(
                API_URL,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
            resp.raise_for_status()
            data = resp.json()
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        choices = data.get("choices") or []
        text = ((choices[0].get("message") or {}).get("content") or "") if choices else ""

        return ProviderResponse(
            content=text,
            citations=_parse_citations(data),
            response_time_ms=elapsed_ms,
            model=data.get("model", self.model),
            no_result=not text.strip(),
        )


def _parse_citations(data: dict) -> list[dict]:
    results = data.get("search_results") or []
    if results:
        return [
            {"url": r["url"], "title": r.get("title") or "", "snippet": r.get("snippet") or ""}
            for r in results
            if isinstance(r, dict) and r.get("url")
        ]
    return [{"url": url, "title": "", "snippet": ""} for url in data.get("citations") or [] if isinstance(url, str)]
