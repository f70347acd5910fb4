"""Tavily content extraction client."""

import asyncio
import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

API_URL = "https://api.tavily.com/extract"
MAX_URLS_PER_REQUEST = 20
TIMEOUT = 60


@dataclass
class ExtractedPage:
    url: str
    raw_content: str = ""
    title: str = ""
    failed: bool = False
    error: str = ""


class TavilyClient:
    def __init__(self, api_key: str, batch_size: int = MAX_URLS_PER_REQUEST, batch_delay: float = 1.0):
        self.api_key = api_key
        self.batch_size = min(batch_size, MAX_URLS_PER_REQUEST)
        self.batch_delay = batch_delay

    async def extract(self, urls: list[str]) -> dict:
        """Single extract call: ``{"results": [...], "failed_results": [...]}``."""
        if not self.api_key:
            raise RuntimeError("TAVILY_API_KEY not configured")
        if not urls:
            return {"results": [], "failed_results": []}
        if len(urls) > MAX_URLS_PER_REQUEST:
            raise ValueError(f"Tavily accepts at most {MAX_URLS_PER_REQUEST} URLs per request")

        async with httpx.AsyncClient(timeout=TIMEOUT) as client:
            resp = await client.post(
                API_URL,
                json={"api_key": self.api_key, "urls": urls},
                headers={"Content-Type": "application/json"},
            )
            resp.raise_for_status()
            data = resp.json()

        logger.info(
            "Tavily extract: %d ok, %d failed",
            len(data.get("results") or []),
            len(data.get("failed_results") or []),
        )
        return data

    async def extract_batched(self, urls: list[str]) -> list[ExtractedPage]:
        """Extract all URLs in batches; a failed batch marks each of its URLs failed."""
        pages: list[ExtractedPage] = []
        for start in range(0, len(urls), self.batch_size):
            batch = urls[start : start + self.batch_size]
            try:
                data = await self.extract(batch)
            except Exception as e:
                logger.error("Tavily batch of %d URLs failed: %s", len(batch), e)
                pages.extend(ExtractedPage(url=url, failed=True, error=str(e)) for url in batch)
            else:
                returned: set[str] = set()
                for r in data.get("results") or []:
                    content = r.get("raw_content") or r.get("content") or ""
                    returned.add(r.get("url", ""))
                    pages.append(
                        ExtractedPage(
                            url=r.get("url", ""),
                            raw_content=content,
                            title=r.get("title") or "",
                            failed=not content,
                            error="" if content else "empty content",
                        )
                    )
                for r in data.get("failed_results") or []:
                    returned.add(r.get("url", ""))
                    pages.append(ExtractedPage(url=r.get("url", ""), failed=True, error=r.get("error") or "failed"))
                # URLs Tavily silently dropped count as failures
                for url in batch:
                    if url not in returned:
                        pages.append(ExtractedPage(url=url, failed=True, error="missing from response"))

            if start + self.batch_size < len(urls):
                await asyncio.sleep(self.batch_delay)
        return pages
