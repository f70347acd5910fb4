"""ChatGPT provider backed by a remote browser executor.

The executor drives the chat UI and exposes a small HTTP contract:
``POST {executor_url}/run {"prompt": ...}`` returning
``{"content": str, "citations": [url | {"url", "title"}]}``.
"""

import logging
import time

import httpx

from app.analysis.urls import unique_urls
from app.collectors.base import CHATGPT, BaseProvider, ProviderResponse

logger = logging.getLogger(__name__)


class ChatGptProvider(BaseProvider):
    provider = CHATGPT

    def __init__(self, executor_url: str, token: str = "", timeout: int = 180):
        self.executor_url = executor_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    async def call(self, prompt: str) -> ProviderResponse:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        start = time.perf_counter()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(f"{self.executor_url}/run", json={"prompt": prompt}, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        if data.get("error"):
            raise RuntimeError(f"ChatGPT executor error: {data['error']}")

        text = data.get("content") or ""
        titles = {
            c["url"]: c.get("title") or "" for c in data.get("citations") or [] if isinstance(c, dict) and c.get("url")
        }
        citations = [{"url": url, "title": titles.get(url, ""), "snippet": ""} for url in unique_urls(data.get("citations"))]

        return ProviderResponse(
            content=text,
            citations=citations,
            response_time_ms=elapsed_ms,
            model="chatgpt-web",
            no_result=not text.strip(),
        )
