"""Base provider interface for report answer sources."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Provider keys double as DailyReport column prefixes (<provider>_status, <provider>_ok, ...)
PERPLEXITY = "perplexity"
GOOGLE_AI_OVERVIEW = "google_ai_overview"
CHATGPT = "chatgpt"

PROVIDER_ORDER = (PERPLEXITY, GOOGLE_AI_OVERVIEW, CHATGPT)


@dataclass
class ProviderResponse:
    """Answer returned by a provider for one prompt."""

    content: str = ""
    citations: list[dict] = field(default_factory=list)  # [{"url": ..., "title": ..., "snippet": ...}]
    response_time_ms: int = 0
    model: str = ""
    no_result: bool = False  # provider answered but had nothing usable (e.g. empty search)


class BaseProvider(ABC):
    """Abstract base for all answer providers.

    ``call`` raises on transport/auth/quota failures; an empty but valid answer
    is reported with ``no_result=True``.
    """

    provider: str = ""

    @abstractmethod
    async def call(self, prompt: str) -> ProviderResponse:
        """Ask the provider one prompt."""
        ...
