"""Minimal OpenAI Chat Completions client for JSON-mode utility calls.

Used by the content classifier and the share-of-voice entity extractor.
"""

import json
import logging
import re

import httpx

logger = logging.getLogger(__name__)

API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"


class OpenAiChatError(Exception):
    """Raised when the model reply is missing or is not a JSON object."""


def parse_json_object(raw: str) -> dict:
    """Parse a JSON object from a model reply.

    Handles markdown code fences and leading/trailing prose around the object.
    """
    cleaned = re.sub(r"```(?:json)?\s*", "", raw).strip()
    cleaned = re.sub(r"```\s*$", "", cleaned).strip()

    try:
        data = json.loads(cleaned)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    m = re.search(r"\{[\s\S]*\}", raw)
    if m:
        try:
            data = json.loads(m.group(0))
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass

    raise OpenAiChatError(f"Reply is not a JSON object: {raw[:200]!r}")


async def chat_json(
    system_prompt: str,
    user_prompt: str,
    api_key: str,
    model: str = DEFAULT_MODEL,
    temperature: float = 0.2,
    max_tokens: int = 1000,
    timeout: int = 60,
) -> dict:
    """Send one chat completion in ``json_object`` mode and return the parsed reply."""
    if not api_key:
        raise OpenAiChatError("OPENAI_API_KEY not configured")

    payload = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
        "response_format": {"type": "json_object"},
    }

    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.post(
            API_URL,
            json=payload,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )
        resp.raise_for_status()
        data = resp.json()

    content = data.get("choices", [{}])[0].get("message", {}).get("content") or ""
    if not content.strip():
        raise OpenAiChatError("Empty reply from OpenAI")
    return parse_json_object(content)
