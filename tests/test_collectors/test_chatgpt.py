"""Tests for the ChatGPT executor-backed provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.collectors.chatgpt import ChatGptProvider


def _mock_client(response_data: dict):
    mock_resp = MagicMock()
    mock_resp.json.return_value = response_data
    mock_resp.raise_for_status = MagicMock()
    mock_client = AsyncMock()
    mock_client.post.return_value = mock_resp
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


@pytest.fixture
def provider():
    return ChatGptProvider(executor_url="http://executor:8080/", token="exec-token", timeout=30)


@pytest.mark.asyncio
async def test_answer_and_citations(provider):
    data = {
        "content": "Acme is popular.",
        "citations": [{"url": "https://acme.com", "title": "Acme"}, "https://acme.com", "https://g2.com/crm"],
    }
    with patch("app.collectors.chatgpt.httpx.AsyncClient") as MockClient:
        mock_client = _mock_client(data)
        MockClient.return_value = mock_client
        result = await provider.call("best crm")

    assert result.content == "Acme is popular."
    assert result.citations == [
        {"url": "https://acme.com", "title": "Acme", "snippet": ""},
        {"url": "https://g2.com/crm", "title": "", "snippet": ""},
    ]
    assert mock_client.post.call_args.args[0] == "http://executor:8080/run"
    assert mock_client.post.call_args.kwargs["json"] == {"prompt": "best crm"}
    assert mock_client.post.call_args.kwargs["headers"]["Authorization"] == "Bearer exec-token"


@pytest.mark.asyncio
async def test_executor_error_raises(provider):
    with patch("app.collectors.chatgpt.httpx.AsyncClient") as MockClient:
        MockClient.return_value = _mock_client({"error": "login required"})
        with pytest.raises(RuntimeError, match="login required"):
            await provider.call("q")


@pytest.mark.asyncio
async def test_empty_content_is_no_result(provider):
    with patch("app.collectors.chatgpt.httpx.AsyncClient") as MockClient:
        MockClient.return_value = _mock_client({"content": "", "citations": []})
        result = await provider.call("q")
    assert result.no_result is True
