"""Tests for the Tavily extraction client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.collectors.tavily import MAX_URLS_PER_REQUEST, TavilyClient


def _mock_client(*responses):
    mock_client = AsyncMock()
    side_effect = []
    for data in responses:
        if isinstance(data, Exception):
            side_effect.append(data)
            continue
        mock_resp = MagicMock()
        mock_resp.json.return_value = data
        mock_resp.raise_for_status = MagicMock()
        side_effect.append(mock_resp)
    mock_client.post.side_effect = side_effect
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


class TestExtract:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        with pytest.raises(RuntimeError):
            await TavilyClient(api_key="").extract(["https://a.com"])

    @pytest.mark.asyncio
    async def test_rejects_oversized_batch(self):
        urls = [f"https://a.com/{i}" for i in range(MAX_URLS_PER_REQUEST + 1)]
        with pytest.raises(ValueError):
            await TavilyClient(api_key="tvly-test").extract(urls)

    @pytest.mark.asyncio
    async def test_empty_list_skips_request(self):
        with patch("app.collectors.tavily.httpx.AsyncClient") as MockClient:
            data = await TavilyClient(api_key="tvly-test").extract([])
        MockClient.assert_not_called()
        assert data == {"results": [], "failed_results": []}


class TestExtractBatched:
    @pytest.mark.asyncio
    async def test_success_failure_and_missing(self):
        data = {
            "results": [
                {"url": "https://a.com", "raw_content": "Page A", "title": "A"},
                {"url": "https://b.com", "raw_content": ""},
            ],
            "failed_results": [{"url": "https://c.com", "error": "403"}],
        }
        with patch("app.collectors.tavily.httpx.AsyncClient") as MockClient:
            MockClient.return_value = _mock_client(data)
            pages = await TavilyClient(api_key="tvly-test", batch_delay=0).extract_batched(
                ["https://a.com", "https://b.com", "https://c.com", "https://d.com"]
            )

        by_url = {p.url: p for p in pages}
        assert by_url["https://a.com"].failed is False
        assert by_url["https://a.com"].raw_content == "Page A"
        assert by_url["https://b.com"].failed is True
        assert by_url["https://c.com"].error == "403"
        assert by_url["https://d.com"].error == "missing from response"

    @pytest.mark.asyncio
    async def test_failed_batch_marks_all_urls(self):
        urls = [f"https://a.com/{i}" for i in range(3)]
        with patch("app.collectors.tavily.httpx.AsyncClient") as MockClient:
            MockClient.return_value = _mock_client(
                RuntimeError("timeout"),
                {"results": [{"url": urls[2], "raw_content": "ok"}]},
            )
            pages = await TavilyClient(api_key="tvly-test", batch_size=2, batch_delay=0).extract_batched(urls)

        assert [p.failed for p in pages] == [True, True, False]
        assert pages[0].error == "timeout"
