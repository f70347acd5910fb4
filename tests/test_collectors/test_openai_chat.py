"""Tests for the JSON-mode OpenAI helper."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.collectors.openai_chat import OpenAiChatError, chat_json, parse_json_object


class TestParseJsonObject:
    def test_plain(self):
        assert parse_json_object('{"a": 1}') == {"a": 1}

    def test_code_fence(self):
        assert parse_json_object('```json\n{"entities": []}\n```') == {"entities": []}

    def test_surrounding_prose(self):
        assert parse_json_object('Here you go: {"a": {"b": 2}} hope it helps') == {"a": {"b": 2}}

    def test_array_rejected(self):
        with pytest.raises(OpenAiChatError):
            parse_json_object("[1, 2]")

    def test_garbage_rejected(self):
        with pytest.raises(OpenAiChatError):
            parse_json_object("no json here")


class TestChatJson:
    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(OpenAiChatError):
            await chat_json("sys", "user", api_key="")

    @pytest.mark.asyncio
    async def test_json_mode_request(self):
        mock_resp = MagicMock()
        mock_resp.json.return_value = {"choices": [{"message": {"content": '{"results": []}'}}]}
        mock_resp.raise_for_status = MagicMock()

        with patch("app.collectors.openai_chat.httpx.AsyncClient") as MockClient:
            mock_client = AsyncMock()
            mock_client.post.return_value = mock_resp
            mock_client.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client.__aexit__ = AsyncMock(return_value=False)
            MockClient.return_value = mock_client

            data = await chat_json("sys", "user", api_key="sk-test", max_tokens=50)

        assert data == {"results": []}
        payload = mock_client.post.call_args.kwargs["json"]
        assert payload["response_format"] == {"type": "json_object"}
        assert payload["model"] == "gpt-4o-mini"
        assert payload["max_tokens"] == 50

    @pytest.mark.asyncio
    async def test_empty_reply(self):
        mock_resp = MagicMock()
        mock_resp.json.return_value = {"choices": [{"message": {"content": ""}}]}
        mock_resp.raise_for_status = MagicMock()

        with patch("app.collectors.openai_chat.httpx.AsyncClient") as MockClient:
            mock_client = AsyncMock()
            mock_client.post.return_value = mock_resp
            mock_client.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client.__aexit__ = AsyncMock(return_value=False)
            MockClient.return_value = mock_client

            with pytest.raises(OpenAiChatError):
                await chat_json("sys", "user", api_key="sk-test")
