"""Tests for the local-inference adapter."""

import logging

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from storyteller.config import OllamaSettings
from storyteller.llm import LOST_IN_THOUGHT
from storyteller.llm.ollama import OllamaProvider
from storyteller.models import ChatMessage


def _mock_response(body=None, status: int = 200, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


TAGS = '{"models": [{"name": "mistral:7b-instruct"}]}'


@pytest.fixture
async def provider():
    p = OllamaProvider(OllamaSettings(endpoint="http://ollama.test:11434/"))
    yield p
    await p.shutdown()


@pytest.fixture
async def ready(provider: OllamaProvider) -> OllamaProvider:
    with patch("httpx.AsyncClient.get", AsyncMock(return_value=_mock_response(text=TAGS))):
        assert await provider.initialize()
    return provider


# ---------------------------------------------------------------------------
# initialize
# ---------------------------------------------------------------------------

async def test_probe_hits_model_list(provider: OllamaProvider) -> None:
    mock_get = AsyncMock(return_value=_mock_response(text=TAGS))
    with patch("httpx.AsyncClient.get", mock_get):
        assert await provider.initialize() is True
    assert mock_get.call_args[0][0] == "http://ollama.test:11434/api/tags"
    assert provider.is_available()


async def test_probe_failure_leaves_adapter_unavailable(provider: OllamaProvider) -> None:
    with patch("httpx.AsyncClient.get", AsyncMock(side_effect=httpx.ConnectError("refused"))):
        assert await provider.initialize() is False
    assert not provider.is_available()


async def test_missing_model_only_warns(provider: OllamaProvider, caplog) -> None:
    with caplog.at_level(logging.WARNING):
        with patch("httpx.AsyncClient.get", AsyncMock(return_value=_mock_response(text='{"models": []}'))):
            assert await provider.initialize() is True
    assert "may not be available" in caplog.text


def test_name_includes_model() -> None:
    assert OllamaProvider(OllamaSettings(model="llama3")).name == "Ollama (llama3)"


# ---------------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------------

async def test_system_prompt_is_first_message(ready: OllamaProvider) -> None:
    mock_post = AsyncMock(return_value=_mock_response({"message": {"content": "Hail."}}))
    history = [ChatMessage.user("Hello"), ChatMessage.assistant("Hi"), ChatMessage.user("Who are you?")]
    with patch("httpx.AsyncClient.post", mock_post):
        await ready.chat("You are Eldric.", history)
    sent = mock_post.call_args.kwargs["json"]
    assert mock_post.call_args[0][0] == "http://ollama.test:11434/api/chat"
    assert sent["messages"][0] == {"role": "system", "content": "You are Eldric."}
    assert [m["role"] for m in sent["messages"][1:]] == ["user", "assistant", "user"]
    assert sent["stream"] is False
    assert sent["model"] == "mistral:7b-instruct"
    assert sent["options"] == {
        "temperature": 0.7,
        "top_p": 0.9,
        "repeat_penalty": 1.1,
        "num_predict": 60,
    }


async def test_returns_message_content(ready: OllamaProvider) -> None:
    mock_post = AsyncMock(return_value=_mock_response({"message": {"content": "Hail, traveler."}}))
    with patch("httpx.AsyncClient.post", mock_post):
        assert await ready.chat("sys", [ChatMessage.user("hi")]) == "Hail, traveler."


async def test_error_body_is_lost_in_thought(ready: OllamaProvider, caplog) -> None:
    mock_post = AsyncMock(return_value=_mock_response({"error": "model not found"}))
    with caplog.at_level(logging.ERROR):
        with patch("httpx.AsyncClient.post", mock_post):
            assert await ready.chat("sys", [ChatMessage.user("hi")]) == LOST_IN_THOUGHT
    assert "model not found" in caplog.text


async def test_server_error_is_lost_in_thought(ready: OllamaProvider) -> None:
    mock_post = AsyncMock(return_value=_mock_response({}, status=500))
    with patch("httpx.AsyncClient.post", mock_post):
        assert await ready.chat("sys", [ChatMessage.user("hi")]) == LOST_IN_THOUGHT


async def test_timeout_is_lost_in_thought(ready: OllamaProvider) -> None:
    mock_post = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
    with patch("httpx.AsyncClient.post", mock_post):
        assert await ready.chat("sys", [ChatMessage.user("hi")]) == LOST_IN_THOUGHT


async def test_unavailable_adapter_makes_no_request(provider: OllamaProvider) -> None:
    mock_post = AsyncMock()
    with patch("httpx.AsyncClient.post", mock_post):
        reply = await provider.chat("sys", [ChatMessage.user("hi")])
    assert reply == "[Ollama is not available. Please check the server logs.]"
    mock_post.assert_not_called()


async def test_shutdown_marks_unavailable(ready: OllamaProvider) -> None:
    await ready.shutdown()
    assert not ready.is_available()
