import json

import pytest
import respx
from httpx import Response

from ai_chart.config import AppConfig
from ai_chart.exceptions import AIRateLimitError, AIServiceError, ConfigurationError
from ai_chart.llm import ChatRequest, OpenAIChatService, clean_json_response, get_chat_service

BASE_URL = "https://api.test/v1"

COMPLETION = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 1700000000,
    "model": "gpt-4o-mini",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "  {\"hasData\": false}\n"},
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
}


@pytest.fixture
def service():
    chat_service = OpenAIChatService(api_key="test-key", model="gpt-4o-mini", base_url=BASE_URL)
    chat_service.client = chat_service.client.with_options(max_retries=0)
    return chat_service


@pytest.fixture
def no_key_env(monkeypatch):
    monkeypatch.delenv("AI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.mark.parametrize("content, expected", [
    ('```json\n{"a": 1}\n```', '{"a": 1}'),
    ('```\n[1, 2]\n```', '[1, 2]'),
    ('  {"a": 1}  ', '{"a": 1}'),
])
def test_clean_json_response(content, expected):
    assert clean_json_response(content) == expected


def test_missing_key_raises():
    with pytest.raises(ConfigurationError):
        OpenAIChatService(api_key="", model="gpt-4o-mini")


def test_get_chat_service_without_key(no_key_env):
    assert get_chat_service(AppConfig()) is None


def test_get_chat_service_with_key(no_key_env, monkeypatch):
    monkeypatch.setenv("AI_API_KEY", "test-key")
    monkeypatch.setenv("AI_MODEL", "deepseek-chat")

    chat_service = get_chat_service(AppConfig())

    assert isinstance(chat_service, OpenAIChatService)
    assert chat_service.model == "deepseek-chat"


@pytest.mark.asyncio
async def test_chat_sends_system_prompt_first(service):
    with respx.mock(assert_all_called=True) as mock:
        route = mock.post(f"{BASE_URL}/chat/completions").mock(return_value=Response(200, json=COMPLETION))

        response = await service.chat(ChatRequest(
            messages=[{"role": "user", "content": "sales: 1, 2, 3"}],
            system_prompt="extract data",
            temperature=0.1,
            max_tokens=100,
        ))

    body = json.loads(route.calls.last.request.content)
    assert body["messages"][0] == {"role": "system", "content": "extract data"}
    assert body["messages"][1]["content"] == "sales: 1, 2, 3"
    assert body["max_tokens"] == 100
    assert response.content == '{"hasData": false}'
    assert response.finish_reason == "stop"
    assert response.usage["total_tokens"] == 17


@pytest.mark.asyncio
async def test_rate_limit_is_wrapped(service):
    error_body = {"error": {"message": "Rate limit exceeded", "type": "rate_limit_error"}}
    with respx.mock as mock:
        mock.post(f"{BASE_URL}/chat/completions").mock(return_value=Response(429, json=error_body))

        with pytest.raises(AIRateLimitError):
            await service.chat(ChatRequest(messages=[{"role": "user", "content": "hi"}]))


@pytest.mark.asyncio
async def test_api_error_is_wrapped(service):
    error_body = {"error": {"message": "Internal server error", "type": "api_error"}}
    with respx.mock as mock:
        mock.post(f"{BASE_URL}/chat/completions").mock(return_value=Response(500, json=error_body))

        with pytest.raises(AIServiceError) as exc_info:
            await service.chat(ChatRequest(messages=[{"role": "user", "content": "hi"}]))

    assert not isinstance(exc_info.value, AIRateLimitError)


@pytest.mark.asyncio
async def test_validate_connection(service):
    with respx.mock as mock:
        mock.get(f"{BASE_URL}/models").mock(return_value=Response(200, json={"object": "list", "data": []}))
        assert await service.validate_connection() is True

    with respx.mock as mock:
        mock.get(f"{BASE_URL}/models").mock(return_value=Response(401, json={"error": {"message": "bad key"}}))
        assert await service.validate_connection() is False
