import asyncio
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from app.core.errors import UpstreamError, UpstreamRateLimitError, UpstreamTimeoutError
from app.services.llm_client import OpenAILLMClient
from app.services.steinhq_service import SteinHQService, SteinHQServiceError


class StubResponses:
    def __init__(self, result=None, error=None, delay=0):
        self.result = result
        self.error = error
        self.delay = delay
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


def _client(responses):
    return OpenAILLMClient(api_key="", client=SimpleNamespace(responses=responses))


def _complete(client, **kwargs):
    options = {"model": "gpt-test", "max_output_tokens": 100}
    options.update(kwargs)
    return asyncio.run(client.complete("prompt", **options))


def test_complete_returns_output_text_and_enables_search():
    responses = StubResponses(result=SimpleNamespace(output_text="hello"))

    assert _complete(_client(responses), web_search=True) == "hello"
    assert responses.kwargs["tools"] == [{"type": "web_search"}]
    assert responses.kwargs["input"] == "prompt"


def test_complete_empty_output():
    responses = StubResponses(result=SimpleNamespace(output_text=""))
    with pytest.raises(UpstreamError):
        _complete(_client(responses))


def test_complete_timeout():
    responses = StubResponses(result=SimpleNamespace(output_text="late"), delay=1)
    with pytest.raises(UpstreamTimeoutError):
        _complete(_client(responses), timeout=0.05)


def test_complete_rate_limit():
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    error = openai.RateLimitError("slow down", response=httpx.Response(429, request=request), body=None)
    with pytest.raises(UpstreamRateLimitError):
        _complete(_client(StubResponses(error=error)))


def test_missing_api_key_is_rejected():
    with pytest.raises(UpstreamError):
        OpenAILLMClient(api_key="")


def test_steinhq_posts_row():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"updatedRange": "Sheet1!A2:F2"})

    service = SteinHQService(base_url="https://stein.example.com/", storage_id="abc",
                             transport=httpx.MockTransport(handler))
    asyncio.run(service.post_article("GATE 2026", "gate-2026", subreddit="r/delhi"))

    assert captured["url"] == "https://stein.example.com/v1/storages/abc/Sheet1"
    [row] = captured["body"]
    assert row["Title"] == "GATE 2026"
    assert row["Link"].endswith("/articles/gate-2026")
    assert row["Subreddit"] == "r/delhi"


def test_steinhq_error_status():
    service = SteinHQService(storage_id="abc", transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    with pytest.raises(SteinHQServiceError):
        asyncio.run(service.post_article("T", "t"))


def test_steinhq_safe_post_never_raises():
    disabled = SteinHQService(storage_id="")
    assert asyncio.run(disabled.post_article_safely("T", "t")) is False
