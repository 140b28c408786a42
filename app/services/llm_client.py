import asyncio
import logging
import time
from functools import lru_cache
from typing import Protocol

import openai
from prometheus_client import Counter, Histogram

from app.core.config import settings
from app.core.errors import (
    UpstreamAuthError, UpstreamError, UpstreamRateLimitError, UpstreamTimeoutError
)
from app.core.logging_config import log_llm_call

logger = logging.getLogger(__name__)

llm_calls_total = Counter(
    'tracker_llm_calls_total',
    'LLM completion calls',
    ['operation', 'result']
)
llm_call_duration_seconds = Histogram(
    'tracker_llm_call_duration_seconds',
    'LLM completion latency',
    ['operation'],
    buckets=(1, 2.5, 5, 10, 20, 30, 45, 60)
)


class LLMClient(Protocol):
    """
    Proveedor de texto: prompt de entrada, texto de salida.
    """

    async def complete(self, prompt: str, *, model: str, max_output_tokens: int,
                       web_search: bool = False, timeout: float = 30.0,
                       operation: str = "completion") -> str:
        ...


class OpenAILLMClient:
    """
    Cliente de la Responses API de OpenAI.
    Convierte los errores del SDK en los errores upstream de la aplicación.
    """

    def __init__(self, api_key: str, client: openai.AsyncOpenAI = None):
        if not api_key and client is None:
            raise UpstreamAuthError("OpenAI API key is not configured")
        self._client = client or openai.AsyncOpenAI(api_key=api_key, max_retries=1)

    async def complete(self, prompt: str, *, model: str, max_output_tokens: int,
                       web_search: bool = False, timeout: float = 30.0,
                       operation: str = "completion") -> str:
        kwargs = {
            "model": model,
            "input": prompt,
            "max_output_tokens": max_output_tokens,
            "timeout": timeout,
        }
        if web_search:
            kwargs["tools"] = [{"type": "web_search"}]

        start_time = time.time()
        try:
            response = await asyncio.wait_for(self._client.responses.create(**kwargs), timeout=timeout)
        except (asyncio.TimeoutError, openai.APITimeoutError):
            self._record(operation, model, start_time, "timeout")
            raise UpstreamTimeoutError(
                "Request timed out. Please try again.",
                details=f"{operation} took longer than {timeout:.0f}s",
            )
        except openai.RateLimitError as e:
            self._record(operation, model, start_time, "rate_limited")
            raise UpstreamRateLimitError("Rate limit exceeded", details=str(e))
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            self._record(operation, model, start_time, "auth_error")
            raise UpstreamAuthError("OpenAI API authentication failed", details=str(e))
        except openai.OpenAIError as e:
            self._record(operation, model, start_time, "error")
            raise UpstreamError(f"LLM provider error during {operation}", details=str(e))

        text = getattr(response, "output_text", None)
        if not text or not isinstance(text, str):
            self._record(operation, model, start_time, "empty")
            raise UpstreamError("The API returned an invalid or empty response")

        self._record(operation, model, start_time, "ok")
        return text

    @staticmethod
    def _record(operation: str, model: str, start_time: float, result: str) -> None:
        elapsed = time.time() - start_time
        llm_calls_total.labels(operation=operation, result=result).inc()
        llm_call_duration_seconds.labels(operation=operation).observe(elapsed)
        log_llm_call(logger, operation, model, success=result == "ok",
                     response_time_ms=int(elapsed * 1000), result=result)


@lru_cache()
def get_llm_client() -> OpenAILLMClient:
    """
    Dependency: un solo cliente por proceso.
    """
    return OpenAILLMClient(api_key=settings.OPENAI_API_KEY)
