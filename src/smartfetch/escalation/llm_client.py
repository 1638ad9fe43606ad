"""
LLM client abstraction for the secondary scorer.

Provides a unified async interface for multiple providers:
- OpenAI API (gpt-3.5-turbo, gpt-4o, etc.)
- DeepSeek API (OpenAI-compatible)
- OpenRouter (multiple models via unified API)
- Ollama (self-hosted models)

Provider errors are mapped onto the escalation error taxonomy:
timeouts → EscalationTimeoutError, everything else on the wire →
EscalationTransportError.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx
import ollama
import structlog
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI, OpenAIError

from ..config import settings
from ..exceptions import EscalationError, EscalationTimeoutError, EscalationTransportError


logger = structlog.get_logger(__name__)


DEFAULT_BASE_URLS: Dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "deepseek": "https://api.deepseek.com",
    "openrouter": "https://openrouter.ai/api/v1",
    "ollama": "http://localhost:11434",
}


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class LLMResponse:
    """
    Unified LLM response structure.

    Contains the raw message text and metadata about the request.
    """
    content: str

    # Metadata
    model: str
    provider: str
    tokens_input: Optional[int] = None
    tokens_output: Optional[int] = None
    tokens_total: Optional[int] = None
    latency_ms: int = 0
    finish_reason: str = "unknown"

    # Raw response for debugging
    raw_response: Optional[Any] = None


# ============================================================================
# ABSTRACT BASE CLASS
# ============================================================================

class LLMClient(ABC):
    """
    Abstract base class for LLM clients.

    Concrete implementations provide complete(), which sends chat messages
    and returns the assistant message text.
    """

    provider_name = "unknown"

    def __init__(
        self,
        model: str,
        temperature: float = 0.1,
        max_tokens: int = 400,
        timeout_seconds: float = 15.0,
        max_retries: int = 1,
        retry_delay: float = 1.0,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

        self.logger = logger.bind(
            llm_client=self.__class__.__name__,
            model=model
        )

    @abstractmethod
    async def complete(self, messages: List[Dict[str, str]]) -> LLMResponse:
        """
        Send chat messages and return the assistant reply.

        Args:
            messages: Chat messages (system + user)

        Returns:
            LLMResponse with message text and metadata

        Raises:
            EscalationTimeoutError: Provider did not answer in time
            EscalationTransportError: Connection or API error
        """
        pass

    async def _retry_with_backoff(self, func, *args, **kwargs):
        """
        Await func with exponential backoff between attempts.

        Only escalation errors are retried; the last one is re-raised once
        all attempts are used.
        """
        for attempt in range(self.max_retries):
            try:
                return await func(*args, **kwargs)
            except EscalationError as e:
                if attempt == self.max_retries - 1:
                    self.logger.error(
                        "llm_call_failed_after_retries",
                        error=str(e),
                        attempts=self.max_retries
                    )
                    raise

                wait_time = self.retry_delay * (2 ** attempt)
                self.logger.warning(
                    "llm_call_retry",
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    error=str(e),
                    wait_seconds=wait_time
                )
                await asyncio.sleep(wait_time)


# ============================================================================
# OPENAI-COMPATIBLE CLIENT
# ============================================================================

class OpenAICompatibleClient(LLMClient):
    """
    OpenAI-compatible client for multiple providers.

    Works with:
    - OpenAI API (api.openai.com)
    - DeepSeek API (api.deepseek.com)
    - OpenRouter (openrouter.ai/api/v1)
    - Any other OpenAI-compatible endpoint
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: str = DEFAULT_BASE_URLS["openai"],
        provider_name: str = "openai",
        **kwargs
    ):
        super().__init__(model=model, **kwargs)
        self.base_url = base_url
        self.provider_name = provider_name

        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=self.timeout_seconds,
            max_retries=0,
        )

    async def _call(self, messages: List[Dict[str, str]]):
        try:
            return await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except APITimeoutError as e:
            raise EscalationTimeoutError(f"{self.provider_name} request timed out") from e
        except APIConnectionError as e:
            raise EscalationTransportError(f"{self.provider_name} connection error: {e}") from e
        except APIStatusError as e:
            raise EscalationTransportError(
                f"{self.provider_name} API error: {e.status_code} {e.message}"
            ) from e
        except OpenAIError as e:
            raise EscalationTransportError(f"{self.provider_name} error: {e}") from e

    async def complete(self, messages: List[Dict[str, str]]) -> LLMResponse:
        start_time = time.time()

        response = await self._retry_with_backoff(self._call, messages)

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.choices:
            raise EscalationTransportError(f"{self.provider_name} returned no choices")
        choice = response.choices[0]

        usage = response.usage
        return LLMResponse(
            content=choice.message.content or "",
            model=self.model,
            provider=self.provider_name,
            tokens_input=usage.prompt_tokens if usage else None,
            tokens_output=usage.completion_tokens if usage else None,
            tokens_total=usage.total_tokens if usage else None,
            latency_ms=latency_ms,
            finish_reason=choice.finish_reason or "unknown",
            raw_response=response,
        )


# ============================================================================
# OLLAMA CLIENT
# ============================================================================

class OllamaClient(LLMClient):
    """
    Ollama client for self-hosted models (qwen2.5, llama3.1, mistral, ...).

    Requires Ollama running locally or accessible via base_url.
    """

    provider_name = "ollama"

    def __init__(
        self,
        model: str,
        base_url: str = DEFAULT_BASE_URLS["ollama"],
        **kwargs
    ):
        super().__init__(model=model, **kwargs)
        self.base_url = base_url
        self.client = ollama.AsyncClient(host=base_url, timeout=self.timeout_seconds)

    async def _call(self, messages: List[Dict[str, str]]):
        try:
            return await self.client.chat(
                model=self.model,
                messages=messages,
                format="json",
                options={
                    "temperature": self.temperature,
                    "num_predict": self.max_tokens,
                },
            )
        except httpx.TimeoutException as e:
            raise EscalationTimeoutError("ollama request timed out") from e
        except (ollama.ResponseError, httpx.HTTPError, ConnectionError) as e:
            raise EscalationTransportError(f"ollama error: {e}") from e

    async def complete(self, messages: List[Dict[str, str]]) -> LLMResponse:
        start_time = time.time()

        response = await self._retry_with_backoff(self._call, messages)

        latency_ms = int((time.time() - start_time) * 1000)

        message = response.get("message") or {}
        tokens_input = response.get("prompt_eval_count")
        tokens_output = response.get("eval_count")
        tokens_total = (tokens_input or 0) + (tokens_output or 0) if tokens_input and tokens_output else None

        return LLMResponse(
            content=message.get("content") or "",
            model=self.model,
            provider=self.provider_name,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            tokens_total=tokens_total,
            latency_ms=latency_ms,
            finish_reason=response.get("done_reason") or "stop",
            raw_response=response,
        )


# ============================================================================
# CLIENT FACTORY
# ============================================================================

def create_llm_client(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **override_kwargs
) -> LLMClient:
    """
    Create the LLM client for a provider.

    Explicit arguments win over settings.

    Args:
        provider: "openai", "deepseek", "openrouter" or "ollama"
        model: Provider-specific model name
        **override_kwargs: api_key, base_url, or any client parameter

    Returns:
        Configured LLMClient

    Raises:
        ValueError: Unknown provider or missing API key
    """
    provider = provider or settings.llm_provider
    model = model or settings.llm_model

    client_params = {
        "temperature": override_kwargs.get("temperature", settings.llm_temperature),
        "max_tokens": override_kwargs.get("max_tokens", settings.llm_max_tokens),
        "timeout_seconds": override_kwargs.get("timeout_seconds", settings.escalation_timeout_seconds),
        "max_retries": override_kwargs.get("max_retries", settings.llm_max_retries),
        "retry_delay": override_kwargs.get("retry_delay", settings.llm_retry_delay_seconds),
    }

    if provider not in DEFAULT_BASE_URLS:
        raise ValueError(
            f"Unknown LLM provider: {provider}. "
            f"Supported: {', '.join(sorted(DEFAULT_BASE_URLS))}"
        )

    base_url = override_kwargs.get("base_url") or settings.llm_api_base_url or DEFAULT_BASE_URLS[provider]

    logger.info(
        "creating_llm_client",
        provider=provider,
        model=model,
        base_url=base_url,
    )

    if provider == "ollama":
        return OllamaClient(model=model, base_url=base_url, **client_params)

    api_key = override_kwargs.get("api_key", settings.llm_api_key)
    if not api_key:
        raise ValueError(f"{provider} API key required (set LLM_API_KEY env var)")

    return OpenAICompatibleClient(
        model=model,
        api_key=api_key,
        base_url=base_url,
        provider_name=provider,
        **client_params
    )


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def parse_model_string(model_string: str) -> Tuple[Optional[str], str]:
    """
    Parse model string in format "provider/model-name".

    Only a known provider counts as a prefix, so OpenRouter model names
    such as "meta-llama/llama-3-8b" stay intact.

    Examples:
        "ollama/qwen2.5:7b" → ("ollama", "qwen2.5:7b")
        "openai/gpt-4o" → ("openai", "gpt-4o")
        "gpt-3.5-turbo" → (None, "gpt-3.5-turbo")

    Returns:
        (provider, model_name) tuple. provider is None if no prefix.
    """
    if "/" in model_string:
        prefix, rest = model_string.split("/", 1)
        if prefix in DEFAULT_BASE_URLS:
            return prefix, rest
    return None, model_string


def create_llm_client_from_model_string(model_string: str, **override_kwargs) -> LLMClient:
    """Create a client from "provider/model" (provider falls back to settings)."""
    provider_prefix, model_name = parse_model_string(model_string)
    provider = provider_prefix if provider_prefix else settings.llm_provider
    return create_llm_client(provider=provider, model=model_name, **override_kwargs)
