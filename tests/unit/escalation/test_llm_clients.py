"""
Unit tests for the secondary scorer LLM clients.

Tests model string parsing, the client factory, provider error mapping,
retry logic and the LLM-backed scorer without real API calls.
"""

from unittest.mock import AsyncMock, MagicMock, Mock

import httpx
import ollama
import pytest
from openai import APIConnectionError, APITimeoutError

from smartfetch.escalation import (
    EscalationRequest,
    LLMResponse,
    LLMSecondaryScorer,
    OllamaClient,
    OpenAICompatibleClient,
    create_llm_client,
    create_llm_client_from_model_string,
    parse_model_string,
)
from smartfetch.exceptions import (
    EscalationParseError,
    EscalationTimeoutError,
    EscalationTransportError,
)


MESSAGES = [
    {"role": "system", "content": "Respond only with valid JSON."},
    {"role": "user", "content": "Analyze this content"},
]


def openai_response(content='{"confidence": 0.8}', choices=True):
    choice = Mock()
    choice.message.content = content
    choice.finish_reason = "stop"
    response = Mock()
    response.choices = [choice] if choices else []
    response.usage = Mock(prompt_tokens=120, completion_tokens=30, total_tokens=150)
    return response


def openai_client(**kwargs):
    params = {"model": "gpt-3.5-turbo", "api_key": "sk-test", "retry_delay": 0.0}
    params.update(kwargs)
    llm = OpenAICompatibleClient(**params)
    llm.client = MagicMock()
    llm.client.chat.completions.create = AsyncMock()
    return llm


def ollama_client(**kwargs):
    llm = OllamaClient(model="qwen2.5:7b", retry_delay=0.0, **kwargs)
    llm.client = MagicMock()
    llm.client.chat = AsyncMock()
    return llm


@pytest.mark.unit
class TestModelStringParsing:
    """Test model string parsing utilities."""

    def test_with_provider(self):
        assert parse_model_string("ollama/qwen2.5:7b") == ("ollama", "qwen2.5:7b")
        assert parse_model_string("openai/gpt-4o") == ("openai", "gpt-4o")

    def test_without_provider(self):
        assert parse_model_string("gpt-3.5-turbo") == (None, "gpt-3.5-turbo")

    def test_unknown_prefix_kept_in_model_name(self):
        assert parse_model_string("meta-llama/llama-3-8b") == (None, "meta-llama/llama-3-8b")

    def test_multiple_slashes(self):
        provider, model = parse_model_string("openrouter/meta-llama/llama-3-8b")
        assert provider == "openrouter"
        assert model == "meta-llama/llama-3-8b"


@pytest.mark.unit
class TestClientFactory:
    """Test create_llm_client and create_llm_client_from_model_string."""

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            create_llm_client(provider="anthropic-direct", model="x", api_key="k")

    def test_missing_api_key(self):
        with pytest.raises(ValueError, match="API key required"):
            create_llm_client(provider="openai", model="gpt-3.5-turbo", api_key="")

    def test_openai(self):
        llm = create_llm_client(provider="openai", model="gpt-3.5-turbo", api_key="sk-test")

        assert isinstance(llm, OpenAICompatibleClient)
        assert llm.provider_name == "openai"
        assert llm.base_url == "https://api.openai.com/v1"

    def test_deepseek_default_base_url(self):
        llm = create_llm_client(provider="deepseek", model="deepseek-chat", api_key="sk-test")

        assert llm.provider_name == "deepseek"
        assert llm.base_url == "https://api.deepseek.com"

    def test_base_url_override(self):
        llm = create_llm_client(
            provider="openai", model="gpt-4o", api_key="sk-test", base_url="http://proxy.local/v1"
        )
        assert llm.base_url == "http://proxy.local/v1"

    def test_ollama_needs_no_key(self):
        llm = create_llm_client(provider="ollama", model="qwen2.5:7b", api_key="")

        assert isinstance(llm, OllamaClient)
        assert llm.base_url == "http://localhost:11434"

    def test_client_parameters_forwarded(self):
        llm = create_llm_client(
            provider="openai", model="gpt-4o", api_key="sk-test", max_retries=3, timeout_seconds=5.0
        )
        assert llm.max_retries == 3
        assert llm.timeout_seconds == 5.0

    def test_from_model_string(self):
        llm = create_llm_client_from_model_string("ollama/llama3.1:8b")

        assert isinstance(llm, OllamaClient)
        assert llm.model == "llama3.1:8b"


@pytest.mark.unit
class TestOpenAICompatibleClient:
    """Test OpenAICompatibleClient with a mocked SDK client."""

    @pytest.mark.asyncio
    async def test_complete(self):
        llm = openai_client()
        llm.client.chat.completions.create.return_value = openai_response()

        response = await llm.complete(MESSAGES)

        assert response.content == '{"confidence": 0.8}'
        assert response.provider == "openai"
        assert response.tokens_total == 150
        assert response.finish_reason == "stop"

        kwargs = llm.client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"] == MESSAGES
        assert kwargs["model"] == "gpt-3.5-turbo"

    @pytest.mark.asyncio
    async def test_timeout_mapped(self):
        llm = openai_client()
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        llm.client.chat.completions.create.side_effect = APITimeoutError(request=request)

        with pytest.raises(EscalationTimeoutError):
            await llm.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_connection_error_mapped(self):
        llm = openai_client()
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        llm.client.chat.completions.create.side_effect = APIConnectionError(request=request)

        with pytest.raises(EscalationTransportError):
            await llm.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_no_choices(self):
        llm = openai_client()
        llm.client.chat.completions.create.return_value = openai_response(choices=False)

        with pytest.raises(EscalationTransportError, match="no choices"):
            await llm.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        llm = openai_client(max_retries=2)
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        llm.client.chat.completions.create.side_effect = [
            APIConnectionError(request=request),
            openai_response(),
        ]

        response = await llm.complete(MESSAGES)

        assert response.content == '{"confidence": 0.8}'
        assert llm.client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        llm = openai_client(max_retries=2)
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        llm.client.chat.completions.create.side_effect = APIConnectionError(request=request)

        with pytest.raises(EscalationTransportError):
            await llm.complete(MESSAGES)
        assert llm.client.chat.completions.create.await_count == 2


@pytest.mark.unit
class TestOllamaClient:
    """Test OllamaClient with a mocked SDK client."""

    @pytest.mark.asyncio
    async def test_complete(self):
        llm = ollama_client()
        llm.client.chat.return_value = {
            "message": {"role": "assistant", "content": '{"confidence": 0.6}'},
            "prompt_eval_count": 90,
            "eval_count": 20,
            "done_reason": "stop",
        }

        response = await llm.complete(MESSAGES)

        assert response.content == '{"confidence": 0.6}'
        assert response.provider == "ollama"
        assert response.tokens_total == 110
        assert llm.client.chat.call_args.kwargs["format"] == "json"

    @pytest.mark.asyncio
    async def test_response_error_mapped(self):
        llm = ollama_client()
        llm.client.chat.side_effect = ollama.ResponseError("model not found", 404)

        with pytest.raises(EscalationTransportError):
            await llm.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_timeout_mapped(self):
        llm = ollama_client()
        llm.client.chat.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(EscalationTimeoutError):
            await llm.complete(MESSAGES)


@pytest.mark.unit
class TestLLMSecondaryScorer:
    """Test the scorer on top of a mocked client."""

    @staticmethod
    def scorer_answering(content):
        client = Mock()
        client.provider_name = "ollama"
        client.model = "qwen2.5:7b"
        client.complete = AsyncMock(
            return_value=LLMResponse(content=content, model="qwen2.5:7b", provider="ollama")
        )
        return LLMSecondaryScorer(client=client), client

    @pytest.mark.asyncio
    async def test_fenced_json_answer(self, set_factory, code_factory):
        scorer, client = self.scorer_answering(
            '```json\n{"confidence": 0.85, "validCodes": ["SAVE20"], '
            '"isPromotional": true, "recommendation": "accept"}\n```'
        )
        request = EscalationRequest(
            source_id="vid-1",
            candidate_set=set_factory(codes=[code_factory("SAVE20")]),
            confidence=0.2,
            text_excerpt="use code SAVE20",
        )

        assessment = await scorer.assess(request)

        assert scorer.name == "ollama/qwen2.5:7b"
        assert assessment.confidence == 0.85
        assert assessment.valid_codes == ["SAVE20"]
        assert assessment.is_promotional is True

        messages = client.complete.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert "SAVE20" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_unparseable_answer(self, set_factory):
        scorer, _ = self.scorer_answering("Sure! This looks promotional.")
        request = EscalationRequest(source_id="vid-1", candidate_set=set_factory(), confidence=0.1)

        with pytest.raises(EscalationParseError):
            await scorer.assess(request)
