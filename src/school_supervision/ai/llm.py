"""LLM client used for document extraction and code generation, with async retry logic."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp
import google.genai as genai
from google.genai import types as genai_types

from ..config import LLMConfig

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-20241022"


class LLMError(Exception):
    """Base exception for LLM-related errors."""
    pass


class RateLimitError(LLMError):
    """Exception raised when rate limit is exceeded."""
    pass


class APIError(LLMError):
    """Exception raised for API-specific errors."""
    pass


@dataclass
class LLMRequest:
    """Represents a single LLM request."""
    prompt: str
    temperature: float = 0.2
    max_tokens: Optional[int] = None
    response_mime_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResponse:
    """Represents a single LLM response."""
    content: str
    latency_ms: Optional[float] = None
    token_usage: Optional[Dict[str, int]] = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def call_single(self, request: LLMRequest) -> LLMResponse:
        """Make a single LLM call."""
        pass


class ClaudeLLMProvider(LLMProvider):
    """Claude API provider over plain HTTP."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_CLAUDE_MODEL,
        base_url: str = "https://api.anthropic.com/v1/messages",
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 60.0
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

    async def call_single(self, request: LLMRequest) -> LLMResponse:
        """Make a single Claude API call with retry logic."""
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01"
        }
        payload = {
            "model": self.model,
            "max_tokens": request.max_tokens or 4096,
            "temperature": request.temperature,
            "messages": [
                {"role": "user", "content": request.prompt}
            ]
        }

        start_time = time.time()

        for attempt in range(self.max_retries + 1):
            try:
                async with aiohttp.ClientSession() as session:
                    async with session.post(
                        self.base_url,
                        headers=headers,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout)
                    ) as response:
                        if response.status == 429:
                            raise RateLimitError("Rate limit exceeded")
                        elif response.status >= 400:
                            error_text = await response.text()
                            raise APIError(f"API error {response.status}: {error_text}")

                        response_data = await response.json()
                        blocks = response_data.get("content") or [{}]
                        return LLMResponse(
                            content=blocks[0].get("text", ""),
                            latency_ms=(time.time() - start_time) * 1000,
                            token_usage=response_data.get("usage", {})
                        )

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt == self.max_retries:
                    raise APIError(f"API call failed after {self.max_retries} retries: {e}")
                await asyncio.sleep(self.retry_delay * (2 ** attempt))

        raise APIError("API call failed without a response")


class GeminiLLMProvider(LLMProvider):
    """Google Gemini API provider implementation."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 60.0
    ):
        self.api_key = api_key
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.client = genai.Client(api_key=api_key)

    async def call_single(self, request: LLMRequest) -> LLMResponse:
        """Make a single Gemini API call with retry logic."""
        start_time = time.time()

        generation_config: Dict[str, Any] = {"temperature": request.temperature}
        if request.max_tokens:
            generation_config["max_output_tokens"] = request.max_tokens
        if request.response_mime_type:
            generation_config["response_mime_type"] = request.response_mime_type

        for attempt in range(self.max_retries + 1):
            try:
                response = await asyncio.to_thread(
                    self.client.models.generate_content,
                    model=self.model,
                    contents=request.prompt,
                    config=genai_types.GenerateContentConfig(**generation_config)
                )
            except Exception as e:
                error_str = str(e).lower()

                if "rate limit" in error_str or "quota" in error_str:
                    if attempt < self.max_retries:
                        wait_time = self.retry_delay * (2 ** attempt)
                        logger.warning(f"Gemini rate limit hit, waiting {wait_time}s before retry")
                        await asyncio.sleep(wait_time)
                        continue
                    raise RateLimitError("Gemini rate limit exceeded")

                if attempt == self.max_retries:
                    raise APIError(f"Gemini API call failed after {self.max_retries} retries: {e}")
                await asyncio.sleep(self.retry_delay * (2 ** attempt))
                continue

            token_usage = {}
            usage = getattr(response, "usage_metadata", None)
            if usage is not None:
                token_usage = {
                    "input_tokens": getattr(usage, "prompt_token_count", 0) or 0,
                    "output_tokens": getattr(usage, "candidates_token_count", 0) or 0,
                    "total_tokens": getattr(usage, "total_token_count", 0) or 0
                }

            return LLMResponse(
                content=response.text or "",
                latency_ms=(time.time() - start_time) * 1000,
                token_usage=token_usage
            )

        raise APIError("Gemini API call failed without a response")


class LLMClient:
    """High-level client for LLM operations with built-in retry and error handling."""

    def __init__(
        self,
        provider: LLMProvider,
        default_retry_count: int = 3,
        default_retry_delay: float = 1.0,
        rate_limit_delay: float = 2.0
    ):
        self.provider = provider
        self.default_retry_count = default_retry_count
        self.default_retry_delay = default_retry_delay
        self.rate_limit_delay = rate_limit_delay

    async def complete(
        self,
        prompt: str,
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
        response_mime_type: Optional[str] = None,
        retry_count: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """Send one prompt and return the response text."""
        request = LLMRequest(
            prompt=prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            response_mime_type=response_mime_type,
            metadata=metadata or {}
        )

        retry_count = self.default_retry_count if retry_count is None else retry_count

        for attempt in range(retry_count + 1):
            try:
                response = await self.provider.call_single(request)
            except RateLimitError:
                if attempt == retry_count:
                    raise
                logger.warning(f"Rate limit hit, waiting {self.rate_limit_delay}s before retry")
                await asyncio.sleep(self.rate_limit_delay)
                continue
            except LLMError as e:
                if attempt == retry_count:
                    logger.error(f"LLM call failed after {retry_count} retries: {e}")
                    raise
                logger.warning(f"Error on attempt {attempt + 1}, retrying: {e}")
                await asyncio.sleep(self.default_retry_delay * (attempt + 1))
                continue

            logger.info(
                "LLM call completed",
                extra={
                    "prompt_length": len(prompt),
                    "response_length": len(response.content),
                    "latency_ms": response.latency_ms,
                    "attempt": attempt + 1,
                    "tokens": response.token_usage,
                }
            )
            return response.content

        raise LLMError(f"Failed after {retry_count} retries")


def create_llm_client(config: Optional[LLMConfig] = None, provider_type: Optional[str] = None) -> LLMClient:
    """Create an LLM client from configuration.

    Without an explicit ``provider_type``, Gemini is used when its key is set,
    otherwise Claude.
    """
    config = config or LLMConfig()

    if provider_type is None:
        if config.gemini_api_key:
            provider_type = "gemini"
        elif config.anthropic_api_key:
            provider_type = "claude"
        else:
            raise ValueError(
                "No LLM API key configured. Please set one of:\n"
                "- GEMINI_API_KEY (recommended)\n"
                "- ANTHROPIC_API_KEY"
            )

    common = {
        "max_retries": config.max_retries,
        "retry_delay": config.retry_delay,
        "timeout": config.request_timeout,
    }
    if provider_type == "gemini":
        if not config.gemini_api_key:
            raise ValueError("API key required for Gemini provider")
        provider: LLMProvider = GeminiLLMProvider(
            api_key=config.gemini_api_key, model=config.llm_model or DEFAULT_GEMINI_MODEL, **common
        )
    elif provider_type == "claude":
        if not config.anthropic_api_key:
            raise ValueError("API key required for Claude provider")
        provider = ClaudeLLMProvider(
            api_key=config.anthropic_api_key, model=config.llm_model or DEFAULT_CLAUDE_MODEL, **common
        )
    else:
        raise ValueError(f"Unknown provider type: {provider_type}")

    return LLMClient(
        provider=provider,
        default_retry_count=config.max_retries,
        default_retry_delay=config.retry_delay
    )
