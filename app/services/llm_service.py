"""
LLM Service with provider abstraction and cost tracking.

Used by the field generation endpoint to turn a natural-language request into
a JSON field schema. Responses are cached by prompt so repeated requests for
the same description do not cost another API call.
"""

import asyncio
import hashlib
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM provider."""
    content: str
    tokens_used: int
    cost: float
    provider: str
    model: str
    cached: bool = False


@dataclass
class GenerationMetrics:
    """Metrics for LLM usage."""
    total_tokens: int = 0
    total_cost: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    api_calls: int = 0


class LLMProviderInterface(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 800,
        temperature: float = 0.3,
        model: Optional[str] = None,
        json_mode: bool = False
    ) -> LLMResponse:
        """Generate content using the LLM."""
        pass

    @abstractmethod
    def calculate_cost(self, tokens: int, model: str) -> float:
        """Calculate cost for token usage."""
        pass

    @abstractmethod
    def get_default_model(self) -> str:
        """Get default model for this provider."""
        pass


class OpenAIProvider(LLMProviderInterface):
    """OpenAI API provider."""

    # Token costs per 1K tokens
    MODEL_COSTS = {
        "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
        "gpt-4o": {"input": 0.0025, "output": 0.01},
        "gpt-4-turbo": {"input": 0.01, "output": 0.03},
    }

    def __init__(self, api_key: str, model: Optional[str] = None,
                 timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.base_url = "https://api.openai.com/v1"
        self._transport = transport

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 800,
        temperature: float = 0.3,
        model: Optional[str] = None,
        json_mode: bool = False
    ) -> LLMResponse:
        """Generate content using OpenAI API."""
        model = model or self.get_default_model()

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt}
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=headers,
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

            content = data["choices"][0]["message"]["content"].strip()
            tokens_used = data["usage"]["total_tokens"]
            cost = self.calculate_cost(tokens_used, model)

            return LLMResponse(
                content=content,
                tokens_used=tokens_used,
                cost=cost,
                provider="openai",
                model=model
            )

    def calculate_cost(self, tokens: int, model: str) -> float:
        """Calculate cost for OpenAI token usage."""
        if model not in self.MODEL_COSTS:
            # Use gpt-4o-mini as fallback
            model = "gpt-4o-mini"

        costs = self.MODEL_COSTS[model]
        # Estimate 75% input, 25% output tokens
        input_tokens = int(tokens * 0.75)
        output_tokens = tokens - input_tokens

        return (input_tokens * costs["input"] / 1000) + (output_tokens * costs["output"] / 1000)

    def get_default_model(self) -> str:
        """Get default OpenAI model."""
        return self.model or "gpt-4o-mini"


class LLMCache:
    """Simple in-memory cache for LLM responses."""

    def __init__(self, max_size: int = 200, ttl_seconds: int = 3600):
        self.cache: Dict[str, Tuple[LLMResponse, float]] = {}
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds

    def _generate_key(self, prompt: str, system_prompt: str, model: str) -> str:
        """Generate cache key from prompt parameters."""
        content = f"{system_prompt}|{prompt}|{model}"
        return hashlib.md5(content.encode()).hexdigest()

    def get(self, prompt: str, system_prompt: str, model: str) -> Optional[LLMResponse]:
        """Get cached response if available and not expired."""
        key = self._generate_key(prompt, system_prompt, model)

        if key in self.cache:
            response, timestamp = self.cache[key]
            if time.time() - timestamp < self.ttl_seconds:
                return LLMResponse(
                    content=response.content,
                    tokens_used=response.tokens_used,
                    cost=response.cost,
                    provider=response.provider,
                    model=response.model,
                    cached=True
                )
            # Remove expired entry
            del self.cache[key]

        return None

    def set(self, prompt: str, system_prompt: str, model: str, response: LLMResponse):
        """Cache response with current timestamp."""
        key = self._generate_key(prompt, system_prompt, model)

        # Simple LRU: remove oldest if at capacity
        if len(self.cache) >= self.max_size:
            oldest_key = min(self.cache.keys(), key=lambda k: self.cache[k][1])
            del self.cache[oldest_key]

        self.cache[key] = (response, time.time())


class LLMService:
    """LLM service with caching, retries and usage metrics."""

    def __init__(self, provider: LLMProviderInterface, max_retries: int = 3):
        self.provider = provider
        self.max_retries = max(1, max_retries)
        self.cache = LLMCache()
        self.metrics = GenerationMetrics()

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 800,
        temperature: float = 0.3,
        json_mode: bool = False,
        use_cache: bool = True
    ) -> LLMResponse:
        """Generate content, retrying transient HTTP failures with backoff."""
        model = self.provider.get_default_model()

        if use_cache:
            cached_response = self.cache.get(prompt, system_prompt, model)
            if cached_response:
                self.metrics.cache_hits += 1
                return cached_response

        self.metrics.cache_misses += 1

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self.provider.generate(
                    prompt, system_prompt, max_tokens, temperature, model, json_mode
                )
            except httpx.HTTPStatusError as e:
                # Client errors (bad key, bad request) will not succeed on retry
                if e.response.status_code < 500 and e.response.status_code != 429:
                    raise
                last_error = e
            except httpx.TransportError as e:
                last_error = e
            else:
                self.metrics.total_tokens += response.tokens_used
                self.metrics.total_cost += response.cost
                self.metrics.api_calls += 1
                if use_cache:
                    self.cache.set(prompt, system_prompt, model, response)
                return response

            logger.warning(f"LLM request failed (attempt {attempt}/{self.max_retries}): {last_error}")
            if attempt < self.max_retries:
                await asyncio.sleep(0.5 * 2 ** (attempt - 1))

        raise last_error


_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """
    Get the shared LLM service, creating it on first use.

    Raises:
        RuntimeError: If no OpenAI API key is configured
    """
    global _llm_service
    if _llm_service is None:
        if not settings.OPENAI_API_KEY:
            raise RuntimeError("No LLM provider configured. Please set OPENAI_API_KEY.")
        provider = OpenAIProvider(
            settings.OPENAI_API_KEY,
            model=settings.LLM_MODEL,
            timeout=float(settings.LLM_TIMEOUT_SECONDS),
        )
        _llm_service = LLMService(provider, max_retries=settings.LLM_MAX_RETRIES)
    return _llm_service


def get_usage_metrics() -> Optional[GenerationMetrics]:
    """Usage of the shared LLM service, or None if it has not been used yet."""
    return _llm_service.metrics if _llm_service is not None else None
