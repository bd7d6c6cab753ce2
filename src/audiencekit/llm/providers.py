"""Unified async adapter layer over the Anthropic, OpenAI and Google SDKs.

Every vendor is reached through the same two coroutines, so generation code
never touches a vendor-specific request or response shape::

    from audiencekit.llm.providers import GenerateOptions, get_provider_adapter

    adapter = get_provider_adapter("anthropic")
    text = await adapter.generate(
        GenerateOptions(prompt="List 3 audience segments.", max_tokens=1024),
        api_key="sk-ant-...",
    )
    status = await adapter.test_connection("sk-ant-...")

Adapters hold no state: each call builds its own SDK client from the key it
is given and closes it before returning.  No call is retried here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from anthropic import AsyncAnthropic
from google import genai
from google.genai import types as genai_types
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field

from ..errors import EmptyResponseError, UnknownProviderError
from .models import AIProvider

logger = logging.getLogger(__name__)

# ── Defaults ──────────────────────────────────────────────────────────────

DEFAULT_MAX_TOKENS = 4096
TEST_MAX_TOKENS = 10
TEST_PROMPT = "Hi"

INVALID_KEY = "Invalid API key"
MISSING_PERMISSION = "API key lacks required permissions"
RATE_LIMITED = "Rate limited - try again later"
QUOTA_EXHAUSTED = "Insufficient quota - check your billing"


# ══════════════════════════════════════════════════════════════════════════
# Request / result models
# ══════════════════════════════════════════════════════════════════════════


class GenerateOptions(BaseModel):
    """Parameters for a single text completion."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    system_prompt: Optional[str] = None
    max_tokens: Optional[int] = Field(default=None, gt=0)
    model: Optional[str] = None  # overrides the adapter default


class ConnectionResult(BaseModel):
    """Outcome of ``test_connection()``; ``error`` is set only when invalid."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    error: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Base class
# ══════════════════════════════════════════════════════════════════════════


class ProviderAdapter(ABC):
    """Abstract base for all vendor adapters."""

    provider: AIProvider
    default_model: str
    test_model: str

    # (substrings, reason) pairs, checked in order against the error message
    error_rules: tuple[tuple[tuple[str, ...], str], ...] = ()

    # ── Public API ────────────────────────────────────────────────────

    async def generate(self, options: GenerateOptions, api_key: str) -> str:
        """Run one completion and return its text.

        Raises ``EmptyResponseError`` when the vendor returns no text; SDK
        exceptions propagate unchanged.
        """
        model = options.model or self.default_model
        max_tokens = options.max_tokens or DEFAULT_MAX_TOKENS
        logger.debug(
            "%s request: model=%s, max_tokens=%d, prompt=%d chars",
            self.provider.value, model, max_tokens, len(options.prompt),
        )
        text = await self._complete(
            api_key,
            model=model,
            prompt=options.prompt,
            system_prompt=options.system_prompt,
            max_tokens=max_tokens,
        )
        if not text or not text.strip():
            raise EmptyResponseError(f"No text response from {self.display_name}")
        return text

    async def test_connection(self, api_key: str) -> ConnectionResult:
        """Check that *api_key* is authorised, using the cheapest request."""
        try:
            await self._complete(
                api_key,
                model=self.test_model,
                prompt=TEST_PROMPT,
                system_prompt=None,
                max_tokens=TEST_MAX_TOKENS,
            )
        except Exception as exc:
            message = str(exc) or "Unknown error"
            logger.info("%s key check failed: %s", self.provider.value, message)
            return ConnectionResult(valid=False, error=self.classify_error(message))
        return ConnectionResult(valid=True)

    def classify_error(self, message: str) -> str:
        """Bucket a vendor error message; unknown wording passes through."""
        for needles, reason in self.error_rules:
            if any(needle in message for needle in needles):
                return reason
        return message

    # ── Subclass hooks ────────────────────────────────────────────────

    @abstractmethod
    async def _complete(
        self,
        api_key: str,
        *,
        model: str,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int,
    ) -> str | None:
        """Vendor-specific request -> first text block (or ``None``)."""

    @property
    def display_name(self) -> str:
        return self.__class__.__name__.replace("Adapter", "")


# ══════════════════════════════════════════════════════════════════════════
# Anthropic (Claude)
# ══════════════════════════════════════════════════════════════════════════


class AnthropicAdapter(ProviderAdapter):
    """Anthropic Messages API."""

    provider = AIProvider.ANTHROPIC
    default_model = "claude-sonnet-4-5-20250929"
    test_model = "claude-haiku-4-5-20251001"
    error_rules = (
        (("401", "invalid_api_key", "invalid x-api-key"), INVALID_KEY),
        (("403", "permission"), MISSING_PERMISSION),
        (("credit balance",), QUOTA_EXHAUSTED),
        (("429", "rate_limit"), RATE_LIMITED),
    )

    async def _complete(
        self,
        api_key: str,
        *,
        model: str,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int,
    ) -> str | None:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        client = AsyncAnthropic(api_key=api_key)
        async with client:
            resp = await client.messages.create(**kwargs)
        # Anthropic returns content blocks; thinking/tool blocks carry no text
        for block in resp.content or []:
            if getattr(block, "type", None) == "text":
                return block.text
        return None

    @property
    def display_name(self) -> str:
        return "Claude"


# ══════════════════════════════════════════════════════════════════════════
# OpenAI
# ══════════════════════════════════════════════════════════════════════════

# Models only served by the Responses API
_RESPONSES_ONLY_PREFIXES = ("o1-pro", "o3-pro", "gpt-5-pro", "codex-")
# Reasoning models reject ``max_tokens`` on Chat Completions
_COMPLETION_TOKENS_PREFIXES = ("gpt-5", "o1", "o3", "o4")


def uses_responses_api(model: str) -> bool:
    return model.startswith(_RESPONSES_ONLY_PREFIXES)


def uses_completion_tokens(model: str) -> bool:
    return model.startswith(_COMPLETION_TOKENS_PREFIXES)


class OpenAIAdapter(ProviderAdapter):
    """OpenAI Chat Completions, or the Responses API where a model needs it."""

    provider = AIProvider.OPENAI
    default_model = "gpt-5.2"
    test_model = "gpt-5-mini"
    error_rules = (
        (("401", "Incorrect API key", "invalid_api_key"), INVALID_KEY),
        (("403", "permission"), MISSING_PERMISSION),
        (("insufficient_quota",), QUOTA_EXHAUSTED),
        (("429",), RATE_LIMITED),
    )

    async def _complete(
        self,
        api_key: str,
        *,
        model: str,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int,
    ) -> str | None:
        client = AsyncOpenAI(api_key=api_key)
        async with client:
            if uses_responses_api(model):
                return await self._respond(
                    client, model=model, prompt=prompt,
                    system_prompt=system_prompt, max_tokens=max_tokens,
                )

            messages = []
            if system_prompt:
                messages.append({"role": "system", "content": system_prompt})
            messages.append({"role": "user", "content": prompt})
            token_param = (
                "max_completion_tokens" if uses_completion_tokens(model) else "max_tokens"
            )
            resp = await client.chat.completions.create(
                model=model,
                messages=messages,
                **{token_param: max_tokens},
            )
        if not resp.choices:
            return None
        return resp.choices[0].message.content

    async def _respond(
        self,
        client: AsyncOpenAI,
        *,
        model: str,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int,
    ) -> str | None:
        kwargs: dict[str, Any] = {
            "model": model,
            "input": prompt,
            "max_output_tokens": max_tokens,
        }
        if system_prompt:
            kwargs["instructions"] = system_prompt
        resp = await client.responses.create(**kwargs)
        return _extract_output_text(resp)


def _extract_output_text(resp: Any) -> str | None:
    # Newer SDKs aggregate the text blocks into ``output_text``
    text = getattr(resp, "output_text", None)
    if isinstance(text, str) and text:
        return text
    for item in getattr(resp, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) in ("output_text", "text"):
                t = getattr(part, "text", None)
                if isinstance(t, str) and t:
                    return t
    return None


# ══════════════════════════════════════════════════════════════════════════
# Google Gemini
# ══════════════════════════════════════════════════════════════════════════


class GoogleAdapter(ProviderAdapter):
    """Google Gen AI (Gemini) ``generate_content`` API."""

    provider = AIProvider.GOOGLE
    default_model = "gemini-3-pro-preview"
    test_model = "gemini-2.5-flash"
    error_rules = (
        (("API_KEY_INVALID", "API key not valid", "invalid"), INVALID_KEY),
        (("PERMISSION_DENIED",), MISSING_PERMISSION),
        (("RESOURCE_EXHAUSTED",), QUOTA_EXHAUSTED),
        (("429",), RATE_LIMITED),
    )

    async def _complete(
        self,
        api_key: str,
        *,
        model: str,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int,
    ) -> str | None:
        client = genai.Client(api_key=api_key).aio
        async with client:
            resp = await client.models.generate_content(
                model=model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    max_output_tokens=max_tokens,
                ),
            )
        return resp.text

    @property
    def display_name(self) -> str:
        return "Gemini"


# ══════════════════════════════════════════════════════════════════════════
# Registry
# ══════════════════════════════════════════════════════════════════════════

_ADAPTERS: dict[AIProvider, ProviderAdapter] = {
    AIProvider.ANTHROPIC: AnthropicAdapter(),
    AIProvider.OPENAI: OpenAIAdapter(),
    AIProvider.GOOGLE: GoogleAdapter(),
}

SUPPORTED_PROVIDERS = [p.value for p in _ADAPTERS]


def get_provider_adapter(provider: AIProvider | str) -> ProviderAdapter:
    """Return the adapter for *provider*.

    Raises ``UnknownProviderError`` for anything outside the fixed set.
    """
    name = provider.value if isinstance(provider, AIProvider) else str(provider)
    try:
        key = AIProvider(name.lower().strip())
    except ValueError:
        raise UnknownProviderError(
            f"Unknown provider '{provider}'. "
            f"Supported: {', '.join(SUPPORTED_PROVIDERS)}"
        ) from None
    return _ADAPTERS[key]
