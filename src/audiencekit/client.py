"""Generation entry point used by the rest of the application.

``generate_with_ai`` resolves the user's AI settings (or the system
defaults), picks the provider adapter, resolves the API key and runs one
completion::

    from audiencekit.client import generate_json_with_ai

    segments = await generate_json_with_ai(
        prompt=build_segments_prompt(project),
        system_prompt=SEGMENTS_SYSTEM_PROMPT,
        max_tokens=8192,
        user_id=current_user.id,
        settings_store=store,
    )

A user key always wins over the system key from the environment.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any

from .errors import MissingAPIKeyError
from .llm.json_repair import parse_json_response
from .llm.models import AIProvider, get_recommended_model
from .llm.providers import ConnectionResult, GenerateOptions, get_provider_adapter
from .settings import (
    DEFAULT_SETTINGS,
    AISettings,
    SettingsStore,
    get_user_ai_settings,
)

logger = logging.getLogger(__name__)

# Provider → env var holding the system key
SYSTEM_KEY_ENV_VARS: dict[AIProvider, str] = {
    AIProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    AIProvider.OPENAI: "OPENAI_API_KEY",
    AIProvider.GOOGLE: "GOOGLE_AI_API_KEY",
}


def resolve_api_key(settings: AISettings) -> tuple[str, str]:
    """Return ``(api_key, source)``; source is ``"user"`` or ``"system"``.

    Raises ``MissingAPIKeyError`` when neither key is available.
    """
    if settings.api_key:
        return settings.api_key, "user"

    env_var = SYSTEM_KEY_ENV_VARS[settings.provider]
    key = os.environ.get(env_var, "")
    if not key:
        raise MissingAPIKeyError(
            f"No API key configured for {settings.provider.value}. "
            "Please add your API key in Settings or contact support."
        )
    return key, "system"


def resolve_model(settings: AISettings) -> str | None:
    """Settings model, else the provider's recommended catalogue model."""
    if settings.model:
        return settings.model
    recommended = get_recommended_model(settings.provider)
    return recommended.id if recommended else None


async def generate_with_ai(
    prompt: str,
    *,
    system_prompt: str | None = None,
    max_tokens: int | None = None,
    user_id: str | None = None,
    settings_store: SettingsStore | None = None,
) -> str:
    """Generate text with the user's configured provider, model and key."""
    settings = (
        get_user_ai_settings(user_id, settings_store)
        if user_id
        else DEFAULT_SETTINGS
    )
    adapter = get_provider_adapter(settings.provider)
    api_key, key_source = resolve_api_key(settings)
    model = resolve_model(settings)

    logger.info(
        "AI generation request: provider=%s, model=%s, key=%s",
        settings.provider.value, model or adapter.default_model, key_source,
    )

    start = time.perf_counter()
    result = await adapter.generate(
        GenerateOptions(
            prompt=prompt,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            model=model,
        ),
        api_key,
    )
    logger.info(
        "%s response received in %.1fs (%d chars)",
        settings.provider.value.upper(), time.perf_counter() - start, len(result),
    )
    return result


async def generate_json_with_ai(
    prompt: str,
    *,
    system_prompt: str | None = None,
    max_tokens: int | None = None,
    user_id: str | None = None,
    settings_store: SettingsStore | None = None,
) -> Any:
    """``generate_with_ai`` followed by ``parse_json_response``."""
    raw = await generate_with_ai(
        prompt,
        system_prompt=system_prompt,
        max_tokens=max_tokens,
        user_id=user_id,
        settings_store=settings_store,
    )
    return parse_json_response(raw)


async def test_api_key(provider: AIProvider | str, api_key: str) -> ConnectionResult:
    """Check an API key against *provider* without raising on vendor errors."""
    adapter = get_provider_adapter(provider)
    return await adapter.test_connection(api_key)

