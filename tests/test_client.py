"""Tests for the generation entry point (adapters mocked)."""

from __future__ import annotations

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from audiencekit import client
from audiencekit.errors import MissingAPIKeyError, UnknownProviderError
from audiencekit.llm.models import AIProvider
from audiencekit.llm.providers import ConnectionResult
from audiencekit.settings import DEFAULT_SETTINGS, AISettings, InMemorySettingsStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in client.SYSTEM_KEY_ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def mock_adapter():
    """A fake adapter returned for every provider lookup."""
    adapter = MagicMock()
    adapter.default_model = "adapter-default"
    adapter.generate = AsyncMock(return_value="generated text")
    with patch("audiencekit.client.get_provider_adapter", return_value=adapter) as lookup:
        adapter.lookup = lookup
        yield adapter


# ---------------------------------------------------------------------------
# Key resolution
# ---------------------------------------------------------------------------

class TestResolveApiKey:
    def test_user_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-system")
        settings = AISettings(provider=AIProvider.OPENAI, api_key="sk-user")
        assert client.resolve_api_key(settings) == ("sk-user", "user")

    @pytest.mark.parametrize(
        "provider, env_var",
        [
            (AIProvider.ANTHROPIC, "ANTHROPIC_API_KEY"),
            (AIProvider.OPENAI, "OPENAI_API_KEY"),
            (AIProvider.GOOGLE, "GOOGLE_AI_API_KEY"),
        ],
    )
    def test_system_key_from_env(self, monkeypatch, provider, env_var):
        monkeypatch.setenv(env_var, "system-key")
        assert client.resolve_api_key(AISettings(provider=provider)) == ("system-key", "system")

    def test_other_providers_key_not_used(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        with pytest.raises(MissingAPIKeyError, match="google"):
            client.resolve_api_key(AISettings(provider=AIProvider.GOOGLE))

    def test_empty_env_var_is_missing(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "")
        with pytest.raises(MissingAPIKeyError, match="No API key configured for anthropic"):
            client.resolve_api_key(AISettings())


class TestResolveModel:
    def test_settings_model_used(self):
        assert client.resolve_model(AISettings(model="gpt-4o-mini")) == "gpt-4o-mini"

    @pytest.mark.parametrize(
        "provider, expected",
        [
            (AIProvider.ANTHROPIC, "claude-sonnet-4-5-20250929"),
            (AIProvider.OPENAI, "gpt-4o"),
            (AIProvider.GOOGLE, "gemini-1.5-pro"),
        ],
    )
    def test_falls_back_to_recommended(self, provider, expected):
        assert client.resolve_model(AISettings(provider=provider)) == expected


# ---------------------------------------------------------------------------
# generate_with_ai
# ---------------------------------------------------------------------------

class TestGenerateWithAI:
    @pytest.mark.asyncio
    async def test_defaults_without_user(self, monkeypatch, mock_adapter):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-system")

        result = await client.generate_with_ai("Write a tagline", system_prompt="Be punchy")

        assert result == "generated text"
        mock_adapter.lookup.assert_called_once_with(AIProvider.ANTHROPIC)
        options, api_key = mock_adapter.generate.call_args.args
        assert api_key == "sk-ant-system"
        assert options.prompt == "Write a tagline"
        assert options.system_prompt == "Be punchy"
        assert options.model == DEFAULT_SETTINGS.model
        assert options.max_tokens is None

    @pytest.mark.asyncio
    async def test_user_settings_used(self, monkeypatch, mock_adapter):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-system")
        store = InMemorySettingsStore({
            "u1": AISettings(provider=AIProvider.OPENAI, model="gpt-4o-mini", api_key="sk-user-1234"),
        })

        await client.generate_with_ai("Hi", max_tokens=2000, user_id="u1", settings_store=store)

        mock_adapter.lookup.assert_called_once_with(AIProvider.OPENAI)
        options, api_key = mock_adapter.generate.call_args.args
        assert api_key == "sk-user-1234"
        assert options.model == "gpt-4o-mini"
        assert options.max_tokens == 2000

    @pytest.mark.asyncio
    async def test_unknown_user_gets_defaults(self, monkeypatch, mock_adapter):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-system")
        await client.generate_with_ai("Hi", user_id="nobody", settings_store=InMemorySettingsStore())
        mock_adapter.lookup.assert_called_once_with(AIProvider.ANTHROPIC)

    @pytest.mark.asyncio
    async def test_failing_store_falls_back(self, monkeypatch, mock_adapter):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-system")
        store = MagicMock()
        store.get.side_effect = OSError("database unavailable")

        assert await client.generate_with_ai("Hi", user_id="u1", settings_store=store) == "generated text"
        mock_adapter.lookup.assert_called_once_with(AIProvider.ANTHROPIC)

    @pytest.mark.asyncio
    async def test_missing_key_raises_before_vendor_call(self, mock_adapter):
        store = InMemorySettingsStore({"u1": AISettings(provider=AIProvider.GOOGLE)})
        with pytest.raises(MissingAPIKeyError, match="google"):
            await client.generate_with_ai("Hi", user_id="u1", settings_store=store)
        mock_adapter.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_adapter_errors_propagate(self, monkeypatch, mock_adapter):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-system")
        mock_adapter.generate.side_effect = RuntimeError("Error code: 529 - overloaded")
        with pytest.raises(RuntimeError, match="overloaded"):
            await client.generate_with_ai("Hi")

    @pytest.mark.asyncio
    async def test_key_never_logged(self, caplog, mock_adapter):
        store = InMemorySettingsStore({
            "u1": AISettings(provider=AIProvider.OPENAI, api_key="sk-secret-value-9876"),
        })
        with caplog.at_level(logging.DEBUG):
            await client.generate_with_ai("Hi", user_id="u1", settings_store=store)

        assert "sk-secret-value-9876" not in caplog.text
        assert "9876" not in caplog.text
        assert "provider=openai" in caplog.text
        assert "key=user" in caplog.text

    @pytest.mark.asyncio
    async def test_system_key_source_logged(self, monkeypatch, caplog, mock_adapter):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-system-abcd")
        with caplog.at_level(logging.INFO, logger="audiencekit.client"):
            await client.generate_with_ai("Hi")
        assert "key=system" in caplog.text
        assert "sk-ant-system-abcd" not in caplog.text
        assert "ANTHROPIC response received" in caplog.text


class TestGenerateJsonWithAI:
    @pytest.mark.asyncio
    async def test_parses_fenced_json(self, monkeypatch, mock_adapter):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "k")
        mock_adapter.generate.return_value = '```json\n{"segments": [{"name": "A"}]}\n```'
        assert await client.generate_json_with_ai("Hi") == {"segments": [{"name": "A"}]}

    @pytest.mark.asyncio
    async def test_repairs_truncated_json(self, monkeypatch, mock_adapter):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "k")
        mock_adapter.generate.return_value = '{"segments": [{"name": "A"}, {"name": "B'
        assert await client.generate_json_with_ai("Hi") == {
            "segments": [{"name": "A"}, {"name": "B"}],
        }

    @pytest.mark.asyncio
    async def test_non_json_raises_decode_error(self, monkeypatch, mock_adapter):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "k")
        mock_adapter.generate.return_value = "I cannot help with that."
        with pytest.raises(json.JSONDecodeError):
            await client.generate_json_with_ai("Hi")


# ---------------------------------------------------------------------------
# test_api_key
# ---------------------------------------------------------------------------

class TestApiKeyCheck:
    @pytest.mark.asyncio
    async def test_delegates_to_adapter(self, mock_adapter):
        mock_adapter.test_connection = AsyncMock(return_value=ConnectionResult(valid=True))

        result = await client.test_api_key("openai", "sk-test")

        assert result.valid is True
        mock_adapter.lookup.assert_called_once_with("openai")
        mock_adapter.test_connection.assert_awaited_once_with("sk-test")

    @pytest.mark.asyncio
    async def test_unknown_provider_raises(self):
        with pytest.raises(UnknownProviderError):
            await client.test_api_key("mistral", "key")
