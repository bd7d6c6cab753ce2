"""Tests for the model catalogue."""

import pytest

from audiencekit.llm.models import (
    AI_MODELS,
    PROVIDER_NAMES,
    AIProvider,
    get_model_by_id,
    get_models_for_provider,
    get_recommended_model,
)


class TestCatalogue:
    def test_ids_unique(self):
        ids = [m.id for m in AI_MODELS]
        assert len(ids) == len(set(ids))

    @pytest.mark.parametrize("provider", list(AIProvider))
    def test_one_recommended_per_provider(self, provider):
        recommended = [m for m in get_models_for_provider(provider) if m.recommended]
        assert len(recommended) == 1

    def test_every_provider_named(self):
        assert set(PROVIDER_NAMES) == set(AIProvider)


class TestLookups:
    def test_models_for_provider_by_string(self):
        models = get_models_for_provider("google")
        assert models
        assert all(m.provider == AIProvider.GOOGLE for m in models)

    def test_models_for_provider_keeps_order(self):
        ids = [m.id for m in get_models_for_provider(AIProvider.ANTHROPIC)]
        assert ids[0] == "claude-sonnet-4-5-20250929"

    def test_recommended_model(self):
        assert get_recommended_model("openai").id == "gpt-4o"

    def test_model_by_id(self):
        model = get_model_by_id("claude-haiku-4-5-20251001")
        assert model.provider == AIProvider.ANTHROPIC
        assert model.input_price == "$1"

    def test_model_by_id_missing(self):
        assert get_model_by_id("gpt-99") is None

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValueError):
            get_models_for_provider("azure")
