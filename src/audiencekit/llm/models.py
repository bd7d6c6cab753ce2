"""Provider identifiers and the static model catalogue."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class AIProvider(str, Enum):
    """LLM vendors the generation layer can talk to."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"


class AIModel(BaseModel):
    """One selectable model, as shown on the settings page."""

    id: str
    name: str
    provider: AIProvider
    recommended: bool = False
    description: str = ""
    input_price: Optional[str] = None   # per 1M tokens
    output_price: Optional[str] = None  # per 1M tokens


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

AI_MODELS: list[AIModel] = [
    # Anthropic (Claude)
    AIModel(
        id="claude-sonnet-4-5-20250929",
        name="Claude Sonnet 4.5",
        provider=AIProvider.ANTHROPIC,
        recommended=True,
        description="Best balance of intelligence and speed",
        input_price="$3",
        output_price="$15",
    ),
    AIModel(
        id="claude-opus-4-5-20251101",
        name="Claude Opus 4.5",
        provider=AIProvider.ANTHROPIC,
        description="Maximum intelligence",
        input_price="$5",
        output_price="$25",
    ),
    AIModel(
        id="claude-haiku-4-5-20251001",
        name="Claude Haiku 4.5",
        provider=AIProvider.ANTHROPIC,
        description="Fastest, most affordable",
        input_price="$1",
        output_price="$5",
    ),
    # OpenAI (GPT) - Standard tier prices
    AIModel(
        id="gpt-4o",
        name="GPT-4o",
        provider=AIProvider.OPENAI,
        recommended=True,
        description="Best for most tasks, multimodal",
        input_price="$2.50",
        output_price="$10",
    ),
    AIModel(
        id="gpt-4o-mini",
        name="GPT-4o Mini",
        provider=AIProvider.OPENAI,
        description="Fast and affordable",
        input_price="$0.15",
        output_price="$0.60",
    ),
    AIModel(
        id="gpt-4-turbo",
        name="GPT-4 Turbo",
        provider=AIProvider.OPENAI,
        description="High capability, 128K context",
        input_price="$10",
        output_price="$30",
    ),
    AIModel(
        id="gpt-3.5-turbo",
        name="GPT-3.5 Turbo",
        provider=AIProvider.OPENAI,
        description="Fast, cheapest option",
        input_price="$0.50",
        output_price="$1.50",
    ),
    AIModel(
        id="o1",
        name="o1 (Reasoning)",
        provider=AIProvider.OPENAI,
        description="Advanced reasoning model",
        input_price="$15",
        output_price="$60",
    ),
    AIModel(
        id="o1-mini",
        name="o1-mini (Reasoning)",
        provider=AIProvider.OPENAI,
        description="Fast reasoning model",
        input_price="$3",
        output_price="$12",
    ),
    # Google (Gemini)
    AIModel(
        id="gemini-1.5-pro",
        name="Gemini 1.5 Pro",
        provider=AIProvider.GOOGLE,
        recommended=True,
        description="Most capable, 2M context",
        input_price="$1.25",
        output_price="$5",
    ),
    AIModel(
        id="gemini-1.5-flash",
        name="Gemini 1.5 Flash",
        provider=AIProvider.GOOGLE,
        description="Fast and efficient",
        input_price="$0.075",
        output_price="$0.30",
    ),
    AIModel(
        id="gemini-1.5-flash-8b",
        name="Gemini 1.5 Flash-8B",
        provider=AIProvider.GOOGLE,
        description="Ultra-fast, cheapest",
        input_price="$0.0375",
        output_price="$0.15",
    ),
]

PROVIDER_NAMES: dict[AIProvider, str] = {
    AIProvider.ANTHROPIC: "Anthropic (Claude)",
    AIProvider.OPENAI: "OpenAI (GPT)",
    AIProvider.GOOGLE: "Google (Gemini)",
}


def get_models_for_provider(provider: AIProvider | str) -> list[AIModel]:
    """Return catalogue entries for *provider*, in display order."""
    p = AIProvider(provider)
    return [m for m in AI_MODELS if m.provider == p]


def get_recommended_model(provider: AIProvider | str) -> AIModel | None:
    p = AIProvider(provider)
    return next((m for m in AI_MODELS if m.provider == p and m.recommended), None)


def get_model_by_id(model_id: str) -> AIModel | None:
    return next((m for m in AI_MODELS if m.id == model_id), None)
