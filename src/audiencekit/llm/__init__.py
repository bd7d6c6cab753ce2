"""LLM vendor adapters and JSON decoding of their completions.

Supports Anthropic (Claude), OpenAI (GPT) and Google (Gemini) through one
async ``generate()`` / ``test_connection()`` contract.
"""

from .json_repair import (  # noqa: F401
    DecodedJSON,
    decode_json_response,
    parse_json_response,
    repair_truncated_json,
)
from .models import (  # noqa: F401
    AI_MODELS,
    PROVIDER_NAMES,
    AIModel,
    AIProvider,
    get_model_by_id,
    get_models_for_provider,
    get_recommended_model,
)
from .providers import (  # noqa: F401
    SUPPORTED_PROVIDERS,
    ConnectionResult,
    GenerateOptions,
    ProviderAdapter,
    get_provider_adapter,
)
