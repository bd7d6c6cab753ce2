"""Per-user AI generation settings.

Each user may pick a provider, a model and optionally their own API key.
Users without saved settings, or whose settings cannot be read, get
``DEFAULT_SETTINGS`` (Anthropic, Claude Sonnet 4.5, system key).

Settings file format (YAML, JSON or TOML), keyed by user id::

    # ai_settings.yaml
    user-123:
      provider: openai
      model: gpt-4o
      api_key: sk-...
    user-456:
      provider: google
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

from pydantic import BaseModel, ConfigDict

from .llm.models import AIProvider

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

class AISettings(BaseModel):
    """Generation settings for one request.  ``api_key=None`` means system key."""

    model_config = ConfigDict(frozen=True)

    provider: AIProvider = AIProvider.ANTHROPIC
    model: Optional[str] = None
    api_key: Optional[str] = None

    def __repr__(self) -> str:
        key = mask_api_key(self.api_key) if self.api_key else None
        return f"AISettings(provider={self.provider.value!r}, model={self.model!r}, api_key={key!r})"

    __str__ = __repr__


DEFAULT_SETTINGS = AISettings(
    provider=AIProvider.ANTHROPIC,
    model="claude-sonnet-4-5-20250929",
    api_key=None,
)


def mask_api_key(api_key: str) -> str:
    """Show only the last four characters of a key."""
    if len(api_key) <= 8:
        return "••••••••"
    return f"••••••••{api_key[-4:]}"


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class SettingsStore(Protocol):
    """Anything that can look up a user's saved settings."""

    def get(self, user_id: str) -> AISettings | None:
        ...


class InMemorySettingsStore:
    """Dict-backed store."""

    def __init__(self, settings: Mapping[str, AISettings] | None = None) -> None:
        self._settings: dict[str, AISettings] = dict(settings or {})

    def get(self, user_id: str) -> AISettings | None:
        return self._settings.get(user_id)

    def save(self, user_id: str, settings: AISettings) -> None:
        self._settings[user_id] = settings


class FileSettingsStore(InMemorySettingsStore):
    """Settings loaded once from a YAML / JSON / TOML file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser().resolve()
        super().__init__(load_settings_file(self.path))


def load_settings_file(path: str | Path) -> dict[str, AISettings]:
    """Read a ``{user_id: settings}`` mapping from *path*.

    The suffix picks the parser; unknown suffixes try JSON, then YAML.
    """
    path = Path(path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    raw = path.read_text(encoding="utf-8")

    if path.suffix in (".yaml", ".yml"):
        import yaml
        data = yaml.safe_load(raw) or {}
    elif path.suffix == ".json":
        data = json.loads(raw)
    elif path.suffix == ".toml":
        try:
            import tomllib
        except ImportError:
            import tomli as tomllib  # type: ignore[no-redef]
        data = tomllib.loads(raw)
    else:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            import yaml
            data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping of user ids")

    return {str(user_id): _coerce(entry) for user_id, entry in data.items()}


def _coerce(entry: Any) -> AISettings:
    if not isinstance(entry, dict):
        raise ValueError(f"User settings must be a mapping, got {type(entry).__name__}")
    # Empty strings in hand-edited files mean "not set"
    cleaned = {k: v for k, v in entry.items() if v not in ("", None)}
    return AISettings(**cleaned)


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

def get_user_ai_settings(user_id: str, store: SettingsStore | None) -> AISettings:
    """Return *user_id*'s settings, falling back to ``DEFAULT_SETTINGS``.

    A failing store is logged and treated like a user with no settings, so
    generation can still proceed on the system key.
    """
    if store is None:
        return DEFAULT_SETTINGS
    try:
        settings = store.get(user_id)
    except Exception as exc:
        logger.warning("Could not read AI settings for user %s: %s", user_id, exc)
        return DEFAULT_SETTINGS
    return settings or DEFAULT_SETTINGS
