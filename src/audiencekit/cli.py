"""audiencekit CLI — run generations, check API keys, inspect the model catalogue."""

from __future__ import annotations

import asyncio
import json
import logging
import os

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table as RichTable

from . import __version__
from . import client
from .errors import AudienceKitError
from .llm.json_repair import decode_json_response
from .llm.models import AI_MODELS, PROVIDER_NAMES, AIProvider, get_models_for_provider
from .llm.providers import SUPPORTED_PROVIDERS
from .settings import FileSettingsStore

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _print_json(text: str) -> None:
    try:
        decoded = decode_json_response(text)
    except json.JSONDecodeError as exc:
        console.print(f"[bold red]❌ Response is not valid JSON:[/] {escape(str(exc))}")
        raise SystemExit(1)
    if decoded.repaired:
        console.print("[yellow]⚠  Response was incomplete; JSON recovered by repair[/]")
    console.print_json(data=decoded.value)


@click.group()
@click.version_option(version=__version__, prog_name="audiencekit")
def main():
    """audiencekit — AI generation for audience research content."""
    pass


@main.command()
@click.argument("prompt")
@click.option("-s", "--system", "system_prompt", default=None, help="System prompt.")
@click.option(
    "--max-tokens",
    type=click.IntRange(min=1),
    default=None,
    help="Output token cap (default: 4096).",
)
@click.option("--user", "user_id", default=None, help="Use this user's saved AI settings.")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(exists=True, dir_okay=False),
    envvar="AUDIENCEKIT_SETTINGS",
    default=None,
    help="YAML/JSON/TOML file of per-user AI settings (or set AUDIENCEKIT_SETTINGS).",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Parse the response as JSON.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging.")
def generate(
    prompt: str,
    system_prompt: str | None,
    max_tokens: int | None,
    user_id: str | None,
    settings_path: str | None,
    as_json: bool,
    verbose: bool,
):
    """Generate a completion for PROMPT with the configured provider."""
    _setup_logging(verbose)
    store = None
    if settings_path:
        try:
            store = FileSettingsStore(settings_path)
        except (ValueError, OSError, yaml.YAMLError, ValidationError) as exc:
            console.print(f"[bold red]❌ Invalid settings file {settings_path}:[/] {escape(str(exc))}")
            raise SystemExit(1)

    try:
        text = asyncio.run(client.generate_with_ai(
            prompt,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            user_id=user_id,
            settings_store=store,
        ))
    except AudienceKitError as exc:
        console.print(f"[bold red]❌ {escape(str(exc))}[/]")
        raise SystemExit(1)
    except Exception as exc:
        logger.debug("Generation failed", exc_info=True)
        console.print(f"[bold red]❌ Generation failed:[/] {escape(str(exc))}")
        raise SystemExit(1)

    if as_json:
        _print_json(text)
    else:
        console.print(text, markup=False, highlight=False)


@main.command("test-key")
@click.argument("provider", type=click.Choice(SUPPORTED_PROVIDERS, case_sensitive=False))
@click.option(
    "--api-key",
    default=None,
    help="Key to check (default: the provider's system key from the environment).",
)
def test_key(provider: str, api_key: str | None):
    """Check that an API key for PROVIDER is valid."""
    p = AIProvider(provider)
    key = api_key or os.environ.get(client.SYSTEM_KEY_ENV_VARS[p], "")
    if not key:
        console.print(
            f"[bold red]❌ No API key given.[/] Pass --api-key or set "
            f"{client.SYSTEM_KEY_ENV_VARS[p]}."
        )
        raise SystemExit(1)

    result = asyncio.run(client.test_api_key(p, key))
    if result.valid:
        console.print(f"[green]✓[/] {PROVIDER_NAMES[p]} key is valid")
    else:
        console.print(f"[red]✗[/] {PROVIDER_NAMES[p]}: {result.error}")
        raise SystemExit(1)


@main.command()
@click.option(
    "--provider",
    type=click.Choice(SUPPORTED_PROVIDERS, case_sensitive=False),
    default=None,
    help="Only list models for this provider.",
)
def models(provider: str | None):
    """List the selectable models."""
    entries = get_models_for_provider(provider) if provider else AI_MODELS

    table = RichTable(title="Available Models", show_lines=False)
    table.add_column("ID", style="bold cyan")
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("Input / 1M", justify="right")
    table.add_column("Output / 1M", justify="right")
    table.add_column("Notes", style="dim")

    for m in entries:
        name = f"{m.name} [green]★[/]" if m.recommended else m.name
        table.add_row(
            m.id,
            name,
            PROVIDER_NAMES[m.provider],
            m.input_price or "-",
            m.output_price or "-",
            m.description,
        )

    console.print(table)


@main.command("repair-json")
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
def repair_json(source):
    """Extract JSON from a raw completion in SOURCE (default: stdin)."""
    _print_json(source.read())


if __name__ == "__main__":
    main()
