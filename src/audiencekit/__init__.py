"""audiencekit — AI generation core for audience research content.

Modules
-------
llm.providers  — Anthropic / OpenAI / Google adapters behind one contract
llm.json_repair — fence stripping and truncation repair for JSON completions
llm.models     — provider ids and the model catalogue
settings       — per-user AI settings and their stores
client         — ``generate_with_ai`` and friends
cli            — command-line interface
"""

__version__ = "0.1.0"
