"""Handlebars rendering of agent system prompts."""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

import pybars

from storyteller.models import Character
from storyteller.world import WorldSnapshot

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_join(this, items, separator=", "):
    """{{{join array ", "}}}: items joined into one string."""
    return separator.join(str(item) for item in items or [])


_HELPERS: dict[str, Callable] = {
    "join": _helper_join,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Agent system prompt ──────────────────────────────────

SYSTEM_TEMPLATE = """\
You are {{{name}}}{{#if title}}, known as "{{{title}}}"{{/if}}.

## Character
**Backstory:** {{{personality.backstory}}}
**Motivation:** {{{personality.motivation}}}
**Personality traits:** {{{join personality.traits ", "}}}
{{#if personality.fears}}**Fears:** {{{join personality.fears ", "}}}
{{/if}}{{#if personality.quirks}}**Quirks:** {{{join personality.quirks "; "}}}
{{/if}}
## How You Speak
**Vocabulary:** {{{speech_style.vocabulary}}}
**Style:** {{{speech_style.sentence_length}}}
{{#if speech_style.common_phrases}}**Phrases you might use:** {{{join speech_style.common_phrases " / "}}}
{{/if}}{{#if speech_style.avoid_phrases}}**Never say:** {{{join speech_style.avoid_phrases ", "}}}
{{/if}}
## Your Secret Agenda (do not reveal directly)
**Short-term goal:** {{{hidden_agenda.short_term_goal}}}
**Long-term goal:** {{{hidden_agenda.long_term_goal}}}
**Your secret:** {{{hidden_agenda.secret}}}
**You may hint at your secret when:** {{{join hidden_agenda.reveal_conditions "; "}}}

{{#if world}}## Current World State
{{{world}}}

{{/if}}{{#if knowledge}}## Your Knowledge
Use this information to answer the player accurately:
{{#each knowledge}}- {{{this}}}
{{/each}}
{{/if}}## Rules
- Stay in character at all times
- Never break the fourth wall or mention being an AI
- Keep responses concise (1-3 paragraphs usually)
- You exist in the game world - reference its places, creatures and biomes naturally
- Give hints for adventures but don't solve everything for the player
- Remember details the player shares and reference them later
- Your hidden agenda should subtly influence your suggestions
{{#if external}}
## Something Just Happened
{{{external}}}
{{/if}}{{#if summary}}
## Conversation Context
{{{summary}}}
{{/if}}"""


def build_system_prompt(
    character: Character,
    world: WorldSnapshot | None = None,
    external_context: str | None = None,
    summary: str | None = None,
    knowledge: list[str] | None = None,
) -> str:
    """Assemble the full system prompt for one request.

    Optional sections are left out entirely when their input is None or empty.
    """
    ctx = character.model_dump()
    ctx["world"] = world.to_prompt() if world is not None else ""
    ctx["external"] = external_context or ""
    ctx["summary"] = summary or ""
    ctx["knowledge"] = list(knowledge or [])
    text = render_prompt(SYSTEM_TEMPLATE, ctx)
    return re.sub(r"\n{3,}", "\n\n", text).strip() + "\n"
