"""
Purpose: Derive short session titles from early conversation content.
Best-effort side operation: nothing here ever raises to the caller.

What is inside:
generate_title(seed_text) -> str            (fallback "Health Chat")
generate_title_suggestions(messages) -> list (fallback [])

Testing: Fake LLMClient returning canned text or raising; check cleaning,
truncation of the transcript and the fallbacks.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..interfaces import LLMClient, PromptFactory
from ..models import FALLBACK_TITLE, LLMSettings, Message
from ..prompts import DefaultPromptFactory
from ..prompts.common import clip_text, render_transcript
from ..prompts.titles import MAX_SUGGESTIONS, SUGGESTIONS_SCHEMA
from ..utils.llm_json import extract_json, string_list

logger = logging.getLogger(__name__)

MAX_TITLE_CHARS = 60
MAX_SEED_CHARS = 1000
SUGGESTION_TURNS = 6


def _title_settings(model: str) -> LLMSettings:
    return LLMSettings(model=model, temperature=0.3, top_p=1.0, max_tokens=24)


def clean_title(raw: str) -> str:
    """First line, without wrapping quotes/markdown or trailing punctuation."""
    line = next((ln.strip() for ln in (raw or "").splitlines() if ln.strip()), "")
    if line.lower().startswith("title:"):
        line = line[len("title:") :]
    line = line.strip("\"'`*#“”‘’ ").rstrip(".:;!")
    return clip_text(line, MAX_TITLE_CHARS)


def generate_title(
    seed_text: str,
    llm: LLMClient,
    *,
    settings: Optional[LLMSettings] = None,
    prompts: Optional[PromptFactory] = None,
    model: str = "gpt-4o-mini",
) -> str:
    prompts = prompts or DefaultPromptFactory()
    use_settings = settings or _title_settings(model)
    seed = clip_text((seed_text or "").strip(), MAX_SEED_CHARS)
    try:
        text, _meta = llm.chat(
            [{"role": "user", "content": prompts.title_instruction(seed_text=seed)}],
            use_settings,
        )
    except Exception as e:
        logger.warning("Title generation failed: %s", e)
        return FALLBACK_TITLE
    return clean_title(text) or FALLBACK_TITLE


def generate_title_suggestions(
    recent_messages: Sequence[Message],
    llm: LLMClient,
    *,
    settings: Optional[LLMSettings] = None,
    prompts: Optional[PromptFactory] = None,
    model: str = "gpt-4o-mini",
    max_turns: int = SUGGESTION_TURNS,
) -> list[str]:
    """Up to four alternative titles; only the last few turns are sent."""
    prompts = prompts or DefaultPromptFactory()
    tail = list(recent_messages)[-max_turns:] if max_turns else list(recent_messages)
    transcript = render_transcript(tail)
    if not transcript:
        return []

    use_settings = settings or LLMSettings(
        model=model,
        temperature=0.7,
        top_p=1.0,
        max_tokens=120,
        response_format=SUGGESTIONS_SCHEMA,
    )
    try:
        text, _meta = llm.chat(
            [
                {
                    "role": "user",
                    "content": prompts.title_suggestions_instruction(transcript=transcript),
                }
            ],
            use_settings,
        )
    except Exception as e:
        logger.warning("Title suggestions failed: %s", e)
        return []

    titles = string_list(extract_json(text), key="titles")
    cleaned: list[str] = []
    for t in titles:
        c = clean_title(t)
        if c and c not in cleaned:
            cleaned.append(c)
    return cleaned[:MAX_SUGGESTIONS]
