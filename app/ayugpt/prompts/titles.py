"""Prompts for session titles and rename suggestions."""

from __future__ import annotations
from textwrap import dedent

MAX_SUGGESTIONS = 4

SUGGESTIONS_SCHEMA = {
    "type": "json_schema",
    "json_schema": {
        "name": "title_suggestions",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "titles": {
                    "type": "array",
                    "items": {"type": "string"},
                }
            },
            "required": ["titles"],
            "additionalProperties": False,
        },
    },
}


def title_instruction(*, seed_text: str) -> str:
    return (
        "Generate a very short, concise title (max 4-5 words) for a "
        "health/ayurveda related conversation that starts with this message: "
        f'"{seed_text}". Do not use quotes.'
    )


def title_suggestions_instruction(*, transcript: str) -> str:
    header = dedent(
        f"""
        Suggest {MAX_SUGGESTIONS} short, distinct titles (max 5 words each) for
        this health/ayurveda conversation. Return JSON: {{"titles": ["..."]}}.
        """
    ).strip()
    return f"{header}\n\nConversation:\n{transcript}"
