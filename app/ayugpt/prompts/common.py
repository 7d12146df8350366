"""Shared prompt helpers used across prompt modules."""

from __future__ import annotations
from typing import Iterable

from ..models import Message, Role


def clip_text(s: str, max_chars: int) -> str:
    """Clip text to max_chars, adding ellipsis if clipped."""
    if len(s) <= max_chars:
        return s
    return s[: max_chars - 1].rstrip() + "…"


def to_wire(history: Iterable[Message]) -> list[dict[str, str]]:
    """Map stored messages to {role, content} pairs, skipping empty turns."""
    return [
        {"role": m.role.value, "content": m.content}
        for m in history
        if m.content.strip()
    ]


def assemble(*, history: Iterable[Message], user_text: str) -> list[dict[str, str]]:
    """Prior history followed by the new user turn."""
    msgs = to_wire(history)
    msgs.append({"role": Role.USER.value, "content": user_text})
    return msgs


def render_transcript(messages: Iterable[Message], max_chars_per_message: int = 500) -> str:
    lines = []
    for m in messages:
        content = m.content.strip()
        if not content:
            continue
        speaker = "User" if m.role == Role.USER else "AyuGPT"
        lines.append(f"{speaker}: {clip_text(content, max_chars_per_message)}")
    return "\n".join(lines)
