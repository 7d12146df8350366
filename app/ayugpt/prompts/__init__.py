"""Facade over the prompt modules; the controller only sees DefaultPromptFactory."""

from __future__ import annotations
from typing import Iterable

from ..models import Message
from . import chat as _chat
from . import titles as _titles
from .common import assemble as _assemble


class DefaultPromptFactory:
    # CHAT
    def chat_system(self) -> str:
        return _chat.build_chat_system()

    def assemble(
        self, *, history: Iterable[Message], user_text: str
    ) -> list[dict[str, str]]:
        return _assemble(history=history, user_text=user_text)

    # TITLES
    def title_instruction(self, *, seed_text: str) -> str:
        return _titles.title_instruction(seed_text=seed_text)

    def title_suggestions_instruction(self, *, transcript: str) -> str:
        return _titles.title_suggestions_instruction(transcript=transcript)
