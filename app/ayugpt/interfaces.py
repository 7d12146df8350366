"""
Abstractions for pluggable services. Inversion of control: the store and the
controller depend on these protocols, not on the OpenAI SDK or a filesystem.
Enables fakes in tests and future swaps (browser storage, other providers).

Common protocols:
- LLMClient.chat(messages, settings) -> (reply, meta)
- LLMClient.chat_stream(messages, settings) -> Iterator[str]
- BlobStorage.get/set/remove(key)
- PromptFactory.chat_system() & assemble(...)
- SecurityGuard.validate_user_input(text)

Testing: Use simple fake implementations to test the controller without network calls.
"""

from __future__ import annotations
from typing import Iterator, Optional, Protocol

from .models import LLMSettings, Message


class LLMClient(Protocol):
    def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> tuple[str, dict]: ...

    def chat_stream(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> Iterator[str]: ...


class BlobStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class PromptFactory(Protocol):
    def chat_system(self) -> str: ...

    def assemble(
        self, *, history: list[Message], user_text: str
    ) -> list[dict[str, str]]: ...

    def title_instruction(self, *, seed_text: str) -> str: ...

    def title_suggestions_instruction(self, *, transcript: str) -> str: ...


class SecurityGuard(Protocol):
    def validate_user_input(self, text: str) -> None: ...

    def sanitize_for_prompt(self, text: str) -> str: ...
