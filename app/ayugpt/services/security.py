"""
Purpose: Guardrails for chat input.
Content: early, predictable failures before any session state changes;
prevent empty turns and oversized requests.
"""

MAX_INPUT_CHARS = 8000


class DefaultSecurity:
    def __init__(self, max_input_chars: int = MAX_INPUT_CHARS) -> None:
        self.max_input_chars = max_input_chars

    def validate_user_input(self, text: str) -> None:
        if not (text or "").strip():
            raise ValueError("Please enter a non-empty message.")
        if len(text) > self.max_input_chars:
            raise ValueError(
                f"Your message is too long ({len(text)} characters, "
                f"limit {self.max_input_chars})."
            )

    def sanitize_for_prompt(self, text: str) -> str:
        return (text or "").replace("\x00", "").strip()
