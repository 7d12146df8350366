"""Tests for ayugpt.services.title_generator."""

import pytest

from ayugpt.models import FALLBACK_TITLE, Message, Role
from ayugpt.prompts.titles import SUGGESTIONS_SCHEMA
from ayugpt.services.title_generator import (
    clean_title,
    generate_title,
    generate_title_suggestions,
)

from .conftest import FakeLLM


def _messages(n):
    out = []
    for i in range(n):
        role = Role.USER if i % 2 == 0 else Role.ASSISTANT
        out.append(Message(id=f"m{i}", role=role, content=f"turn {i}", timestamp=i))
    return out


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Herbs for Immunity", "Herbs for Immunity"),
        ('"Herbs for Immunity."', "Herbs for Immunity"),
        ("Title: **Kapha Diet Plan**", "Kapha Diet Plan"),
        ("\n\n  Yoga for Sleep  \nextra line", "Yoga for Sleep"),
        ("", ""),
    ],
)
def test_clean_title(raw, expected):
    assert clean_title(raw) == expected


def test_clean_title_clips_long_output():
    assert len(clean_title("word " * 40)) <= 60


def test_generate_title_uses_seed():
    llm = FakeLLM(chat_reply="Immunity Boosting Herbs")
    assert generate_title("best herbs for immunity", llm) == "Immunity Boosting Herbs"
    prompt = llm.chat_calls[0]["messages"][0]["content"]
    assert '"best herbs for immunity"' in prompt


def test_generate_title_falls_back_on_error():
    llm = FakeLLM(chat_error=TimeoutError("slow"))
    assert generate_title("hello", llm) == FALLBACK_TITLE


def test_generate_title_falls_back_on_blank_reply():
    assert generate_title("hello", FakeLLM(chat_reply='  ""  ')) == FALLBACK_TITLE


def test_suggestions_parse_object_and_limit_to_four():
    llm = FakeLLM(chat_reply='{"titles": ["A", "B", "B", " ", "C", "D", "E"]}')
    assert generate_title_suggestions(_messages(2), llm) == ["A", "B", "C", "D"]
    assert llm.chat_calls[0]["settings"].response_format == SUGGESTIONS_SCHEMA


def test_suggestions_accept_fenced_array():
    llm = FakeLLM(chat_reply='```json\n["Pitta Cooling Foods", "Summer Diet"]\n```')
    assert generate_title_suggestions(_messages(2), llm) == ["Pitta Cooling Foods", "Summer Diet"]


def test_suggestions_only_send_recent_turns():
    llm = FakeLLM(chat_reply='{"titles": ["X"]}')
    generate_title_suggestions(_messages(10), llm, max_turns=4)
    prompt = llm.chat_calls[0]["messages"][0]["content"]
    assert "turn 5" not in prompt
    assert "turn 6" in prompt and "turn 9" in prompt


@pytest.mark.parametrize("reply", ["no json here", '{"other": 1}', "[1, 2]"])
def test_suggestions_unparseable_reply_gives_empty(reply):
    assert generate_title_suggestions(_messages(2), FakeLLM(chat_reply=reply)) == []


def test_suggestions_error_gives_empty():
    llm = FakeLLM(chat_error=ConnectionError("down"))
    assert generate_title_suggestions(_messages(2), llm) == []


def test_suggestions_without_content_skip_the_call():
    llm = FakeLLM()
    assert generate_title_suggestions([], llm) == []
    assert llm.chat_calls == []
