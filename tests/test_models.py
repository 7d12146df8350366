"""Tests for ayugpt.models."""

import pytest

from ayugpt.models import DEFAULT_TITLE, FALLBACK_TITLE, ChatSession, Feedback, Message, Role


@pytest.mark.parametrize(
    "current, requested, expected",
    [
        (Feedback.NONE, Feedback.UP, Feedback.UP),
        (Feedback.UP, Feedback.UP, Feedback.NONE),
        (Feedback.UP, Feedback.DOWN, Feedback.DOWN),
        (Feedback.DOWN, Feedback.UP, Feedback.UP),
        (Feedback.DOWN, Feedback.DOWN, Feedback.NONE),
    ],
)
def test_feedback_toggle(current, requested, expected):
    assert current.toggled(requested) is expected


def test_feedback_json_mapping():
    assert Feedback.NONE.to_json() is None
    assert Feedback.UP.to_json() == "up"
    assert Feedback.from_json(None) is Feedback.NONE
    assert Feedback.from_json("down") is Feedback.DOWN


def test_message_dict_layout():
    msg = Message(id="m", role=Role.ASSISTANT, content="c", timestamp=5)
    assert msg.to_dict() == {
        "id": "m",
        "role": "assistant",
        "content": "c",
        "timestamp": 5,
        "feedback": None,
    }


@pytest.mark.parametrize(
    "data",
    [
        {"role": "user", "content": "x", "timestamp": 1},
        {"id": "m", "role": "user", "content": 3, "timestamp": 1},
        {"id": "m", "role": "user", "content": "x", "timestamp": "soon"},
        {"id": "m", "role": "user", "content": "x", "timestamp": True},
        {"id": "m", "role": "user", "content": "x", "timestamp": 1, "feedback": "meh"},
    ],
)
def test_message_from_dict_rejects_bad_shapes(data):
    with pytest.raises(ValueError):
        Message.from_dict(data)


def test_new_session_defaults():
    session = ChatSession.new()
    assert session.title == DEFAULT_TITLE
    assert session.messages == ()
    assert session.has_generic_title


def test_generic_titles():
    assert ChatSession(id="a", title=FALLBACK_TITLE).has_generic_title
    assert not ChatSession(id="a", title="Kapha Diet").has_generic_title


def test_replace_message_is_copy_on_write():
    a = Message(id="a", role=Role.USER, content="q", timestamp=1)
    b = Message(id="b", role=Role.ASSISTANT, content="", timestamp=2)
    session = ChatSession(id="s", messages=(a, b))
    updated = session.replace_message("b", content="answer")
    assert session.messages[1].content == ""
    assert updated.messages[1].content == "answer"
    assert updated.messages[0] is a
