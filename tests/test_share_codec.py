"""Tests for ayugpt.services.share_codec."""

import base64
import json
import zlib

import pytest

from ayugpt.models import Feedback, Message, Role
from ayugpt.services.share_codec import (
    ShareDecodeError,
    ShareTooLargeError,
    build_share_url,
    decode,
    encode,
    extract_share_token,
)


def _conversation():
    return [
        Message(id="u1", role=Role.USER, content="Ashwagandha dosage?", timestamp=1700000000000),
        Message(
            id="a1",
            role=Role.ASSISTANT,
            content="**Ashwagandha** (अश्वगंधा): 300–600 mg\n- with warm milk",
            timestamp=1700000001234,
            feedback=Feedback.UP,
        ),
        Message(id="a2", role=Role.ASSISTANT, content="", timestamp=1, feedback=Feedback.DOWN),
    ]


def _token_for(payload) -> str:
    raw = zlib.compress(json.dumps(payload).encode("utf-8"))
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def test_round_trip_preserves_every_field():
    messages = _conversation()
    assert decode(encode(messages)) == messages


def test_round_trip_empty_list():
    assert decode(encode([])) == []


def test_token_is_url_safe():
    token = encode(_conversation())
    assert all(c.isalnum() or c in "-_" for c in token)


def test_oversized_input_is_refused():
    rng_text = "".join(chr(0x4E00 + (i * 7919) % 20000) for i in range(40000))
    big = [Message(id="u1", role=Role.USER, content=rng_text, timestamp=1)]
    with pytest.raises(ShareTooLargeError) as exc:
        encode(big)
    assert exc.value.limit == 20000
    assert exc.value.size > 20000


def test_custom_ceiling():
    with pytest.raises(ShareTooLargeError):
        encode(_conversation(), max_chars=10)


@pytest.mark.parametrize(
    "token",
    [
        "",
        "   ",
        "not-base64!!",
        base64.urlsafe_b64encode(b"plain text, not zlib").decode(),
        _token_for({"not": "a list"}),
        _token_for([{"id": "x", "role": "wizard", "content": "", "timestamp": 1}]),
        _token_for([{"id": "x", "role": "user", "timestamp": 1}]),
        _token_for(["just a string"]),
    ],
)
def test_malformed_tokens_raise_decode_error(token):
    with pytest.raises(ShareDecodeError):
        decode(token)


def test_build_share_url_replaces_existing_param():
    url = build_share_url("https://a.example/app?share=old&x=1", "TOKEN")
    assert url == "https://a.example/app?x=1&share=TOKEN"


def test_extract_share_token():
    assert extract_share_token({"share": " abc "}) == "abc"
    assert extract_share_token({"share": ["abc", "def"]}) == "abc"
    assert extract_share_token({"share": ""}) is None
    assert extract_share_token({}) is None
    assert extract_share_token({"s": "abc"}, param="s") == "abc"
