"""Tests for ayugpt.services.llm_openai with the OpenAI SDK mocked out."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from openai import APITimeoutError

from ayugpt.models import LLMSettings


def _chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


def _completion(text):
    return SimpleNamespace(
        model="gpt-4o-mini",
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3),
    )


@pytest.fixture
def sdk():
    with patch("ayugpt.services.llm_openai.OpenAI") as openai_cls:
        yield openai_cls.return_value


@pytest.fixture
def client(sdk):
    from ayugpt.services.llm_openai import OpenAILLMClient

    return OpenAILLMClient(api_key="sk-test", retry_delays=(0.0, 0.0))


def test_missing_key_raises():
    from ayugpt.services.llm_openai import OpenAILLMClient

    with pytest.raises(RuntimeError):
        OpenAILLMClient(api_key="")


def test_base_url_is_forwarded():
    with patch("ayugpt.services.llm_openai.OpenAI") as openai_cls:
        from ayugpt.services.llm_openai import OpenAILLMClient

        OpenAILLMClient(api_key="k", base_url="https://example.test/v1/")
    openai_cls.assert_called_once_with(api_key="k", base_url="https://example.test/v1/")


def test_chat_stream_yields_non_empty_fragments_in_order(client, sdk):
    stream = MagicMock()
    stream.__iter__.return_value = iter(
        [_chunk("Nam"), _chunk(None), SimpleNamespace(choices=[]), _chunk(""), _chunk("aste")]
    )
    sdk.chat.completions.create.return_value = stream

    fragments = list(
        client.chat_stream(
            [{"role": "user", "content": "hi"}], LLMSettings(model="m"), system="sys"
        )
    )

    assert fragments == ["Nam", "aste"]
    kwargs = sdk.chat.completions.create.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "hi"},
    ]
    stream.close.assert_called_once()


def test_chat_stream_is_not_retried(client, sdk):
    sdk.chat.completions.create.side_effect = APITimeoutError(request=MagicMock())
    with pytest.raises(APITimeoutError):
        list(client.chat_stream([], LLMSettings(model="m")))
    assert sdk.chat.completions.create.call_count == 1


def test_chat_returns_text_and_usage(client, sdk):
    sdk.chat.completions.create.return_value = _completion("Herbal Remedies")
    fmt = {"type": "json_object"}
    text, meta = client.chat(
        [{"role": "user", "content": "t"}], LLMSettings(model="m", response_format=fmt)
    )
    assert text == "Herbal Remedies"
    assert meta == {"model": "gpt-4o-mini", "tokens_in": 12, "tokens_out": 3}
    assert sdk.chat.completions.create.call_args.kwargs["response_format"] == fmt


def test_chat_retries_transient_errors(client, sdk):
    sdk.chat.completions.create.side_effect = [
        APITimeoutError(request=MagicMock()),
        _completion("ok"),
    ]
    text, _meta = client.chat([], LLMSettings(model="m"))
    assert text == "ok"
    assert sdk.chat.completions.create.call_count == 2
