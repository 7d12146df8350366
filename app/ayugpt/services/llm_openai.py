"""
Purpose: Thin client wrapper around the OpenAI SDK (any OpenAI-compatible
endpoint, e.g. Gemini's via base_url).
One place for auth, retries, model options, response normalization.

Two call shapes:
- chat(): one short completion (titles, JSON-schema constrained suggestions).
  Transient errors are retried with back-off.
- chat_stream(): yields text fragments of a single assistant reply in arrival
  order. Never retried: a stream that failed half-way cannot be resumed.

Testing: Mock SDK calls; assert it maps messages, fragments and usage.
"""

from __future__ import annotations
import logging
import time
from typing import Iterator, Optional
from ..models import LLMSettings

from openai import OpenAI
from openai import APIError, RateLimitError, APITimeoutError

logger = logging.getLogger(__name__)

RETRY_DELAYS = (0.5, 1.0, 2.0)


class OpenAILLMClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        retry_delays: tuple[float, ...] = RETRY_DELAYS,
    ):
        self.api_key = api_key
        if not self.api_key:
            raise RuntimeError("Missing API key (set AYUGPT_OPENAI_API_KEY)")
        self.retry_delays = retry_delays
        try:
            self.client = OpenAI(api_key=self.api_key, base_url=base_url)
        except Exception as e:
            raise RuntimeError(f"Failed to initialize OpenAI client: {e}") from e

    def _with_retries(self, fn, *args, **kwargs):
        for delay in self.retry_delays:
            try:
                return fn(*args, **kwargs)
            except (RateLimitError, APITimeoutError, APIError) as e:
                logger.warning("LLM call failed (%s), retrying in %.1fs", e, delay)
                time.sleep(delay)
        return fn(*args, **kwargs)

    @staticmethod
    def _payload(
        messages: list[dict[str, str]], system: Optional[str]
    ) -> list[dict[str, str]]:
        payload = []
        if system:
            payload.append({"role": "system", "content": system})
        payload.extend({"role": m["role"], "content": m["content"]} for m in messages)
        return payload

    def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> tuple[str, dict]:
        payload = self._payload(messages, system)
        extra = {}
        if settings.response_format:
            extra["response_format"] = settings.response_format

        def call_cc():
            return self.client.chat.completions.create(
                model=settings.model,
                messages=payload,
                temperature=settings.temperature,
                top_p=settings.top_p,
                max_tokens=settings.max_tokens,
                **extra,
            )

        cc = self._with_retries(call_cc)
        text = cc.choices[0].message.content or ""
        usage = getattr(cc, "usage", None)
        tokens_in = getattr(usage, "prompt_tokens", 0) if usage else 0
        tokens_out = getattr(usage, "completion_tokens", 0) if usage else 0
        return text, {
            "model": cc.model,
            "tokens_in": tokens_in,
            "tokens_out": tokens_out,
        }

    def chat_stream(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> Iterator[str]:
        payload = self._payload(messages, system)
        stream = self.client.chat.completions.create(
            model=settings.model,
            messages=payload,
            temperature=settings.temperature,
            top_p=settings.top_p,
            max_tokens=settings.max_tokens,
            stream=True,
        )
        try:
            for chunk in stream:
                if not chunk.choices:
                    continue
                text = getattr(chunk.choices[0].delta, "content", None)
                if text:
                    yield text
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()
