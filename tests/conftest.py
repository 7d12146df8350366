"""Shared fakes: scripted LLM client, manual timers, in-memory storage."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Iterable, Optional

import pytest

from ayugpt.controller import ChatSessionController
from ayugpt.persistence.blob_storage import InMemoryBlobStorage
from ayugpt.persistence.session_store import SessionStore


class FakeLLM:
    """
    chat_stream yields the scripted fragments, optionally raising part-way.
    chat returns canned replies (or raises) and records every prompt.
    """

    def __init__(
        self,
        fragments: Iterable[str] = ("Hi", " there", "!"),
        *,
        fail_after: Optional[int] = None,
        chat_reply: str = "Immunity Herbs",
        chat_error: Optional[Exception] = None,
    ):
        self.fragments = list(fragments)
        self.fail_after = fail_after
        self.chat_reply = chat_reply
        self.chat_error = chat_error
        self.stream_calls: list[dict] = []
        self.chat_calls: list[dict] = []

    def chat_stream(self, messages, settings, system=None):
        self.stream_calls.append({"messages": messages, "settings": settings, "system": system})
        for i, fragment in enumerate(self.fragments):
            if self.fail_after is not None and i >= self.fail_after:
                raise ConnectionError("network down")
            yield fragment
        if self.fail_after is not None and self.fail_after >= len(self.fragments):
            raise ConnectionError("network down")

    def chat(self, messages, settings, system=None):
        self.chat_calls.append({"messages": messages, "settings": settings, "system": system})
        if self.chat_error is not None:
            raise self.chat_error
        return self.chat_reply, {"model": settings.model, "tokens_in": 1, "tokens_out": 1}


class ManualTimer:
    """
    threading.Timer stand-in that only fires when the test says so.
    The class also acts as the clock: fire() advances `now` to the timer's due time.
    """

    created: list["ManualTimer"] = []
    now: float = 0.0

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.due = ManualTimer.now + interval
        self.daemon = False
        self.started = False
        self.cancelled = False
        ManualTimer.created.append(self)

    @classmethod
    def clock(cls):
        return cls.now

    @classmethod
    def advance(cls, seconds):
        cls.now += seconds

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        ManualTimer.now = max(ManualTimer.now, self.due)
        self.function()


class ImmediateExecutor:
    """Runs submitted jobs inline so title effects are visible synchronously."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


@pytest.fixture
def manual_timers():
    ManualTimer.created = []
    ManualTimer.now = 0.0
    yield ManualTimer
    ManualTimer.created = []


@pytest.fixture
def storage():
    return InMemoryBlobStorage()


@pytest.fixture
def store(storage, manual_timers):
    return SessionStore.load(
        storage, timer_factory=manual_timers, clock=manual_timers.clock
    )


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def executor():
    return ImmediateExecutor()


@pytest.fixture
def controller(fake_llm, store, executor):
    return ChatSessionController(fake_llm, store, title_executor=executor)
