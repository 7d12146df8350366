"""
Purpose: The single orchestration point for chat turns. Owns the session
store, the LLM client and the background title worker.
It centralizes "one-turn" logic (send_message) and the derived actions
(titles, feedback, sharing) so the UI never touches the model or storage.

Key responsibilities:
- Append the user message and an empty assistant placeholder.
- Stream the reply, patching the placeholder once per fragment.
- Replace the placeholder with a fixed apology on any transport failure.
- Keep `loading` true exactly while a turn is in flight.
- Kick off title generation at the 2- and 4-message checkpoints.

Stream updates always target the session the turn started on. Switching or
creating chats mid-stream does not cancel the call; the reply keeps landing in
its original (possibly hidden) session. If that session is deleted, the
remaining fragments are dropped by the store.

Testing: Pure unit tests with a scripted fake LLMClient and in-memory storage.
"""

from __future__ import annotations
import logging
import threading
import weakref
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional

from .interfaces import LLMClient, PromptFactory, SecurityGuard
from .models import ChatSession, Feedback, LLMSettings, Message, Role
from .persistence.session_store import SessionStore
from .prompts import DefaultPromptFactory
from .services import share_codec, title_generator
from .services.security import DefaultSecurity

logger = logging.getLogger(__name__)

ERROR_REPLY = "Sorry, I encountered an error. Please check your connection and try again."
FIRST_TITLE_CHECKPOINT = 2
SECOND_TITLE_CHECKPOINT = 4

UpdateCallback = Callable[[str, Message], None]


class TurnInProgressError(RuntimeError):
    """A reply is still streaming into this session."""


class ChatSessionController:
    def __init__(
        self,
        llm: LLMClient,
        store: SessionStore,
        *,
        settings: Optional[LLMSettings] = None,
        title_model: str = "gpt-4o-mini",
        share_max_chars: int = share_codec.MAX_TOKEN_CHARS,
        share_param: str = share_codec.SHARE_PARAM,
        title_executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.llm: LLMClient = llm
        self.store = store
        self.prompts: PromptFactory = DefaultPromptFactory()
        self.security: SecurityGuard = DefaultSecurity()
        self.settings = settings or LLMSettings(model="gpt-4o-mini")
        self.title_model = title_model
        self.share_max_chars = share_max_chars
        self.share_param = share_param

        self._executor = title_executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="ayugpt-title"
        )
        self._owns_executor = title_executor is None
        self._pending: set[Future] = set()
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    @property
    def loading(self) -> bool:
        """True while any reply is streaming; the UI disables input on it."""
        with self._lock:
            return bool(self._in_flight)

    # ---------------------------
    # Session surface
    # ---------------------------
    def current_session(self) -> Optional[ChatSession]:
        return self.store.current_session()

    def new_chat(self) -> ChatSession:
        return self.store.create_session()

    def select(self, session_id: str) -> None:
        self.store.select_session(session_id)

    def delete(self, session_id: str) -> None:
        self.store.delete_session(session_id)

    def clear_all(self) -> ChatSession:
        return self.store.clear_all()

    def search(self, query: str) -> list[ChatSession]:
        return self.store.search(query)

    def rename(self, session_id: str, title: str) -> None:
        """Manual rename from the UI."""
        clean = (title or "").strip()
        if not clean:
            raise ValueError("Title cannot be empty.")
        if self.store.set_title(session_id, clean) is None:
            raise KeyError(f"Session {session_id} not found")

    def toggle_feedback(
        self,
        message_id: str,
        feedback: Feedback | str,
        *,
        session_id: Optional[str] = None,
    ) -> Feedback:
        sid = session_id or self.store.current_session_id
        return self.store.set_feedback(sid, message_id, feedback)

    # ---------------------------
    # One turn
    # ---------------------------
    def send_message(
        self, content: str, *, on_update: Optional[UpdateCallback] = None
    ) -> tuple[str, dict]:
        """
        Run one user turn and return (reply_text, meta).
        Transport failures never raise: the placeholder gets ERROR_REPLY and
        meta["ok"] is False. Invalid input raises ValueError before any change.
        A rerun or stop raised by on_update is re-raised once the reply is stored.
        """
        self.security.validate_user_input(content)
        content = self.security.sanitize_for_prompt(content)

        session = self.store.current_session() or self.store.create_session()
        session_id = session.id
        with self._lock:
            if session_id in self._in_flight:
                raise TurnInProgressError(
                    f"Session {session_id} is still receiving a reply"
                )
            self._in_flight.add(session_id)

        history = session.messages
        user_msg = Message.user(content)
        placeholder = Message.assistant_placeholder()
        meta = {
            "session_id": session_id,
            "message_id": placeholder.id,
            "fragments": 0,
            "ok": False,
            "model": self.settings.model,
        }
        reply = ""
        # Control-flow exceptions raised by the UI callback (Streamlit's rerun
        # and stop) are held back until the stream is drained.
        interrupt: Optional[BaseException] = None

        def notify(message: Optional[Message]) -> None:
            nonlocal interrupt
            if message is None or on_update is None or interrupt is not None:
                return
            try:
                on_update(session_id, message)
            except Exception:
                raise
            except BaseException as e:
                logger.info("UI interrupted session %s; finishing reply", session_id)
                interrupt = e

        try:
            self.store.update_messages(session_id, history + (user_msg,))
            self.store.update_messages(session_id, history + (user_msg, placeholder))

            messages = self.prompts.assemble(history=history, user_text=content)
            for fragment in self.llm.chat_stream(
                messages, self.settings, system=self.prompts.chat_system()
            ):
                if not fragment:
                    continue
                reply += fragment
                meta["fragments"] += 1
                notify(
                    self.store.patch_message(session_id, placeholder.id, content=reply)
                )
            meta["ok"] = True
        except Exception:
            logger.exception("Streaming reply failed for session %s", session_id)
            reply = ERROR_REPLY
            notify(self.store.patch_message(session_id, placeholder.id, content=reply))
        except BaseException:
            # Never leave a partial reply behind.
            self.store.patch_message(session_id, placeholder.id, content=ERROR_REPLY)
            raise
        finally:
            with self._lock:
                self._in_flight.discard(session_id)

        if meta["ok"]:
            self._maybe_generate_title(session_id)
        if interrupt is not None:
            raise interrupt
        return reply, meta

    # ---------------------------
    # Titles
    # ---------------------------
    def _maybe_generate_title(self, session_id: str) -> Optional[Future]:
        session = self.store.get(session_id)
        if session is None:
            return None
        count = len(session.messages)
        first = count == FIRST_TITLE_CHECKPOINT
        still_generic = count == SECOND_TITLE_CHECKPOINT and session.has_generic_title
        if not (first or still_generic):
            return None

        seed = "\n".join(m.content for m in session.messages if m.role == Role.USER)
        future = self._executor.submit(self._apply_generated_title, session_id, seed)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _apply_generated_title(self, session_id: str, seed: str) -> str:
        title = title_generator.generate_title(
            seed, self.llm, prompts=self.prompts, model=self.title_model
        )
        if title:
            self.store.set_title(session_id, title)
            logger.info("Titled session %s: %s", session_id, title)
        return title

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def wait_for_background(self, timeout: Optional[float] = None) -> bool:
        """Block until queued title jobs finish. Returns False on timeout."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _done, not_done = wait(pending, timeout=timeout)
        return not not_done

    def suggest_titles(self, session_id: Optional[str] = None) -> list[str]:
        """AI-suggested alternatives for the rename dialog."""
        session = self.store.get(session_id) if session_id else self.store.current_session()
        if session is None:
            return []
        return title_generator.generate_title_suggestions(
            session.messages, self.llm, prompts=self.prompts, model=self.title_model
        )

    # ---------------------------
    # Sharing
    # ---------------------------
    def share_link(
        self, base_url: str, session_id: Optional[str] = None
    ) -> tuple[Optional[str], Optional[str]]:
        """
        Returns (link, None) or (None, user-facing error). Oversized chats are
        refused instead of producing a link that would be truncated.
        """
        session = self.store.get(session_id) if session_id else self.store.current_session()
        if session is None or not session.messages:
            return None, "There is nothing to share yet."
        try:
            token = share_codec.encode(session.messages, max_chars=self.share_max_chars)
        except share_codec.ShareTooLargeError as e:
            logger.info("Share refused for session %s: %s", session.id, e)
            return None, str(e)
        return share_codec.build_share_url(base_url, token, param=self.share_param), None

    # ---------------------------
    # Teardown
    # ---------------------------
    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        self.store.close()


class ControllerRegistry:
    """
    Process-wide set of live controllers, closed together by one exit hook.
    Holds weak references, so a controller whose browser session ended is
    released normally.
    """

    def __init__(self) -> None:
        self._live: "weakref.WeakSet[ChatSessionController]" = weakref.WeakSet()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._live)

    def add(self, controller: ChatSessionController) -> ChatSessionController:
        with self._lock:
            self._live.add(controller)
        return controller

    def close_all(self) -> None:
        with self._lock:
            live = list(self._live)
        for controller in live:
            try:
                controller.close()
            except Exception:
                logger.exception("Failed to close controller")
