"""
Purpose: Single source of truth for the chat session collection and the
currently selected session, with debounced durable persistence.
Why: UI code only calls these operations; it never mutates sessions directly,
so the invariants below hold no matter which widget triggered the change.

Invariants:
- session ids are unique;
- whenever the collection is non-empty the current id names one of its sessions;
- an empty collection never survives an operation (a fresh session is created).

Persistence: every mutation (re)schedules one write of the whole collection
under a single key; bursts (one mutation per streamed token) collapse into a
single write. Stores opened from a shared link are ephemeral and never write.

Testing: InMemoryBlobStorage + a manual timer factory; flush()/close() for
deterministic writes.
"""

from __future__ import annotations
import json
import logging
import threading
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional

from ..interfaces import BlobStorage
from ..models import ChatSession, Feedback, Message, SHARED_TITLE, new_id
from ..services import share_codec
from .debounce import Debouncer, TimerFactory

logger = logging.getLogger(__name__)

STORAGE_KEY = "ayugpt_sessions"
STORAGE_VERSION = 1


def serialize_sessions(sessions: Iterable[ChatSession]) -> str:
    payload = {
        "version": STORAGE_VERSION,
        "sessions": [s.to_dict() for s in sessions],
    }
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def deserialize_sessions(raw: str) -> list[ChatSession]:
    """Parse a persisted blob. Accepts the versioned layout and a bare list."""
    data: Any = json.loads(raw)
    if isinstance(data, dict):
        version = data.get("version")
        if version != STORAGE_VERSION:
            raise ValueError(f"Unsupported session blob version: {version!r}")
        data = data.get("sessions")
    if not isinstance(data, list):
        raise ValueError("Session blob must contain a list of sessions.")
    return [ChatSession.from_dict(item) for item in data]


class SessionStore:
    def __init__(
        self,
        storage: BlobStorage,
        *,
        key: str = STORAGE_KEY,
        sessions: Iterable[ChatSession] = (),
        debounce_seconds: float = 1.0,
        ephemeral: bool = False,
        timer_factory: Optional[TimerFactory] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._storage = storage
        self.key = key
        self.ephemeral = ephemeral
        self._lock = threading.RLock()
        # Serialises storage writes; never held together with _lock by flush().
        self._write_lock = threading.Lock()
        self._revision = 0
        self._written_revision = -1
        self._sessions: list[ChatSession] = []
        self._current_id: Optional[str] = None
        debouncer_kwargs: dict[str, Any] = {}
        if timer_factory:
            debouncer_kwargs["timer_factory"] = timer_factory
        if clock:
            debouncer_kwargs["clock"] = clock
        self._debouncer = Debouncer(debounce_seconds, self.flush, **debouncer_kwargs)

        seen: set[str] = set()
        for session in sessions:
            if session.id in seen:
                logger.warning("Dropping duplicate session id %s", session.id)
                continue
            seen.add(session.id)
            self._sessions.append(session)

        if self._sessions:
            self._current_id = self._sessions[0].id
        else:
            self.create_session()

    # ---------------------------
    # Construction
    # ---------------------------
    @classmethod
    def load(cls, storage: BlobStorage, *, key: str = STORAGE_KEY, **kwargs) -> "SessionStore":
        """Open from storage; absent or corrupt state starts with one fresh session."""
        sessions: list[ChatSession] = []
        raw = storage.get(key)
        if raw:
            try:
                sessions = deserialize_sessions(raw)
            except (ValueError, TypeError) as e:
                logger.warning("Discarding unreadable persisted sessions: %s", e)
                sessions = []
        return cls(storage, key=key, sessions=sessions, **kwargs)

    @classmethod
    def from_shared(
        cls,
        messages: Iterable[Message],
        storage: BlobStorage,
        *,
        key: str = STORAGE_KEY,
        **kwargs,
    ) -> "SessionStore":
        """One ephemeral 'Shared Chat' session; persisted sessions stay untouched."""
        shared = ChatSession(id=new_id(), title=SHARED_TITLE, messages=tuple(messages))
        kwargs["ephemeral"] = True
        return cls(storage, key=key, sessions=[shared], **kwargs)

    # ---------------------------
    # Reads
    # ---------------------------
    @property
    def sessions(self) -> tuple[ChatSession, ...]:
        with self._lock:
            return tuple(self._sessions)

    @property
    def current_session_id(self) -> Optional[str]:
        with self._lock:
            self._ensure_current()
            return self._current_id

    def current_session(self) -> Optional[ChatSession]:
        with self._lock:
            self._ensure_current()
            return self.get(self._current_id) if self._current_id else None

    def get(self, session_id: str) -> Optional[ChatSession]:
        with self._lock:
            idx = self._index(session_id)
            return self._sessions[idx] if idx is not None else None

    def search(self, query: str) -> list[ChatSession]:
        """Case-insensitive title substring filter; blank query returns all."""
        needle = (query or "").strip().casefold()
        with self._lock:
            if not needle:
                return list(self._sessions)
            return [s for s in self._sessions if needle in s.title.casefold()]

    # ---------------------------
    # Mutations
    # ---------------------------
    def create_session(self) -> ChatSession:
        session = ChatSession.new()
        with self._lock:
            self._sessions.insert(0, session)
            self._current_id = session.id
            self._mutated()
        logger.debug("Created session %s", session.id)
        return session

    def select_session(self, session_id: str) -> None:
        with self._lock:
            if self._index(session_id) is None:
                raise KeyError(f"Session {session_id} not found")
            self._current_id = session_id

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            idx = self._index(session_id)
            if idx is None:
                return
            del self._sessions[idx]
            if self._current_id == session_id:
                if self._sessions:
                    self._current_id = self._sessions[0].id
                else:
                    self._current_id = None
                    self.create_session()
            self._mutated()
        logger.debug("Deleted session %s", session_id)

    def clear_all(self) -> ChatSession:
        with self._lock:
            self._sessions = []
            self._current_id = None
            self._debouncer.cancel()
            if not self.ephemeral:
                with self._write_lock:
                    self._storage.remove(self.key)
                    # Snapshots taken before the clear must not resurrect it.
                    self._written_revision = self._revision
            return self.create_session()

    def update_messages(
        self, session_id: str, messages: Iterable[Message]
    ) -> Optional[ChatSession]:
        """Replace a session's messages wholesale. Unknown ids are ignored."""
        return self._replace(session_id, messages=tuple(messages))

    def patch_message(
        self, session_id: str, message_id: str, **changes: Any
    ) -> Optional[Message]:
        """Copy-on-write update of one message; returns the new message."""
        with self._lock:
            idx = self._index(session_id)
            if idx is None:
                logger.debug("Dropping patch for missing session %s", session_id)
                return None
            session = self._sessions[idx]
            if session.find_message(message_id) is None:
                logger.debug("Dropping patch for missing message %s", message_id)
                return None
            updated = session.replace_message(message_id, **changes)
            self._sessions[idx] = updated
            self._mutated()
            return updated.find_message(message_id)

    def set_title(self, session_id: str, title: str) -> Optional[ChatSession]:
        return self._replace(session_id, title=title)

    def set_feedback(
        self, session_id: str, message_id: str, feedback: Feedback | str
    ) -> Feedback:
        """Toggle feedback: same value clears it, a different value replaces it."""
        requested = Feedback(feedback)
        with self._lock:
            session = self.get(session_id)
            if session is None:
                raise KeyError(f"Session {session_id} not found")
            message = session.find_message(message_id)
            if message is None:
                raise KeyError(f"Message {message_id} not found")
            new_value = message.feedback.toggled(requested)
            self.patch_message(session_id, message_id, feedback=new_value)
            return new_value

    # ---------------------------
    # Persistence
    # ---------------------------
    def flush(self) -> None:
        """Write the collection now. No-op for ephemeral stores."""
        if self.ephemeral:
            return
        with self._lock:
            revision = self._revision
            payload = serialize_sessions(self._sessions)
            count = len(self._sessions)
        with self._write_lock:
            # A slower flush holding an older snapshot never overwrites a newer one.
            if revision < self._written_revision:
                logger.debug("Skipping stale write (revision %d)", revision)
                return
            self._storage.set(self.key, payload)
            self._written_revision = revision
        logger.debug("Persisted %d sessions", count)

    def close(self) -> None:
        """Teardown: cancel the pending timer and write the final state."""
        self._debouncer.cancel()
        self.flush()

    # ---------------------------
    # Internals
    # ---------------------------
    def _index(self, session_id: Optional[str]) -> Optional[int]:
        for idx, session in enumerate(self._sessions):
            if session.id == session_id:
                return idx
        return None

    def _ensure_current(self) -> None:
        if self._sessions and self._index(self._current_id) is None:
            self._current_id = self._sessions[0].id

    def _replace(self, session_id: str, **changes: Any) -> Optional[ChatSession]:
        with self._lock:
            idx = self._index(session_id)
            if idx is None:
                logger.debug("Ignoring update for missing session %s", session_id)
                return None
            updated = replace(self._sessions[idx], **changes)
            self._sessions[idx] = updated
            self._mutated()
            return updated

    def _mutated(self) -> None:
        self._revision += 1
        if not self.ephemeral:
            self._debouncer.trigger()


def open_store(
    storage: BlobStorage,
    *,
    shared_token: Optional[str] = None,
    key: str = STORAGE_KEY,
    **kwargs,
) -> SessionStore:
    """
    Startup path. A shared-link token takes precedence over persisted state;
    an undecodable token is ignored and the persisted sessions load instead.
    """
    if shared_token:
        try:
            messages = share_codec.decode(shared_token)
        except share_codec.ShareDecodeError as e:
            logger.warning("Ignoring shared link: %s", e)
        else:
            logger.info("Opened shared chat with %d messages", len(messages))
            return SessionStore.from_shared(messages, storage, key=key, **kwargs)
    return SessionStore.load(storage, key=key, **kwargs)
