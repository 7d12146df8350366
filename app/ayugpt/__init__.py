"""AyuGPT: chat-session state engine for an Ayurveda/wellness chat client."""

from .controller import ChatSessionController, TurnInProgressError, ERROR_REPLY
from .models import ChatSession, Feedback, Message, Role, DEFAULT_TITLE
from .persistence.session_store import SessionStore, open_store

__version__ = "0.1.0"

__all__ = [
    "ChatSessionController",
    "TurnInProgressError",
    "ERROR_REPLY",
    "ChatSession",
    "Feedback",
    "Message",
    "Role",
    "DEFAULT_TITLE",
    "SessionStore",
    "open_store",
]
