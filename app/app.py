"""
UI layer
Purpose: Streamlit-only glue. Renders the chat sidebar and transcript, collects
user input, and delegates all work to the controller. Keeps UI concerns
(layout/state widgets) separate from the session engine so logic can be unit
tested without Streamlit.
"""

import atexit
import logging

import streamlit as st

from ayugpt.config import get_settings
from ayugpt.controller import (
    ChatSessionController,
    ControllerRegistry,
    TurnInProgressError,
)
from ayugpt.models import Feedback, Role
from ayugpt.persistence.blob_storage import FileBlobStorage
from ayugpt.persistence.session_store import open_store
from ayugpt.services.llm_openai import OpenAILLMClient
from ayugpt.services.share_codec import extract_share_token

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("ayugpt.app")

# ---------------------------
# Page config
# ---------------------------
st.set_page_config(
    page_title="AyuGPT",
    page_icon="🌿",
    layout="wide",
    initial_sidebar_state="expanded",
)

EXAMPLE_PROMPTS = [
    "What are the best herbs for boosting immunity?",
    "Suggest a diet plan for Kapha body type.",
]

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
st_session.setdefault("controller", None)
st_session.setdefault("search", "")
st_session.setdefault("share_link", None)
st_session.setdefault("pending_prompt", None)


# ---------------------------
# Helpers
# ---------------------------
def get_controller():
    """Return the controller object."""
    return st_session.get("controller")


@st.cache_resource
def shared_storage() -> FileBlobStorage:
    """
    One storage per server process. Sessions live in a single file under
    settings.data_dir, so a deployment serves one user; run one instance (or
    one AYUGPT_DATA_DIR / AYUGPT_STORAGE_KEY) per user.
    """
    return FileBlobStorage(settings.data_dir)


@st.cache_resource
def controller_registry() -> ControllerRegistry:
    """Live controllers of every browser session; flushed once at server exit."""
    registry = ControllerRegistry()
    atexit.register(registry.close_all)
    return registry


def build_controller(api_key: str) -> ChatSessionController:
    """Open the store (shared link first, then persisted state) and wire the LLM."""
    token = extract_share_token(st.query_params, param=settings.share_query_param)
    store = open_store(
        shared_storage(),
        shared_token=token,
        key=settings.storage_key,
        debounce_seconds=settings.persist_debounce_seconds,
    )
    if token:
        # Drop the parameter from the address bar; no reload.
        del st.query_params[settings.share_query_param]

    llm = OpenAILLMClient(api_key=api_key, base_url=settings.openai_base_url)
    controller = ChatSessionController(
        llm,
        store,
        settings=settings.chat_settings(),
        title_model=settings.title_model,
        share_max_chars=settings.share_max_chars,
        share_param=settings.share_query_param,
    )
    # Final flush of the debounced write when the server stops.
    controller_registry().add(controller)
    logger.info(
        "Controller ready: %d session(s), shared=%s", len(store.sessions), store.ephemeral
    )
    return controller


@st.dialog("Rename chat")
def rename_dialog(session_id: str, current_title: str):
    controller = get_controller()
    new_title = st.text_input("Title", value=current_title)

    st.caption("AI suggestions")
    if st.button("Suggest titles"):
        with st.spinner("Thinking…"):
            st_session[f"suggestions_{session_id}"] = controller.suggest_titles(session_id)
    suggestions = st_session.get(f"suggestions_{session_id}", [])
    if suggestions:
        for i, suggestion in enumerate(suggestions):
            if st.button(suggestion, key=f"suggestion_{session_id}_{i}"):
                controller.rename(session_id, suggestion)
                st.rerun()
    else:
        st.caption("No suggestions yet.")

    if st.button("Save", type="primary"):
        try:
            controller.rename(session_id, new_title)
        except ValueError as e:
            st.error(str(e))
        else:
            st.rerun()


def render_message(controller: ChatSessionController, session_id: str, msg) -> None:
    with st.chat_message(msg.role.value):
        st.markdown(msg.content)
        if msg.role != Role.ASSISTANT or not msg.content:
            return
        c1, c2, c3 = st.columns([1, 1, 10])
        up_label = "👍" if msg.feedback != Feedback.UP else "👍 ✓"
        down_label = "👎" if msg.feedback != Feedback.DOWN else "👎 ✓"
        if c1.button(up_label, key=f"up_{msg.id}"):
            controller.toggle_feedback(msg.id, Feedback.UP, session_id=session_id)
            st.rerun()
        if c2.button(down_label, key=f"down_{msg.id}"):
            controller.toggle_feedback(msg.id, Feedback.DOWN, session_id=session_id)
            st.rerun()
        with c3.expander("Copy"):
            st.code(msg.content, language=None)


def run_turn(controller: ChatSessionController, text: str) -> None:
    """Render the user bubble, then stream the assistant reply into place."""
    with st.chat_message(Role.USER.value):
        st.markdown(text)
    with st.chat_message(Role.ASSISTANT.value):
        placeholder = st.empty()
        placeholder.markdown("…")

        def on_update(_session_id, message):
            placeholder.markdown(message.content)

        try:
            controller.send_message(text, on_update=on_update)
        except (ValueError, TurnInProgressError) as e:
            st.toast(str(e), icon="⚠️")
            return
    st_session.share_link = None
    st.rerun()


# ---------------------------
# SIDEBAR: key, sessions
# ---------------------------
with st.sidebar:
    st.markdown("# 🌿 AyuGPT")

    api_key = settings.openai_api_key
    if not api_key:
        api_key = st.text_input(
            "Enter your API key",
            type="password",
            help="We do not store your key. It stays in your session only.",
        )
    if not api_key:
        st.warning("Please enter your API key in the sidebar to continue.")
        st.stop()

    if get_controller() is None:
        try:
            st_session.controller = build_controller(api_key)
        except RuntimeError as e:
            st.error(f"Client init failed: {e}")
            st.stop()

    controller = get_controller()

    if st.button("➕ New chat", use_container_width=True):
        controller.new_chat()
        st_session.share_link = None
        st.rerun()

    st_session.search = st.text_input("Search chats", value=st_session.search)
    current_id = controller.store.current_session_id
    for session in controller.search(st_session.search):
        c1, c2 = st.columns([5, 1])
        label = ("▶ " if session.id == current_id else "") + session.title
        if c1.button(label, key=f"select_{session.id}", use_container_width=True):
            controller.select(session.id)
            st_session.share_link = None
            st.rerun()
        if c2.button("🗑", key=f"delete_{session.id}"):
            controller.delete(session.id)
            st.rerun()

    st.divider()
    if st.button("Clear all chats", use_container_width=True):
        controller.clear_all()
        st.toast("All chats cleared.", icon="🧹")
        st.rerun()


# ---------------------------
# Main: transcript & input
# ---------------------------
session = controller.current_session()

header_col, rename_col, share_col = st.columns([8, 1, 1])
header_col.subheader(session.title)
if rename_col.button("✏️", help="Rename"):
    rename_dialog(session.id, session.title)
if share_col.button("🔗", help="Share"):
    link, error = controller.share_link(settings.public_url, session.id)
    if error:
        st.error(error)
    st_session.share_link = link
if st_session.share_link:
    st.code(st_session.share_link, language=None)

if not session.messages:
    st.markdown("### How can I help with your health today?")
    cols = st.columns(len(EXAMPLE_PROMPTS))
    for col, prompt in zip(cols, EXAMPLE_PROMPTS):
        if col.button(prompt, use_container_width=True):
            st_session.pending_prompt = prompt
    st.caption("I am an AI, not a doctor. Always consult a professional.")

for msg in session.messages:
    render_message(controller, session.id, msg)

raw = st.chat_input("Ask about Ayurveda, diet, yoga…", disabled=controller.loading)
text = raw or st_session.pending_prompt
st_session.pending_prompt = None
if text is not None:
    if not text.strip():
        st.toast("Please enter a non-empty message.", icon="⚠️")
    else:
        run_turn(controller, text.strip())
