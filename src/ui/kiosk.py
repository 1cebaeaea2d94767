"""Kiosk UI: registration form, confirmation dialog and live roster."""
from typing import List, Optional

import streamlit as st

from src.models.registrant import CATEGORIES, CATEGORY_LABELS, MAX_AGE, MIN_AGE, Registrant
from src.models.result import RosterStatus
from src.services.registration_service import register_registrant
from src.services.roster_service import get_status, list_registrants, preview_registration_code
from src.services.setup_service import SETUP_STEPS
from src.services.storage_service import RosterStore, get_store
from src.ui.html_utils import escape_text, html_block
from src.utils.config import Settings, get_settings
from src.utils.date_utils import format_timestamp
from src.utils.validation import validate_age, validate_category, validate_nickname

CATEGORY_STYLES = {
    "boy": {"emoji": "👦", "color": "#60a5fa"},
    "girl": {"emoji": "👧", "color": "#f472b6"},
    "other": {"emoji": "🧒", "color": "#a78bfa"},
}

DIALOG_DECORATOR = getattr(st, "dialog", None) or getattr(st, "experimental_dialog", None)

CONFIRM_FLAG = "kiosk_confirm_open"
PENDING_KEY = "kiosk_pending_submission"
FEEDBACK_KEY = "kiosk_feedback"


def _ensure_state() -> None:
    """Ensure kiosk state keys exist."""
    if CONFIRM_FLAG not in st.session_state:
        st.session_state[CONFIRM_FLAG] = False
    if PENDING_KEY not in st.session_state:
        st.session_state[PENDING_KEY] = None


def _close_confirmation() -> None:
    st.session_state[CONFIRM_FLAG] = False
    st.session_state[PENDING_KEY] = None


def _render_registrant_card(registrant: Registrant, index: Optional[int] = None) -> str:
    """Build HTML for one roster entry."""
    style = CATEGORY_STYLES.get(registrant.category, CATEGORY_STYLES["other"])
    position = f"#{index} " if index is not None else ""
    return html_block(f"""
        <div style="border-left: 4px solid {style['color']}; padding: 0.5rem 0.75rem; margin-bottom: 0.5rem;">
            <div style="font-weight: 600;">{position}{style['emoji']} {escape_text(registrant.nickname)}</div>
            <div style="font-size: 0.85rem; opacity: 0.8;">
                Age {registrant.age} · {registrant.category_label} · {format_timestamp(registrant.created_at)}
            </div>
            <div style="font-family: monospace; color: {style['color']};">{registrant.registration_code}</div>
        </div>
    """)


def _first_form_error(nickname: str, age: int, category: Optional[str]) -> str:
    """Client-side check mirroring the core validation; empty string if valid."""
    for is_valid, error_msg in (
        validate_nickname(nickname),
        validate_category(category),
        validate_age(age),
    ):
        if not is_valid:
            return error_msg
    return ""


def render_setup_instructions(store_path: str) -> None:
    """Render setup guidance when the roster store is missing."""
    st.warning("⚠️ Setup Required")
    st.markdown("The registration database hasn't been created yet. Please follow these steps:")
    for number, step in enumerate(SETUP_STEPS, start=1):
        st.markdown(f"{number}. {step}")
    st.caption(f"Roster file: `{store_path}`")

    if st.button("🔄 Check Setup Again", use_container_width=True):
        st.rerun()


def _render_confirmation(store: RosterStore, status: RosterStatus, settings: Settings) -> None:
    """Render confirmation content for the pending submission."""
    pending = st.session_state.get(PENDING_KEY)
    if not pending:
        _close_confirmation()
        return

    style = CATEGORY_STYLES[pending["category"]]
    st.markdown(f"### {style['emoji']} {pending['nickname']}")
    st.caption(f"Age {pending['age']} · {CATEGORY_LABELS[pending['category']]}")
    st.markdown(f"Your registration number will be about: `{preview_registration_code(status, settings=settings)}`")

    cols = st.columns(2, gap="small")
    with cols[0]:
        if st.button("Cancel", key="kiosk_confirm_cancel", use_container_width=True):
            _close_confirmation()
            st.rerun()

    with cols[1]:
        if st.button("Yes, register me!", key="kiosk_confirm_submit", use_container_width=True, type="primary"):
            result = register_registrant(
                pending["nickname"],
                pending["age"],
                pending["category"],
                store=store,
                settings=settings,
            )
            if result.success:
                st.session_state[FEEDBACK_KEY] = {
                    "type": "success",
                    "message": f"🎉 {result.message}",
                }
                _close_confirmation()
                st.rerun()
            else:
                st.error(f"❌ {result.message}")


def _render_form() -> None:
    """Render the submission form; valid input opens the confirmation step."""
    with st.form("kiosk_registration_form", clear_on_submit=False):
        nickname = st.text_input("Nickname", max_chars=50, placeholder="What should we call you?")
        age = st.number_input("Age", min_value=MIN_AGE, max_value=MAX_AGE, value=8, step=1)
        category = st.radio(
            "I am a...",
            options=list(CATEGORIES),
            format_func=lambda value: f"{CATEGORY_STYLES[value]['emoji']} {CATEGORY_LABELS[value]}",
            horizontal=True,
            index=None,
        )
        submitted = st.form_submit_button("Register", use_container_width=True, type="primary")

    if not submitted:
        return

    error_msg = _first_form_error(nickname, int(age), category)
    if error_msg:
        st.error(f"❌ {error_msg}")
        return

    st.session_state[PENDING_KEY] = {
        "nickname": nickname.strip(),
        "age": int(age),
        "category": category,
    }
    st.session_state[CONFIRM_FLAG] = True


def render_roster(registrants: List[Registrant]) -> None:
    """Render the live roster, newest first."""
    st.subheader(f"📋 Registered ({len(registrants)})")
    if not registrants:
        st.info("No one has registered yet. Be the first!")
        return

    total = len(registrants)
    for offset, registrant in enumerate(registrants):
        st.markdown(_render_registrant_card(registrant, index=total - offset), unsafe_allow_html=True)


def render_kiosk(store: Optional[RosterStore] = None, settings: Optional[Settings] = None) -> None:
    """Render the whole kiosk page."""
    _ensure_state()
    settings = settings or get_settings()
    store = store or get_store(settings)

    status = get_status(store)
    if not status.initialized:
        render_setup_instructions(settings.data_file)
        return

    feedback = st.session_state.pop(FEEDBACK_KEY, None)
    if feedback:
        st.success(feedback["message"])

    form_col, roster_col = st.columns([1, 1], gap="large")

    with form_col:
        st.subheader("✍️ Sign up")
        st.caption(f"Next registration number: {preview_registration_code(status, settings=settings)}")
        _render_form()

    with roster_col:
        render_roster(list_registrants(store, newest_first=True))

    if st.session_state.get(CONFIRM_FLAG):
        if DIALOG_DECORATOR:
            @DIALOG_DECORATOR("Confirm registration")
            def _dialog():
                _render_confirmation(store, status, settings)

            _dialog()
        else:
            st.warning("Dialogs are not supported here; confirm below.")
            _render_confirmation(store, status, settings)
