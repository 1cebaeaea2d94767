"""
Kids Registration Kiosk
Streamlit entry point: sign-up form plus live roster.
"""
import logging
import streamlit as st

from src.ui.kiosk import render_kiosk
from src.utils.config import get_settings
from src.utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)


st.set_page_config(
    page_title="Kids Registration",
    page_icon="🎈",
    layout="wide",
    initial_sidebar_state="collapsed"
)


def apply_custom_css():
    """Apply kiosk styling."""
    st.markdown("""
        <style>
        .stApp {
            background: linear-gradient(135deg, #fdf2f8 0%, #ede9fe 50%, #e0f2fe 100%);
        }

        #MainMenu {visibility: hidden;}
        footer {visibility: hidden;}
        header, [data-testid="stHeader"] {
            visibility: hidden;
            height: 0;
        }

        .stButton > button, .stFormSubmitButton > button {
            border-radius: 999px;
            font-weight: 600;
        }
        </style>
    """, unsafe_allow_html=True)


def main():
    """Application entry point."""
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        apply_custom_css()
        st.title("🎈 Kids Registration")
        render_kiosk(settings=settings)
    except Exception as e:
        logger.exception("Unhandled exception during app execution")
        st.error("Something went wrong. Please refresh the page.")

        with st.expander("🔍 Error details"):
            st.code(str(e))

        if st.button("🔄 Refresh"):
            st.session_state.clear()
            st.rerun()


if __name__ == "__main__":
    main()
