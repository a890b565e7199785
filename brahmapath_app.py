# brahmapath_app.py
from __future__ import annotations

import streamlit as st

from auth import get_services, render_auth_form
from brahmapath.bootstrap import (
    AUTH,
    COMMITMENT,
    DASHBOARD,
    LANDING,
    ONBOARDING,
    PAYMENT,
    select_screen,
)
from brahmapath.components.dashboard import render_dashboard
from brahmapath.components.screens import (
    render_commitment,
    render_landing,
    render_onboarding,
    render_payment,
)
from brahmapath.config import configure_logging, load_app_config


# ----------------------------
# Session init
# ----------------------------

def init_session(services):
    """
    Bootstrap once per browser session; later reruns reuse the result.
    The session-change subscription lives on services.bootstrapper (one per cached Services),
    so nothing is attached here.
    """
    if "screen" in st.session_state:
        return

    result = services.bootstrapper.run()
    st.session_state["profile"] = result.profile
    st.session_state["screen"] = result.screen


def main():
    st.set_page_config(page_title="Brahma Path", page_icon="🕉️", layout="centered")

    cfg = load_app_config(st.secrets if _has_secrets() else None)
    if not st.session_state.get("logging_configured"):
        configure_logging(cfg.log_level)
        st.session_state["logging_configured"] = True

    services = get_services(cfg)
    init_session(services)

    screen = st.session_state["screen"]
    if screen == LANDING:
        render_landing()
    elif screen == ONBOARDING:
        render_onboarding(services.store)
    elif screen == COMMITMENT:
        render_commitment()
    elif screen == AUTH:
        if render_auth_form(services):
            st.session_state["screen"] = select_screen(st.session_state["profile"])
            st.rerun()
    elif screen == PAYMENT:
        render_payment(services.store, services.sync)
    elif screen == DASHBOARD:
        render_dashboard(services, tick_seconds=cfg.tick_seconds)
    else:
        st.session_state["screen"] = select_screen(services.store.get())
        st.rerun()


def _has_secrets() -> bool:
    try:
        return len(st.secrets) > 0
    except Exception:
        # no secrets.toml
        return False


if __name__ == "__main__":
    main()
