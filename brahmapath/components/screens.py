# brahmapath/components/screens.py
import streamlit as st

from brahmapath.actions import complete_onboarding, complete_payment
from brahmapath.bootstrap import AUTH, COMMITMENT, DASHBOARD, ONBOARDING
from brahmapath.content import REASONS
from brahmapath.models import PROGRAM_DAYS

MIN_AGE = 15


def _go(screen: str):
    st.session_state["screen"] = screen
    st.rerun()


def render_landing():
    st.title("Brahma Path")
    st.markdown(f"*The Sacred {PROGRAM_DAYS}-Day Journey to Self-Mastery*")
    st.caption("Reclaim your energy, strength, and spiritual power through ancient wisdom.")
    if st.button("Begin Your Journey", type="primary", use_container_width=True):
        _go(ONBOARDING)


def render_onboarding(store):
    st.subheader("Enter your age")
    age = st.number_input("Age", min_value=MIN_AGE, max_value=60, value=21, step=1)
    st.caption(f"Minimum age {MIN_AGE} years required.")

    st.subheader("What do you want to overcome?")
    for i, reason in enumerate(REASONS):
        if st.button(reason, key=f"onboarding_reason_{i}", use_container_width=True):
            st.session_state["profile"] = complete_onboarding(store, int(age), reason)
            st.toast("You have entered the Brahma Path!")
            _go(COMMITMENT)


def render_commitment():
    st.header("The Sacred Commitment")
    st.caption(f"{PROGRAM_DAYS} days that will transform your life forever")
    c1, c2 = st.columns(2)
    with c1:
        st.markdown("💪 **Physical**  \nClean Lungs & Body")
        st.markdown("🕉️ **Spiritual**  \nInner Purity")
    with c2:
        st.markdown("🧠 **Mental**  \nFocus & Clarity")
        st.markdown("🚀 **Success**  \nDiscipline & Will")
    st.info("Through discipline, one conquers even death. (Atharva Veda)")
    if st.button("I Am Ready", type="primary", use_container_width=True):
        _go(AUTH)


def render_payment(store, sync):
    st.header("You Are One Decision Away")
    st.caption("From becoming the strongest version of yourself.")
    for item in (
        f"{PROGRAM_DAYS} days of guided teachings",
        "Daily check-ins with a 24-hour rhythm",
        "Journal and milestone badges",
        "Completion Certificate",
    ):
        st.markdown(f"✓ {item}")

    c1, c2 = st.columns([1, 3])
    with c1:
        if st.button("Back"):
            _go(AUTH)
    with c2:
        if st.button("Begin My Journey • ₹10", type="primary", use_container_width=True):
            st.session_state["profile"] = complete_payment(store, sync)
            _go(DASHBOARD)
