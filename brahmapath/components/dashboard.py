# brahmapath/components/dashboard.py
import datetime as dt

import streamlit as st

from brahmapath.actions import logout, save_journal
from brahmapath.bootstrap import LANDING
from brahmapath.content import ICONS, JOURNAL_PROMPTS, MILESTONES
from brahmapath.cycle import COMPLETED, LOCKED, CycleError
from brahmapath.milestones import earned_milestones, next_milestone, progress_ratio
from brahmapath.models import PROGRAM_DAYS
from brahmapath.plots import plot_mala


def _render_cycle_status(services):
    """Runs on every fragment rerun; the 24h reset is written here when due."""
    status = services.cycle.tick()
    profile = services.store.get()
    st.session_state["profile"] = profile

    st.subheader(f"Day {min(status.program_day, PROGRAM_DAYS)}")
    st.caption(f"{status.days_remaining} days remaining")

    if status.state == LOCKED:
        st.success("Sacred offering accepted. Your day is complete.")
        st.metric("Next unlock in", status.countdown or "")
        return
    if status.state == COMPLETED:
        st.success(f"You have completed all {PROGRAM_DAYS} days.")
        return

    video = st.file_uploader("Upload today's check-in video", type=["mp4", "mov", "webm"], key="checkin_video")
    if st.button("Submit check-in", type="primary", use_container_width=True, disabled=video is None):
        try:
            st.session_state["profile"] = services.cycle.check_in()
        except CycleError as e:
            st.error(str(e))
            return
        st.rerun()


def _render_journal(services, profile):
    st.subheader("Daily reflection")
    answers = {}
    for i, prompt in enumerate(JOURNAL_PROMPTS):
        answers[prompt] = st.text_area(prompt, key=f"journal_prompt_{i}")
    if st.button("Save journal", use_container_width=True):
        entry = save_journal(services.journal, profile, answers)
        if entry is not None:
            st.success("Journal saved successfully.")
        else:
            st.warning("Nothing to save yet.")

    st.divider()
    for e in services.journal.recent():
        with st.expander(f"Day {e.day} · {e.date.astimezone().strftime('%Y-%m-%d %H:%M')}"):
            for a in e.answers:
                st.markdown(f"**{a.prompt}**")
                st.write(a.answer)


def _render_badges(profile):
    earned = {m.day for m in earned_milestones(profile.last_completed_day)}
    cols = st.columns(len(MILESTONES))
    for col, m in zip(cols, MILESTONES):
        with col:
            icon = ICONS.get(m.icon, "") if m.day in earned else "🔒"
            st.markdown(f"### {icon}")
            st.markdown(f"**{m.title}**")
            st.caption(f"Day {m.day} · {m.description}")
    nxt = next_milestone(profile.last_completed_day)
    if nxt is not None:
        st.caption(f"{nxt.day - profile.last_completed_day} days until **{nxt.title}**")


def _render_sync_health(services):
    r = services.sync.last_result
    if not services.online:
        st.sidebar.caption("Local-only mode")
    elif r is None:
        st.sidebar.caption("Cloud sync: idle")
    else:
        when = r.at.astimezone().strftime("%H:%M")
        st.sidebar.caption(f"Cloud sync: {r.op} {r.status} ({when})")


def render_dashboard(services, tick_seconds: float = 60.0):
    profile = services.store.get()

    st.sidebar.markdown(f"**{profile.email or 'Seeker'}**")
    _render_sync_health(services)
    if st.sidebar.button("Log out", use_container_width=True):
        logout(services.store, services.sessions)
        st.session_state["profile"] = services.store.get()
        st.session_state["screen"] = LANDING
        st.rerun()

    tab_home, tab_progress, tab_journal, tab_badges = st.tabs(["Home", "Progress", "Journal", "Badges"])

    with tab_home:
        st.fragment(run_every=dt.timedelta(seconds=tick_seconds))(_render_cycle_status)(services)

    with tab_progress:
        st.progress(progress_ratio(profile.last_completed_day), text=f"{profile.last_completed_day} / {PROGRAM_DAYS}")
        st.pyplot(plot_mala(profile.last_completed_day))
        if profile.start_date is not None:
            st.caption(f"Started {profile.start_date.astimezone().strftime('%Y-%m-%d')}")

    with tab_journal:
        _render_journal(services, profile)

    with tab_badges:
        _render_badges(profile)
