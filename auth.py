# auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging

import streamlit as st
import gspread
from google.oauth2.service_account import Credentials

from brahmapath.actions import complete_auth
from brahmapath.bootstrap import SessionBootstrapper
from brahmapath.config import AppConfig
from brahmapath.cycle import DailyCycle
from brahmapath.models import utc_now
from storage.gsheets import BrahmaGSheets, GSheetsConfig
from storage.journal_store import JournalStore
from storage.local_kv import JsonFileKV
from storage.profile_store import ProfileStore
from storage.sessions import AuthError, SessionService
from storage.sync import RemoteSync

logger = logging.getLogger(__name__)


# ----------------------------
# Service factory
# ----------------------------

def make_gspread_client_from_secrets() -> gspread.Client:
    """
    Expects Streamlit secrets:
      st.secrets["gcp_service_account"] = { ... service account json ... }
    """
    if "gcp_service_account" not in st.secrets:
        raise RuntimeError("Missing st.secrets['gcp_service_account'] for Google service account credentials.")

    creds = Credentials.from_service_account_info(
        st.secrets["gcp_service_account"],
        scopes=[
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive",
        ],
    )
    return gspread.authorize(creds)


@dataclass
class Services:
    store: ProfileStore
    journal: JournalStore
    sync: RemoteSync
    sessions: SessionService
    cycle: DailyCycle
    bootstrapper: SessionBootstrapper
    remote: Optional[BrahmaGSheets] = None

    @property
    def online(self) -> bool:
        return self.remote is not None


def build_services(kv, remote: Optional[BrahmaGSheets] = None, clock=None) -> Services:
    """Wire the stores once; every consumer gets these instances passed in."""
    store = ProfileStore(kv)
    sync = RemoteSync(remote, store)
    cycle = DailyCycle(store, clock=clock or utc_now, on_change=sync.push)
    sessions = SessionService(kv, remote)
    return Services(
        store=store,
        journal=JournalStore(kv),
        sync=sync,
        sessions=sessions,
        cycle=cycle,
        bootstrapper=SessionBootstrapper(store, sync, sessions, cycle),
        remote=remote,
    )


def get_services(cfg: AppConfig) -> Services:
    """
    Cached services instance.
    Falls back to local-only mode when the spreadsheet can't be reached.
    """
    @st.cache_resource
    def _build(data_dir: str, spreadsheet_name: str, profiles_ws: str, create_profiles_ws: bool) -> Services:
        kv = JsonFileKV(data_dir)
        remote: Optional[BrahmaGSheets] = None
        try:
            gc = make_gspread_client_from_secrets()
            remote = BrahmaGSheets(
                gc,
                GSheetsConfig(
                    spreadsheet_name=spreadsheet_name,
                    profiles_ws=profiles_ws,
                    create_profiles_ws=create_profiles_ws,
                ),
            )
        except Exception as e:
            logger.warning("remote store unavailable, running local-only: %s", e)
        services = build_services(kv, remote)
        # One session subscription per cached instance; browser sessions only call run().
        services.bootstrapper.attach()
        return services

    return _build(cfg.data_dir, cfg.spreadsheet_name, cfg.profiles_ws, cfg.create_profiles_ws)


# ----------------------------
# UI
# ----------------------------

def render_auth_form(services: Services) -> bool:
    """
    Sign up / sign in screen. Errors are shown inline and never touch local progress.
    Returns True once an identity has been bound to the local profile.
    """
    st.header("Begin Journey")
    st.caption("Secure your progress forever.")
    if not services.online:
        st.info("Accounts need the cloud connection. Your progress is kept on this device.")

    tab_signup, tab_signin = st.tabs(["Create Account", "Sign In"])

    identity = None
    with tab_signup:
        email = st.text_input("Email", key="auth_signup_email")
        password = st.text_input("Password", type="password", key="auth_signup_password")
        if st.button("Create Account", type="primary", use_container_width=True, key="auth_signup_btn"):
            try:
                identity = services.sessions.sign_up(email, password)
            except AuthError as e:
                st.error(str(e))

    with tab_signin:
        email = st.text_input("Email", key="auth_signin_email")
        password = st.text_input("Password", type="password", key="auth_signin_password")
        if st.button("Sign In", use_container_width=True, key="auth_signin_btn"):
            try:
                identity = services.sessions.sign_in(email, password)
            except AuthError as e:
                st.error(str(e))

    if identity is None:
        return False
    st.session_state["profile"] = complete_auth(services.store, services.sync, identity)
    return True
