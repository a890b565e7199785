# brahmapath/bootstrap.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional
import logging

from .models import UserProfile

logger = logging.getLogger(__name__)

# Screens
LANDING = "landing"
ONBOARDING = "onboarding"
COMMITMENT = "commitment"
AUTH = "auth"
PAYMENT = "payment"
DASHBOARD = "dashboard"


def select_screen(profile: UserProfile) -> str:
    if profile.is_authenticated and profile.has_paid:
        return DASHBOARD
    if profile.is_authenticated:
        return PAYMENT
    if profile.reason:
        return COMMITMENT
    return LANDING


@dataclass
class BootResult:
    profile: UserProfile
    screen: str


class SessionBootstrapper:
    """
    Startup reconciliation between the device profile and the remote session.
    Remote wins when a remote profile exists; otherwise the local profile seeds it.
    """
    def __init__(self, store, sync, sessions, cycle):
        self.store = store
        self.sync = sync
        self.sessions = sessions
        self.cycle = cycle
        self.profile: Optional[UserProfile] = None
        self.on_profile: Optional[Callable[[UserProfile], None]] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._last_user_id: Optional[str] = None

    def run(self) -> BootResult:
        # Not pushed until the remote record has been pulled.
        profile = self.cycle.reset_if_elapsed(notify=False)

        identity = self.sessions.current()
        if identity is not None:
            self._last_user_id = identity.user_id
            remote = self.sync.pull(identity.user_id)
            if remote is not None:
                self.store.replace(remote)
                profile = self.cycle.reset_if_elapsed()
            else:
                profile = self.store.update(id=identity.user_id, is_authenticated=True)
                self.sync.push(profile)

        self.profile = profile
        return BootResult(profile=profile, screen=select_screen(profile))

    # ---- session changes ----
    def _on_session_change(self, identity) -> None:
        if identity is None:
            self._last_user_id = None
            return
        if identity.user_id == self._last_user_id:
            return
        self._last_user_id = identity.user_id
        remote = self.sync.pull(identity.user_id)
        if remote is None:
            return
        self.profile = self.store.replace(remote)
        logger.info("profile refreshed from remote after session change (%s)", identity.user_id)
        if self.on_profile is not None:
            self.on_profile(self.profile)

    def attach(self) -> "SessionBootstrapper":
        if self._unsubscribe is None:
            self._unsubscribe = self.sessions.subscribe(self._on_session_change)
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "SessionBootstrapper":
        return self.attach()

    def __exit__(self, *exc) -> None:
        self.close()
