# storage/sessions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional
import json
import logging

from .security import password_policy_error, email_policy_error

logger = logging.getLogger(__name__)

SESSION_KEY = "brahma_path_session"


class AuthError(Exception):
    """Credential / account problems. The message is shown to the user as-is."""


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str = ""


SessionListener = Callable[[Optional[Identity]], None]


class SessionService:
    """
    Device session over the remote users sheet.
    - the active identity is remembered in the local kv so it survives restarts
    - listeners receive the new identity (or None) on every sign in / sign out
    """
    def __init__(self, kv, directory, key: str = SESSION_KEY):
        self.kv = kv
        self.directory = directory
        self.key = key
        self._listeners: List[SessionListener] = []

    # ---- session ----
    def current(self) -> Optional[Identity]:
        raw = self.kv.get(self.key)
        if not raw:
            return None
        try:
            obj = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(obj, dict) or not obj.get("user_id"):
            return None
        return Identity(user_id=str(obj["user_id"]), email=str(obj.get("email", "") or ""))

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, identity: Optional[Identity]) -> None:
        for fn in list(self._listeners):
            try:
                fn(identity)
            except Exception:
                logger.exception("session listener failed")

    def _set(self, identity: Optional[Identity]) -> None:
        if identity is None:
            self.kv.delete(self.key)
        else:
            self.kv.set(self.key, json.dumps({"user_id": identity.user_id, "email": identity.email}))
        self._emit(identity)

    # ---- auth ----
    def _require_directory(self) -> None:
        if self.directory is None:
            raise AuthError("Accounts are unavailable in offline mode.")

    def sign_up(self, email: str, password: str) -> Identity:
        self._require_directory()
        msg = email_policy_error(email) or password_policy_error(password)
        if msg:
            raise AuthError(msg)
        try:
            row = self.directory.create_user(email, password)
        except Exception as e:
            logger.error("sign up failed: %s", e)
            raise AuthError("Sign up is unavailable right now. Please try again.") from e
        if row is None:
            raise AuthError("An account with this email already exists.")
        identity = Identity(user_id=str(row["user_id"]), email=str(row.get("email", email)))
        self._set(identity)
        return identity

    def sign_in(self, email: str, password: str) -> Identity:
        self._require_directory()
        if not str(email or "").strip() or not password:
            raise AuthError("Please enter email and password.")
        try:
            row = self.directory.verify_login(email, password)
        except Exception as e:
            logger.error("sign in failed: %s", e)
            raise AuthError("Sign in is unavailable right now. Please try again.") from e
        if not row:
            raise AuthError("Invalid email or password.")
        identity = Identity(user_id=str(row["user_id"]), email=str(row.get("email", email)))
        try:
            self.directory.update_last_login(identity.user_id)
        except Exception as e:
            logger.warning("last_login update failed for %s: %s", identity.user_id, e)
        self._set(identity)
        return identity

    def sign_out(self) -> None:
        self._set(None)
