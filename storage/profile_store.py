# storage/profile_store.py
from __future__ import annotations

from typing import Any, Optional
import json

from brahmapath.models import (
    ProfilePatch,
    UserProfile,
    initial_profile,
    profile_from_dict,
    profile_to_dict,
)

PROFILE_KEY = "brahma_path_user"


class ProfileStore:
    """
    Canonical on-device profile.
    `update` is the only write path for profile changes; `reset` drops the record.
    """
    def __init__(self, kv, key: str = PROFILE_KEY):
        self.kv = kv
        self.key = key

    def get(self) -> UserProfile:
        raw = self.kv.get(self.key)
        if not raw:
            return initial_profile()
        try:
            obj = json.loads(raw)
        except (TypeError, ValueError):
            return initial_profile()
        if not isinstance(obj, dict):
            return initial_profile()
        return profile_from_dict(obj)

    def update(self, patch: Optional[ProfilePatch] = None, **fields: Any) -> UserProfile:
        if patch is None:
            patch = ProfilePatch(**fields)
        elif fields:
            raise TypeError("pass either a ProfilePatch or keyword fields, not both")
        updated = patch.apply(self.get())
        self._write(updated)
        return updated

    def replace(self, profile: UserProfile) -> UserProfile:
        return self.update(ProfilePatch.from_profile(profile))

    def reset(self) -> UserProfile:
        self.kv.delete(self.key)
        return initial_profile()

    def _write(self, profile: UserProfile) -> None:
        self.kv.set(self.key, json.dumps(profile_to_dict(profile), ensure_ascii=False))
