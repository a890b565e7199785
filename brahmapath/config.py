# brahmapath/config.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional
import logging
import os


@dataclass
class AppConfig:
    data_dir: str = "~/.brahma_path"
    spreadsheet_name: str = "BrahmaPath_DB"
    profiles_ws: str = "profiles"
    create_profiles_ws: bool = False
    tick_seconds: float = 60.0
    log_level: str = "INFO"


def _truthy(v: Any) -> bool:
    return str(v).strip().lower() in ("1", "true", "t", "yes", "y")


def _lookup(secrets: Mapping[str, Any], flat: str, section: str, key: str) -> Optional[Any]:
    """
    A value can be configured as:
      - secrets["<flat>"]
      - secrets["<section>"]["<key>"]
    """
    if flat in secrets:
        return secrets[flat]
    if section in secrets and key in secrets[section]:
        return secrets[section][key]
    return None


def load_app_config(secrets: Optional[Mapping[str, Any]] = None, env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Streamlit secrets first, then BRAHMA_* environment variables, then defaults."""
    secrets = secrets or {}
    env = os.environ if env is None else env
    cfg = AppConfig()

    def pick(flat: str, key: str, env_name: str) -> Optional[Any]:
        v = _lookup(secrets, flat, "brahma", key)
        if v is None or v == "":
            v = env.get(env_name)
        return None if v in (None, "") else v

    v = pick("brahma_data_dir", "data_dir", "BRAHMA_DATA_DIR")
    if v is not None:
        cfg.data_dir = str(v)
    v = pick("brahma_spreadsheet", "spreadsheet_name", "BRAHMA_SPREADSHEET")
    if v is not None:
        cfg.spreadsheet_name = str(v)
    v = pick("brahma_profiles_ws", "profiles_ws", "BRAHMA_PROFILES_WS")
    if v is not None:
        cfg.profiles_ws = str(v)
    v = pick("brahma_create_profiles_ws", "create_profiles_ws", "BRAHMA_CREATE_PROFILES_WS")
    if v is not None:
        cfg.create_profiles_ws = _truthy(v)
    v = pick("brahma_tick_seconds", "tick_seconds", "BRAHMA_TICK_SECONDS")
    if v is not None:
        try:
            cfg.tick_seconds = max(1.0, float(v))
        except (TypeError, ValueError):
            pass
    v = pick("brahma_log_level", "log_level", "BRAHMA_LOG_LEVEL")
    if v is not None:
        cfg.log_level = str(v).upper()
    return cfg


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
