# storage/local_kv.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional
import os
import tempfile


class MemoryKV:
    """In-process key-value substrate (tests, ephemeral sessions)."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKV:
    """
    One text file per key under `root`:
      <root>/<key>.json
    Writes go through a temp file + os.replace so a crash never leaves half a value.
    """

    def __init__(self, root: str | os.PathLike):
        self.root = Path(root).expanduser()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        safe = "".join(c if (c.isalnum() or c in "-_.") else "_" for c in str(key))
        return self.root / f"{safe}.json"

    def get(self, key: str) -> Optional[str]:
        p = self._path(key)
        try:
            return p.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError):
            # unreadable value behaves as absent
            return None

    def set(self, key: str, value: str) -> None:
        p = self._path(key)
        fd, tmp = tempfile.mkstemp(prefix=f".{p.stem}.", suffix=".tmp", dir=str(self.root))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(str(value))
            os.replace(tmp, p)
        except Exception:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return
