"""
Preference Stores

Narrow key-value interface TickerConfig persists user choices through.
Values must be JSON-serializable (strings, numbers, lists, dicts).

Implementations:
    - InMemoryPreferenceStore: process-local dict, used by tests and one-off runs
    - JsonFilePreferenceStore: single JSON document on disk, rewritten atomically
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from core.logging import get_logger

logger = get_logger(__name__)


class PreferenceStore(Protocol):
    """Key-value store for persisted user preferences."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryPreferenceStore:
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._values)


class JsonFilePreferenceStore:
    """
    Preferences kept in one JSON file.

    The file is read once on construction and rewritten on every `set`
    through a temporary file and `os.replace`, so a crash never leaves a
    half-written document behind. A missing file starts empty; a corrupt one
    is logged and ignored (it is overwritten on the next write).

    Example:
        >>> store = JsonFilePreferenceStore("~/.config/cointicker/preferences.json")
        >>> store.set("update_interval", 30)
        >>> store.get("update_interval")
        30
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = self._read()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.debug(f"No preferences file at {self.path}, starting empty")
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring preferences file {self.path}: expected an object, got {type(data).__name__}")
            return {}

        return data

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".preferences-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._values, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value
            self._write()

    def remove(self, key: str) -> None:
        with self._lock:
            if key in self._values:
                del self._values[key]
                self._write()
