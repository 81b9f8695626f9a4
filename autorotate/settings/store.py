"""
Persisted application settings with change notification.

Settings are kept in a small JSON file (or only in memory when no path is
given). Subscribers are called synchronously with the key that changed.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
import json
import logging
import os
import tempfile
import threading

logger = logging.getLogger(__name__)


class AppSetting(str, Enum):
    """Setting keys."""
    AUTO_ROTATE_LANGUAGE = "auto_rotate_language"  # tag, "" = unset


DEFAULT_SETTINGS: Dict[str, Any] = {
    AppSetting.AUTO_ROTATE_LANGUAGE.value: "",
}

SettingKey = Union[AppSetting, str]
SettingListener = Callable[[str], None]


def _key(key: SettingKey) -> str:
    return key.value if isinstance(key, AppSetting) else str(key)


class Subscription:
    """Handle returned by SettingsStore.subscribe(); close() to stop listening."""

    def __init__(self, store: "SettingsStore", listener: SettingListener):
        self._store = store
        self._listener = listener
        self.active = True

    def close(self) -> None:
        if self.active:
            self._store._unsubscribe(self._listener)
            self.active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SettingsStore:
    """
    Key/value settings with optional JSON persistence.

    Example:
        >>> store = SettingsStore("settings.json")
        >>> with store.subscribe(lambda key: print("changed", key)):
        ...     store.set(AppSetting.AUTO_ROTATE_LANGUAGE, "en-US")
        changed auto_rotate_language
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        defaults: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize store.

        Args:
            path: JSON file to load from and save to (None = memory only)
            defaults: Values used for keys missing from the file
        """
        self.path = Path(path) if path else None
        self._defaults = dict(DEFAULT_SETTINGS if defaults is None else defaults)
        self._lock = threading.RLock()
        self._listeners: List[SettingListener] = []
        self._values: Dict[str, Any] = dict(self._defaults)

        if self.path is not None:
            self._values.update(self._load())

    def get(self, key: SettingKey, default: Any = None) -> Any:
        """Get a setting value."""
        with self._lock:
            return self._values.get(_key(key), default)

    def set(self, key: SettingKey, value: Any) -> bool:
        """
        Store a setting value and notify subscribers.

        Subscribers are only notified when the value actually changes. The
        file is written before the in-memory value changes, so a failed save
        leaves the store as it was.

        Returns:
            True if the value changed

        Raises:
            OSError: If the settings file cannot be written
        """
        name = _key(key)
        with self._lock:
            if name in self._values and self._values[name] == value:
                return False
            values = dict(self._values)
            values[name] = value
            if self.path is not None:
                self._save(values)
            self._values = values
            listeners = list(self._listeners)

        logger.debug(f"Setting {name} changed to {value!r}")
        for listener in listeners:
            listener(name)
        return True

    def subscribe(self, listener: SettingListener) -> Subscription:
        """Register a change listener."""
        with self._lock:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def to_dict(self) -> Dict[str, Any]:
        """Get a copy of all values."""
        with self._lock:
            return dict(self._values)

    def _unsubscribe(self, listener: SettingListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _load(self) -> Dict[str, Any]:
        """Load values from disk; unreadable files yield no values."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings file {self.path}: expected an object")
            return {}
        return data

    def _save(self, values: Dict[str, Any]) -> None:
        """Write values atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            prefix=".settings_", suffix=".json", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(values, f, indent=2, sort_keys=True)
            os.replace(temp_path, self.path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
