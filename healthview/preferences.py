"""Persisted user preferences.

Preferences are simple last-write-wins values kept in a small SQLite
key/value table. ``Preferences`` is the typed view the dashboard uses; it is
handed to components explicitly rather than read from global state.
"""

import json
import logging
import sqlite3
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

KEY_PREFIX = "healthview:"

FILTER_CHOICES = ("none", "failing", "unstable")
SORT_CHOICES = ("name", "group", "health")

# Refresh intervals offered in the settings menu (seconds).
REFRESH_INTERVALS = (10, 30, 60, 120, 300, 600)
DEFAULT_REFRESH_INTERVAL = 300


class PreferenceError(Exception):
    """Raised when preferences cannot be read or written."""

    pass


class PreferenceStore:
    """SQLite-backed string key/value store.

    Thread-safe: the refresh thread and the UI may both read preferences.
    """

    def __init__(self, path: str) -> None:
        """Open (and create if needed) the store.

        Args:
            path: SQLite database file, or ``":memory:"``.

        Raises:
            PreferenceError: If the database cannot be opened.
        """
        self._lock = threading.Lock()
        try:
            if path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(path, check_same_thread=False)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS preferences (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            self._conn.commit()
        except sqlite3.Error as e:
            raise PreferenceError(f"Failed to open preference store: {e}")
        except OSError as e:
            raise PreferenceError(f"Failed to create preference directory: {e}")

    def get(self, key: str) -> str | None:
        try:
            with self._lock:
                row = self._conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None
        except sqlite3.Error as e:
            raise PreferenceError(f"Failed to read preference '{key}': {e}")

    def set(self, key: str, value: str) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT OR REPLACE INTO preferences (key, value) VALUES (?, ?)",
                    (key, value),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise PreferenceError(f"Failed to write preference '{key}': {e}")

    def delete(self, key: str) -> None:
        try:
            with self._lock:
                self._conn.execute("DELETE FROM preferences WHERE key = ?", (key,))
                self._conn.commit()
        except sqlite3.Error as e:
            raise PreferenceError(f"Failed to delete preference '{key}': {e}")

    def close(self) -> None:
        self._conn.close()


class Preferences:
    """Typed dashboard preferences on top of a ``PreferenceStore``."""

    def __init__(
        self,
        store: PreferenceStore,
        default_filter: str = "none",
        default_sort: str = "name",
        default_refresh_interval: int = DEFAULT_REFRESH_INTERVAL,
    ) -> None:
        self._store = store
        self._default_filter = default_filter
        self._default_sort = default_sort
        self._default_refresh_interval = default_refresh_interval

    def _get(self, name: str) -> str | None:
        return self._store.get(KEY_PREFIX + name)

    def _set(self, name: str, value: str) -> None:
        self._store.set(KEY_PREFIX + name, value)

    @property
    def show_average_response_time(self) -> bool:
        """Average (True) or min-max (False) response time on cards."""
        return self._get("show-average-response-time") != "false"

    @show_average_response_time.setter
    def show_average_response_time(self, value: bool) -> None:
        self._set("show-average-response-time", "true" if value else "false")

    @property
    def uncollapsed_groups(self) -> set[str]:
        raw = self._get("uncollapsed-groups")
        if not raw:
            return set()
        try:
            groups = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed uncollapsed-groups preference: %r", raw)
            return set()
        if not isinstance(groups, list):
            return set()
        return {str(g) for g in groups}

    @uncollapsed_groups.setter
    def uncollapsed_groups(self, groups: set[str]) -> None:
        self._set("uncollapsed-groups", json.dumps(sorted(groups)))

    def toggle_group(self, group: str) -> set[str]:
        """Expand a collapsed group or collapse an expanded one."""
        groups = self.uncollapsed_groups
        if group in groups:
            groups.remove(group)
        else:
            groups.add(group)
        self.uncollapsed_groups = groups
        return groups

    @property
    def filter_by(self) -> str:
        value = self._get("filter-by") or self._default_filter
        return value if value in FILTER_CHOICES else "none"

    @filter_by.setter
    def filter_by(self, value: str) -> None:
        if value not in FILTER_CHOICES:
            raise PreferenceError(f"Invalid filter '{value}'. Must be one of: {FILTER_CHOICES}")
        self._set("filter-by", value)

    @property
    def sort_by(self) -> str:
        value = self._get("sort-by") or self._default_sort
        return value if value in SORT_CHOICES else "name"

    @sort_by.setter
    def sort_by(self, value: str) -> None:
        if value not in SORT_CHOICES:
            raise PreferenceError(f"Invalid sort '{value}'. Must be one of: {SORT_CHOICES}")
        self._set("sort-by", value)

    @property
    def refresh_interval(self) -> int:
        """Refresh interval in seconds.

        Unset or unknown stored values fall back to the configured default,
        which need not be one of the menu choices.
        """
        raw = self._get("refresh-interval")
        try:
            value = int(raw) if raw is not None else self._default_refresh_interval
        except ValueError:
            return self._default_refresh_interval
        return value if value in REFRESH_INTERVALS else self._default_refresh_interval

    @refresh_interval.setter
    def refresh_interval(self, seconds: int) -> None:
        if seconds not in REFRESH_INTERVALS:
            raise PreferenceError(f"Invalid refresh interval {seconds}s. Must be one of: {REFRESH_INTERVALS}")
        self._set("refresh-interval", str(seconds))
