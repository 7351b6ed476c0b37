"""Persisted user preferences (page size, label stream mode)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

LABEL_STREAM_MODE_KEY = "dm:labelstream:mode"


def page_size_key(target: str) -> str:
    return f"pages:{target}"


class PreferenceStore:
    """Small key/value store backed by a YAML file.

    With no path the values only live in memory. Every write is flushed to
    disk immediately; a failed write is logged and the in-memory value kept.
    """

    def __init__(self, path: Optional[Path | str] = None) -> None:
        self.path = Path(path) if path else None
        self._values: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load preferences from {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences file {self.path}")
            return {}
        return data

    def _flush(self) -> None:
        if self.path is None:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(self._values, f, default_flow_style=False, sort_keys=True)
        except OSError as e:
            logger.error(f"Failed to save preferences to {self.path}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if self._values.get(key) == value:
            return
        self._values[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._flush()

    def get_page_size(self, target: str, default: int) -> int:
        """Stored page size for a target; falls back when missing or invalid."""
        value = self.get(page_size_key(target))
        try:
            size = int(value)
        except (TypeError, ValueError):
            return default
        return size if size > 0 else default

    def set_page_size(self, target: str, size: int) -> None:
        self.set(page_size_key(target), int(size))

    @property
    def label_stream_mode(self) -> Optional[str]:
        """'all', 'filtered' or None."""
        return self.get(LABEL_STREAM_MODE_KEY)
