"""Local JSON store for the naming-mode preference."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import cast, get_args

from core.document.ports import NamingMode

DEFAULT_NAMING_MODE: NamingMode = "simple"
_STORE_VERSION = 1

logger = logging.getLogger("stringify.preferences")


def parse_naming_mode(value: object) -> NamingMode:
    """Validate a raw naming mode value, raising ValueError when unsupported."""

    if isinstance(value, str):
        normalized = value.lower().strip()
        if normalized in get_args(NamingMode):
            return cast(NamingMode, normalized)
    raise ValueError(f"Unsupported naming mode: {value!r}")


class NamingModeStore:
    """Persist the naming mode in a small JSON file."""

    def __init__(self, store_path: Path) -> None:
        self._store_path = store_path

    def load(self) -> NamingMode:
        if not self._store_path.exists():
            return DEFAULT_NAMING_MODE

        try:
            raw = json.loads(self._store_path.read_text(encoding="utf-8"))
            return parse_naming_mode(raw.get("naming_mode"))
        except (OSError, ValueError, AttributeError) as exc:
            logger.warning("Falling back to %s naming mode: %s", DEFAULT_NAMING_MODE, exc)
            return DEFAULT_NAMING_MODE

    def save(self, mode: NamingMode) -> None:
        mode = parse_naming_mode(mode)
        self._store_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._store_path.with_suffix(f"{self._store_path.suffix}.tmp")
        payload = {"version": _STORE_VERSION, "naming_mode": mode}
        temp_path.write_text(
            json.dumps(payload, sort_keys=True, separators=(",", ":")),
            encoding="utf-8",
        )
        temp_path.replace(self._store_path)


class MemoryNamingModeStore:
    """Process-local preference holder for hosts without persistent storage."""

    def __init__(self, mode: NamingMode = DEFAULT_NAMING_MODE) -> None:
        self._mode = mode

    def load(self) -> NamingMode:
        return self._mode

    def save(self, mode: NamingMode) -> None:
        self._mode = parse_naming_mode(mode)
