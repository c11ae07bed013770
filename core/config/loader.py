"""Configuration loading utilities for the stringify engine."""

from __future__ import annotations

from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from core.config.models import EngineConfig


def load_config(path: Path | None = None) -> EngineConfig:
    """Load and validate engine configuration from YAML.

    ``path=None`` returns the built-in defaults.
    """

    if path is None:
        return EngineConfig()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file: {path}") from exc

    if raw is None:
        return EngineConfig()
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")

    try:
        return EngineConfig.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid config schema: {path}") from exc
