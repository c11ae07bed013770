"""Document snapshot loading for the in-memory host."""

from __future__ import annotations

from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from core.document.memory import InMemoryDocument
from core.document.snapshot import DocumentSnapshot


def load_snapshot(path: Path) -> DocumentSnapshot:
    """Load and validate a document snapshot from JSON or YAML."""

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Document file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid document file: {path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Document file must contain a mapping: {path}")

    try:
        return DocumentSnapshot.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid document schema: {path}") from exc


def load_document(path: Path) -> InMemoryDocument:
    return InMemoryDocument(load_snapshot(path))
