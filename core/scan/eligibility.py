"""Eligibility rules deciding which text nodes may be converted to variables."""

from __future__ import annotations

import logging

from core.document.models import NodeSnapshot

DEFAULT_MAX_TEXT_LENGTH = 1000

logger = logging.getLogger("stringify.scan")


def is_eligible(
    node: NodeSnapshot,
    binding_kind: str = "characters",
    max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
) -> bool:
    """Return True when the node can be converted.

    Rules:
    - Nodes already bound on ``binding_kind`` are skipped.
    - Locked nodes are skipped.
    - Hidden nodes and nodes under a hidden ancestor are skipped.
    - Trimmed text must be non-empty and at most ``max_text_length`` characters.

    Inspection errors make the node ineligible.
    """

    try:
        if not node.is_text or node.removed:
            return False
        if node.is_bound(binding_kind):
            return False
        if node.locked:
            return False
        if not is_effectively_visible(node):
            return False
        return has_usable_text(node.characters, max_text_length)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Error validating text node %s: %s", getattr(node, "node_id", "?"), exc)
        return False


def is_effectively_visible(node: NodeSnapshot) -> bool:
    """Visible itself and no hidden ancestor."""

    if not node.visible:
        return False
    return all(ancestor.visible for ancestor in node.ancestors)


def has_usable_text(text: str | None, max_text_length: int = DEFAULT_MAX_TEXT_LENGTH) -> bool:
    if not isinstance(text, str):
        return False
    trimmed = text.strip()
    return bool(trimmed) and len(trimmed) <= max_text_length
