"""Variable name composition strategies and length-bounded truncation."""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from typing import Protocol

from core.document.models import AncestorInfo
from core.document.ports import NamingMode
from core.naming.normalizer import collapse_underscores, normalize, normalize_label
from core.scan.models import TextSource
from core.utils.errors import InvalidTextError

DEFAULT_MAX_LENGTH = 50
TRUNCATION_SEPARATOR = "___"
PATH_SEPARATOR = "/"
COMPONENT_FALLBACK = "component"
_START_RATIO = 0.6

_GENERIC_NAME_PATTERNS = (
    re.compile(r"^frame(_\d+)?$", re.IGNORECASE),
    re.compile(r"^group(_\d+)?$", re.IGNORECASE),
    re.compile(r"^auto.?layout(_\d+)?$", re.IGNORECASE),
    re.compile(r"^container(_\d+)?$", re.IGNORECASE),
    re.compile(r"^rectangle(_\d+)?$", re.IGNORECASE),
    re.compile(r"^ellipse(_\d+)?$", re.IGNORECASE),
    re.compile(r"^polygon(_\d+)?$", re.IGNORECASE),
    re.compile(r"^star(_\d+)?$", re.IGNORECASE),
    re.compile(r"^line(_\d+)?$", re.IGNORECASE),
    re.compile(r"^vector(_\d+)?$", re.IGNORECASE),
    re.compile(r"^untitled(_\d+)?$", re.IGNORECASE),
    re.compile(r"^layer(_\d+)?$", re.IGNORECASE),
    re.compile(r"^\d+$"),
    re.compile(r"^var_\d+$", re.IGNORECASE),
)


class NamingStrategy(Protocol):
    """Derives a variable name for a text source."""

    mode: NamingMode
    case_sensitive: bool
    max_length: int

    def compose(self, source: TextSource) -> str:
        """Return the variable name for ``source``; raise InvalidTextError on empty text."""


class SimpleNamingStrategy:
    """Names variables after their text content, keeping original capitalization."""

    mode: NamingMode = "simple"
    case_sensitive = True

    def __init__(self, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        self.max_length = max_length

    def compose(self, source: TextSource) -> str:
        content = _require_content(source.characters)
        name = normalize(content, preserve_case=True)
        return truncate_variable_name(name, self.max_length)


class HierarchicalNamingStrategy:
    """Names variables ``component/meaningful_parent/layer_content`` from structure."""

    mode: NamingMode = "hierarchical"
    case_sensitive = False

    def __init__(self, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        self.max_length = max_length

    def compose(self, source: TextSource) -> str:
        content = _require_content(source.characters)

        own_label = normalize(source.name)
        content_fragment = normalize(content)
        if content_fragment != own_label:
            own_label = collapse_underscores(f"{own_label}_{content_fragment}")

        segments = [
            find_root_component(source.ancestors),
            find_meaningful_parent(source.ancestors),
            own_label,
        ]
        parts: list[str] = []
        for segment in segments:
            if not segment or (parts and parts[-1] == segment):
                continue
            parts.append(segment)

        return truncate_variable_name(PATH_SEPARATOR.join(parts), self.max_length)


def create_strategy(mode: NamingMode, max_length: int = DEFAULT_MAX_LENGTH) -> NamingStrategy:
    """Instantiate the naming strategy for a mode."""

    if mode == "simple":
        return SimpleNamingStrategy(max_length)
    if mode == "hierarchical":
        return HierarchicalNamingStrategy(max_length)
    raise ValueError(f"Unsupported naming mode: {mode}")


def list_naming_modes() -> list[str]:
    return ["simple", "hierarchical"]


def is_generic_name(name: str) -> bool:
    """Return True for auto-generated container names like ``frame_12`` or ``42``."""

    return any(pattern.match(name) for pattern in _GENERIC_NAME_PATTERNS)


def find_meaningful_parent(ancestors: Sequence[AncestorInfo]) -> str:
    """Nearest ancestor label that is not generic; a component boundary stops the walk."""

    for ancestor in ancestors:
        label = normalize_label(ancestor.name)
        if label and not is_generic_name(label):
            return label
        if ancestor.is_component_boundary:
            return label or COMPONENT_FALLBACK
    return ""


def find_root_component(ancestors: Sequence[AncestorInfo]) -> str:
    """Label of the nearest enclosing component boundary, or ``""``."""

    for ancestor in ancestors:
        if ancestor.is_component_boundary:
            return normalize_label(ancestor.name) or COMPONENT_FALLBACK
    return ""


def truncate_variable_name(name: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Bound ``name`` to ``max_length`` characters.

    Hierarchical names keep their final segment whenever it fits on its own;
    everything else is split into a start/end pair around ``___``.
    """

    if len(name) <= max_length:
        return name

    if PATH_SEPARATOR in name:
        truncated = _truncate_path(name, max_length)
        if truncated is not None:
            return truncated

    available = max_length - len(TRUNCATION_SEPARATOR)
    start_length = math.ceil(available * _START_RATIO)
    end_length = available - start_length
    end = name[len(name) - end_length :] if end_length > 0 else ""
    return f"{name[:start_length]}{TRUNCATION_SEPARATOR}{end}"


def _truncate_path(name: str, max_length: int) -> str | None:
    segments = name.split(PATH_SEPARATOR)
    last = segments[-1]
    if len(last) > max_length:
        return None

    kept: list[str] = []
    used = len(last)
    for segment in reversed(segments[:-1]):
        cost = len(segment) + len(PATH_SEPARATOR)
        if used + cost > max_length:
            break
        kept.insert(0, segment)
        used += cost
    if kept:
        return PATH_SEPARATOR.join([*kept, last])

    prefix = PATH_SEPARATOR.join(segments[:-1])
    room = max_length - len(last) - len(PATH_SEPARATOR) - len(TRUNCATION_SEPARATOR)
    if room > 0:
        return f"{prefix[:room]}{TRUNCATION_SEPARATOR}{PATH_SEPARATOR}{last}"
    return last


def _require_content(text: str) -> str:
    if not text or not text.strip():
        raise InvalidTextError(
            "Cannot create variable name from empty text",
            context={"content": text},
        )
    return text.strip()
