"""Text to identifier-fragment normalization.

Rules:
- Symbols from a fixed table become descriptive words before generic replacement.
- Whitespace runs become a single underscore.
- Anything outside ``[A-Za-z0-9_-]`` becomes an underscore.
- Underscore runs collapse; trailing underscores are stripped, leading ones kept.
- Empty output falls back to ``text_variable``.
- Output that does not start with a letter or underscore gets the ``Var_`` marker.
"""

from __future__ import annotations

import re

FALLBACK_FRAGMENT = "text_variable"
INVALID_START_PREFIX = "Var_"

_SYMBOL_WORDS = {
    "@": "_at_",
    "#": "_hash_",
    "$": "_dollar_",
    "%": "_percent_",
    "&": "_and_",
    "+": "_plus_",
    "=": "_equals_",
}
_SYMBOL_RE = re.compile("|".join(re.escape(symbol) for symbol in _SYMBOL_WORDS))
_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]")
_MULTI_UNDERSCORE_RE = re.compile(r"_{2,}")
_VALID_START_RE = re.compile(r"[A-Za-z_]")


def normalize(text: str, *, preserve_case: bool = False) -> str:
    """Return a safe identifier fragment for arbitrary text. Never raises."""

    fragment = _sanitize(text, preserve_case=preserve_case)
    if not fragment:
        return FALLBACK_FRAGMENT

    if not _VALID_START_RE.match(fragment):
        prefix = INVALID_START_PREFIX if preserve_case else INVALID_START_PREFIX.lower()
        fragment = f"{prefix}{fragment}"
    return fragment


def normalize_label(label: str | None) -> str:
    """Normalize a structural label, returning ``""`` when nothing survives."""

    if not label or not _sanitize(label, preserve_case=False):
        return ""
    return normalize(label)


def collapse_underscores(value: str) -> str:
    return _MULTI_UNDERSCORE_RE.sub("_", value)


def _sanitize(text: str | None, *, preserve_case: bool) -> str:
    if not isinstance(text, str):
        return ""

    processed = text.strip()
    if not preserve_case:
        processed = processed.lower()

    processed = _SYMBOL_RE.sub(lambda match: _SYMBOL_WORDS[match.group(0)], processed)
    processed = _WHITESPACE_RE.sub("_", processed)
    processed = _UNSAFE_RE.sub("_", processed)
    processed = collapse_underscores(processed)
    return processed.rstrip("_")
