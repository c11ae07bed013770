"""Partition text sources into content groups that share one variable."""

from __future__ import annotations

from collections.abc import Iterable

from core.naming.composer import NamingStrategy
from core.scan.models import ContentGroup, TextSource


def content_key(text: str, *, case_sensitive: bool) -> str:
    """Grouping key: trimmed content, lowercased unless case-sensitive."""

    trimmed = text.strip()
    return trimmed if case_sensitive else trimmed.lower()


def group_sources(sources: Iterable[TextSource], strategy: NamingStrategy) -> list[ContentGroup]:
    """Group sources by content key in first-seen order.

    The first source of a group fixes its displayed content and variable name.
    Raises InvalidTextError when a source has no usable text.
    """

    groups: dict[str, ContentGroup] = {}
    for source in sources:
        key = content_key(source.characters, case_sensitive=strategy.case_sensitive)
        group = groups.get(key)
        if group is None:
            group = ContentGroup(
                key=key,
                content=source.content,
                variable_name=strategy.compose(source),
            )
            groups[key] = group
        group.sources.append(source)
    return list(groups.values())
