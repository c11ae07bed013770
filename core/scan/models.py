"""Data models for scanned text sources and content groups."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from core.document.models import AncestorInfo, NodeSnapshot

ScopeType = Literal["page", "selection"]


@dataclass(frozen=True)
class TextSource:
    """Immutable scan-time snapshot of one text-bearing node."""

    node_id: str
    name: str
    characters: str
    ancestors: tuple[AncestorInfo, ...] = ()

    @classmethod
    def from_node(cls, node: NodeSnapshot) -> TextSource:
        return cls(
            node_id=node.node_id,
            name=node.name,
            characters=node.characters,
            ancestors=node.ancestors,
        )

    @property
    def content(self) -> str:
        return self.characters.strip()


@dataclass
class ContentGroup:
    """Sources sharing one normalized content identity and one variable name."""

    key: str
    content: str
    variable_name: str
    sources: list[TextSource] = field(default_factory=list)

    @property
    def is_duplicate(self) -> bool:
        return len(self.sources) > 1


@dataclass
class ScanResult:
    """Eligible sources found in the active scope plus their grouping."""

    scope_type: ScopeType
    sources: list[TextSource] = field(default_factory=list)
    groups: list[ContentGroup] = field(default_factory=list)
    total_count: int = 0

    @property
    def valid_count(self) -> int:
        return len(self.sources)
