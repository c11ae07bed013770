"""Host document snapshots exchanged through the document and variable ports."""

from __future__ import annotations

from dataclasses import dataclass, field

TEXT_NODE = "TEXT"
PAGE_NODE = "PAGE"
STRING_TYPE = "STRING"
COMPONENT_BOUNDARY_TYPES = frozenset({"COMPONENT", "COMPONENT_SET"})


@dataclass(frozen=True)
class AncestorInfo:
    """One container above a node, nearest first, page excluded."""

    node_id: str
    name: str
    node_type: str
    visible: bool = True

    @property
    def is_component_boundary(self) -> bool:
        return self.node_type in COMPONENT_BOUNDARY_TYPES


@dataclass(frozen=True)
class NodeSnapshot:
    """Point-in-time view of a document node.

    Snapshots go stale as soon as the host document changes; mutating code
    re-fetches a fresh snapshot by id before acting.
    """

    node_id: str
    name: str
    node_type: str
    characters: str = ""
    visible: bool = True
    locked: bool = False
    removed: bool = False
    bound_variables: dict[str, str] = field(default_factory=dict)
    ancestors: tuple[AncestorInfo, ...] = ()

    @property
    def is_text(self) -> bool:
        return self.node_type == TEXT_NODE

    def is_bound(self, kind: str) -> bool:
        return bool(self.bound_variables.get(kind))


@dataclass(frozen=True)
class CollectionInfo:
    """Variable collection with its default mode and member variable ids."""

    collection_id: str
    name: str
    default_mode_id: str
    variable_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class StoredVariable:
    """Variable as held by the host store, of any resolved type."""

    variable_id: str
    name: str
    collection_id: str
    resolved_type: str = STRING_TYPE
    values_by_mode: dict[str, object] = field(default_factory=dict)
