"""Capability interfaces the engine consumes from its host."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Protocol

from core.document.models import CollectionInfo, NodeSnapshot, StoredVariable

NamingMode = Literal["simple", "hierarchical"]


class DocumentPort(Protocol):
    """Read/mutate access to the host node tree, addressed by node id."""

    async def list_text_nodes(self, root_ids: Sequence[str] | None = None) -> list[NodeSnapshot]:
        """Return text nodes on the current page, or under ``root_ids`` when given."""

    async def get_node(self, node_id: str) -> NodeSnapshot | None:
        """Return a fresh snapshot, or ``None`` when the node no longer exists."""

    async def get_selection(self) -> list[str]:
        """Return ids of the currently selected nodes."""

    async def get_bound_variable_id(self, node_id: str, kind: str) -> str | None:
        """Resolve the variable id bound on ``kind``. May raise on broken bindings."""

    async def set_binding(self, node_id: str, kind: str, variable_id: str | None) -> None:
        """Bind ``kind`` to ``variable_id``, or clear it when ``None``."""

    async def select_node(self, node_id: str) -> None:
        """Select and reveal a node."""


class VariableStorePort(Protocol):
    """Access to variable collections and their string variables."""

    async def list_collections(self) -> list[CollectionInfo]: ...

    async def get_collection(self, collection_id: str) -> CollectionInfo | None: ...

    async def get_variable(self, variable_id: str) -> StoredVariable | None: ...

    async def create_variable(self, name: str, collection_id: str) -> StoredVariable:
        """Create a STRING variable in the collection."""

    async def set_variable_value(self, variable_id: str, mode_id: str, value: str) -> None: ...

    async def create_collection(self, name: str) -> CollectionInfo: ...


class PreferencePort(Protocol):
    """Persisted naming-mode preference."""

    def load(self) -> NamingMode:
        """Return the stored mode, ``simple`` when absent or unreadable."""

    def save(self, mode: NamingMode) -> None: ...
