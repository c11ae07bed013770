"""In-memory host document implementing the document and variable ports."""

from __future__ import annotations

from collections.abc import Sequence

from core.document.models import (
    PAGE_NODE,
    STRING_TYPE,
    TEXT_NODE,
    AncestorInfo,
    CollectionInfo,
    NodeSnapshot,
    StoredVariable,
)
from core.document.snapshot import CollectionData, DocumentSnapshot, NodeData, VariableData


class InMemoryDocument:
    """Mutable document graph addressed by id.

    Every read returns a fresh immutable snapshot; callers never hold on to
    the underlying records.
    """

    def __init__(self, snapshot: DocumentSnapshot | None = None) -> None:
        data = (snapshot or DocumentSnapshot()).model_copy(deep=True)
        self._version = data.version
        self._nodes: dict[str, NodeData] = {node.id: node for node in data.nodes}
        self._collections: dict[str, CollectionData] = {
            collection.id: collection for collection in data.collections
        }
        self._variables: dict[str, VariableData] = {
            variable.id: variable for variable in data.variables
        }
        self._selection: list[str] = list(data.selection)
        self._revealed: str | None = None
        self._issued_ids: set[str] = {
            *self._variables,
            *self._collections,
            *(
                variable_id
                for node in self._nodes.values()
                for variable_id in node.bound_variables.values()
            ),
        }

    # DocumentPort

    async def list_text_nodes(self, root_ids: Sequence[str] | None = None) -> list[NodeSnapshot]:
        if root_ids is None:
            ordered = [node_id for node_id in self._nodes if self._on_page(node_id)]
        else:
            ordered = []
            seen: set[str] = set()
            for root_id in root_ids:
                for node_id in self._walk(root_id):
                    if node_id not in seen:
                        seen.add(node_id)
                        ordered.append(node_id)

        return [
            self._snapshot(self._nodes[node_id])
            for node_id in ordered
            if self._nodes[node_id].type == TEXT_NODE
        ]

    async def get_node(self, node_id: str) -> NodeSnapshot | None:
        node = self._nodes.get(node_id)
        return self._snapshot(node) if node is not None else None

    async def get_selection(self) -> list[str]:
        return [node_id for node_id in self._selection if node_id in self._nodes]

    async def get_bound_variable_id(self, node_id: str, kind: str) -> str | None:
        return self._require_node(node_id).bound_variables.get(kind)

    async def set_binding(self, node_id: str, kind: str, variable_id: str | None) -> None:
        node = self._require_node(node_id)
        if variable_id is None:
            node.bound_variables.pop(kind, None)
            return
        if variable_id not in self._variables:
            raise LookupError(f"Variable not found: {variable_id}")
        node.bound_variables[kind] = variable_id

    async def select_node(self, node_id: str) -> None:
        self._require_node(node_id)
        self._selection = [node_id]
        self._revealed = node_id

    # VariableStorePort

    async def list_collections(self) -> list[CollectionInfo]:
        return [self._collection_info(collection) for collection in self._collections.values()]

    async def get_collection(self, collection_id: str) -> CollectionInfo | None:
        collection = self._collections.get(collection_id)
        return self._collection_info(collection) if collection is not None else None

    async def get_variable(self, variable_id: str) -> StoredVariable | None:
        variable = self._variables.get(variable_id)
        if variable is None:
            return None
        return StoredVariable(
            variable_id=variable.id,
            name=variable.name,
            collection_id=variable.collection_id,
            resolved_type=variable.resolved_type,
            values_by_mode=dict(variable.values_by_mode),
        )

    async def create_variable(self, name: str, collection_id: str) -> StoredVariable:
        collection = self._collections.get(collection_id)
        if collection is None:
            raise LookupError(f"Collection not found: {collection_id}")

        variable_id = self._next_id("VariableID:")
        self._variables[variable_id] = VariableData(
            id=variable_id,
            name=name,
            collection_id=collection_id,
            resolved_type=STRING_TYPE,
        )
        collection.variable_ids.append(variable_id)
        return StoredVariable(
            variable_id=variable_id,
            name=name,
            collection_id=collection_id,
            resolved_type=STRING_TYPE,
        )

    async def set_variable_value(self, variable_id: str, mode_id: str, value: str) -> None:
        variable = self._variables.get(variable_id)
        if variable is None:
            raise LookupError(f"Variable not found: {variable_id}")
        variable.values_by_mode[mode_id] = value

    async def create_collection(self, name: str) -> CollectionInfo:
        collection_id = self._next_id("VariableCollectionId:")
        collection = CollectionData(
            id=collection_id,
            name=name,
            default_mode_id=f"{collection_id}:mode:0",
        )
        self._collections[collection_id] = collection
        return self._collection_info(collection)

    # Host-side edits, as done by a user outside the engine.

    def delete_variable(self, variable_id: str) -> None:
        """Delete a variable but leave bindings pointing at it in place."""

        variable = self._variables.pop(variable_id, None)
        if variable is None:
            return
        collection = self._collections.get(variable.collection_id)
        if collection is not None and variable_id in collection.variable_ids:
            collection.variable_ids.remove(variable_id)

    def remove_node(self, node_id: str) -> None:
        for descendant in list(self._walk(node_id)):
            self._nodes.pop(descendant, None)
        self._selection = [item for item in self._selection if item in self._nodes]

    def set_locked(self, node_id: str, locked: bool = True) -> None:
        self._require_node(node_id).locked = locked

    def set_selection(self, node_ids: Sequence[str]) -> None:
        self._selection = list(node_ids)

    @property
    def revealed_node_id(self) -> str | None:
        return self._revealed

    def to_snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(
            version=self._version,
            nodes=list(self._nodes.values()),
            collections=list(self._collections.values()),
            variables=list(self._variables.values()),
            selection=list(self._selection),
        ).model_copy(deep=True)

    def _require_node(self, node_id: str) -> NodeData:
        node = self._nodes.get(node_id)
        if node is None:
            raise LookupError(f"Node not found: {node_id}")
        return node

    def _snapshot(self, node: NodeData) -> NodeSnapshot:
        return NodeSnapshot(
            node_id=node.id,
            name=node.name,
            node_type=node.type,
            characters=node.characters,
            visible=node.visible,
            locked=node.locked,
            bound_variables=dict(node.bound_variables),
            ancestors=self._ancestors(node),
        )

    def _ancestors(self, node: NodeData) -> tuple[AncestorInfo, ...]:
        chain: list[AncestorInfo] = []
        seen = {node.id}
        parent_id = node.parent_id
        while parent_id is not None and parent_id not in seen:
            parent = self._nodes.get(parent_id)
            if parent is None or parent.type == PAGE_NODE:
                break
            seen.add(parent_id)
            chain.append(
                AncestorInfo(
                    node_id=parent.id,
                    name=parent.name,
                    node_type=parent.type,
                    visible=parent.visible,
                )
            )
            parent_id = parent.parent_id
        return tuple(chain)

    def _on_page(self, node_id: str) -> bool:
        seen: set[str] = set()
        current = self._nodes.get(node_id)
        while current is not None and current.parent_id is not None:
            if current.parent_id in seen:
                return False
            seen.add(current.parent_id)
            current = self._nodes.get(current.parent_id)
        return current is not None

    def _walk(self, root_id: str) -> list[str]:
        if root_id not in self._nodes:
            return []
        children: dict[str, list[str]] = {}
        for node in self._nodes.values():
            if node.parent_id is not None:
                children.setdefault(node.parent_id, []).append(node.id)

        ordered: list[str] = []
        stack = [root_id]
        visited: set[str] = set()
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            ordered.append(current)
            stack.extend(reversed(children.get(current, [])))
        return ordered

    @staticmethod
    def _collection_info(collection: CollectionData) -> CollectionInfo:
        return CollectionInfo(
            collection_id=collection.id,
            name=collection.name,
            default_mode_id=collection.default_mode_id,
            variable_ids=tuple(collection.variable_ids),
        )

    def _next_id(self, prefix: str) -> str:
        counter = 1
        while f"{prefix}{counter}" in self._issued_ids:
            counter += 1
        issued = f"{prefix}{counter}"
        self._issued_ids.add(issued)
        return issued
