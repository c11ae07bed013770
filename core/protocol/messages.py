"""Caller protocol: tagged unions of requests and responses.

Each request kind is one pydantic model discriminated by ``type``; the engine
dispatches on the model class exhaustively.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from core.document.ports import NamingMode
from core.ghosts.models import ClearResult, GhostBinding

ScopeName = Literal["page", "selection"]


class _Message(BaseModel):
    model_config = ConfigDict(extra="forbid")


class GetCollections(_Message):
    type: Literal["get-collections"] = "get-collections"


class CreateDefaultCollection(_Message):
    type: Literal["create-default-collection"] = "create-default-collection"


class ScanTextLayers(_Message):
    type: Literal["scan-text-layers"] = "scan-text-layers"
    selected_collection_id: str | None = None


class CreateVariables(_Message):
    type: Literal["create-variables"] = "create-variables"
    collection_id: str = ""


class ScanGhostVariables(_Message):
    type: Literal["scan-ghost-variables"] = "scan-ghost-variables"


class ClearGhostVariables(_Message):
    type: Literal["clear-ghost-variables"] = "clear-ghost-variables"
    ghost_ids: list[str] = Field(default_factory=list)


class SelectGhostLayer(_Message):
    type: Literal["select-ghost-layer"] = "select-ghost-layer"
    node_id: str


class GetNamingMode(_Message):
    type: Literal["get-naming-mode"] = "get-naming-mode"


class SetNamingMode(_Message):
    type: Literal["set-naming-mode"] = "set-naming-mode"
    mode: NamingMode


Request = Annotated[
    GetCollections
    | CreateDefaultCollection
    | ScanTextLayers
    | CreateVariables
    | ScanGhostVariables
    | ClearGhostVariables
    | SelectGhostLayer
    | GetNamingMode
    | SetNamingMode,
    Field(discriminator="type"),
]

REQUEST_ADAPTER: TypeAdapter[Request] = TypeAdapter(Request)


class CollectionSummary(_Message):
    id: str
    name: str
    variables: list[str] = Field(default_factory=list)


class LayerSummary(_Message):
    id: str
    name: str
    characters: str


class GroupSummary(_Message):
    variable_name: str
    content: str
    node_ids: list[str] = Field(default_factory=list)


class CollectionsLoaded(_Message):
    type: Literal["collections-loaded"] = "collections-loaded"
    collections: list[CollectionSummary] = Field(default_factory=list)


class CollectionCreated(_Message):
    type: Literal["collection-created"] = "collection-created"
    collection_id: str
    collections: list[CollectionSummary] = Field(default_factory=list)


class CollectionInvalid(_Message):
    type: Literal["collection-invalid"] = "collection-invalid"
    message: str


class TextLayersFound(_Message):
    type: Literal["text-layers-found"] = "text-layers-found"
    layers: list[LayerSummary] = Field(default_factory=list)
    groups: list[GroupSummary] = Field(default_factory=list)
    valid_count: int
    total_count: int
    scope_type: ScopeName
    naming_mode: NamingMode
    message: str | None = None


class ProgressUpdate(_Message):
    type: Literal["progress-update"] = "progress-update"
    progress: int
    remaining: int


class VariablesCreated(_Message):
    type: Literal["variables-created"] = "variables-created"
    result: dict[str, Any]
    summary: str


class GhostVariablesFound(_Message):
    type: Literal["ghost-variables-found"] = "ghost-variables-found"
    ghosts: list[GhostBinding] = Field(default_factory=list)
    count: int


class GhostClearComplete(_Message):
    type: Literal["ghost-clear-complete"] = "ghost-clear-complete"
    result: ClearResult
    summary: str


class LayerSelected(_Message):
    type: Literal["layer-selected"] = "layer-selected"
    node_id: str
    selected: bool
    message: str


class NamingModeState(_Message):
    type: Literal["naming-mode"] = "naming-mode"
    mode: NamingMode


class ErrorMessage(_Message):
    type: Literal["error"] = "error"
    kind: str
    message: str
    context: dict[str, Any] = Field(default_factory=dict)


Response = Annotated[
    CollectionsLoaded
    | CollectionCreated
    | CollectionInvalid
    | TextLayersFound
    | ProgressUpdate
    | VariablesCreated
    | GhostVariablesFound
    | GhostClearComplete
    | LayerSelected
    | NamingModeState
    | ErrorMessage,
    Field(discriminator="type"),
]

RESPONSE_ADAPTER: TypeAdapter[Response] = TypeAdapter(Response)


def parse_request(payload: object) -> Request:
    """Validate a raw payload into one request variant."""

    return REQUEST_ADAPTER.validate_python(payload)


def request_types() -> list[str]:
    return sorted(
        model.model_fields["type"].default
        for model in (
            GetCollections,
            CreateDefaultCollection,
            ScanTextLayers,
            CreateVariables,
            ScanGhostVariables,
            ClearGhostVariables,
            SelectGhostLayer,
            GetNamingMode,
            SetNamingMode,
        )
    )
