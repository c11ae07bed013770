"""On-disk document snapshot schema for the in-memory host."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from core.document.models import STRING_TYPE, TEXT_NODE


class NodeData(BaseModel):
    """One node of the design document tree."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str = ""
    type: str = TEXT_NODE
    parent_id: str | None = None
    visible: bool = True
    locked: bool = False
    characters: str = ""
    bound_variables: dict[str, str] = Field(default_factory=dict)


class CollectionData(BaseModel):
    """Variable collection with its default mode."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    default_mode_id: str = "mode:0"
    variable_ids: list[str] = Field(default_factory=list)


class VariableData(BaseModel):
    """Variable definition; only STRING variables are managed by the engine."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    collection_id: str
    resolved_type: str = STRING_TYPE
    values_by_mode: dict[str, Any] = Field(default_factory=dict)


class DocumentSnapshot(BaseModel):
    """Full document payload: node tree, collections, variables and selection.

    Rules:
    - Nodes without ``parent_id`` sit directly on the current page.
    - A binding may reference a variable id absent from ``variables`` (a ghost).
    """

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    nodes: list[NodeData] = Field(default_factory=list)
    collections: list[CollectionData] = Field(default_factory=list)
    variables: list[VariableData] = Field(default_factory=list)
    selection: list[str] = Field(default_factory=list)
