"""Ghost binding report models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

UNRESOLVED_VARIABLE_ID = "error"


class GhostBinding(BaseModel):
    """A binding whose variable no longer exists in any collection."""

    model_config = ConfigDict(extra="forbid")

    node_id: str
    node_name: str
    text_content: str
    binding_kind: str
    variable_id: str


class ClearFailure(BaseModel):
    """Why one node could not be cleared."""

    model_config = ConfigDict(extra="forbid")

    node_id: str
    node_name: str
    error: str
    binding_kind: str = "unknown"


class ClearResult(BaseModel):
    """Aggregate outcome of a ghost clearing pass."""

    model_config = ConfigDict(extra="forbid")

    total_attempted: int = 0
    successfully_cleared: int = 0
    failed: int = 0
    errors: list[ClearFailure] = Field(default_factory=list)
