"""Processing report models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ProcessingIssue(BaseModel):
    """One per-source or per-group failure recorded during a batch."""

    model_config = ConfigDict(extra="forbid")

    status: Literal["skipped", "error"]
    error_code: str
    message: str
    node_id: str | None = None
    node_name: str | None = None
    variable_name: str | None = None
    content: str | None = None


class ProcessingStats(BaseModel):
    """Aggregate outcome of one processing run.

    Rules:
    - created counts groups whose variable was created and bound at least once
    - connected counts every other successful bind
    - skipped counts sources that became invalid before binding
    - errors counts sources of groups whose variable could not be resolved
    """

    model_config = ConfigDict(extra="forbid")

    created: int = 0
    connected: int = 0
    skipped: int = 0
    errors: int = 0
    group_count: int = 0
    duplicate_group_count: int = 0
    elapsed_ms: int = 0
    issues: list[ProcessingIssue] = Field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return self.created + self.connected

    def to_result(self) -> dict[str, object]:
        """Wire payload including the derived total."""

        payload = self.model_dump(mode="json")
        payload["total_processed"] = self.total_processed
        return payload


class ProgressEvent(BaseModel):
    """Progress after one processed chunk."""

    model_config = ConfigDict(extra="forbid")

    progress: int
    remaining: int


def render_processing_summary(stats: ProcessingStats) -> str:
    """One-sentence human summary of a processing run."""

    parts: list[str] = []
    if stats.created > 0:
        parts.append(f"Created {stats.created} new variables")
    if stats.connected > 0:
        parts.append(f"connected {stats.connected} to existing variables")
    if stats.skipped > 0:
        parts.append(f"skipped {stats.skipped} layers")
    if stats.errors > 0:
        parts.append(f"{stats.errors} errors occurred")

    summary = ", ".join(parts) if parts else "No changes made"
    return f"Processing complete: {summary}"
