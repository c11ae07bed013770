"""Engine configuration model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EngineConfig(BaseModel):
    """Tunable limits and defaults for scanning, naming and batch processing."""

    model_config = ConfigDict(extra="forbid")

    batch_size: int = Field(default=10, ge=1)
    max_variable_name_length: int = Field(default=50, ge=8)
    max_text_length: int = Field(default=1000, ge=1)
    default_collection_name: str = Field(default="Text to String", min_length=1)
    progress_pause_ms: int = Field(default=10, ge=0)
    binding_kinds: list[str] = Field(default_factory=lambda: ["characters"], min_length=1)
    ghost_resolve_retries: int = Field(default=1, ge=0)

    @property
    def primary_binding_kind(self) -> str:
        return self.binding_kinds[0]
