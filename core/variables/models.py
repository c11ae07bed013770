"""Data models for resolved string variables."""

from __future__ import annotations

from dataclasses import dataclass

VariableKey = tuple[str, str]


def composite_key(name: str, content: str) -> VariableKey:
    """Lookup key identifying a string variable by name and value."""

    return (name, content)


@dataclass(frozen=True)
class VariableRecord:
    """A string variable with its value in the collection's default mode."""

    variable_id: str
    name: str
    value: str
    collection_id: str

    @property
    def key(self) -> VariableKey:
        return composite_key(self.name, self.value)


@dataclass(frozen=True)
class ResolveOutcome:
    """Resolved variable plus whether this resolution created it."""

    record: VariableRecord
    created: bool
