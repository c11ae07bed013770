"""Custom exceptions for core logic."""

from __future__ import annotations

from typing import Any

INVALID_TEXT = "INVALID_TEXT"
COLLECTION_NOT_FOUND = "COLLECTION_NOT_FOUND"
VARIABLE_CREATION_FAILED = "VARIABLE_CREATION_FAILED"
BINDING_FAILED = "BINDING_FAILED"
NO_VALID_LAYERS = "NO_VALID_LAYERS"
PROCESSING_IN_PROGRESS = "PROCESSING_IN_PROGRESS"
COLLECTION_ID_REQUIRED = "COLLECTION_ID_REQUIRED"
INTERNAL_ERROR = "INTERNAL_ERROR"


class StringifyError(Exception):
    """Base error carrying a machine-readable code and diagnostic context."""

    code: str = INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context = dict(context or {})


class InvalidTextError(StringifyError):
    """Raised when empty or unusable content is presented for naming."""

    code = INVALID_TEXT


class CollectionNotFoundError(StringifyError):
    """Raised when the target variable collection does not exist."""

    code = COLLECTION_NOT_FOUND

    def __init__(self, collection_id: str) -> None:
        super().__init__(
            "Collection not found or has been deleted",
            context={"collection_id": collection_id},
        )
        self.collection_id = collection_id


class VariableCreationFailedError(StringifyError):
    """Raised when a string variable cannot be created in the collection."""

    code = VARIABLE_CREATION_FAILED

    def __init__(self, variable_name: str, content: str, *, cause: str) -> None:
        super().__init__(
            f"Failed to create variable: {variable_name}",
            context={"variable_name": variable_name, "content": content, "cause": cause},
        )
        self.variable_name = variable_name
        self.content = content
        self.cause = cause


class BindingFailedError(StringifyError):
    """Raised when a node cannot be bound to a variable."""

    code = BINDING_FAILED

    def __init__(self, node_id: str, variable_id: str, *, cause: str) -> None:
        super().__init__(
            "Failed to bind text node to variable",
            context={"node_id": node_id, "variable_id": variable_id, "cause": cause},
        )
        self.node_id = node_id
        self.variable_id = variable_id
        self.cause = cause


class NoSourcesError(StringifyError):
    """Raised when a batch is requested without any eligible text sources."""

    code = NO_VALID_LAYERS

    def __init__(self, message: str = "No valid text layers found for processing") -> None:
        super().__init__(message)


class ProcessingInProgressError(StringifyError):
    """Raised when a batch is requested while another one is running."""

    code = PROCESSING_IN_PROGRESS

    def __init__(self) -> None:
        super().__init__("Processing is already in progress")


class CollectionIdRequiredError(StringifyError):
    """Raised when a batch is requested without a target collection id."""

    code = COLLECTION_ID_REQUIRED

    def __init__(self) -> None:
        super().__init__("Collection ID is required")
