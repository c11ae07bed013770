"""Variable collection lookup and default collection creation."""

from __future__ import annotations

import logging

from core.document.models import CollectionInfo
from core.document.ports import VariableStorePort
from core.utils.errors import CollectionNotFoundError, StringifyError

DEFAULT_COLLECTION_NAME = "Text to String"

logger = logging.getLogger("stringify.variables")


async def validate_collection(store: VariableStorePort, collection_id: str) -> CollectionInfo:
    """Return the collection or raise CollectionNotFoundError."""

    collection = await store.get_collection(collection_id)
    if collection is None:
        raise CollectionNotFoundError(collection_id)
    return collection


async def list_collections(store: VariableStorePort) -> list[CollectionInfo]:
    try:
        return await store.list_collections()
    except Exception as exc:
        logger.error("Error getting variable collections: %s", exc)
        raise StringifyError(
            "Failed to load variable collections", context={"cause": str(exc)}
        ) from exc


async def create_default_collection(
    store: VariableStorePort, base_name: str = DEFAULT_COLLECTION_NAME
) -> CollectionInfo:
    """Create ``base_name``, or ``base_name 2``, ``base_name 3``... on collision."""

    existing_names = {collection.name for collection in await list_collections(store)}
    name = base_name
    counter = 1
    while name in existing_names:
        counter += 1
        name = f"{base_name} {counter}"

    try:
        return await store.create_collection(name)
    except Exception as exc:
        logger.error("Error creating default collection %r: %s", name, exc)
        raise StringifyError(
            "Failed to create default collection", context={"name": name, "cause": str(exc)}
        ) from exc
