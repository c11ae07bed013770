"""Find-or-create resolution of string variables with an in-run cache."""

from __future__ import annotations

import logging
import re

from core.document.models import STRING_TYPE, CollectionInfo
from core.document.ports import VariableStorePort
from core.naming.composer import DEFAULT_MAX_LENGTH, truncate_variable_name
from core.utils.errors import StringifyError, VariableCreationFailedError
from core.variables.collections import validate_collection
from core.variables.models import ResolveOutcome, VariableKey, VariableRecord, composite_key

logger = logging.getLogger("stringify.variables")

_SUFFIX_RE = re.compile(r"_(\d+)$")


class VariableCache:
    """Run-scoped mapping of ``(name, content)`` to variable records."""

    def __init__(self) -> None:
        self._entries: dict[VariableKey, VariableRecord] = {}

    def get(self, name: str, content: str) -> VariableRecord | None:
        return self._entries.get(composite_key(name, content))

    def add(self, record: VariableRecord, *, alias: str | None = None) -> None:
        self._entries[record.key] = record
        if alias is not None:
            self._entries[composite_key(alias, record.value)] = record

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class VariableResolver:
    """Resolve ``(name, content)`` pairs to variables of one collection.

    Lookup order: run cache, records already in the collection, then creation.
    Resolving the same pair twice in one run never creates two variables.
    """

    def __init__(
        self,
        store: VariableStorePort,
        collection_id: str,
        cache: VariableCache | None = None,
        *,
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self._store = store
        self._collection_id = collection_id
        self._cache = cache if cache is not None else VariableCache()
        self._max_length = max_length
        self._existing: dict[VariableKey, VariableRecord] | None = None

    @property
    def cache(self) -> VariableCache:
        return self._cache

    async def load_existing(self) -> dict[VariableKey, VariableRecord]:
        """Index the collection's string variables; raises CollectionNotFoundError."""

        collection = await validate_collection(self._store, self._collection_id)
        self._existing, _ = await self._index_collection(collection)
        return self._existing

    async def resolve(self, name: str, content: str) -> ResolveOutcome:
        cached = self._cache.get(name, content)
        if cached is not None:
            return ResolveOutcome(record=cached, created=False)

        existing_index = self._existing
        if existing_index is None:
            existing_index = await self.load_existing()

        existing = _find_reusable(existing_index, name, content, self._max_length)
        if existing is not None:
            self._cache.add(existing, alias=name)
            return ResolveOutcome(record=existing, created=False)

        return await self._create(name, content, existing_index)

    async def _create(
        self, name: str, content: str, existing_index: dict[VariableKey, VariableRecord]
    ) -> ResolveOutcome:
        try:
            collection = await validate_collection(self._store, self._collection_id)
            current, taken_names = await self._index_collection(collection)
            existing_index.update(current)

            same = _find_reusable(current, name, content, self._max_length)
            if same is not None:
                self._cache.add(same, alias=name)
                return ResolveOutcome(record=same, created=False)

            final_name = _disambiguate(name, taken_names, self._max_length)
            stored = await self._store.create_variable(final_name, collection.collection_id)
            await self._store.set_variable_value(
                stored.variable_id, collection.default_mode_id, content
            )
        except StringifyError as exc:
            raise VariableCreationFailedError(name, content, cause=exc.message) from exc
        except Exception as exc:
            logger.error("Error creating variable %r: %s", name, exc)
            raise VariableCreationFailedError(name, content, cause=str(exc)) from exc

        record = VariableRecord(
            variable_id=stored.variable_id,
            name=final_name,
            value=content,
            collection_id=collection.collection_id,
        )
        existing_index[record.key] = record
        self._cache.add(record, alias=name)
        return ResolveOutcome(record=record, created=True)

    async def _index_collection(
        self, collection: CollectionInfo
    ) -> tuple[dict[VariableKey, VariableRecord], set[str]]:
        """String records keyed by ``(name, content)`` plus every variable name in use."""

        index: dict[VariableKey, VariableRecord] = {}
        names: set[str] = set()
        for variable_id in collection.variable_ids:
            try:
                variable = await self._store.get_variable(variable_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not load variable %s: %s", variable_id, exc)
                continue
            if variable is None:
                continue
            names.add(variable.name)
            if variable.resolved_type != STRING_TYPE:
                continue
            value = variable.values_by_mode.get(collection.default_mode_id)
            record = VariableRecord(
                variable_id=variable.variable_id,
                name=variable.name,
                value=value if isinstance(value, str) else str(value),
                collection_id=collection.collection_id,
            )
            index[record.key] = record
        return index, names


def _disambiguate(name: str, taken_names: set[str], max_length: int) -> str:
    """``name`` when free, else ``name_N`` where N counts the names already derived from it.

    The base is re-truncated so the suffixed name stays within ``max_length``.
    """

    if name not in taken_names:
        return name

    conflicts = sum(
        1 for taken in taken_names if taken == name or _is_suffixed(taken, name, max_length)
    )
    counter = conflicts + 1
    candidate = _suffixed(name, counter, max_length)
    while candidate in taken_names:
        counter += 1
        candidate = _suffixed(name, counter, max_length)
    return candidate


def _suffixed(name: str, counter: int, max_length: int) -> str:
    suffix = f"_{counter}"
    if len(name) + len(suffix) <= max_length:
        return f"{name}{suffix}"
    return f"{truncate_variable_name(name, max_length - len(suffix))}{suffix}"


def _is_suffixed(taken: str, name: str, max_length: int) -> bool:
    match = _SUFFIX_RE.search(taken)
    if match is None:
        return False
    return taken == _suffixed(name, int(match.group(1)), max_length)


def _find_reusable(
    index: dict[VariableKey, VariableRecord], name: str, content: str, max_length: int
) -> VariableRecord | None:
    """Exact ``(name, content)`` match, else a ``name_N`` record holding the same content."""

    exact = index.get(composite_key(name, content))
    if exact is not None:
        return exact
    for record in index.values():
        if record.value == content and _is_suffixed(record.name, name, max_length):
            return record
    return None
