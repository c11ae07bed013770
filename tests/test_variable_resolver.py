from __future__ import annotations

import pytest

from core.document.memory import InMemoryDocument
from core.document.models import StoredVariable
from core.document.snapshot import CollectionData, DocumentSnapshot, VariableData
from core.utils.errors import CollectionNotFoundError, VariableCreationFailedError
from core.variables.collections import create_default_collection, list_collections
from core.variables.resolver import VariableCache, VariableResolver


def _store(*variables: VariableData) -> InMemoryDocument:
    collection = CollectionData(
        id="c1",
        name="Strings",
        variable_ids=[variable.id for variable in variables],
    )
    return InMemoryDocument(DocumentSnapshot(collections=[collection], variables=list(variables)))


def _variable(variable_id: str, name: str, value: object, **overrides: object) -> VariableData:
    return VariableData(
        id=variable_id,
        name=name,
        collection_id="c1",
        values_by_mode={"mode:0": value},
        **overrides,  # type: ignore[arg-type]
    )


@pytest.mark.anyio
async def test_resolve_creates_then_reuses_within_one_run() -> None:
    store = _store()
    resolver = VariableResolver(store, "c1")

    first = await resolver.resolve("Sign_Up", "Sign Up")
    second = await resolver.resolve("Sign_Up", "Sign Up")

    assert first.created is True
    assert second.created is False
    assert second.record == first.record
    variable = await store.get_variable(first.record.variable_id)
    assert variable is not None
    assert variable.values_by_mode == {"mode:0": "Sign Up"}
    assert len((await store.get_collection("c1")).variable_ids) == 1  # type: ignore[union-attr]


@pytest.mark.anyio
async def test_existing_variable_with_same_name_and_value_is_reused() -> None:
    store = _store(_variable("v1", "Sign_Up", "Sign Up"))
    resolver = VariableResolver(store, "c1")

    outcome = await resolver.resolve("Sign_Up", "Sign Up")

    assert outcome.created is False
    assert outcome.record.variable_id == "v1"


@pytest.mark.anyio
async def test_name_collision_with_other_content_gets_numeric_suffix() -> None:
    store = _store(_variable("v1", "Title", "Hello"))
    resolver = VariableResolver(store, "c1")

    outcome = await resolver.resolve("Title", "Hi")
    again = await resolver.resolve("Title", "Hi")

    assert outcome.created is True
    assert outcome.record.name == "Title_2"
    assert again.record.variable_id == outcome.record.variable_id
    assert again.created is False


@pytest.mark.anyio
async def test_suffixed_variable_is_reused_by_a_later_run() -> None:
    store = _store(_variable("v1", "Title", "Hello"), _variable("v2", "Title_2", "Hi"))

    outcome = await VariableResolver(store, "c1").resolve("Title", "Hi")

    assert outcome.created is False
    assert outcome.record.variable_id == "v2"


@pytest.mark.anyio
async def test_non_string_variables_are_ignored() -> None:
    store = _store(_variable("v1", "Count", 3, resolved_type="FLOAT"))

    outcome = await VariableResolver(store, "c1").resolve("Count", "3")

    assert outcome.created is True
    assert outcome.record.name == "Count_2"


@pytest.mark.anyio
async def test_colon_in_name_or_content_never_aliases_another_variable() -> None:
    store = _store(_variable("v1", "b_c:b", "c"))

    outcome = await VariableResolver(store, "c1").resolve("b_c", "b:c")

    assert outcome.created is True
    assert outcome.record.variable_id != "v1"
    assert (outcome.record.name, outcome.record.value) == ("b_c", "b:c")


@pytest.mark.anyio
async def test_suffixed_long_name_stays_within_max_length() -> None:
    long_name = "A" * 30 + "___" + "Z" * 17
    store = _store(_variable("v1", long_name, "first"))

    outcome = await VariableResolver(store, "c1").resolve(long_name, "second")
    later = await VariableResolver(store, "c1").resolve(long_name, "second")

    assert outcome.created is True
    assert len(outcome.record.name) == 50
    assert outcome.record.name.endswith("_2")
    assert later.created is False
    assert later.record.variable_id == outcome.record.variable_id


@pytest.mark.anyio
async def test_missing_collection_raises() -> None:
    resolver = VariableResolver(_store(), "missing")

    with pytest.raises(CollectionNotFoundError) as exc_info:
        await resolver.load_existing()

    assert exc_info.value.context == {"collection_id": "missing"}


class _FailingStore(InMemoryDocument):
    async def create_variable(self, name: str, collection_id: str) -> StoredVariable:
        raise RuntimeError("variable quota exceeded")


@pytest.mark.anyio
async def test_creation_failure_carries_name_content_and_cause() -> None:
    store = _FailingStore(DocumentSnapshot(collections=[CollectionData(id="c1", name="S")]))
    resolver = VariableResolver(store, "c1")

    with pytest.raises(VariableCreationFailedError) as exc_info:
        await resolver.resolve("Save", "Save")

    assert exc_info.value.code == "VARIABLE_CREATION_FAILED"
    assert exc_info.value.context == {
        "variable_name": "Save",
        "content": "Save",
        "cause": "variable quota exceeded",
    }


@pytest.mark.anyio
async def test_shared_cache_answers_without_store_access() -> None:
    store = _store()
    cache = VariableCache()
    await VariableResolver(store, "c1", cache).resolve("Save", "Save")

    assert ("Save", "Save") in cache
    outcome = await VariableResolver(store, "c1", cache).resolve("Save", "Save")
    assert outcome.created is False


@pytest.mark.anyio
async def test_default_collection_name_probes_for_a_free_name() -> None:
    store = InMemoryDocument(
        DocumentSnapshot(
            collections=[
                CollectionData(id="c1", name="Text to String"),
                CollectionData(id="c2", name="Text to String 2"),
            ]
        )
    )

    created = await create_default_collection(store)

    assert created.name == "Text to String 3"
    assert created.default_mode_id == f"{created.collection_id}:mode:0"
    assert [collection.name for collection in await list_collections(store)][-1] == created.name
