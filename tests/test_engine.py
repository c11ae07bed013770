from __future__ import annotations

import asyncio

import pytest

from core.document.memory import InMemoryDocument
from core.document.snapshot import CollectionData, DocumentSnapshot, NodeData, VariableData
from core.orchestrator.batch import no_yield
from core.orchestrator.engine import StringifyEngine
from core.preferences.store import MemoryNamingModeStore
from core.protocol.messages import (
    ClearGhostVariables,
    CollectionCreated,
    CollectionInvalid,
    CollectionsLoaded,
    CreateDefaultCollection,
    CreateVariables,
    ErrorMessage,
    GetCollections,
    GetNamingMode,
    GhostClearComplete,
    GhostVariablesFound,
    LayerSelected,
    NamingModeState,
    ProgressUpdate,
    Response,
    ScanGhostVariables,
    SelectGhostLayer,
    SetNamingMode,
    TextLayersFound,
    VariablesCreated,
    parse_request,
)
from core.utils.errors import CollectionIdRequiredError, NoSourcesError, ProcessingInProgressError


def _document(*nodes: NodeData, selection: list[str] | None = None) -> InMemoryDocument:
    return InMemoryDocument(
        DocumentSnapshot(
            nodes=[
                NodeData(id="0:1", name="Page", type="PAGE"),
                NodeData(id="2:1", name="Form", type="FRAME", parent_id="0:1"),
                *nodes,
            ],
            collections=[CollectionData(id="c1", name="Strings")],
            selection=selection or [],
        )
    )


def _text(node_id: str, characters: str, **overrides: object) -> NodeData:
    fields: dict[str, object] = {
        "id": node_id,
        "name": "Button",
        "characters": characters,
        "parent_id": "2:1",
    }
    fields.update(overrides)
    return NodeData(**fields)  # type: ignore[arg-type]


def _engine(document: InMemoryDocument, **kwargs: object) -> StringifyEngine:
    kwargs.setdefault("yield_hook", no_yield)
    return StringifyEngine(document, document, **kwargs)  # type: ignore[arg-type]


@pytest.mark.anyio
async def test_process_scans_groups_and_binds() -> None:
    document = _document(_text("1:1", "Sign Up"), _text("1:2", "Sign Up"))

    stats = await _engine(document).process("c1")

    assert (stats.created, stats.connected) == (1, 1)
    bound = {await document.get_bound_variable_id(node, "characters") for node in ("1:1", "1:2")}
    assert len(bound) == 1 and None not in bound


@pytest.mark.anyio
async def test_process_requires_collection_and_sources() -> None:
    document = _document(_text("1:1", "Hidden", visible=False))
    engine = _engine(document)

    with pytest.raises(CollectionIdRequiredError):
        await engine.process("")
    with pytest.raises(NoSourcesError):
        await engine.process("c1")
    assert engine.is_processing is False


@pytest.mark.anyio
async def test_second_run_is_rejected_while_first_is_active() -> None:
    document = _document(_text("1:1", "Save"), _text("1:2", "Cancel"))
    entered = asyncio.Event()
    release = asyncio.Event()

    async def _blocking_yield() -> None:
        entered.set()
        await release.wait()

    engine = _engine(document, yield_hook=_blocking_yield)
    first = asyncio.create_task(engine.process("c1"))
    await entered.wait()

    assert engine.is_processing is True
    with pytest.raises(ProcessingInProgressError):
        await engine.process("c1")
    rejected = await engine.handle(CreateVariables(collection_id="c1"))
    assert isinstance(rejected, ErrorMessage)
    assert rejected.kind == "PROCESSING_IN_PROGRESS"

    release.set()
    stats = await first
    assert (stats.created, stats.connected, stats.errors) == (2, 0, 0)
    assert engine.is_processing is False


@pytest.mark.anyio
async def test_engines_over_different_documents_do_not_block_each_other() -> None:
    release = asyncio.Event()

    async def _blocking_yield() -> None:
        await release.wait()

    busy = _engine(_document(_text("1:1", "Save")), yield_hook=_blocking_yield)
    idle = _engine(_document(_text("1:1", "Save")))
    first = asyncio.create_task(busy.process("c1"))
    await asyncio.sleep(0)

    stats = await idle.process("c1")
    release.set()
    await first

    assert stats.created == 1


@pytest.mark.anyio
async def test_collection_requests() -> None:
    engine = _engine(_document())

    loaded = await engine.dispatch(GetCollections())
    created = await engine.dispatch(CreateDefaultCollection())

    assert isinstance(loaded, CollectionsLoaded)
    assert [collection.id for collection in loaded.collections] == ["c1"]
    assert isinstance(created, CollectionCreated)
    assert [collection.name for collection in created.collections] == [
        "Strings",
        "Text to String",
    ]
    assert created.collections[-1].id == created.collection_id


@pytest.mark.anyio
async def test_scan_reports_layers_groups_and_scope() -> None:
    document = _document(
        _text("1:1", "Sign up"),
        _text("1:2", "Sign Up"),
        _text("1:3", "Locked", locked=True),
    )
    engine = _engine(document)

    simple = await engine.dispatch(parse_request({"type": "scan-text-layers"}))
    await engine.dispatch(SetNamingMode(mode="hierarchical"))
    hierarchical = await engine.dispatch(parse_request({"type": "scan-text-layers"}))

    assert isinstance(simple, TextLayersFound)
    assert (simple.valid_count, simple.total_count, simple.scope_type) == (2, 3, "page")
    assert [group.variable_name for group in simple.groups] == ["Sign_up", "Sign_Up"]
    assert simple.message is None
    assert isinstance(hierarchical, TextLayersFound)
    assert hierarchical.naming_mode == "hierarchical"
    assert [group.node_ids for group in hierarchical.groups] == [["1:1", "1:2"]]


@pytest.mark.anyio
async def test_scan_uses_selection_and_explains_empty_results() -> None:
    document = _document(_text("1:1", "Save", locked=True), selection=["1:1"])

    result = await _engine(document).dispatch(parse_request({"type": "scan-text-layers"}))

    assert isinstance(result, TextLayersFound)
    assert result.scope_type == "selection"
    assert result.valid_count == 0
    assert result.message is not None and result.message.startswith("Found 1 text layers")


@pytest.mark.anyio
async def test_scan_with_deleted_collection_is_rejected() -> None:
    engine = _engine(_document(_text("1:1", "Save")))

    result = await engine.dispatch(
        parse_request({"type": "scan-text-layers", "selected_collection_id": "gone"})
    )

    assert isinstance(result, CollectionInvalid)


@pytest.mark.anyio
async def test_create_variables_emits_progress_then_result() -> None:
    document = _document(*(_text(f"1:{index}", f"Label {index}") for index in range(12)))
    events: list[Response] = []

    result = await _engine(document).dispatch(CreateVariables(collection_id="c1"), events.append)

    assert [event.progress for event in events if isinstance(event, ProgressUpdate)] == [83, 100]
    assert isinstance(result, VariablesCreated)
    assert result.result["created"] == 12
    assert result.result["total_processed"] == 12
    assert result.summary == "Processing complete: Created 12 new variables"


@pytest.mark.anyio
async def test_errors_become_error_responses() -> None:
    engine = _engine(_document(_text("1:1", "Save")))

    missing_id = await engine.handle(CreateVariables())
    missing_collection = await engine.handle(CreateVariables(collection_id="gone"))

    assert isinstance(missing_id, ErrorMessage)
    assert missing_id.kind == "COLLECTION_ID_REQUIRED"
    assert isinstance(missing_collection, ErrorMessage)
    assert missing_collection.kind == "COLLECTION_NOT_FOUND"
    assert missing_collection.context == {"collection_id": "gone"}


@pytest.mark.anyio
async def test_ghost_requests_round_trip() -> None:
    document = InMemoryDocument(
        DocumentSnapshot(
            nodes=[
                NodeData(
                    id="1:1",
                    name="Title",
                    characters="Hello",
                    bound_variables={"characters": "VariableID:gone"},
                ),
                NodeData(
                    id="1:2",
                    name="Body",
                    characters="World",
                    bound_variables={"characters": "v1"},
                ),
            ],
            collections=[CollectionData(id="c1", name="Strings", variable_ids=["v1"])],
            variables=[VariableData(id="v1", name="World", collection_id="c1")],
        )
    )
    engine = _engine(document)

    found = await engine.dispatch(ScanGhostVariables())
    cleared = await engine.dispatch(ClearGhostVariables(ghost_ids=["1:1"]))

    assert isinstance(found, GhostVariablesFound)
    assert found.count == 1
    assert found.ghosts[0].variable_id == "VariableID:gone"
    assert isinstance(cleared, GhostClearComplete)
    assert cleared.result.successfully_cleared == 1
    assert cleared.summary == "Cleared 1 ghost variable"


@pytest.mark.anyio
async def test_select_layer_reports_missing_nodes() -> None:
    document = _document(_text("1:1", "Save"))
    engine = _engine(document)

    selected = await engine.dispatch(SelectGhostLayer(node_id="1:1"))
    missing = await engine.dispatch(SelectGhostLayer(node_id="9:9"))

    assert isinstance(selected, LayerSelected) and selected.selected is True
    assert document.revealed_node_id == "1:1"
    assert isinstance(missing, LayerSelected) and missing.selected is False


@pytest.mark.anyio
async def test_naming_mode_round_trip() -> None:
    preferences = MemoryNamingModeStore()
    engine = _engine(_document(), preferences=preferences)

    before = await engine.dispatch(GetNamingMode())
    after = await engine.dispatch(SetNamingMode(mode="hierarchical"))

    assert isinstance(before, NamingModeState) and before.mode == "simple"
    assert isinstance(after, NamingModeState) and after.mode == "hierarchical"
    assert preferences.load() == "hierarchical"
