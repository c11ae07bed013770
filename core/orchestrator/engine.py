"""Stringify engine: scan, group, process, reconcile and protocol dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import assert_never

from core.config.models import EngineConfig
from core.document.models import CollectionInfo
from core.document.ports import DocumentPort, NamingMode, PreferencePort, VariableStorePort
from core.ghosts.models import ClearResult, GhostBinding
from core.ghosts.reconciler import GhostReconciler
from core.naming.composer import NamingStrategy, create_strategy
from core.orchestrator.batch import BatchProcessor, ProgressCallback, YieldHook
from core.orchestrator.guard import ProcessingGuard
from core.orchestrator.models import ProcessingStats, ProgressEvent, render_processing_summary
from core.preferences.store import MemoryNamingModeStore, parse_naming_mode
from core.protocol.messages import (
    ClearGhostVariables,
    CollectionCreated,
    CollectionInvalid,
    CollectionsLoaded,
    CollectionSummary,
    CreateDefaultCollection,
    CreateVariables,
    ErrorMessage,
    GetCollections,
    GetNamingMode,
    GhostClearComplete,
    GhostVariablesFound,
    GroupSummary,
    LayerSelected,
    LayerSummary,
    NamingModeState,
    ProgressUpdate,
    Request,
    Response,
    ScanGhostVariables,
    ScanTextLayers,
    SelectGhostLayer,
    SetNamingMode,
    TextLayersFound,
    VariablesCreated,
)
from core.scan.models import ScanResult, TextSource
from core.scan.grouper import group_sources
from core.scan.scope import describe_scope, scan_text_sources
from core.utils.errors import (
    INTERNAL_ERROR,
    CollectionIdRequiredError,
    NoSourcesError,
    StringifyError,
)
from core.variables.collections import (
    create_default_collection,
    list_collections,
    validate_collection,
)

Emit = Callable[[Response], None]

logger = logging.getLogger("stringify.engine")


class StringifyEngine:
    """Entry point wiring the host ports to the naming, batch and ghost components.

    One engine owns one processing guard, so two engines over two documents
    never block each other.
    """

    def __init__(
        self,
        document: DocumentPort,
        store: VariableStorePort,
        *,
        preferences: PreferencePort | None = None,
        config: EngineConfig | None = None,
        yield_hook: YieldHook | None = None,
    ) -> None:
        self._document = document
        self._store = store
        self._preferences = preferences or MemoryNamingModeStore()
        self._config = config or EngineConfig()
        self._yield_hook = yield_hook
        self._guard = ProcessingGuard()
        self._reconciler = GhostReconciler(document, store, self._config)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def is_processing(self) -> bool:
        return self._guard.active

    def naming_mode(self) -> NamingMode:
        return self._preferences.load()

    def set_naming_mode(self, mode: str) -> NamingMode:
        parsed = parse_naming_mode(mode)
        self._preferences.save(parsed)
        logger.info("Naming mode set to %s", parsed)
        return parsed

    def strategy(self, mode: NamingMode | None = None) -> NamingStrategy:
        return create_strategy(mode or self.naming_mode(), self._config.max_variable_name_length)

    async def list_collections(self) -> list[CollectionInfo]:
        return await list_collections(self._store)

    async def create_default_collection(self) -> CollectionInfo:
        return await create_default_collection(self._store, self._config.default_collection_name)

    async def scan(self, mode: NamingMode | None = None) -> ScanResult:
        """Scan the active scope and group its eligible sources."""

        return await scan_text_sources(self._document, self._config, self.strategy(mode))

    async def process(
        self,
        collection_id: str,
        *,
        sources: Sequence[TextSource] | None = None,
        mode: NamingMode | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ProcessingStats:
        """Group sources (a fresh scan when omitted) and convert them into variables.

        Raises ProcessingInProgressError when another run holds the guard.
        """

        if not collection_id:
            raise CollectionIdRequiredError()

        with self._guard.hold():
            strategy = self.strategy(mode)
            if sources is None:
                scan = await scan_text_sources(self._document, self._config)
                sources = scan.sources
            if not sources:
                raise NoSourcesError()

            await validate_collection(self._store, collection_id)
            groups = group_sources(sources, strategy)
            processor = BatchProcessor(
                self._document,
                self._store,
                self._config,
                on_progress=on_progress,
                yield_hook=self._yield_hook,
            )
            stats = await processor.process_batch(groups, collection_id)

        logger.info(render_processing_summary(stats))
        return stats

    async def scan_ghosts(self) -> list[GhostBinding]:
        return await self._reconciler.scan()

    async def clear_ghosts(self, node_ids: Sequence[str]) -> ClearResult:
        return await self._reconciler.clear(node_ids)

    async def select_node(self, node_id: str) -> LayerSelected:
        """Select and reveal a layer; a vanished layer is reported, not raised."""

        node = await self._document.get_node(node_id)
        if node is None or node.removed:
            return LayerSelected(
                node_id=node_id,
                selected=False,
                message="Layer not found or has been deleted",
            )
        try:
            await self._document.select_node(node_id)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error selecting layer %s: %s", node_id, exc)
            return LayerSelected(node_id=node_id, selected=False, message="Failed to select layer")
        return LayerSelected(
            node_id=node_id, selected=True, message=f"Selected layer: {node.name}"
        )

    async def handle(self, request: Request, emit: Emit | None = None) -> Response:
        """Dispatch one request, converting engine errors into an error response."""

        try:
            return await self.dispatch(request, emit)
        except StringifyError as exc:
            logger.error("Error handling %s: %s", request.type, exc.message)
            return ErrorMessage(kind=exc.code, message=exc.message, context=exc.context)
        except Exception:
            logger.exception("Unexpected error handling %s", request.type)
            return ErrorMessage(kind=INTERNAL_ERROR, message="An unexpected error occurred")

    async def dispatch(self, request: Request, emit: Emit | None = None) -> Response:
        """Exhaustive request dispatch; errors propagate to the caller."""

        if isinstance(request, GetCollections):
            return CollectionsLoaded(collections=await self._collection_summaries())
        if isinstance(request, CreateDefaultCollection):
            created = await self.create_default_collection()
            return CollectionCreated(
                collection_id=created.collection_id,
                collections=await self._collection_summaries(),
            )
        if isinstance(request, ScanTextLayers):
            return await self._handle_scan(request)
        if isinstance(request, CreateVariables):
            return await self._handle_create_variables(request, emit)
        if isinstance(request, ScanGhostVariables):
            ghosts = await self.scan_ghosts()
            return GhostVariablesFound(ghosts=ghosts, count=len(ghosts))
        if isinstance(request, ClearGhostVariables):
            result = await self.clear_ghosts(request.ghost_ids)
            return GhostClearComplete(result=result, summary=_clear_summary(result))
        if isinstance(request, SelectGhostLayer):
            return await self.select_node(request.node_id)
        if isinstance(request, GetNamingMode):
            return NamingModeState(mode=self.naming_mode())
        if isinstance(request, SetNamingMode):
            return NamingModeState(mode=self.set_naming_mode(request.mode))
        assert_never(request)

    async def _handle_scan(self, request: ScanTextLayers) -> TextLayersFound | CollectionInvalid:
        if request.selected_collection_id:
            collections = await self.list_collections()
            if not any(c.collection_id == request.selected_collection_id for c in collections):
                return CollectionInvalid(
                    message=(
                        "The selected collection no longer exists. "
                        "Please select a different collection."
                    )
                )

        mode = self.naming_mode()
        result = await self.scan(mode)
        return TextLayersFound(
            layers=[
                LayerSummary(id=source.node_id, name=source.name, characters=source.characters)
                for source in result.sources
            ],
            groups=[
                GroupSummary(
                    variable_name=group.variable_name,
                    content=group.content,
                    node_ids=[source.node_id for source in group.sources],
                )
                for group in result.groups
            ],
            valid_count=result.valid_count,
            total_count=result.total_count,
            scope_type=result.scope_type,
            naming_mode=mode,
            message=describe_scope(result) if not result.sources else None,
        )

    async def _handle_create_variables(
        self, request: CreateVariables, emit: Emit | None
    ) -> VariablesCreated:
        def _forward(event: ProgressEvent) -> None:
            if emit is not None:
                emit(ProgressUpdate(progress=event.progress, remaining=event.remaining))

        stats = await self.process(request.collection_id, on_progress=_forward)
        return VariablesCreated(result=stats.to_result(), summary=render_processing_summary(stats))

    async def _collection_summaries(self) -> list[CollectionSummary]:
        return [
            CollectionSummary(
                id=collection.collection_id,
                name=collection.name,
                variables=list(collection.variable_ids),
            )
            for collection in await self.list_collections()
        ]


def _clear_summary(result: ClearResult) -> str:
    plural = "" if result.successfully_cleared == 1 else "s"
    message = f"Cleared {result.successfully_cleared} ghost variable{plural}"
    if result.failed:
        failed_plural = "" if result.failed == 1 else "s"
        message += f"; {result.failed} ghost variable{failed_plural} could not be cleared"
    return message
