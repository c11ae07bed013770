"""Chunked batch processing of content groups into bound string variables."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable, Sequence

from core.config.models import EngineConfig
from core.document.ports import DocumentPort, VariableStorePort
from core.orchestrator.models import ProcessingIssue, ProcessingStats, ProgressEvent
from core.scan.models import ContentGroup, TextSource
from core.utils.errors import BindingFailedError, NoSourcesError, StringifyError
from core.variables.models import VariableRecord
from core.variables.resolver import VariableResolver

ProgressCallback = Callable[[ProgressEvent], None]
YieldHook = Callable[[], Awaitable[None]]

logger = logging.getLogger("stringify.batch")


def sleep_yield(pause_ms: int) -> YieldHook:
    """Yield hook pausing ``pause_ms`` so the host event loop can render."""

    async def _pause() -> None:
        await asyncio.sleep(pause_ms / 1000)

    return _pause


async def no_yield() -> None:
    """Yield hook for headless runs."""


class BatchProcessor:
    """Resolve one variable per group and bind every source in the group to it.

    Group failures never abort the batch; only a missing collection or an
    empty batch does.
    """

    def __init__(
        self,
        document: DocumentPort,
        store: VariableStorePort,
        config: EngineConfig | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        yield_hook: YieldHook | None = None,
    ) -> None:
        self._document = document
        self._store = store
        self._config = config or EngineConfig()
        self._on_progress = on_progress
        self._yield = yield_hook or sleep_yield(self._config.progress_pause_ms)

    async def process_batch(
        self, groups: Sequence[ContentGroup], collection_id: str
    ) -> ProcessingStats:
        started = time.perf_counter()
        if not groups:
            raise NoSourcesError()

        resolver = VariableResolver(
            self._store, collection_id, max_length=self._config.max_variable_name_length
        )
        await resolver.load_existing()

        stats = ProcessingStats(
            group_count=len(groups),
            duplicate_group_count=sum(1 for group in groups if group.is_duplicate),
        )
        total = len(groups)
        batch_size = self._config.batch_size

        for offset in range(0, total, batch_size):
            for group in groups[offset : offset + batch_size]:
                await self._process_group(group, resolver, stats)

            processed = min(offset + batch_size, total)
            self._emit_progress(processed, total)
            await self._yield()

        stats.elapsed_ms = int((time.perf_counter() - started) * 1000)
        if stats.issues:
            logger.warning(
                "Processing finished with %d issues (skipped=%d errors=%d)",
                len(stats.issues),
                stats.skipped,
                stats.errors,
            )
        return stats

    async def _process_group(
        self, group: ContentGroup, resolver: VariableResolver, stats: ProcessingStats
    ) -> None:
        try:
            outcome = await resolver.resolve(group.variable_name, group.content)
        except Exception as exc:  # noqa: BLE001
            code = exc.code if isinstance(exc, StringifyError) else "INTERNAL_ERROR"
            logger.error("Error processing group %r: %s", group.variable_name, exc)
            stats.errors += len(group.sources)
            for source in group.sources:
                stats.issues.append(
                    ProcessingIssue(
                        status="error",
                        error_code=code,
                        message=str(exc),
                        node_id=source.node_id,
                        node_name=source.name,
                        variable_name=group.variable_name,
                        content=group.content,
                    )
                )
            return

        created_counted = False
        for source in group.sources:
            try:
                await self._bind(source, outcome.record)
            except BindingFailedError as exc:
                logger.warning("Skipping node %s: %s", source.node_id, exc.cause)
                stats.skipped += 1
                stats.issues.append(
                    ProcessingIssue(
                        status="skipped",
                        error_code=exc.code,
                        message=exc.cause,
                        node_id=source.node_id,
                        node_name=source.name,
                        variable_name=outcome.record.name,
                        content=group.content,
                    )
                )
                continue

            if outcome.created and not created_counted:
                stats.created += 1
                created_counted = True
            else:
                stats.connected += 1

    async def _bind(self, source: TextSource, record: VariableRecord) -> None:
        kind = self._config.primary_binding_kind
        try:
            node = await self._document.get_node(source.node_id)
            if node is None or node.removed:
                raise BindingFailedError(
                    source.node_id, record.variable_id, cause="Text node has been removed"
                )
            if not node.is_text:
                raise BindingFailedError(
                    source.node_id, record.variable_id, cause="Node is no longer a text layer"
                )
            if node.locked:
                raise BindingFailedError(
                    source.node_id, record.variable_id, cause="Text node is locked"
                )
            bound_id = node.bound_variables.get(kind)
            if bound_id and bound_id != record.variable_id:
                raise BindingFailedError(
                    source.node_id,
                    record.variable_id,
                    cause="Text node is already bound to another variable",
                )
            await self._document.set_binding(source.node_id, kind, record.variable_id)
        except BindingFailedError:
            raise
        except Exception as exc:
            raise BindingFailedError(source.node_id, record.variable_id, cause=str(exc)) from exc

    def _emit_progress(self, processed: int, total: int) -> None:
        if self._on_progress is None:
            return
        progress = math.floor(processed / total * 100 + 0.5)
        self._on_progress(ProgressEvent(progress=progress, remaining=total - processed))
