"""Detection and clearing of bindings to variables that no longer exist.

Unlike the rest of the engine, an error while resolving a binding here is
evidence of a broken binding, not an operational failure. Resolution is
retried ``ghost_resolve_retries`` times before that verdict is reached.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from core.config.models import EngineConfig
from core.document.models import NodeSnapshot
from core.document.ports import DocumentPort, VariableStorePort
from core.ghosts.models import UNRESOLVED_VARIABLE_ID, ClearFailure, ClearResult, GhostBinding
from core.scan.eligibility import has_usable_text, is_effectively_visible
from core.utils.errors import StringifyError

NO_GHOSTS_FOUND = "No ghost bindings found to clear"

logger = logging.getLogger("stringify.ghosts")


class GhostReconciler:
    """Audit the whole page for ghost bindings and clear them on request."""

    def __init__(
        self,
        document: DocumentPort,
        store: VariableStorePort,
        config: EngineConfig | None = None,
    ) -> None:
        self._document = document
        self._store = store
        self._config = config or EngineConfig()

    async def build_valid_variable_ids(self) -> set[str]:
        """Every variable id listed by any collection in the document."""

        try:
            collections = await self._store.list_collections()
        except Exception as exc:
            logger.error("Error building valid variable id set: %s", exc)
            raise StringifyError(
                "Failed to scan for ghost variables", context={"cause": str(exc)}
            ) from exc

        valid_ids: set[str] = set()
        for collection in collections:
            valid_ids.update(collection.variable_ids)
        logger.info(
            "Built valid variable id set with %d variables from %d collections",
            len(valid_ids),
            len(collections),
        )
        return valid_ids

    async def scan(self) -> list[GhostBinding]:
        valid_ids = await self.build_valid_variable_ids()
        nodes = await self._document.list_text_nodes()

        ghosts: list[GhostBinding] = []
        for node in nodes:
            if not is_effectively_visible(node):
                continue
            if not has_usable_text(node.characters, self._config.max_text_length):
                continue
            ghosts.extend(await self._check_node(node, valid_ids))
        return ghosts

    async def clear(self, node_ids: Iterable[str]) -> ClearResult:
        targets = list(node_ids)
        result = ClearResult(total_attempted=len(targets))

        for node_id in targets:
            node_name = "unknown"
            try:
                node = await self._document.get_node(node_id)
                if node is None:
                    raise LookupError("Node no longer exists")
                node_name = node.name
                if node.removed:
                    raise LookupError("Node has been removed from the document")
                if not node.is_text:
                    raise LookupError("Node is no longer a text layer")

                cleared_any = False
                for kind in self._config.binding_kinds:
                    if await self._clear_binding_if_ghost(node_id, kind):
                        cleared_any = True

                if cleared_any:
                    result.successfully_cleared += 1
                else:
                    result.failed += 1
                    result.errors.append(
                        ClearFailure(node_id=node_id, node_name=node_name, error=NO_GHOSTS_FOUND)
                    )
            except Exception as exc:  # noqa: BLE001
                logger.error("Failed to clear ghost bindings on %s: %s", node_id, exc)
                result.failed += 1
                result.errors.append(
                    ClearFailure(
                        node_id=node_id,
                        node_name=node_name,
                        error=str(exc) or exc.__class__.__name__,
                    )
                )

        return result

    async def _check_node(self, node: NodeSnapshot, valid_ids: set[str]) -> list[GhostBinding]:
        ghosts: list[GhostBinding] = []
        for kind in self._config.binding_kinds:
            if not node.is_bound(kind):
                continue
            try:
                variable_id = await self._resolve_binding(node.node_id, kind)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Error checking variable binding on %s: %s", node.node_id, exc)
                variable_id = UNRESOLVED_VARIABLE_ID
            else:
                if not variable_id or variable_id in valid_ids:
                    continue

            ghosts.append(
                GhostBinding(
                    node_id=node.node_id,
                    node_name=node.name,
                    text_content=node.characters,
                    binding_kind=kind,
                    variable_id=variable_id,
                )
            )
        return ghosts

    async def _clear_binding_if_ghost(self, node_id: str, kind: str) -> bool:
        try:
            variable_id = await self._resolve_binding(node_id, kind)
            if not variable_id:
                return False
            variable = await self._store.get_variable(variable_id)
            if variable is not None:
                return False
        except Exception as exc:  # noqa: BLE001
            logger.warning("Binding %s on %s is inaccessible, clearing: %s", kind, node_id, exc)

        await self._document.set_binding(node_id, kind, None)
        return True

    async def _resolve_binding(self, node_id: str, kind: str) -> str | None:
        attempts = self._config.ghost_resolve_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await self._document.get_bound_variable_id(node_id, kind)
            except Exception:
                if attempt == attempts:
                    raise
                logger.debug("Retrying binding resolution on %s (attempt %d)", node_id, attempt)
        return None
