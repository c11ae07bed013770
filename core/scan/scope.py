"""Selection-aware scan scope resolution."""

from __future__ import annotations

from core.config.models import EngineConfig
from core.document.ports import DocumentPort
from core.naming.composer import NamingStrategy
from core.scan.eligibility import is_eligible
from core.scan.grouper import group_sources
from core.scan.models import ScanResult, ScopeType, TextSource


async def scan_text_sources(
    document: DocumentPort,
    config: EngineConfig,
    strategy: NamingStrategy | None = None,
) -> ScanResult:
    """Collect eligible sources from the selection, or the whole page without one.

    When ``strategy`` is given the sources are grouped as well.
    """

    scope_type: ScopeType
    selection = await document.get_selection()
    if selection:
        nodes = await document.list_text_nodes(selection)
        scope_type = "selection"
    else:
        nodes = await document.list_text_nodes()
        scope_type = "page"

    sources = [
        TextSource.from_node(node)
        for node in nodes
        if is_eligible(node, config.primary_binding_kind, config.max_text_length)
    ]
    result = ScanResult(scope_type=scope_type, sources=sources, total_count=len(nodes))
    if strategy is not None:
        result.groups = group_sources(sources, strategy)
    return result


def describe_scope(result: ScanResult) -> str:
    """Short human message for an empty scan."""

    if result.total_count > 0:
        return (
            f"Found {result.total_count} text layers, but none are suitable for variable "
            "creation (may be hidden, locked, or already bound to variables)."
        )
    if result.scope_type == "selection":
        return "No suitable text layers selected for processing."
    return "No suitable text layers found on the current page."
