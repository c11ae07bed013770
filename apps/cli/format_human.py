"""Human-readable summaries for CLI output."""

from __future__ import annotations

from collections import Counter

from core.ghosts.models import ClearResult, GhostBinding
from core.orchestrator.models import ProcessingStats, render_processing_summary
from core.scan.models import ScanResult


def render_scan_summary(result: ScanResult, naming_mode: str) -> str:
    """Render scope, counts and the planned variable per group."""

    lines: list[str] = []
    lines.append("scan_summary:")
    lines.append(
        f"scope={result.scope_type} naming_mode={naming_mode} "
        f"valid={result.valid_count} total={result.total_count}"
    )
    lines.append(f"groups={len(result.groups)}")
    for group in result.groups:
        marker = f" x{len(group.sources)}" if group.is_duplicate else ""
        lines.append(f"  {group.variable_name} = {group.content!r}{marker}")
    return "\n".join(lines)


def render_run_summary(stats: ProcessingStats) -> str:
    """Render the outcome of one processing run with its top issue codes."""

    lines: list[str] = []
    lines.append("run_summary:")
    lines.append(
        f"created={stats.created} connected={stats.connected} "
        f"skipped={stats.skipped} errors={stats.errors}"
    )
    lines.append(
        f"groups={stats.group_count} duplicate_groups={stats.duplicate_group_count} "
        f"elapsed_ms={stats.elapsed_ms}"
    )

    issue_counter: Counter[str] = Counter(issue.error_code for issue in stats.issues)
    if issue_counter:
        top_items = sorted(issue_counter.items(), key=lambda item: (-item[1], item[0]))[:5]
        lines.append("issues: " + ", ".join(f"{code}={count}" for code, count in top_items))
    else:
        lines.append("issues: none")

    lines.append(render_processing_summary(stats))
    return "\n".join(lines)


def render_ghost_list(ghosts: list[GhostBinding]) -> str:
    if not ghosts:
        return "No ghost bindings found"

    lines = [f"ghosts={len(ghosts)}"]
    for ghost in ghosts:
        lines.append(
            f"  {ghost.node_id} {ghost.node_name!r} "
            f"{ghost.binding_kind}->{ghost.variable_id} text={ghost.text_content!r}"
        )
    return "\n".join(lines)


def render_clear_summary(result: ClearResult) -> str:
    lines = [
        f"attempted={result.total_attempted} cleared={result.successfully_cleared} "
        f"failed={result.failed}"
    ]
    for failure in result.errors:
        lines.append(f"  {failure.node_id} {failure.node_name!r}: {failure.error}")
    return "\n".join(lines)
