"""Typer CLI entrypoint for stringify."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

from apps.cli.format_human import (
    render_clear_summary,
    render_ghost_list,
    render_run_summary,
    render_scan_summary,
)
from apps.cli.io import write_document_atomic, write_report_atomic
from core.config.loader import load_config
from core.document.loader import load_document
from core.document.memory import InMemoryDocument
from core.document.ports import NamingMode, PreferencePort
from core.orchestrator.batch import no_yield
from core.orchestrator.engine import StringifyEngine
from core.orchestrator.models import ProgressEvent
from core.preferences.store import MemoryNamingModeStore, NamingModeStore, parse_naming_mode
from core.utils.errors import CollectionNotFoundError, NoSourcesError, StringifyError

app = typer.Typer(help="Stringify: turn text layers into string variables", rich_markup_mode=None)
ghosts_app = typer.Typer(help="Find and clear bindings to deleted variables", rich_markup_mode=None)
mode_app = typer.Typer(help="Show or change the persisted naming mode", rich_markup_mode=None)
app.add_typer(ghosts_app, name="ghosts")
app.add_typer(mode_app, name="mode")

EXIT_ARGS = 1
EXIT_NO_SOURCES = 2
EXIT_COLLECTION_NOT_FOUND = 3
EXIT_PARTIAL_FAILURE = 4

DocumentOption = Annotated[
    Path,
    typer.Option(
        "--document",
        envvar="STRINGIFY_DOCUMENT",
        exists=True,
        dir_okay=False,
        file_okay=True,
        help="Document snapshot (JSON or YAML).",
    ),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", envvar="STRINGIFY_CONFIG", help="Engine config YAML."),
]
PrefsOption = Annotated[
    Path | None,
    typer.Option(
        "--prefs",
        envvar="STRINGIFY_PREFERENCES",
        help="Naming-mode preference file; in-memory when omitted.",
    ),
]
OutOption = Annotated[
    Path | None,
    typer.Option("--out", help="Where to write the updated document; defaults to --document."),
]


@app.callback()
def cli_callback(
    log_level: Annotated[str, typer.Option("--log-level", help="Logging level.")] = "WARNING",
) -> None:
    """Configure logging for every subcommand."""

    level = logging.getLevelName(log_level.upper().strip())
    if not isinstance(level, int):
        typer.echo(f"ERROR: unknown --log-level: {log_level}")
        raise typer.Exit(code=EXIT_ARGS)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@app.command("collections")
def collections_command(document: DocumentOption) -> None:
    """List variable collections in the document."""

    engine, _ = _build_engine(document, None, None)
    collections = _run_or_exit(engine.list_collections())
    if not collections:
        typer.echo("INFO: no collections")
    for collection in collections:
        typer.echo(
            f"{collection.collection_id}\t{collection.name}\t"
            f"variables={len(collection.variable_ids)}"
        )


@app.command("create-collection")
def create_collection_command(document: DocumentOption, out: OutOption = None) -> None:
    """Create the default collection, picking a free name."""

    engine, host = _build_engine(document, None, None)
    created = _run_or_exit(engine.create_default_collection())
    _write_document(host, out or document)
    typer.echo(f"INFO: created collection {created.name} ({created.collection_id})")


@app.command("scan")
def scan_command(
    document: DocumentOption,
    mode: Annotated[str | None, typer.Option("--mode", help="simple or hierarchical.")] = None,
    config: ConfigOption = None,
    prefs: PrefsOption = None,
) -> None:
    """Preview eligible text layers and the variables they would map to."""

    engine, _ = _build_engine(document, config, prefs)
    naming_mode = _resolve_mode(engine, mode)
    result = _run_or_exit(engine.scan(naming_mode))
    typer.echo(render_scan_summary(result, naming_mode))
    if not result.sources:
        raise typer.Exit(code=EXIT_NO_SOURCES)


@app.command("run")
def run_command(
    document: DocumentOption,
    collection: Annotated[str, typer.Option("--collection", help="Target collection id.")] = "",
    mode: Annotated[str | None, typer.Option("--mode", help="simple or hierarchical.")] = None,
    out: OutOption = None,
    report: Annotated[
        Path | None, typer.Option("--report", help="Write the run stats as JSON.")
    ] = None,
    config: ConfigOption = None,
    prefs: PrefsOption = None,
) -> None:
    """Convert eligible text layers into bound string variables."""

    if not collection.strip():
        typer.echo("ERROR: --collection is required.")
        raise typer.Exit(code=EXIT_ARGS)

    engine, host = _build_engine(document, config, prefs, headless=True)
    naming_mode = _resolve_mode(engine, mode)

    def _echo_progress(event: ProgressEvent) -> None:
        typer.echo(f"INFO(progress): {event.progress}% remaining={event.remaining}")

    try:
        stats = asyncio.run(
            engine.process(collection, mode=naming_mode, on_progress=_echo_progress)
        )
    except NoSourcesError as exc:
        typer.echo(f"ERROR: {exc.message}")
        raise typer.Exit(code=EXIT_NO_SOURCES) from exc
    except CollectionNotFoundError as exc:
        typer.echo(f"ERROR: {exc.message}: {exc.collection_id}")
        raise typer.Exit(code=EXIT_COLLECTION_NOT_FOUND) from exc
    except StringifyError as exc:
        typer.echo(f"ERROR: {exc.code}: {exc.message}")
        raise typer.Exit(code=EXIT_ARGS) from exc

    typer.echo(render_run_summary(stats))
    _write_document(host, out or document)
    if report is not None:
        try:
            write_report_atomic(report, stats.to_result())
        except OSError as exc:
            typer.echo(f"ERROR: report write failed: {exc}")
            raise typer.Exit(code=EXIT_ARGS) from exc

    if stats.errors > 0:
        typer.echo(f"WARNING: {stats.errors} layers could not be converted.")
        raise typer.Exit(code=EXIT_PARTIAL_FAILURE)
    typer.echo("INFO: success")


@ghosts_app.command("scan")
def ghosts_scan_command(
    document: DocumentOption,
    report: Annotated[Path | None, typer.Option("--report")] = None,
    config: ConfigOption = None,
) -> None:
    """List bindings that reference variables which no longer exist."""

    engine, _ = _build_engine(document, config, None)
    ghosts = _run_or_exit(engine.scan_ghosts())
    typer.echo(render_ghost_list(ghosts))
    if report is not None:
        write_report_atomic(
            report, {"ghosts": [ghost.model_dump(mode="json") for ghost in ghosts]}
        )


@ghosts_app.command("clear")
def ghosts_clear_command(
    document: DocumentOption,
    node_id: Annotated[
        list[str] | None, typer.Option("--node-id", help="Node to clear; repeatable.")
    ] = None,
    clear_all: Annotated[
        bool, typer.Option("--all", help="Clear every ghost found by a fresh scan.")
    ] = False,
    out: OutOption = None,
    config: ConfigOption = None,
) -> None:
    """Unbind ghost bindings from the given nodes."""

    if clear_all and node_id:
        typer.echo("ERROR: --all and --node-id cannot be used together.")
        raise typer.Exit(code=EXIT_ARGS)
    if not clear_all and not node_id:
        typer.echo("ERROR: pass --node-id or --all.")
        raise typer.Exit(code=EXIT_ARGS)

    engine, host = _build_engine(document, config, None)
    if clear_all:
        ghosts = _run_or_exit(engine.scan_ghosts())
        targets = list(dict.fromkeys(ghost.node_id for ghost in ghosts))
        if not targets:
            typer.echo("INFO: no ghost bindings found")
            return
    else:
        targets = list(node_id or [])

    result = _run_or_exit(engine.clear_ghosts(targets))
    typer.echo(render_clear_summary(result))
    if result.successfully_cleared:
        _write_document(host, out or document)
    if result.failed:
        raise typer.Exit(code=EXIT_PARTIAL_FAILURE)


@mode_app.command("show")
def mode_show_command(prefs: PrefsOption = None) -> None:
    """Print the persisted naming mode."""

    typer.echo(_preferences(prefs).load())


@mode_app.command("set")
def mode_set_command(mode: Annotated[str, typer.Argument()], prefs: PrefsOption = None) -> None:
    """Persist a new naming mode."""

    if prefs is None:
        typer.echo("ERROR: --prefs is required to persist the naming mode.")
        raise typer.Exit(code=EXIT_ARGS)
    try:
        parsed = parse_naming_mode(mode)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_ARGS) from exc
    _preferences(prefs).save(parsed)
    typer.echo(f"INFO: naming mode set to {parsed}")


def _build_engine(
    document: Path,
    config: Path | None,
    prefs: Path | None,
    *,
    headless: bool = False,
) -> tuple[StringifyEngine, InMemoryDocument]:
    try:
        engine_config = load_config(config)
        host = load_document(document)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_ARGS) from exc

    engine = StringifyEngine(
        host,
        host,
        preferences=_preferences(prefs),
        config=engine_config,
        yield_hook=no_yield if headless else None,
    )
    return engine, host


def _preferences(prefs: Path | None) -> PreferencePort:
    if prefs is None:
        return MemoryNamingModeStore()
    return NamingModeStore(prefs)


def _resolve_mode(engine: StringifyEngine, mode: str | None) -> NamingMode:
    if mode is None:
        return engine.naming_mode()
    try:
        return parse_naming_mode(mode)
    except ValueError as exc:
        typer.echo("ERROR: --mode must be one of: simple, hierarchical.")
        raise typer.Exit(code=EXIT_ARGS) from exc


def _run_or_exit(coro):  # noqa: ANN001, ANN202
    try:
        return asyncio.run(coro)
    except StringifyError as exc:
        typer.echo(f"ERROR: {exc.code}: {exc.message}")
        raise typer.Exit(code=EXIT_ARGS) from exc


def _write_document(host: InMemoryDocument, path: Path) -> None:
    try:
        write_document_atomic(path, host.to_snapshot())
    except OSError as exc:
        typer.echo(f"ERROR: document write failed: {exc}")
        raise typer.Exit(code=EXIT_ARGS) from exc


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
