from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from apps.cli.main import app

runner = CliRunner()


def _write_document(path: Path, nodes: list[dict[str, object]]) -> None:
    payload: dict[str, object] = {
        "nodes": nodes,
        "collections": [{"id": "c1", "name": "Strings"}],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")


def _text(node_id: str, characters: str, **fields: object) -> dict[str, object]:
    return {"id": node_id, "name": "Button", "characters": characters, **fields}


def test_run_binds_duplicates_and_writes_outputs(tmp_path: Path) -> None:
    document = tmp_path / "doc.json"
    out = tmp_path / "out" / "doc.json"
    report = tmp_path / "out" / "report.json"
    _write_document(document, [_text("1:1", "Sign Up"), _text("1:2", "Sign Up")])

    result = runner.invoke(
        app,
        [
            "run",
            "--document",
            str(document),
            "--collection",
            "c1",
            "--out",
            str(out),
            "--report",
            str(report),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "created=1 connected=1 skipped=0 errors=0" in result.output
    assert "INFO(progress): 100% remaining=0" in result.output
    assert "INFO: success" in result.output

    written = json.loads(out.read_text(encoding="utf-8"))
    bound = {node["bound_variables"]["characters"] for node in written["nodes"]}
    assert len(bound) == 1
    assert written["variables"][0]["name"] == "Sign_Up"
    stats = json.loads(report.read_text(encoding="utf-8"))
    assert stats["total_processed"] == 2
    assert "variables" not in json.loads(document.read_text(encoding="utf-8"))


def test_run_exit_codes(tmp_path: Path) -> None:
    document = tmp_path / "doc.json"
    _write_document(document, [_text("1:1", "Hidden", visible=False)])
    no_sources = runner.invoke(app, ["run", "--document", str(document), "--collection", "c1"])

    _write_document(document, [_text("1:1", "Save")])
    missing = runner.invoke(app, ["run", "--document", str(document), "--collection", "gone"])
    no_collection = runner.invoke(app, ["run", "--document", str(document)])
    bad_mode = runner.invoke(
        app, ["run", "--document", str(document), "--collection", "c1", "--mode", "fancy"]
    )

    assert no_sources.exit_code == 2
    assert "No valid text layers found for processing" in no_sources.output
    assert missing.exit_code == 3
    assert "Collection not found or has been deleted: gone" in missing.output
    assert no_collection.exit_code == 1
    assert "ERROR: --collection is required." in no_collection.output
    assert bad_mode.exit_code == 1


def test_run_in_place_with_hierarchical_mode(tmp_path: Path) -> None:
    document = tmp_path / "doc.yaml"
    document.write_text(
        "nodes:\n"
        "  - {id: '2:1', name: Card, type: COMPONENT}\n"
        "  - {id: '1:1', name: Label, characters: Sign up, parent_id: '2:1'}\n"
        "  - {id: '1:2', name: Label, characters: Sign Up, parent_id: '2:1'}\n"
        "collections:\n"
        "  - {id: c1, name: Strings}\n",
        encoding="utf-8",
    )

    result = runner.invoke(
        app,
        ["run", "--document", str(document), "--collection", "c1", "--mode", "hierarchical"],
    )

    assert result.exit_code == 0, result.output
    assert "created=1 connected=1" in result.output
    assert "card/label_sign_up" in document.read_text(encoding="utf-8")


def test_scan_previews_groups(tmp_path: Path) -> None:
    document = tmp_path / "doc.json"
    _write_document(
        document,
        [_text("1:1", "Save"), _text("1:2", "Save"), _text("1:3", "Cancel", locked=True)],
    )

    result = runner.invoke(app, ["scan", "--document", str(document)])

    assert result.exit_code == 0, result.output
    assert "scope=page naming_mode=simple valid=2 total=3" in result.output
    assert "Save = 'Save' x2" in result.output


def test_collections_and_create_collection(tmp_path: Path) -> None:
    document = tmp_path / "doc.json"
    _write_document(document, [])

    created = runner.invoke(app, ["create-collection", "--document", str(document)])
    listed = runner.invoke(app, ["collections", "--document", str(document)])

    assert created.exit_code == 0, created.output
    assert "created collection Text to String" in created.output
    assert listed.exit_code == 0
    assert "c1\tStrings\tvariables=0" in listed.output
    assert "Text to String" in listed.output


def test_missing_document_is_an_argument_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["scan", "--document", str(tmp_path / "absent.json")])

    assert result.exit_code != 0
