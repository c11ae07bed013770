from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from apps.cli.main import app

runner = CliRunner()


def _write_ghost_document(path: Path) -> None:
    payload = {
        "nodes": [
            {
                "id": "1:1",
                "name": "Title",
                "characters": "Hello",
                "bound_variables": {"characters": "VariableID:deleted"},
            },
            {
                "id": "1:2",
                "name": "Body",
                "characters": "World",
                "bound_variables": {"characters": "v1"},
            },
        ],
        "collections": [{"id": "c1", "name": "Strings", "variable_ids": ["v1"]}],
        "variables": [{"id": "v1", "name": "World", "collection_id": "c1"}],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_ghost_scan_lists_and_reports(tmp_path: Path) -> None:
    document = tmp_path / "doc.json"
    report = tmp_path / "ghosts.json"
    _write_ghost_document(document)

    result = runner.invoke(
        app, ["ghosts", "scan", "--document", str(document), "--report", str(report)]
    )

    assert result.exit_code == 0, result.output
    assert "ghosts=1" in result.output
    assert "characters->VariableID:deleted" in result.output
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert [ghost["node_id"] for ghost in payload["ghosts"]] == ["1:1"]


def test_ghost_clear_all_then_again(tmp_path: Path) -> None:
    document = tmp_path / "doc.json"
    _write_ghost_document(document)

    cleared = runner.invoke(app, ["ghosts", "clear", "--document", str(document), "--all"])
    again = runner.invoke(
        app, ["ghosts", "clear", "--document", str(document), "--node-id", "1:1"]
    )

    assert cleared.exit_code == 0, cleared.output
    assert "attempted=1 cleared=1 failed=0" in cleared.output
    nodes = json.loads(document.read_text(encoding="utf-8"))["nodes"]
    assert nodes[0]["bound_variables"] == {}
    assert nodes[1]["bound_variables"] == {"characters": "v1"}

    assert again.exit_code == 4
    assert "No ghost bindings found to clear" in again.output


def test_ghost_clear_requires_exactly_one_target_flag(tmp_path: Path) -> None:
    document = tmp_path / "doc.json"
    _write_ghost_document(document)

    neither = runner.invoke(app, ["ghosts", "clear", "--document", str(document)])
    both = runner.invoke(
        app,
        ["ghosts", "clear", "--document", str(document), "--all", "--node-id", "1:1"],
    )

    assert neither.exit_code == 1
    assert both.exit_code == 1


def test_mode_show_and_set(tmp_path: Path) -> None:
    prefs = tmp_path / "prefs.json"

    before = runner.invoke(app, ["mode", "show", "--prefs", str(prefs)])
    changed = runner.invoke(app, ["mode", "set", "hierarchical", "--prefs", str(prefs)])
    after = runner.invoke(app, ["mode", "show", "--prefs", str(prefs)])
    rejected = runner.invoke(app, ["mode", "set", "fancy", "--prefs", str(prefs)])

    assert before.output.strip() == "simple"
    assert changed.exit_code == 0
    assert after.output.strip() == "hierarchical"
    assert rejected.exit_code == 1
    assert "Unsupported naming mode" in rejected.output


def test_persisted_mode_drives_scan(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    prefs = tmp_path / "prefs.json"
    document = tmp_path / "doc.json"
    _write_ghost_document(document)
    monkeypatch.setenv("STRINGIFY_PREFERENCES", str(prefs))
    runner.invoke(app, ["mode", "set", "hierarchical"])

    result = runner.invoke(app, ["scan", "--document", str(document)])

    assert "naming_mode=hierarchical" in result.output


def test_unknown_log_level_is_rejected(tmp_path: Path) -> None:
    prefs = tmp_path / "prefs.json"

    result = runner.invoke(app, ["--log-level", "chatty", "mode", "show", "--prefs", str(prefs)])

    assert result.exit_code == 1
    assert "unknown --log-level" in result.output
