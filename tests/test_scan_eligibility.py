from __future__ import annotations

import logging

import pytest

from core.document.models import AncestorInfo, NodeSnapshot
from core.scan.eligibility import has_usable_text, is_effectively_visible, is_eligible

_HIDDEN_PARENT = AncestorInfo(node_id="2:1", name="Hidden", node_type="FRAME", visible=False)


def _node(**overrides: object) -> NodeSnapshot:
    fields: dict[str, object] = {
        "node_id": "1:1",
        "name": "Label",
        "node_type": "TEXT",
        "characters": "Sign Up",
    }
    fields.update(overrides)
    return NodeSnapshot(**fields)  # type: ignore[arg-type]


def test_plain_visible_text_node_is_eligible() -> None:
    assert is_eligible(_node()) is True


@pytest.mark.parametrize(
    "overrides",
    [
        {"node_type": "FRAME"},
        {"removed": True},
        {"locked": True},
        {"visible": False},
        {"characters": "   "},
        {"characters": "x" * 1001},
        {"bound_variables": {"characters": "VariableID:1"}},
        {"ancestors": (_HIDDEN_PARENT,)},
    ],
)
def test_ineligible_nodes(overrides: dict[str, object]) -> None:
    assert is_eligible(_node(**overrides)) is False


def test_binding_on_another_kind_does_not_block() -> None:
    node = _node(bound_variables={"fontSize": "VariableID:9"})

    assert is_eligible(node, binding_kind="characters") is True
    assert is_eligible(node, binding_kind="fontSize") is False


def test_text_length_limit_is_configurable() -> None:
    node = _node(characters="Twelve chars")

    assert is_eligible(node, max_text_length=12) is True
    assert is_eligible(node, max_text_length=11) is False


def test_inspection_error_is_fail_closed(caplog: pytest.LogCaptureFixture) -> None:
    broken = _node(bound_variables=None)

    with caplog.at_level(logging.WARNING, logger="stringify.scan"):
        assert is_eligible(broken) is False

    assert "Error validating text node 1:1" in caplog.text


def test_visibility_checks_every_ancestor() -> None:
    ancestors = (
        AncestorInfo(node_id="2:1", name="Row", node_type="FRAME"),
        AncestorInfo(node_id="2:2", name="Panel", node_type="FRAME", visible=False),
    )

    assert is_effectively_visible(_node(ancestors=ancestors)) is False
    assert is_effectively_visible(_node(ancestors=ancestors[:1])) is True


def test_usable_text_trims_before_measuring() -> None:
    assert has_usable_text("  ok  ", 2) is True
    assert has_usable_text(None) is False
