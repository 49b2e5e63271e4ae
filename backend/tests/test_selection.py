"""Tests for selection and the confirmation gate."""
import pytest

from sync_client.selection import ConfirmGate, Selection, SelectionState

pytestmark = pytest.mark.unit


def test_selecting_a_person_clears_the_link():
    selection = Selection()
    selection.select_link("l-1")
    assert selection.state == SelectionState.LINK_SELECTED

    selection.select_person("p-1")
    assert selection.state == SelectionState.PERSON_SELECTED
    assert selection.link_id is None


def test_selecting_a_link_clears_the_person():
    selection = Selection()
    selection.select_person("p-1")
    selection.select_link("l-1")
    assert selection.person_id is None
    assert selection.state == SelectionState.LINK_SELECTED


def test_clear_is_idempotent():
    selection = Selection()
    selection.select_person("p-1")
    selection.clear()
    selection.clear()
    assert selection.state == SelectionState.NONE


def test_forget_only_clears_matching_selection():
    selection = Selection()
    selection.select_person("p-1")
    assert selection.forget_person("p-2") is False
    assert selection.person_id == "p-1"
    assert selection.forget_person("p-1") is True
    assert selection.state == SelectionState.NONE


def test_confirm_runs_the_action_once_and_closes():
    calls = []
    gate = ConfirmGate()
    gate.open("Delete Alice?", lambda: calls.append("deleted") or "done")
    assert gate.is_open
    assert gate.message == "Delete Alice?"

    assert gate.confirm() == "done"
    assert calls == ["deleted"]
    assert not gate.is_open
    assert gate.message == ""
    assert gate.confirm() is None
    assert calls == ["deleted"]


def test_cancel_never_runs_the_action():
    calls = []
    gate = ConfirmGate()
    gate.open("Delete?", lambda: calls.append("x"))
    gate.cancel()
    assert gate.confirm() is None
    assert calls == []


def test_opening_again_replaces_the_pending_action():
    calls = []
    gate = ConfirmGate()
    gate.open("first", lambda: calls.append("first"))
    gate.open("second", lambda: calls.append("second"))
    gate.confirm()
    assert calls == ["second"]


def test_gate_closes_even_when_the_action_fails():
    gate = ConfirmGate()

    def boom():
        raise RuntimeError("boom")

    gate.open("Delete?", boom)
    with pytest.raises(RuntimeError):
        gate.confirm()
    assert not gate.is_open
