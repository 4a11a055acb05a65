# tests/domains/test_wf_engine.py

"""
워크플로 상태 기계(app.domains.wf.engine)에 대한 단위 테스트입니다. DB 를 사용하지 않습니다.
"""

import pytest

from app.domains.corp.workflows import registration_definition
from app.domains.wf.engine import (
    StateMachine,
    TransitionForbiddenError,
    TransitionNotAllowedError,
    UnknownStateError,
    WorkflowDefinitionError,
)


def _machine() -> StateMachine:
    definition = registration_definition()
    return StateMachine(definition.states, definition.initial_state, definition.config)


def _simple(states, initial, config=None) -> StateMachine:
    return StateMachine.from_definition(states, initial, config or {})


# =============================================================================
# 1. 정의 검증
# =============================================================================
def test_registration_definition_is_valid():
    machine = _machine()
    assert machine.initial_state == "under_review"
    assert "submitted" not in machine.states
    assert machine.is_final("archived")
    assert not machine.is_final("under_review")


@pytest.mark.parametrize(
    "states, initial, config",
    [
        ([], "a", {}),
        (["a", "a"], "a", {}),
        (["a", "b"], "c", {}),
        (["a"], "a", {"states": {"b": {}}}),
        (["a", "b"], "a", {"states": {"a": {"actions": [{"key": "go", "to": "z"}]}}}),
        (["a", "b"], "a", {"states": {"a": {"actions": [{"key": "go", "to": "b"}, {"key": "go", "to": "a"}]}}}),
    ],
)
def test_invalid_definitions_are_rejected(states, initial, config):
    with pytest.raises(WorkflowDefinitionError):
        _simple(states, initial, config)


# =============================================================================
# 2. 전이
# =============================================================================
def test_resolve_returns_target_and_business_values():
    transition = _machine().resolve("under_review", "approve", ["ADMIN"])
    assert transition.source == "under_review"
    assert transition.target == "approved"
    assert transition.final is False
    assert transition.business == {"application_status": "APPROVED", "company_status": "ACTIVE"}


def test_resolve_to_final_state():
    transition = _machine().resolve("suspended", "archive", ["REGISTRY_AUTHORITY_LEGAL"])
    assert transition.target == "archived"
    assert transition.final is True


def test_resolve_unknown_action_is_not_allowed():
    with pytest.raises(TransitionNotAllowedError):
        _machine().resolve("under_review", "resubmit", ["ADMIN"])


def test_resolve_checks_roles():
    with pytest.raises(TransitionForbiddenError):
        _machine().resolve("under_review", "approve", ["GENERAL_USER", "APPLICANT"])


def test_actions_without_roles_are_open_to_everyone():
    transition = _machine().resolve("needs_revision", "resubmit", [])
    assert transition.target == "under_review"


def test_wildcard_role():
    machine = _simple(["a", "b"], "a", {"states": {"a": {"actions": [{"key": "go", "to": "b", "roles": ["*"]}]}}})
    assert machine.resolve("a", "go", []).target == "b"


def test_resolve_from_unknown_state():
    with pytest.raises(UnknownStateError):
        _machine().resolve("submitted", "approve", ["ADMIN"])


def test_available_actions_filtered_by_roles():
    machine = _machine()
    assert [a.key for a in machine.available_actions("under_review")] == ["approve", "request_changes", "reject"]
    assert machine.available_actions("under_review", ["APPLICANT"]) == []
    assert [a.key for a in machine.available_actions("needs_revision", ["APPLICANT"])] == ["resubmit", "withdraw"]
    assert machine.available_actions("archived", ["ADMIN"]) == []


# =============================================================================
# 3. 상태 제거 (retire)
# =============================================================================
def test_retire_state_repoints_actions_and_initial_state():
    machine = _simple(
        ["submitted", "under_review", "done"],
        "submitted",
        {
            "states": {
                "submitted": {"actions": [{"key": "review", "to": "under_review"}]},
                "under_review": {"actions": [{"key": "back", "to": "submitted"}, {"key": "finish", "to": "done"}]},
                "done": {"final": True},
            }
        },
    )
    retired = machine.retire_state("submitted", "under_review")

    assert retired.states == ["under_review", "done"]
    assert retired.initial_state == "under_review"
    assert "submitted" not in retired.to_config()["states"]
    back = next(a for a in retired.available_actions("under_review") if a.key == "back")
    assert back.to == "under_review"
    # 원래 정의는 바뀌지 않습니다.
    assert machine.states == ["submitted", "under_review", "done"]


def test_retire_state_errors():
    machine = _simple(["a", "b"], "a")
    with pytest.raises(UnknownStateError):
        machine.retire_state("c", "a")
    with pytest.raises(UnknownStateError):
        machine.retire_state("a", "c")
    with pytest.raises(WorkflowDefinitionError):
        machine.retire_state("a", "a")


def test_retiring_the_last_state_is_rejected():
    with pytest.raises(UnknownStateError):
        _simple(["a"], "a").retire_state("a", "b")
