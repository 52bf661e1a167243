"""Unit tests for the execution status state machine."""

from __future__ import annotations

import pytest

from geo_insights.engine.models import WorkflowStatus
from geo_insights.engine.state_machine import IllegalTransitionError, transition


def test_forward_transitions_are_allowed() -> None:
    assert transition(current=WorkflowStatus.PENDING, to=WorkflowStatus.RUNNING) == (
        WorkflowStatus.RUNNING
    )
    assert transition(current=WorkflowStatus.RUNNING, to=WorkflowStatus.COMPLETED) == (
        WorkflowStatus.COMPLETED
    )
    assert transition(current=WorkflowStatus.RUNNING, to=WorkflowStatus.FAILED) == (
        WorkflowStatus.FAILED
    )


@pytest.mark.parametrize(
    ("current", "to"),
    [
        (WorkflowStatus.PENDING, WorkflowStatus.COMPLETED),
        (WorkflowStatus.PENDING, WorkflowStatus.FAILED),
        (WorkflowStatus.RUNNING, WorkflowStatus.PENDING),
        (WorkflowStatus.COMPLETED, WorkflowStatus.FAILED),
        (WorkflowStatus.FAILED, WorkflowStatus.RUNNING),
        (WorkflowStatus.COMPLETED, WorkflowStatus.COMPLETED),
    ],
)
def test_transition_rejects_illegal_transitions(
    current: WorkflowStatus, to: WorkflowStatus
) -> None:
    with pytest.raises(IllegalTransitionError):
        transition(current=current, to=to)


def test_terminal_statuses() -> None:
    assert WorkflowStatus.COMPLETED.is_terminal
    assert WorkflowStatus.FAILED.is_terminal
    assert not WorkflowStatus.RUNNING.is_terminal
    assert not WorkflowStatus.PENDING.is_terminal
