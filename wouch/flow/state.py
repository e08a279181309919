"""Wouch – flow state machine.

Pure transition functions for the per-subject flow. Each returns the new
immutable :class:`FlowState` together with the audit :class:`FlowEvent`
to append; persistence is left to the caller.

The allowed statuses are::

    (uninitialised) -> in_progress -> completed

``in_progress`` loops on every answered question or completed
intervention; ``completed`` is terminal and is entered exactly when the
resolved step is ``COMPLETE``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from wouch.branching.types import NEXT_QUESTION, BranchDecision, StepType
from wouch.core.errors import InvalidTransition
from wouch.core.types import SubjectKey
from wouch.flow.types import FlowEvent, FlowEventType, FlowState, FlowStatus


@dataclass(frozen=True)
class Transition:
    """Result of a transition: the new state and its audit record."""

    state: FlowState
    audit: FlowEvent


def _validate_step(step_type: StepType, step_code: Optional[str]) -> None:
    """Reject steps that cannot be presented to a caller.

    Raises :class:`InvalidTransition` for unresolved or inconsistent
    steps.
    """

    if step_type == StepType.COMPLETE:
        if step_code is not None:
            raise InvalidTransition(f"COMPLETE step must not carry a code, got {step_code!r}")
        return

    if not step_code:
        raise InvalidTransition(f"{step_type.value} step requires a code")
    if step_type == StepType.QUESTION and step_code == NEXT_QUESTION:
        raise InvalidTransition("Unresolved 'next' question step cannot be committed")


def start(
    subject: SubjectKey,
    flow_code: str,
    first_question_code: str,
    now: datetime,
) -> Transition:
    """Initialise a flow on its first question."""

    _validate_step(StepType.QUESTION, first_question_code)
    state = FlowState(
        subject=subject,
        flow_code=flow_code,
        step_type=StepType.QUESTION,
        step_code=first_question_code,
        status=FlowStatus.IN_PROGRESS,
        started_at=now,
        last_question_code=first_question_code,
    )
    audit = FlowEvent(
        subject=subject,
        flow_code=flow_code,
        step_code=first_question_code,
        event_type=FlowEventType.STARTED,
        created_at=now,
    )
    return Transition(state=state, audit=audit)


def advance(state: FlowState, step: BranchDecision, now: datetime) -> Transition:
    """Move ``state`` to a resolved step.

    ``step`` must already be resolved: a question step names a concrete
    question code, never the "next" sentinel.

    Raises:
        InvalidTransition: If the flow is already completed or the step
            is unresolved.
    """

    if state.status == FlowStatus.COMPLETED:
        raise InvalidTransition(f"Flow for {state.subject} is already completed")
    step_type, step_code = step.step_type, step.step_code
    _validate_step(step_type, step_code)

    completed = step_type == StepType.COMPLETE
    new_state = replace(
        state,
        step_type=step_type,
        step_code=step_code,
        status=FlowStatus.COMPLETED if completed else FlowStatus.IN_PROGRESS,
        completed_at=now if completed else None,
        last_question_code=step_code if step_type == StepType.QUESTION else state.last_question_code,
    )
    audit = FlowEvent(
        subject=state.subject,
        flow_code=state.flow_code,
        step_code=step_code,
        event_type=FlowEventType.ENTERED,
        created_at=now,
    )
    return Transition(state=new_state, audit=audit)
