"""Wouch – branching types.

The closed set of step types a flow can be in, the branching action
kinds found in the catalog, and the decision value returned by the
branching evaluator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


NEXT_QUESTION = "next"
"""Sentinel step code: advance to the next question in catalog order."""


class StepType(str, Enum):
    """What the caller should present next."""

    QUESTION = "QUESTION"
    INTERVENTION = "INTERVENTION"
    PROTOCOL = "PROTOCOL"
    COMPLETE = "COMPLETE"


class ActionKind(str, Enum):
    """Branching rule action kinds.

    ``route_to_module`` and ``route_to_kai`` are catalog aliases of
    ``route_to_intervention``.
    """

    CONTINUE = "continue"
    ROUTE_TO_INTERVENTION = "route_to_intervention"
    ROUTE_TO_MODULE = "route_to_module"
    ROUTE_TO_KAI = "route_to_kai"
    ROUTE_TO_PROTOCOL = "route_to_protocol"


_INTERVENTION_ACTIONS = {
    ActionKind.ROUTE_TO_INTERVENTION.value,
    ActionKind.ROUTE_TO_MODULE.value,
    ActionKind.ROUTE_TO_KAI.value,
}


def step_type_for_action(action_kind: Optional[str]) -> StepType:
    """Map a catalog action kind onto the step type it routes to.

    Unknown kinds (and ``continue``) fall back to :attr:`StepType.QUESTION`.
    """

    if action_kind in _INTERVENTION_ACTIONS:
        return StepType.INTERVENTION
    if action_kind == ActionKind.ROUTE_TO_PROTOCOL.value:
        return StepType.PROTOCOL
    return StepType.QUESTION


@dataclass(frozen=True)
class BranchDecision:
    """Outcome of a branching evaluation.

    Attributes:
        step_type: Step type the matched rule routes to.
        step_code: Target code, or :data:`NEXT_QUESTION` for "advance".
        matched_rule_id: Rule that produced the decision; ``None`` when
            the fallback applied.
    """

    step_type: StepType
    step_code: Optional[str]
    matched_rule_id: Optional[str] = None

    @property
    def is_next_question(self) -> bool:
        return self.step_type == StepType.QUESTION and self.step_code == NEXT_QUESTION


FALLBACK_DECISION = BranchDecision(step_type=StepType.QUESTION, step_code=NEXT_QUESTION)
