"""Wouch – branching package.

Step types, branching decisions and the :class:`BranchingEvaluator` that
selects the next step from the catalog's prioritised rules.
"""

from wouch.branching.types import (
    NEXT_QUESTION,
    ActionKind,
    BranchDecision,
    StepType,
    step_type_for_action,
)
from wouch.branching.engine import BranchingEvaluator, next_question_code
