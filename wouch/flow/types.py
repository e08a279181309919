"""
Wouch: Flow Types

Value objects owned by the flow controller: the per-subject flow state,
audit events, stored answer submissions and the directives returned to
callers.

Database tables accessed:
- None directly. Persistence lives in :mod:`wouch.flow.storage`.

Thread safety: Dataclasses are immutable value objects.

Author: Wouch Team
Created: 2025-11-26
Last Modified: 2025-12-02
Status: Development
Version: v0.2.0
"""

from __future__ import annotations

# ============================================================================
# Imports
# ============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from wouch.branching.types import StepType
from wouch.core.types import JsonDict, ScoreMap, SubjectKey

# ============================================================================
# Enums
# ============================================================================


class FlowStatus(str, Enum):
    """Persisted flow status. ``COMPLETED`` is terminal."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class FlowEventType(str, Enum):
    """Audit event types written on every committed transition."""

    STARTED = "started"
    ENTERED = "entered"


# ============================================================================
# Persisted records
# ============================================================================


@dataclass(frozen=True)
class FlowState:
    """Current position of one subject in the flow.

    Attributes:
        subject: Subject key.
        flow_code: Flow identifier (e.g. ``onboarding_v1``).
        step_type: Type of the current step.
        step_code: Code of the current step; ``None`` once complete.
        last_question_code: Most recent question step, used to resolve
            "next question" after an intervention.
        status: ``in_progress`` or ``completed``.
        started_at: When the flow was initialised.
        completed_at: When the flow reached ``COMPLETE``.
    """

    subject: SubjectKey
    flow_code: str
    step_type: StepType
    step_code: Optional[str]
    status: FlowStatus
    started_at: datetime
    last_question_code: Optional[str] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class FlowEvent:
    """Append-only audit row for one transition."""

    subject: SubjectKey
    flow_code: str
    step_code: Optional[str]
    event_type: FlowEventType
    created_at: datetime


@dataclass(frozen=True)
class ResponseRecord:
    """One immutable answer submission."""

    response_id: str
    subject: SubjectKey
    question_code: str
    value: Any
    answered_at: datetime

    @property
    def selected_option_ids(self) -> List[Any]:
        if isinstance(self.value, (list, tuple)):
            return list(self.value)
        return [self.value]


# ============================================================================
# Caller contract
# ============================================================================


@dataclass(frozen=True)
class StepDirective:
    """What the caller should present next, with the current scores."""

    step_type: StepType
    step_code: Optional[str]
    scores: ScoreMap = field(default_factory=dict)
    flags: List[str] = field(default_factory=list)

    def to_dict(self) -> JsonDict:
        return {
            "step_type": self.step_type.value,
            "step_code": self.step_code,
            "scores": dict(self.scores),
            "flags": list(self.flags),
        }


@dataclass(frozen=True)
class ProgressReport:
    """Current step and completion percentage.

    ``error`` carries a diagnostic when the state is degraded (for
    example an empty catalog) instead of raising.
    """

    step_type: StepType
    step_code: Optional[str]
    progress_percent: int
    error: Optional[str] = None

    def to_dict(self) -> JsonDict:
        payload: JsonDict = {
            "step_type": self.step_type.value,
            "step_code": self.step_code,
            "progress_percent": self.progress_percent,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload
