"""Wouch – flow package.

Per-subject flow state, the pure transition functions, persistence and
the :class:`FlowController` orchestrating every answer and intervention
completion.
"""

from wouch.flow.types import (
    FlowEvent,
    FlowEventType,
    FlowState,
    FlowStatus,
    ProgressReport,
    ResponseRecord,
    StepDirective,
)
from wouch.flow.state import Transition, advance, start
from wouch.flow.storage import FlowStorage
from wouch.flow.locks import SubjectLocks
from wouch.flow.engine import FlowController, create_flow_controller
