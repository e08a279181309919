"""Wouch – top-level package exports.

This module re-exports the components callers wire together most often.
"""

# Flow
from wouch.flow.engine import FlowController, create_flow_controller
from wouch.flow.types import ProgressReport, StepDirective

# Core
from wouch.core.types import SubjectKey
