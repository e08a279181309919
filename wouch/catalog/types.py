"""Wouch – catalog types.

Immutable value objects describing the externally owned content catalog:
questions, score definitions, scoring rules, branching rules and
intervention modules. The engine only ever reads these.

Author: Wouch Team
Created: 2025-11-25
Last Modified: 2025-12-01
Status: Development
Version: v0.2.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from wouch.core.types import JsonDict


@dataclass(frozen=True)
class Question:
    """A single catalog question.

    Attributes:
        code: Unique question code (e.g. ``RC_001``).
        ordering_key: Position of the question in catalog order.
        part: Questionnaire part the question belongs to.
        required: Whether an empty answer is rejected.
        rule_set_ref: Optional reference to the question's rule set.
    """

    code: str
    ordering_key: int
    part: Optional[str] = None
    required: bool = True
    rule_set_ref: Optional[str] = None


@dataclass(frozen=True)
class InterpretationRange:
    """A labelled value range on a metric, optionally raising a flag."""

    min: float
    max: float
    label: str
    flag: bool = False

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class ScoreDefinition:
    """Bounds, thresholds and interpretation ranges for one metric.

    Attributes:
        metric_code: Metric identifier (e.g. ``emotional_awareness``).
        min_value: Inclusive lower clamp bound.
        max_value: Inclusive upper clamp bound.
        threshold_low: Values below this are interpreted as "low".
        threshold_medium: Values below this (and not low) are "medium".
        threshold_high: Upper threshold, kept for catalog completeness.
        name: Human readable metric name.
        interpretation_low: Label for low values.
        interpretation_medium: Label for medium values.
        interpretation_high: Label for high values.
        interpretation_ranges: Raw range payload as stored in the catalog.
            Parsed lazily by the flag detector so that one malformed
            definition does not break catalog loading.
    """

    metric_code: str
    min_value: int = 0
    max_value: int = 100
    threshold_low: Optional[float] = None
    threshold_medium: Optional[float] = None
    threshold_high: Optional[float] = None
    name: Optional[str] = None
    interpretation_low: Optional[str] = None
    interpretation_medium: Optional[str] = None
    interpretation_high: Optional[str] = None
    interpretation_ranges: Any = None


@dataclass(frozen=True)
class ScoreRule:
    """Maps an answer condition to a signed delta on one metric.

    ``condition`` is the raw ``{operator, value}`` payload (a mapping or
    a JSON string). ``component_tag`` marks rules applied outside the
    question flow, e.g. intervention boost rules.
    """

    rule_id: str
    target_metric: str
    delta: int
    condition: Any = None
    source_question_code: Optional[str] = None
    component_tag: Optional[str] = None
    active: bool = True


@dataclass(frozen=True)
class BranchingRule:
    """A prioritised routing rule evaluated after every scoring pass."""

    rule_id: str
    priority: int
    condition_type: str
    action_kind: str
    condition_payload: Any = None
    action_target: Optional[str] = None
    trigger_question_code: Optional[str] = None
    active: bool = True


@dataclass(frozen=True)
class ModuleDefinition:
    """An intervention module (remedial micro-lesson)."""

    module_id: str
    title: str
    goal: Optional[str] = None
    duration_minutes: Optional[int] = None
    active: bool = True


@dataclass(frozen=True)
class ContentBlock:
    """One ordered block of module content."""

    order: int
    content_type: str
    data: JsonDict = field(default_factory=dict)


@dataclass(frozen=True)
class ModuleContent:
    """Module metadata together with its ordered content blocks."""

    module: ModuleDefinition
    blocks: Sequence[ContentBlock]

    def to_dict(self) -> JsonDict:
        return {
            "id": self.module.module_id,
            "lesson_title": self.module.title,
            "lesson_goal": self.module.goal,
            "estimated_duration_minutes": self.module.duration_minutes,
            "content": [
                {"order": b.order, "type": b.content_type, "data": b.data}
                for b in self.blocks
            ],
        }
