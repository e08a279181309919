"""Wouch – score interpretation and readiness bands.

Read-side helpers turning persisted registers into labelled summaries.
They never write to the ledger or registers.
"""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from wouch.catalog.types import ScoreDefinition
from wouch.scoring.types import ReadinessResult, ScoreRegister, ScoreSummary


READINESS_METRIC = "relationship_readiness"

# (exclusive upper bound, level, message, timeline); the last band is open.
_READINESS_BANDS = (
    (
        40,
        "NOT READY",
        "Focus on personal growth and emotional development before dating",
        "6-12 months of personal development recommended",
    ),
    (
        65,
        "BUILDING",
        "You're making progress! Continue developing your relationship skills",
        "3-6 months of continued growth",
    ),
    (
        85,
        "READY",
        "You're ready to explore healthy relationships",
        "Ready to begin dating mindfully",
    ),
    (
        None,
        "THRIVING",
        "You have strong relationship readiness and emotional awareness",
        "Ready for meaningful connections",
    ),
)


def interpret(definition: Optional[ScoreDefinition], value: int) -> str:
    """Return the interpretation label for ``value``.

    Below ``threshold_low`` is low, below ``threshold_medium`` is medium,
    anything else is high. Without a definition the label is ``Unknown``.
    """

    if definition is None:
        return "Unknown"
    if definition.threshold_low is not None and value < definition.threshold_low:
        return definition.interpretation_low or "low"
    if definition.threshold_medium is not None and value < definition.threshold_medium:
        return definition.interpretation_medium or "medium"
    return definition.interpretation_high or "high"


def summarise_registers(
    registers: Sequence[ScoreRegister],
    definitions: Sequence[ScoreDefinition],
) -> List[ScoreSummary]:
    """Join registers with definitions into labelled summaries."""

    by_code: Mapping[str, ScoreDefinition] = {d.metric_code: d for d in definitions}
    summaries: List[ScoreSummary] = []
    for register in registers:
        definition = by_code.get(register.metric_code)
        summaries.append(
            ScoreSummary(
                metric_code=register.metric_code,
                name=(definition.name if definition and definition.name else register.metric_code),
                value=register.value,
                max_value=register.max_value,
                interpretation=interpret(definition, register.value),
            )
        )
    return summaries


def assess_readiness(value: int) -> ReadinessResult:
    """Map a readiness score onto its band."""

    for upper, level, message, timeline in _READINESS_BANDS:
        if upper is None or value < upper:
            return ReadinessResult(
                score=value,
                level=level,
                message=message,
                recommended_timeline=timeline,
            )
    raise AssertionError("unreachable: last readiness band is open-ended")
