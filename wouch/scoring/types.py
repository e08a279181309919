"""
Wouch: Scoring Types

Core value objects for the score ledger, aggregated registers and flags.

Key responsibilities:
- Define ledger deltas and persisted ledger events.
- Define the aggregated score register and raised flag records.
- Define read-side summaries (interpretation and readiness).

Database tables accessed:
- None directly. Persistence lives in :mod:`wouch.scoring.storage`.

Thread safety: Dataclasses are immutable value objects.

Author: Wouch Team
Created: 2025-11-25
Last Modified: 2025-12-01
Status: Development
Version: v0.2.0
"""

from __future__ import annotations

# ============================================================================
# Imports
# ============================================================================

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from wouch.core.types import JsonDict, SubjectKey

# ============================================================================
# Ledger
# ============================================================================


@dataclass(frozen=True)
class ScoreDelta:
    """A signed contribution to one metric, attributable to one rule.

    Attributes:
        metric_code: Target metric.
        amount: Signed integer delta.
        source_rule_id: Identifier of the rule that produced the delta.
    """

    metric_code: str
    amount: int
    source_rule_id: str


@dataclass(frozen=True)
class ScoreEvent:
    """A persisted, immutable ledger entry.

    The sum of ``delta`` over all events for a (subject, metric) is the
    unclamped raw score.
    """

    subject: SubjectKey
    metric_code: str
    delta: int
    source_rule_id: str
    created_at: datetime


@dataclass(frozen=True)
class ScoreRegister:
    """Clamped aggregate value for one (subject, metric)."""

    subject: SubjectKey
    metric_code: str
    value: int
    max_value: int
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class MetricBounds:
    """Inclusive clamp bounds for a metric."""

    min_value: int
    max_value: int

    def clamp(self, value: int) -> int:
        return max(self.min_value, min(value, self.max_value))


# ============================================================================
# Flags
# ============================================================================


@dataclass(frozen=True)
class Flag:
    """A one-way marker that a subject's score entered a flagged range."""

    subject: SubjectKey
    flag_code: str
    created_at: datetime


# ============================================================================
# Read-side summaries
# ============================================================================


@dataclass(frozen=True)
class ScoreSummary:
    """Register value joined with its definition's interpretation."""

    metric_code: str
    name: str
    value: int
    max_value: int
    interpretation: str

    def to_dict(self) -> JsonDict:
        return {
            "score_code": self.metric_code,
            "score_name": self.name,
            "score_value": self.value,
            "max_value": self.max_value,
            "interpretation": self.interpretation,
        }


@dataclass(frozen=True)
class ReadinessResult:
    """Readiness band derived from the readiness metric."""

    score: int
    level: str
    message: str
    recommended_timeline: str

    def to_dict(self) -> JsonDict:
        return {
            "readiness_score": self.score,
            "readiness_level": self.level,
            "message": self.message,
            "recommended_timeline": self.recommended_timeline,
        }
