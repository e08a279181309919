"""Wouch – scoring package.

This package contains the score ledger and aggregator, the flag detector,
the scoring rule evaluator, the rule condition model and the PostgreSQL
storage for ledger events, registers and flags.
"""

from wouch.scoring.types import (
    Flag,
    MetricBounds,
    ReadinessResult,
    ScoreDelta,
    ScoreEvent,
    ScoreRegister,
    ScoreSummary,
)
from wouch.scoring.storage import FlagStorage, ScoreStorage
from wouch.scoring.ledger import ScoreLedger, aggregate_events
from wouch.scoring.flags import FlagDetector, flag_code_for
from wouch.scoring.rules import ScoringRuleEvaluator
from wouch.scoring.summary import assess_readiness, interpret, summarise_registers
