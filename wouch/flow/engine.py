"""
Wouch: Flow Controller

This module orchestrates one assessment run per subject. Every inbound
answer or intervention completion executes its whole pipeline
sequentially within the call:

    evaluate -> append -> aggregate -> flag -> branch -> commit -> audit

Key responsibilities:
- Initialise a subject's flow on the catalog's first question
- Score answers, re-aggregate, raise flags and pick the next step
- Resolve the "next question" sentinel against catalog order
- Unlock interventions and substitute the concrete module id
- Commit flow transitions and their audit events
- Report progress, score summaries and readiness

The ledger append and the flow-state commit are not wrapped in one
transaction. A call aborted mid-pipeline may leave ledger events without
a committed step; re-aggregation recomputes from the ledger so the
registers recover on the next pass.

External dependencies:
- None beyond the engine components it is wired with

Database tables accessed (through the injected storages):
- question_responses, user_flows, user_flow_events
- score_events, scores, user_flags, user_module_progress

Thread safety: Stateless per call. With ``serialize_subject_pipelines``
enabled, pipelines for one subject run one at a time in this process.

Author: Wouch Team
Created: 2025-11-26
Last Modified: 2025-12-03
Status: Development
Version: v0.2.0
"""

from __future__ import annotations

# ============================================================================
# Imports
# ============================================================================

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

from wouch.branching.engine import BranchingEvaluator, next_question_code
from wouch.branching.types import BranchDecision, StepType
from wouch.catalog.api import CatalogReader
from wouch.catalog.storage import CatalogStorage
from wouch.core.config import EngineConfig, ResubmissionPolicy
from wouch.core.database import DatabaseManager
from wouch.core.errors import InvalidTransition, NotFound, ValidationError
from wouch.core.ids import generate_response_id
from wouch.core.logging import get_logger
from wouch.core.time import utc_now
from wouch.core.types import ScoreMap, SubjectKey
from wouch.flow.locks import SubjectLocks
from wouch.flow.state import advance, start
from wouch.flow.storage import FlowStorage
from wouch.flow.types import (
    FlowEvent,
    FlowState,
    FlowStatus,
    ProgressReport,
    ResponseRecord,
    StepDirective,
)
from wouch.interventions.engine import InterventionLifecycle
from wouch.interventions.storage import InterventionProgressStorage
from wouch.scoring.flags import FlagDetector
from wouch.scoring.ledger import ScoreLedger
from wouch.scoring.rules import ScoringRuleEvaluator
from wouch.scoring.storage import FlagStorage, ScoreStorage
from wouch.scoring.summary import READINESS_METRIC, assess_readiness, summarise_registers
from wouch.scoring.types import MetricBounds, ReadinessResult, ScoreSummary

# ============================================================================
# Module setup
# ============================================================================

logger = get_logger(__name__)

EMPTY_CATALOG_ERROR = "No questions available"


class FlowStorageLike(Protocol):
    """Minimal protocol for flow state, audit and response persistence."""

    def get_flow_state(self, subject: SubjectKey) -> Optional[FlowState]:  # pragma: no cover - interface
        """Return the subject's flow state, if initialised."""

    def save_flow_state(self, state: FlowState) -> None:  # pragma: no cover - interface
        """Create or overwrite the subject's flow state."""

    def append_flow_event(self, event: FlowEvent) -> None:  # pragma: no cover - interface
        """Append an audit event."""

    def append_response(self, record: ResponseRecord) -> None:  # pragma: no cover - interface
        """Append an answer submission."""

    def list_responses(self, subject: SubjectKey) -> List[ResponseRecord]:  # pragma: no cover - interface
        """Return every submission for ``subject``."""


def _is_empty_answer(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _require(value: Optional[str], name: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required field: {name}")


# ============================================================================
# Controller
# ============================================================================


@dataclass
class FlowController:
    """Per-subject orchestrator and state machine.

    Attributes:
        catalog: Read-only content catalog.
        storage: Flow state, audit and response persistence.
        ledger: Score ledger and aggregator.
        flags: Flag detector run after every aggregation.
        rules: Scoring rule evaluator.
        branching: Branching evaluator.
        interventions: Intervention lifecycle.
        config: Engine behaviour (flow code, resubmission policy).
        locks: Per-subject lock registry; disabled unless configured.
    """

    catalog: CatalogReader
    storage: FlowStorageLike
    ledger: ScoreLedger
    flags: FlagDetector
    rules: ScoringRuleEvaluator
    branching: BranchingEvaluator
    interventions: InterventionLifecycle
    config: EngineConfig = field(default_factory=EngineConfig)
    locks: Optional[SubjectLocks] = None

    def __post_init__(self) -> None:
        if self.locks is None:
            self.locks = SubjectLocks(enabled=self.config.serialize_subject_pipelines)

    # ========================================================================
    # State
    # ========================================================================

    def _initialise(self, subject: SubjectKey) -> Optional[FlowState]:
        """Create the flow on the first question; ``None`` if the catalog is empty."""

        first = self.catalog.get_first_question()
        if first is None:
            logger.warning("FlowController: catalog has no questions, subject=%s", subject)
            return None

        transition = start(subject, self.config.flow_code, first.code, utc_now())
        self.storage.save_flow_state(transition.state)
        self.storage.append_flow_event(transition.audit)

        logger.info(
            "FlowController: initialised flow=%s subject=%s first_question=%s",
            self.config.flow_code,
            subject,
            first.code,
        )
        return transition.state

    def _progress_percent(self, subject: SubjectKey) -> int:
        total = self.catalog.count_questions()
        if total <= 0:
            return 0
        answered = {r.question_code for r in self.storage.list_responses(subject)}
        # Half rounds up.
        percent = int(math.floor(100.0 * len(answered) / total + 0.5))
        return min(percent, 100)

    def get_state(self, subject: SubjectKey) -> ProgressReport:
        """Return the current step and progress, initialising if needed.

        An empty catalog yields a degraded ``COMPLETE`` report carrying
        an error message instead of raising. An in-progress flow reports
        its persisted step type, so a subject parked on a module reads
        ``INTERVENTION`` rather than ``QUESTION``.
        """

        _require(subject.user_id, "user_id")
        _require(subject.session_id, "session_id")

        with self.locks.hold(subject):
            state = self.storage.get_flow_state(subject)
            if state is None:
                state = self._initialise(subject)
                if state is None:
                    return ProgressReport(
                        step_type=StepType.COMPLETE,
                        step_code=None,
                        progress_percent=0,
                        error=EMPTY_CATALOG_ERROR,
                    )
                return ProgressReport(StepType.QUESTION, state.step_code, 0)

            if state.status == FlowStatus.COMPLETED:
                return ProgressReport(StepType.COMPLETE, None, 100)

            return ProgressReport(
                step_type=state.step_type,
                step_code=state.step_code,
                progress_percent=self._progress_percent(subject),
            )

    # ========================================================================
    # Pipelines
    # ========================================================================

    def _resolve(
        self,
        subject: SubjectKey,
        decision: BranchDecision,
        anchor_question_code: Optional[str],
    ) -> BranchDecision:
        """Turn a branching decision into a committable step."""

        if decision.is_next_question:
            if anchor_question_code is None:
                first = self.catalog.get_first_question()
                following = first.code if first is not None else None
            else:
                following = next_question_code(self.catalog, anchor_question_code)
            if following is None:
                return BranchDecision(StepType.COMPLETE, None, decision.matched_rule_id)
            return BranchDecision(StepType.QUESTION, following, decision.matched_rule_id)

        if decision.step_type == StepType.INTERVENTION:
            module = self.interventions.unlock(subject, decision.step_code)
            return BranchDecision(StepType.INTERVENTION, module.module_id, decision.matched_rule_id)

        return decision

    def _commit(self, state: FlowState, step: BranchDecision) -> FlowState:
        transition = advance(state, step, utc_now())
        self.storage.save_flow_state(transition.state)
        self.storage.append_flow_event(transition.audit)
        return transition.state

    def _active_state(self, subject: SubjectKey) -> FlowState:
        state = self.storage.get_flow_state(subject)
        if state is None:
            state = self._initialise(subject)
            if state is None:
                raise NotFound(EMPTY_CATALOG_ERROR)
        if state.status == FlowStatus.COMPLETED:
            raise InvalidTransition(f"Flow for {subject} is already completed")
        return state

    def submit_answer(
        self,
        subject: SubjectKey,
        question_code: str,
        answer_value: Any,
    ) -> StepDirective:
        """Record an answer, score it and move the flow to the next step.

        Raises:
            ValidationError: Missing fields, an empty answer to a required
                question, or a repeated answer under the ``reject`` policy.
            NotFound: If the question or a routed module does not exist.
            InvalidTransition: If the flow is already completed.
        """

        _require(subject.user_id, "user_id")
        _require(subject.session_id, "session_id")
        _require(question_code, "question_code")
        if answer_value is None:
            raise ValidationError("Missing required field: answer_value")

        with self.locks.hold(subject):
            question = self.catalog.get_question(question_code)
            if question is None:
                raise NotFound(f"Question not found: {question_code}")
            if question.required and _is_empty_answer(answer_value):
                raise ValidationError(f"Question {question_code} requires an answer")

            state = self._active_state(subject)

            policy = self.config.answer_resubmission
            already_answered = False
            if policy != ResubmissionPolicy.APPEND:
                already_answered = any(
                    r.question_code == question_code for r in self.storage.list_responses(subject)
                )
                if already_answered and policy == ResubmissionPolicy.REJECT:
                    raise ValidationError(f"Question {question_code} was already answered")

            self.storage.append_response(
                ResponseRecord(
                    response_id=generate_response_id(),
                    subject=subject,
                    question_code=question_code,
                    value=answer_value,
                    answered_at=utc_now(),
                )
            )

            deltas = self.rules.evaluate(subject, question_code, answer_value)
            if already_answered and policy == ResubmissionPolicy.REVISE:
                reversals = self.ledger.reversal_deltas(
                    subject, self.rules.rule_ids_for_question(question_code)
                )
                logger.info(
                    "FlowController.submit_answer: subject=%s question=%s revising, reversals=%d",
                    subject,
                    question_code,
                    len(reversals),
                )
                deltas = reversals + deltas

            self.ledger.append_events(subject, deltas)
            scores = self.ledger.aggregate(subject)
            raised = self.flags.detect_and_raise(subject, scores)
            decision = self.branching.decide(subject, scores, question_code)

            step = self._resolve(subject, decision, question_code)
            self._commit(state, step)

        logger.info(
            "FlowController.submit_answer: subject=%s question=%s -> %s:%s flags=%s",
            subject,
            question_code,
            step.step_type.value,
            step.step_code,
            raised,
        )
        return StepDirective(step.step_type, step.step_code, scores, raised)

    def complete_intervention(self, subject: SubjectKey, module_id: str) -> StepDirective:
        """Complete an unlocked module, apply its boosts and re-branch.

        Branching runs without a triggering question, and "next" resolves
        from the last question the subject was on.

        Raises:
            ValidationError: Missing fields.
            NotFound: If the module was never unlocked for ``subject``.
            InvalidTransition: If the flow is already completed.
        """

        _require(subject.user_id, "user_id")
        _require(subject.session_id, "session_id")
        _require(module_id, "module_id")

        with self.locks.hold(subject):
            state = self._active_state(subject)

            scores = self.interventions.complete(subject, module_id)
            raised = self.flags.detect_and_raise(subject, scores)
            decision = self.branching.decide(subject, scores, None)

            step = self._resolve(subject, decision, state.last_question_code)
            self._commit(state, step)

        logger.info(
            "FlowController.complete_intervention: subject=%s module=%s -> %s:%s",
            subject,
            module_id,
            step.step_type.value,
            step.step_code,
        )
        return StepDirective(step.step_type, step.step_code, scores, raised)

    # ========================================================================
    # Read side
    # ========================================================================

    def get_score_summary(self, subject: SubjectKey) -> List[ScoreSummary]:
        """Return the subject's registers with interpretation labels."""

        registers = self.ledger.storage.list_registers(subject)
        return summarise_registers(registers, self.catalog.list_score_definitions())

    def get_readiness(self, subject: SubjectKey) -> ReadinessResult:
        """Return the readiness band of the subject's readiness metric.

        A subject without a readiness register scores 0.
        """

        value = 0
        for register in self.ledger.storage.list_registers(subject):
            if register.metric_code == READINESS_METRIC:
                value = register.value
                break
        return assess_readiness(value)

    def current_scores(self, subject: SubjectKey) -> ScoreMap:
        return {r.metric_code: r.value for r in self.ledger.storage.list_registers(subject)}


# ============================================================================
# Wiring
# ============================================================================


def create_flow_controller(
    db_manager: DatabaseManager,
    config: Optional[EngineConfig] = None,
) -> FlowController:
    """Wire a :class:`FlowController` against the PostgreSQL storages."""

    engine_config = config or EngineConfig()
    catalog = CatalogStorage(db_manager=db_manager)
    flag_storage = FlagStorage(db_manager=db_manager)

    ledger = ScoreLedger(
        catalog=catalog,
        storage=ScoreStorage(db_manager=db_manager),
        default_bounds=MetricBounds(
            engine_config.default_metric_min, engine_config.default_metric_max
        ),
    )
    rules = ScoringRuleEvaluator(
        catalog=catalog,
        intervention_component_tag=engine_config.intervention_component_tag,
    )
    interventions = InterventionLifecycle(
        catalog=catalog,
        storage=InterventionProgressStorage(db_manager=db_manager),
        ledger=ledger,
        rules=rules,
    )

    return FlowController(
        catalog=catalog,
        storage=FlowStorage(db_manager=db_manager),
        ledger=ledger,
        flags=FlagDetector(catalog=catalog, storage=flag_storage),
        rules=rules,
        branching=BranchingEvaluator(catalog=catalog, flag_storage=flag_storage),
        interventions=interventions,
        config=engine_config,
    )
