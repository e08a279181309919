"""Wouch: shared in-memory stubs and fixtures for unit tests.

The stubs implement the storage and catalog protocols the engine depends
on, so orchestration can be exercised without PostgreSQL. Storage
classes themselves are covered separately against stubbed connections.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

import pytest

from wouch.branching.engine import BranchingEvaluator
from wouch.catalog.types import (
    BranchingRule,
    ContentBlock,
    ModuleDefinition,
    Question,
    ScoreDefinition,
    ScoreRule,
)
from wouch.core.config import EngineConfig
from wouch.core.types import SubjectKey
from wouch.flow.engine import FlowController
from wouch.flow.types import FlowEvent, FlowState, ResponseRecord
from wouch.interventions.engine import InterventionLifecycle
from wouch.interventions.types import InterventionProgress
from wouch.scoring.flags import FlagDetector
from wouch.scoring.ledger import ScoreLedger
from wouch.scoring.rules import ScoringRuleEvaluator
from wouch.scoring.types import MetricBounds, ScoreEvent, ScoreRegister


# ---------------------------------------------------------------------------
# Catalog stub
# ---------------------------------------------------------------------------


@dataclass
class InMemoryCatalog:
    """CatalogReader backed by plain lists."""

    questions: List[Question] = field(default_factory=list)
    definitions: List[ScoreDefinition] = field(default_factory=list)
    score_rules: List[ScoreRule] = field(default_factory=list)
    branching_rules: List[BranchingRule] = field(default_factory=list)
    modules: List[ModuleDefinition] = field(default_factory=list)
    content: Dict[str, List[ContentBlock]] = field(default_factory=dict)

    def _ordered(self) -> List[Question]:
        return sorted(self.questions, key=lambda q: q.ordering_key)

    def get_question(self, code: str) -> Optional[Question]:
        return next((q for q in self.questions if q.code == code), None)

    def get_first_question(self) -> Optional[Question]:
        ordered = self._ordered()
        return ordered[0] if ordered else None

    def get_question_after(self, ordering_key: int) -> Optional[Question]:
        return next((q for q in self._ordered() if q.ordering_key > ordering_key), None)

    def count_questions(self) -> int:
        return len(self.questions)

    def list_score_definitions(self) -> List[ScoreDefinition]:
        return list(self.definitions)

    def list_score_rules(
        self,
        source_question_code: Optional[str] = None,
        component_tag: Optional[str] = None,
    ) -> List[ScoreRule]:
        rules = [r for r in self.score_rules if r.active]
        if source_question_code is not None:
            rules = [r for r in rules if r.source_question_code == source_question_code]
        if component_tag is not None:
            rules = [r for r in rules if r.component_tag == component_tag]
        return rules

    def list_branching_rules(self) -> List[BranchingRule]:
        return list(self.branching_rules)

    def get_module(self, module_id: str, active_only: bool = True) -> Optional[ModuleDefinition]:
        for module in self.modules:
            if module.module_id == module_id and (module.active or not active_only):
                return module
        return None

    def list_module_content(self, module_id: str) -> List[ContentBlock]:
        return list(self.content.get(module_id, []))


# ---------------------------------------------------------------------------
# Runtime storage stubs
# ---------------------------------------------------------------------------


class InMemoryScoreStorage:
    def __init__(self) -> None:
        self.events: List[ScoreEvent] = []
        self.registers: Dict[Tuple[SubjectKey, str], ScoreRegister] = {}
        self.upserts = 0

    def append_events(self, events: Sequence[ScoreEvent]) -> None:
        self.events.extend(events)

    def list_events(self, subject: SubjectKey) -> List[ScoreEvent]:
        return [e for e in self.events if e.subject == subject]

    def upsert_registers(
        self,
        subject: SubjectKey,
        values: Mapping[str, int],
        max_values: Mapping[str, int],
    ) -> None:
        self.upserts += 1
        for metric, value in values.items():
            self.registers[(subject, metric)] = ScoreRegister(
                subject=subject,
                metric_code=metric,
                value=value,
                max_value=max_values.get(metric, 100),
            )

    def list_registers(self, subject: SubjectKey) -> List[ScoreRegister]:
        return sorted(
            (r for (s, _), r in self.registers.items() if s == subject),
            key=lambda r: r.metric_code,
        )


class InMemoryFlagStorage:
    def __init__(self) -> None:
        self.flags: Dict[SubjectKey, Set[str]] = {}

    def list_flags(self, subject: SubjectKey) -> Set[str]:
        return set(self.flags.get(subject, set()))

    def insert_flag_if_absent(self, subject: SubjectKey, flag_code: str) -> bool:
        existing = self.flags.setdefault(subject, set())
        if flag_code in existing:
            return False
        existing.add(flag_code)
        return True


class InMemoryFlowStorage:
    def __init__(self) -> None:
        self.states: Dict[SubjectKey, FlowState] = {}
        self.events: List[FlowEvent] = []
        self.responses: List[ResponseRecord] = []

    def get_flow_state(self, subject: SubjectKey) -> Optional[FlowState]:
        return self.states.get(subject)

    def save_flow_state(self, state: FlowState) -> None:
        self.states[state.subject] = state

    def append_flow_event(self, event: FlowEvent) -> None:
        self.events.append(event)

    def append_response(self, record: ResponseRecord) -> None:
        self.responses.append(record)

    def list_responses(self, subject: SubjectKey) -> List[ResponseRecord]:
        return [r for r in self.responses if r.subject == subject]


class InMemoryProgressStorage:
    def __init__(self) -> None:
        self.rows: Dict[Tuple[SubjectKey, str], InterventionProgress] = {}

    def get_progress(self, subject: SubjectKey, module_id: str) -> Optional[InterventionProgress]:
        return self.rows.get((subject, module_id))

    def insert_progress(self, progress: InterventionProgress) -> bool:
        key = (progress.subject, progress.module_id)
        if key in self.rows:
            return False
        self.rows[key] = progress
        return True

    def mark_completed(self, subject: SubjectKey, module_id: str, completed_at: datetime) -> bool:
        row = self.rows.get((subject, module_id))
        if row is None:
            return False
        self.rows[(subject, module_id)] = replace(row, completed=True, completed_at=completed_at)
        return True


# ---------------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------------


@dataclass
class Harness:
    """A FlowController wired against in-memory stubs."""

    catalog: InMemoryCatalog
    scores: InMemoryScoreStorage
    flags: InMemoryFlagStorage
    flows: InMemoryFlowStorage
    progress: InMemoryProgressStorage
    ledger: ScoreLedger
    rules: ScoringRuleEvaluator
    interventions: InterventionLifecycle
    controller: FlowController


def build_harness(catalog: InMemoryCatalog, config: Optional[EngineConfig] = None) -> Harness:
    engine_config = config or EngineConfig()
    scores = InMemoryScoreStorage()
    flags = InMemoryFlagStorage()
    flows = InMemoryFlowStorage()
    progress = InMemoryProgressStorage()

    ledger = ScoreLedger(
        catalog=catalog,
        storage=scores,
        default_bounds=MetricBounds(engine_config.default_metric_min, engine_config.default_metric_max),
    )
    rules = ScoringRuleEvaluator(
        catalog=catalog,
        intervention_component_tag=engine_config.intervention_component_tag,
    )
    interventions = InterventionLifecycle(
        catalog=catalog,
        storage=progress,
        ledger=ledger,
        rules=rules,
    )
    controller = FlowController(
        catalog=catalog,
        storage=flows,
        ledger=ledger,
        flags=FlagDetector(catalog=catalog, storage=flags),
        rules=rules,
        branching=BranchingEvaluator(catalog=catalog, flag_storage=flags),
        interventions=interventions,
        config=engine_config,
    )
    return Harness(
        catalog=catalog,
        scores=scores,
        flags=flags,
        flows=flows,
        progress=progress,
        ledger=ledger,
        rules=rules,
        interventions=interventions,
        controller=controller,
    )


def onboarding_catalog() -> InMemoryCatalog:
    """Three questions, one flagged metric and one remedial module."""

    return InMemoryCatalog(
        questions=[
            Question(code="RC_001", ordering_key=1, part="A"),
            Question(code="RC_002", ordering_key=2, part="A"),
            Question(code="RC_003", ordering_key=3, part="B", required=False),
        ],
        definitions=[
            ScoreDefinition(
                metric_code="emotional_awareness",
                name="Emotional Awareness",
                threshold_low=40,
                threshold_medium=70,
                threshold_high=90,
                interpretation_low="Developing",
                interpretation_medium="Growing",
                interpretation_high="Strong",
                interpretation_ranges=[
                    {"min": 0, "max": 29, "label": "low", "flag": True},
                    {"min": 30, "max": 100, "label": "ok"},
                ],
            ),
            ScoreDefinition(metric_code="relationship_readiness", name="Relationship Readiness"),
        ],
        score_rules=[
            ScoreRule(
                rule_id="sr_1",
                source_question_code="RC_001",
                condition={"operator": "equals", "value": "opt_1"},
                target_metric="emotional_awareness",
                delta=10,
            ),
            ScoreRule(
                rule_id="sr_2",
                source_question_code="RC_001",
                condition={"operator": "equals", "value": "opt_2"},
                target_metric="emotional_awareness",
                delta=50,
            ),
            ScoreRule(
                rule_id="sr_3",
                source_question_code="RC_002",
                condition={"operator": "greater_than", "value": 3},
                target_metric="relationship_readiness",
                delta=20,
            ),
            ScoreRule(
                rule_id="boost_1",
                target_metric="relationship_readiness",
                delta=15,
                component_tag="KAI",
            ),
        ],
        branching_rules=[
            BranchingRule(
                rule_id="br_1",
                priority=1,
                trigger_question_code="RC_001",
                condition_type="score_threshold",
                condition_payload="emotional_awareness < 30",
                action_kind="route_to_intervention",
                action_target="emotional_awareness_intro",
            ),
        ],
        modules=[
            ModuleDefinition(
                module_id="emotional_awareness_intro",
                title="Naming Your Feelings",
                goal="Recognise and label emotions",
                duration_minutes=5,
            ),
        ],
        content={
            "emotional_awareness_intro": [
                ContentBlock(order=2, content_type="exercise", data={"prompt": "List three feelings"}),
                ContentBlock(order=1, content_type="text", data={"body": "Feelings are signals."}),
            ],
        },
    )


@pytest.fixture
def subject() -> SubjectKey:
    return SubjectKey(user_id="user-1", session_id="session-1")


@pytest.fixture
def catalog() -> InMemoryCatalog:
    return onboarding_catalog()


@pytest.fixture
def harness(catalog: InMemoryCatalog) -> Harness:
    return build_harness(catalog)


@pytest.fixture
def make_harness():
    """Factory for harnesses with a custom catalog or engine config."""

    return build_harness
