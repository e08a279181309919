"""Wouch: Tests for the branching evaluator and catalog ordering."""

from __future__ import annotations

import pytest

from wouch.branching import (
    NEXT_QUESTION,
    BranchDecision,
    BranchingEvaluator,
    StepType,
    next_question_code,
    step_type_for_action,
)
from wouch.catalog.types import BranchingRule
from wouch.core.errors import NotFound


def _rule(rule_id: str, priority: int, **kwargs) -> BranchingRule:  # type: ignore[no-untyped-def]
    defaults = dict(
        condition_type="always",
        action_kind="route_to_protocol",
        action_target=f"protocol_{rule_id}",
    )
    defaults.update(kwargs)
    return BranchingRule(rule_id=rule_id, priority=priority, **defaults)


def _evaluator(harness) -> BranchingEvaluator:  # type: ignore[no-untyped-def]
    return BranchingEvaluator(catalog=harness.catalog, flag_storage=harness.flags)


class TestStepTypeForAction:
    @pytest.mark.parametrize(
        "action, expected",
        [
            ("route_to_intervention", StepType.INTERVENTION),
            ("route_to_module", StepType.INTERVENTION),
            ("route_to_kai", StepType.INTERVENTION),
            ("route_to_protocol", StepType.PROTOCOL),
            ("continue", StepType.QUESTION),
            ("something_else", StepType.QUESTION),
            (None, StepType.QUESTION),
        ],
    )
    def test_mapping(self, action, expected) -> None:  # type: ignore[no-untyped-def]
        assert step_type_for_action(action) == expected


class TestBranchingEvaluator:
    def test_threshold_rule_routes_to_intervention(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        decision = _evaluator(harness).decide(subject, {"emotional_awareness": 10}, "RC_001")

        assert decision == BranchDecision(
            StepType.INTERVENTION, "emotional_awareness_intro", "br_1"
        )

    def test_no_match_falls_back_to_next(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        decision = _evaluator(harness).decide(subject, {"emotional_awareness": 50}, "RC_001")

        assert decision.step_type == StepType.QUESTION
        assert decision.step_code == NEXT_QUESTION
        assert decision.matched_rule_id is None

    def test_trigger_question_restricts_rule(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        evaluator = _evaluator(harness)

        assert evaluator.decide(subject, {"emotional_awareness": 10}, "RC_002").is_next_question
        assert evaluator.decide(subject, {"emotional_awareness": 10}, None).is_next_question

    def test_missing_metric_counts_as_zero(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        decision = _evaluator(harness).decide(subject, {}, "RC_001")
        assert decision.step_type == StepType.INTERVENTION

    def test_lowest_priority_wins(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        harness.catalog.branching_rules = [_rule("late", 5), _rule("early", 2)]

        decision = _evaluator(harness).decide(subject, {}, None)

        assert decision.matched_rule_id == "early"
        assert decision.step_code == "protocol_early"

    def test_priority_ties_break_on_rule_id(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        harness.catalog.branching_rules = [_rule("b", 1), _rule("a", 1)]

        assert _evaluator(harness).decide(subject, {}, None).matched_rule_id == "a"

    def test_inactive_and_malformed_rules_are_skipped(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        harness.catalog.branching_rules = [
            _rule("inactive", 1, active=False),
            _rule("malformed", 2, condition_type="score_threshold", condition_payload="garbage"),
            _rule("unknown_type", 3, condition_type="moon_phase"),
            _rule("good", 4),
        ]

        assert _evaluator(harness).decide(subject, {}, None).matched_rule_id == "good"

    def test_flag_condition_reads_current_flags(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        harness.catalog.branching_rules = [
            _rule(
                "flagged",
                1,
                condition_type="flag_exists",
                condition_payload="emotional_awareness_low",
            )
        ]
        evaluator = _evaluator(harness)

        assert evaluator.decide(subject, {}, None).is_next_question
        harness.flags.insert_flag_if_absent(subject, "emotional_awareness_low")
        assert evaluator.decide(subject, {}, None).matched_rule_id == "flagged"

    def test_continue_rule_stops_evaluation(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        harness.catalog.branching_rules = [
            _rule("go_on", 1, action_kind="continue", action_target=None),
            _rule("protocol", 2),
        ]

        decision = _evaluator(harness).decide(subject, {}, None)

        assert decision.is_next_question
        assert decision.matched_rule_id == "go_on"

    def test_route_without_target_is_skipped(self, harness, subject) -> None:  # type: ignore[no-untyped-def]
        harness.catalog.branching_rules = [
            _rule("no_target", 1, action_kind="route_to_intervention", action_target=None),
            _rule("fallback", 2),
        ]

        assert _evaluator(harness).decide(subject, {}, None).matched_rule_id == "fallback"


class TestNextQuestionCode:
    def test_follows_catalog_order(self, catalog) -> None:  # type: ignore[no-untyped-def]
        assert next_question_code(catalog, "RC_001") == "RC_002"
        assert next_question_code(catalog, "RC_002") == "RC_003"
        assert next_question_code(catalog, "RC_003") is None

    def test_unknown_question_raises(self, catalog) -> None:  # type: ignore[no-untyped-def]
        with pytest.raises(NotFound):
            next_question_code(catalog, "RC_999")
