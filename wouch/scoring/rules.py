"""Wouch – scoring rule evaluator.

Matches a submitted answer against every active score rule sourced from
the answered question. Each matching rule contributes exactly one delta;
rules are independent and cumulative, so evaluation order does not
matter. Malformed conditions and unknown operators are logged and
skipped so that a single bad rule never blocks the flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Set

from wouch.catalog.api import CatalogReader
from wouch.catalog.types import ScoreRule
from wouch.core.errors import MalformedRule
from wouch.core.logging import get_logger
from wouch.core.types import SubjectKey
from wouch.scoring.conditions import (
    ConditionContext,
    NoMatch,
    evaluate_condition,
    parse_answer_condition,
)
from wouch.scoring.types import ScoreDelta


logger = get_logger(__name__)


@dataclass
class ScoringRuleEvaluator:
    """Turn answers (and intervention completions) into ledger deltas.

    Attributes:
        catalog: Catalog providing score rules.
        intervention_component_tag: Component tag marking boost rules.
    """

    catalog: CatalogReader
    intervention_component_tag: str = "KAI"

    def _matches(self, rule: ScoreRule, answer_value: Any) -> bool:
        try:
            condition = parse_answer_condition(rule.condition)
        except MalformedRule as exc:
            logger.warning("ScoringRuleEvaluator: skipping rule=%s: %s", rule.rule_id, exc)
            return False

        if isinstance(condition, NoMatch):
            logger.warning(
                "ScoringRuleEvaluator: skipping rule=%s: %s",
                rule.rule_id,
                condition.reason,
            )
            return False

        return evaluate_condition(condition, ConditionContext(answer=answer_value))

    def evaluate(
        self,
        subject: SubjectKey,
        question_code: str,
        answer_value: Any,
    ) -> List[ScoreDelta]:
        """Return one delta per rule of ``question_code`` matching the answer."""

        rules = self.catalog.list_score_rules(source_question_code=question_code)
        deltas: List[ScoreDelta] = []
        for rule in rules:
            if not rule.active or rule.component_tag == self.intervention_component_tag:
                continue
            if self._matches(rule, answer_value):
                logger.debug(
                    "ScoringRuleEvaluator: rule=%s matched (%+d to %s)",
                    rule.rule_id,
                    rule.delta,
                    rule.target_metric,
                )
                deltas.append(
                    ScoreDelta(
                        metric_code=rule.target_metric,
                        amount=int(rule.delta),
                        source_rule_id=rule.rule_id,
                    )
                )

        logger.info(
            "ScoringRuleEvaluator.evaluate: subject=%s question=%s rules=%d matched=%d",
            subject,
            question_code,
            len(rules),
            len(deltas),
        )
        return deltas

    def rule_ids_for_question(self, question_code: str) -> Set[str]:
        """Return the ids of the answer rules sourced from ``question_code``."""

        return {
            rule.rule_id
            for rule in self.catalog.list_score_rules(source_question_code=question_code)
            if rule.component_tag != self.intervention_component_tag
        }

    def boost_deltas(self, module_id: str) -> List[ScoreDelta]:
        """Return the score boosts applied when ``module_id`` is completed.

        Boost rules carry the intervention component tag. A boost rule
        without a source applies to every module; one with a source
        applies only to the module it names.
        """

        rules = self.catalog.list_score_rules(component_tag=self.intervention_component_tag)
        deltas = [
            ScoreDelta(
                metric_code=rule.target_metric,
                amount=int(rule.delta),
                source_rule_id=rule.rule_id,
            )
            for rule in rules
            if rule.active and rule.source_question_code in (None, "", module_id)
        ]
        logger.info(
            "ScoringRuleEvaluator.boost_deltas: module=%s boosts=%d",
            module_id,
            len(deltas),
        )
        return deltas
