"""Wouch – branching evaluator.

This module decides the next step after every scoring pass. It does not
hard-code any routing: the ordered rule list comes from the catalog and
each rule's condition is evaluated through
:mod:`wouch.scoring.conditions`.

Responsibilities:
- Evaluate active branching rules in ascending priority order.
- Restrict triggered rules to their triggering question.
- Map the first matching rule's action onto a :class:`BranchDecision`.
- Resolve the "next question" sentinel against catalog order.
"""

from __future__ import annotations

# ============================================================================
# Imports
# ============================================================================

from dataclasses import dataclass
from typing import FrozenSet, Mapping, Optional

from wouch.branching.types import (
    FALLBACK_DECISION,
    NEXT_QUESTION,
    BranchDecision,
    StepType,
    step_type_for_action,
)
from wouch.catalog.api import CatalogReader
from wouch.catalog.types import BranchingRule
from wouch.core.errors import MalformedRule, NotFound
from wouch.core.logging import get_logger
from wouch.core.types import SubjectKey
from wouch.scoring.conditions import (
    ConditionContext,
    NoMatch,
    evaluate_condition,
    parse_branch_condition,
)
from wouch.scoring.flags import FlagStorageLike

logger = get_logger(__name__)


# ============================================================================
# Evaluator
# ============================================================================


@dataclass
class BranchingEvaluator:
    """Select the next step from prioritised, data-driven rules.

    Attributes:
        catalog: Catalog providing branching rules.
        flag_storage: Flag persistence, read fresh on every decision.
    """

    catalog: CatalogReader
    flag_storage: FlagStorageLike

    def _rule_matches(self, rule: BranchingRule, context: ConditionContext) -> bool:
        try:
            condition = parse_branch_condition(rule.condition_type, rule.condition_payload)
        except MalformedRule as exc:
            logger.warning("BranchingEvaluator: skipping rule=%s: %s", rule.rule_id, exc)
            return False

        if isinstance(condition, NoMatch):
            logger.warning(
                "BranchingEvaluator: skipping rule=%s: %s",
                rule.rule_id,
                condition.reason,
            )
            return False

        return evaluate_condition(condition, context)

    def decide(
        self,
        subject: SubjectKey,
        scores: Mapping[str, int],
        triggering_question_code: Optional[str],
    ) -> BranchDecision:
        """Return the action of the first matching rule, or the fallback.

        Rules with a trigger question are only considered when it equals
        ``triggering_question_code``; untriggered rules always apply,
        including re-evaluation after an intervention where the trigger
        is ``None``.

        Args:
            subject: Subject being evaluated.
            scores: Current aggregated scores; missing metrics count as 0.
            triggering_question_code: Question just answered, if any.

        Returns:
            The matched rule's :class:`BranchDecision`, or
            ``QUESTION:"next"`` when nothing matches.
        """

        rules = sorted(
            (r for r in self.catalog.list_branching_rules() if r.active),
            key=lambda r: (r.priority, r.rule_id),
        )
        if not rules:
            logger.info("BranchingEvaluator.decide: subject=%s no rules, continuing", subject)
            return FALLBACK_DECISION

        flags: FrozenSet[str] = frozenset(self.flag_storage.list_flags(subject))
        context = ConditionContext(scores=dict(scores), flags=flags)

        for rule in rules:
            if rule.trigger_question_code and rule.trigger_question_code != triggering_question_code:
                continue
            if not self._rule_matches(rule, context):
                continue

            step_type = step_type_for_action(rule.action_kind)
            if step_type == StepType.QUESTION:
                decision = BranchDecision(StepType.QUESTION, NEXT_QUESTION, rule.rule_id)
            elif not rule.action_target:
                logger.warning(
                    "BranchingEvaluator: skipping rule=%s: %s without target",
                    rule.rule_id,
                    rule.action_kind,
                )
                continue
            else:
                decision = BranchDecision(step_type, rule.action_target, rule.rule_id)

            logger.info(
                "BranchingEvaluator.decide: subject=%s rule=%s -> %s:%s",
                subject,
                rule.rule_id,
                decision.step_type.value,
                decision.step_code,
            )
            return decision

        logger.info("BranchingEvaluator.decide: subject=%s no rule matched, continuing", subject)
        return FALLBACK_DECISION


# ============================================================================
# Catalog order
# ============================================================================


def next_question_code(catalog: CatalogReader, current_code: str) -> Optional[str]:
    """Return the code of the question following ``current_code``.

    Returns ``None`` when ``current_code`` is the last question.

    Raises:
        NotFound: If ``current_code`` is not in the catalog.
    """

    current = catalog.get_question(current_code)
    if current is None:
        raise NotFound(f"Question not found: {current_code}")

    following = catalog.get_question_after(current.ordering_key)
    if following is None:
        logger.info("next_question_code: %s is the last question", current_code)
        return None
    return following.code
