"""Wouch – rule conditions as data.

Scoring rules and branching rules both carry condition payloads stored as
catalog data. This module parses those payloads into a closed set of
condition variants and evaluates them with a single matcher:

- :class:`Equals`, :class:`GreaterThan`, :class:`LessThan`,
  :class:`Contains` – answer conditions on the raw submitted value.
- :class:`ScoreThreshold` – comparison of an aggregated metric against a
  number.
- :class:`FlagExists` – membership of a flag code in the subject's flags.
- :class:`Always` – unconditional match.
- :class:`NoMatch` – an unknown operator or condition type. Evaluates to
  ``False`` and carries the reason for logging.

Parsers raise :class:`wouch.core.errors.MalformedRule` when a payload
cannot be decoded at all.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping, Optional, Union

from wouch.core.errors import MalformedRule


# ============================================================================
# Condition variants
# ============================================================================


@dataclass(frozen=True)
class Equals:
    value: Any


@dataclass(frozen=True)
class GreaterThan:
    value: Any


@dataclass(frozen=True)
class LessThan:
    value: Any


@dataclass(frozen=True)
class Contains:
    value: Any


@dataclass(frozen=True)
class ScoreThreshold:
    """``metric <operator> value`` over aggregated scores.

    ``operator`` is one of ``<``, ``<=``, ``>``, ``>=``, ``==``.
    """

    metric: str
    operator: str
    value: float


@dataclass(frozen=True)
class FlagExists:
    flag_code: str


@dataclass(frozen=True)
class Always:
    pass


@dataclass(frozen=True)
class NoMatch:
    reason: str


Condition = Union[
    Equals,
    GreaterThan,
    LessThan,
    Contains,
    ScoreThreshold,
    FlagExists,
    Always,
    NoMatch,
]


@dataclass(frozen=True)
class ConditionContext:
    """Inputs a condition may be evaluated against.

    Attributes:
        answer: Raw submitted answer value (answer conditions).
        scores: Aggregated scores (threshold conditions). Missing
            metrics evaluate as 0.
        flags: Flag codes currently raised for the subject.
    """

    answer: Any = None
    scores: Mapping[str, int] = field(default_factory=dict)
    flags: FrozenSet[str] = frozenset()


# ============================================================================
# Coercion helpers
# ============================================================================


def to_text(value: Any) -> str:
    """Coerce an answer value to its string form.

    Lists (multi-select answers) join with commas; booleans render as
    ``true``/``false``; integral floats drop the fractional part.
    """

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(v) for v in value)
    return str(value)


def to_number(value: Any) -> Optional[float]:
    """Coerce an answer value to a float, or ``None`` if not numeric."""

    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            return None
        return to_number(value[0])
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def _decode_payload(payload: Any) -> Any:
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        stripped = payload.strip()
        if stripped.startswith("{") or stripped.startswith("["):
            try:
                return json.loads(stripped)
            except ValueError as exc:
                raise MalformedRule(f"Unparseable condition payload: {payload!r}") from exc
    return payload


# ============================================================================
# Parsers
# ============================================================================

_ANSWER_OPERATORS = {
    "equals": Equals,
    "==": Equals,
    "greater_than": GreaterThan,
    ">": GreaterThan,
    "less_than": LessThan,
    "<": LessThan,
    "contains": Contains,
}

_THRESHOLD_OPERATORS = {"<", "<=", ">", ">=", "=="}

_EXPRESSION_RE = re.compile(r"(\w+)\s*([<>=!]+)\s*(-?\d+(?:\.\d+)?)")


def parse_answer_condition(payload: Any) -> Condition:
    """Parse a score-rule ``{operator, value}`` payload.

    Raises:
        MalformedRule: If the payload is missing or is not a mapping.
    """

    decoded = _decode_payload(payload)
    if not isinstance(decoded, Mapping):
        raise MalformedRule(f"Score rule condition must be a mapping, got {payload!r}")

    operator = decoded.get("operator")
    variant = _ANSWER_OPERATORS.get(str(operator)) if operator is not None else None
    if variant is None:
        return NoMatch(reason=f"unknown operator {operator!r}")
    return variant(decoded.get("value"))


def _normalise_threshold_operator(operator: str) -> str:
    return "==" if operator == "===" else operator


def parse_score_threshold(payload: Any) -> Condition:
    """Parse a structured or free-text score threshold.

    Accepted forms::

        {"metric": "emotional_awareness", "operator": "<", "value": 30}
        {"score_code": "emotional_awareness", "operator": "<", "value": 30}
        "emotional_awareness < 30"

    Raises:
        MalformedRule: If the payload does not describe a threshold.
    """

    decoded = _decode_payload(payload)
    if decoded is None or decoded == "":
        raise MalformedRule("Empty score threshold expression")

    if isinstance(decoded, Mapping):
        metric = decoded.get("metric") or decoded.get("score_code")
        if not metric:
            raise MalformedRule(f"Score threshold without metric: {payload!r}")
        operator = _normalise_threshold_operator(str(decoded.get("operator")))
        value = to_number(decoded.get("value"))
        if value is None:
            raise MalformedRule(f"Score threshold value is not numeric: {payload!r}")
        if operator not in _THRESHOLD_OPERATORS:
            return NoMatch(reason=f"unknown threshold operator {operator!r}")
        return ScoreThreshold(metric=str(metric), operator=operator, value=value)

    match = _EXPRESSION_RE.search(str(decoded))
    if match is None:
        raise MalformedRule(f"Invalid score threshold expression: {decoded!r}")

    metric, operator, threshold = match.groups()
    operator = _normalise_threshold_operator(operator)
    if operator not in _THRESHOLD_OPERATORS:
        return NoMatch(reason=f"unknown threshold operator {operator!r}")
    return ScoreThreshold(metric=metric, operator=operator, value=float(threshold))


def parse_branch_condition(condition_type: Optional[str], payload: Any) -> Condition:
    """Parse a branching rule condition by its ``condition_type``.

    Raises:
        MalformedRule: If the payload of a known type cannot be parsed.
    """

    if condition_type == "score_threshold":
        return parse_score_threshold(payload)
    if condition_type == "flag_exists":
        decoded = _decode_payload(payload)
        if isinstance(decoded, Mapping):
            decoded = decoded.get("flag_code") or decoded.get("flag")
        if not decoded:
            raise MalformedRule("flag_exists condition without flag code")
        return FlagExists(flag_code=str(decoded))
    if condition_type == "always":
        return Always()
    return NoMatch(reason=f"unknown condition type {condition_type!r}")


# ============================================================================
# Matcher
# ============================================================================


def _compare(left: float, operator: str, right: float) -> bool:
    if operator == "<":
        return left < right
    if operator == "<=":
        return left <= right
    if operator == ">":
        return left > right
    if operator == ">=":
        return left >= right
    if operator == "==":
        return left == right
    return False


def evaluate_condition(condition: Condition, context: ConditionContext) -> bool:
    """Evaluate ``condition`` against ``context``."""

    if isinstance(condition, Equals):
        return to_text(context.answer) == to_text(condition.value)
    if isinstance(condition, (GreaterThan, LessThan)):
        answer = to_number(context.answer)
        expected = to_number(condition.value)
        if answer is None or expected is None:
            return False
        if isinstance(condition, GreaterThan):
            return answer > expected
        return answer < expected
    if isinstance(condition, Contains):
        return to_text(condition.value) in to_text(context.answer)
    if isinstance(condition, ScoreThreshold):
        current = float(context.scores.get(condition.metric, 0) or 0)
        return _compare(current, condition.operator, condition.value)
    if isinstance(condition, FlagExists):
        return condition.flag_code in context.flags
    if isinstance(condition, Always):
        return True
    return False
