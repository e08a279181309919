"""Wouch: Tests for score summaries and readiness bands."""

from __future__ import annotations

import pytest

from wouch.catalog.types import ScoreDefinition
from wouch.core.types import SubjectKey
from wouch.scoring.summary import assess_readiness, interpret, summarise_registers
from wouch.scoring.types import ScoreRegister


_DEFINITION = ScoreDefinition(
    metric_code="emotional_awareness",
    name="Emotional Awareness",
    threshold_low=40,
    threshold_medium=70,
    interpretation_low="Developing",
    interpretation_medium="Growing",
    interpretation_high="Strong",
)


class TestInterpret:
    @pytest.mark.parametrize(
        "value, label",
        [(0, "Developing"), (39, "Developing"), (40, "Growing"), (69, "Growing"), (70, "Strong")],
    )
    def test_threshold_boundaries(self, value: int, label: str) -> None:
        assert interpret(_DEFINITION, value) == label

    def test_without_definition(self) -> None:
        assert interpret(None, 50) == "Unknown"


class TestSummariseRegisters:
    def test_joins_registers_with_definitions(self) -> None:
        subject = SubjectKey("u", "s")
        registers = [
            ScoreRegister(subject, "emotional_awareness", 55, 100),
            ScoreRegister(subject, "undefined_metric", 5, 100),
        ]

        summaries = summarise_registers(registers, [_DEFINITION])

        assert summaries[0].to_dict() == {
            "score_code": "emotional_awareness",
            "score_name": "Emotional Awareness",
            "score_value": 55,
            "max_value": 100,
            "interpretation": "Growing",
        }
        assert summaries[1].name == "undefined_metric"
        assert summaries[1].interpretation == "Unknown"


class TestReadiness:
    @pytest.mark.parametrize(
        "value, level",
        [
            (0, "NOT READY"),
            (39, "NOT READY"),
            (40, "BUILDING"),
            (64, "BUILDING"),
            (65, "READY"),
            (84, "READY"),
            (85, "THRIVING"),
            (100, "THRIVING"),
        ],
    )
    def test_bands(self, value: int, level: str) -> None:
        result = assess_readiness(value)

        assert result.level == level
        assert result.score == value
        assert result.to_dict()["readiness_level"] == level
