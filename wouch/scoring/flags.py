"""Wouch – flag detector.

Compares aggregated scores against the flaggable interpretation ranges of
each score definition and raises flags at most once per (subject, flag
code). Flags are monotonic: nothing here ever removes one.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Mapping, Protocol, Set

from wouch.catalog.api import CatalogReader
from wouch.catalog.types import InterpretationRange, ScoreDefinition
from wouch.core.errors import MalformedRule
from wouch.core.logging import get_logger
from wouch.core.types import SubjectKey


logger = get_logger(__name__)


class FlagStorageLike(Protocol):
    """Minimal protocol for flag persistence."""

    def list_flags(self, subject: SubjectKey) -> Set[str]:  # pragma: no cover - interface
        """Return the flag codes raised for ``subject``."""

    def insert_flag_if_absent(self, subject: SubjectKey, flag_code: str) -> bool:  # pragma: no cover - interface
        """Insert a flag; return ``True`` only when a row was created."""


def flag_code_for(metric_code: str, label: str) -> str:
    """Return the canonical flag code ``{metric_code}_{label}``."""

    return f"{metric_code}_{label}"


def parse_interpretation_ranges(payload: Any) -> List[InterpretationRange]:
    """Parse a definition's ``interpretation_ranges`` payload.

    Raises:
        MalformedRule: If the payload is not a list of range mappings.
    """

    if payload is None:
        return []
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise MalformedRule("interpretation_ranges is not valid JSON") from exc
    if not isinstance(payload, list):
        raise MalformedRule("interpretation_ranges must be a list")

    ranges: List[InterpretationRange] = []
    for item in payload:
        if not isinstance(item, Mapping):
            raise MalformedRule(f"interpretation range must be a mapping, got {item!r}")
        try:
            ranges.append(
                InterpretationRange(
                    min=float(item["min"]),
                    max=float(item["max"]),
                    label=str(item["label"]),
                    flag=bool(item.get("flag", False)),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedRule(f"invalid interpretation range {item!r}") from exc
    return ranges


@dataclass
class FlagDetector:
    """Raise flags for scores that fall inside flaggable ranges."""

    catalog: CatalogReader
    storage: FlagStorageLike

    def _flaggable_ranges(self, definition: ScoreDefinition) -> List[InterpretationRange]:
        try:
            ranges = parse_interpretation_ranges(definition.interpretation_ranges)
        except MalformedRule as exc:
            logger.warning(
                "FlagDetector: skipping ranges for metric=%s: %s",
                definition.metric_code,
                exc,
            )
            return []
        return [r for r in ranges if r.flag]

    def detect_and_raise(self, subject: SubjectKey, scores: Mapping[str, int]) -> List[str]:
        """Insert newly crossed flags and return their codes.

        Ranges are evaluated independently, so one call may raise several
        flags across metrics. Flags already present are never re-raised.
        """

        raised: List[str] = []
        for definition in self.catalog.list_score_definitions():
            value = scores.get(definition.metric_code)
            if value is None:
                continue

            for score_range in self._flaggable_ranges(definition):
                if not score_range.contains(value):
                    continue
                code = flag_code_for(definition.metric_code, score_range.label)
                if code in raised:
                    continue
                if self.storage.insert_flag_if_absent(subject, code):
                    raised.append(code)
                    logger.info("FlagDetector: raised flag=%s subject=%s", code, subject)

        logger.info(
            "FlagDetector.detect_and_raise: subject=%s raised=%s",
            subject,
            raised,
        )
        return raised
