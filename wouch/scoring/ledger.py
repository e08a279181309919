"""Wouch – score ledger and aggregator.

The ledger is an append-only bag of signed deltas per subject. Aggregated
scores are never patched incrementally: every aggregation pass re-reads
the whole ledger, sums per metric, clamps into the metric's bounds and
overwrites the persisted registers. This keeps registers consistent after
partial failures, retries and out-of-order writes.

- :func:`aggregate_events` – pure reduction over a list of events.
- :class:`ScoreLedger` – appends events and runs aggregation passes
  against a storage implementation.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Set

from wouch.catalog.api import CatalogReader
from wouch.core.logging import get_logger
from wouch.core.time import utc_now
from wouch.core.types import ScoreMap, SubjectKey
from wouch.scoring.types import MetricBounds, ScoreDelta, ScoreEvent, ScoreRegister


logger = get_logger(__name__)


class ScoreStorageLike(Protocol):
    """Minimal protocol for ledger and register persistence."""

    def append_events(self, events: Sequence[ScoreEvent]) -> None:  # pragma: no cover - interface
        """Append immutable ledger events."""

    def list_events(self, subject: SubjectKey) -> List[ScoreEvent]:  # pragma: no cover - interface
        """Return every ledger event for ``subject``."""

    def upsert_registers(
        self,
        subject: SubjectKey,
        values: Mapping[str, int],
        max_values: Mapping[str, int],
    ) -> None:  # pragma: no cover - interface
        """Create or overwrite aggregated registers."""

    def list_registers(self, subject: SubjectKey) -> List[ScoreRegister]:  # pragma: no cover - interface
        """Return persisted registers for ``subject``."""


def aggregate_events(
    events: Iterable[ScoreEvent],
    bounds: Mapping[str, MetricBounds],
    default_bounds: MetricBounds = MetricBounds(0, 100),
) -> ScoreMap:
    """Sum events per metric and clamp each sum into its bounds.

    Only metrics with at least one event appear in the result.

    Args:
        events: Ledger events for a single subject.
        bounds: Clamp bounds keyed by metric code.
        default_bounds: Bounds for metrics absent from ``bounds``.

    Returns:
        Mapping from metric code to clamped integer value.
    """

    raw: Dict[str, int] = {}
    for event in events:
        raw[event.metric_code] = raw.get(event.metric_code, 0) + int(event.delta)

    return {
        metric: bounds.get(metric, default_bounds).clamp(total)
        for metric, total in raw.items()
    }


@dataclass
class ScoreLedger:
    """Append and aggregate façade over the score ledger.

    Attributes:
        catalog: Catalog used to look up score definitions (bounds).
        storage: Ledger and register persistence.
        default_bounds: Bounds for metrics without a definition.
    """

    catalog: CatalogReader
    storage: ScoreStorageLike
    default_bounds: MetricBounds = field(default_factory=lambda: MetricBounds(0, 100))

    def append_events(
        self,
        subject: SubjectKey,
        deltas: Sequence[ScoreDelta],
    ) -> List[ScoreEvent]:
        """Append one ledger event per delta.

        Duplicate content is appended as-is; the ledger performs no
        deduplication.
        """

        now = utc_now()
        events = [
            ScoreEvent(
                subject=subject,
                metric_code=delta.metric_code,
                delta=int(delta.amount),
                source_rule_id=delta.source_rule_id,
                created_at=now,
            )
            for delta in deltas
        ]
        if events:
            self.storage.append_events(events)

        logger.info(
            "ScoreLedger.append_events: subject=%s n=%d",
            subject,
            len(events),
        )
        return events

    def bounds_by_metric(self) -> Dict[str, MetricBounds]:
        """Return clamp bounds for every defined metric."""

        return {
            definition.metric_code: MetricBounds(definition.min_value, definition.max_value)
            for definition in self.catalog.list_score_definitions()
        }

    def aggregate(self, subject: SubjectKey) -> ScoreMap:
        """Recompute, persist and return the clamped scores for ``subject``."""

        events = self.storage.list_events(subject)
        bounds = self.bounds_by_metric()
        scores = aggregate_events(events, bounds, self.default_bounds)

        max_values = {
            metric: bounds.get(metric, self.default_bounds).max_value for metric in scores
        }
        self.storage.upsert_registers(subject, scores, max_values)

        logger.info(
            "ScoreLedger.aggregate: subject=%s events=%d scores=%s",
            subject,
            len(events),
            scores,
        )
        return scores

    def reversal_deltas(
        self,
        subject: SubjectKey,
        rule_ids: Set[str],
        events: Optional[Sequence[ScoreEvent]] = None,
    ) -> List[ScoreDelta]:
        """Return compensating deltas cancelling the net effect of ``rule_ids``.

        Used when an answer is revised: the ledger stays append-only and
        the prior contribution of the question's rules is neutralised by
        negated events carrying the same source rule id.
        """

        if not rule_ids:
            return []
        if events is None:
            events = self.storage.list_events(subject)

        net: Dict[tuple[str, str], int] = defaultdict(int)
        for event in events:
            if event.source_rule_id in rule_ids:
                net[(event.metric_code, event.source_rule_id)] += int(event.delta)

        return [
            ScoreDelta(metric_code=metric, amount=-total, source_rule_id=rule_id)
            for (metric, rule_id), total in sorted(net.items())
            if total != 0
        ]
