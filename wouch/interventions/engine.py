"""Wouch – intervention lifecycle.

Remedial modules move through ``locked -> unlocked -> completed`` per
subject. Completing a module feeds score boosts back into the ledger and
re-aggregates, so the flow controller can re-run branching on the
refreshed scores.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from wouch.catalog.api import CatalogReader
from wouch.catalog.types import ModuleContent, ModuleDefinition
from wouch.core.errors import NotFound
from wouch.core.logging import get_logger
from wouch.core.time import utc_now
from wouch.core.types import ScoreMap, SubjectKey
from wouch.interventions.types import InterventionProgress
from wouch.scoring.ledger import ScoreLedger
from wouch.scoring.rules import ScoringRuleEvaluator


logger = get_logger(__name__)


class InterventionProgressStorageLike(Protocol):
    """Minimal protocol for intervention progress persistence."""

    def get_progress(
        self, subject: SubjectKey, module_id: str
    ) -> Optional[InterventionProgress]:  # pragma: no cover - interface
        """Return the progress row, if the module was unlocked."""

    def insert_progress(self, progress: InterventionProgress) -> bool:  # pragma: no cover - interface
        """Insert a progress row; ``False`` if one already existed."""

    def mark_completed(
        self, subject: SubjectKey, module_id: str, completed_at: datetime
    ) -> bool:  # pragma: no cover - interface
        """Mark an existing row completed; ``False`` if none exists."""


@dataclass
class InterventionLifecycle:
    """Unlock, complete and read remedial modules.

    Attributes:
        catalog: Catalog providing module definitions and content.
        storage: Progress persistence.
        ledger: Score ledger receiving completion boosts.
        rules: Evaluator providing the boost deltas for a module.
    """

    catalog: CatalogReader
    storage: InterventionProgressStorageLike
    ledger: ScoreLedger
    rules: ScoringRuleEvaluator

    def unlock(self, subject: SubjectKey, module_id: str) -> ModuleDefinition:
        """Unlock ``module_id`` for ``subject`` and return its definition.

        Unlocking an already unlocked (or completed) module is a no-op
        that returns the definition unchanged.

        Raises:
            NotFound: If the module is absent or inactive.
        """

        module = self.catalog.get_module(module_id, active_only=True)
        if module is None:
            raise NotFound(f"Intervention module not found: {module_id}")

        existing = self.storage.get_progress(subject, module.module_id)
        if existing is not None:
            logger.info(
                "InterventionLifecycle.unlock: subject=%s module=%s already %s",
                subject,
                module.module_id,
                existing.status.value,
            )
            return module

        progress = InterventionProgress(
            subject=subject,
            module_id=module.module_id,
            unlocked=True,
            completed=False,
            unlocked_at=utc_now(),
        )
        self.storage.insert_progress(progress)

        logger.info(
            "InterventionLifecycle.unlock: subject=%s module=%s title=%s",
            subject,
            module.module_id,
            module.title,
        )
        return module

    def complete(self, subject: SubjectKey, module_id: str) -> ScoreMap:
        """Complete ``module_id``, apply its boosts and return fresh scores.

        A module already completed keeps its original completion and
        receives no further boosts; the aggregate is still recomputed.

        Raises:
            NotFound: If the module was never unlocked for ``subject``.
        """

        progress = self.storage.get_progress(subject, module_id)
        if progress is None:
            raise NotFound(f"Intervention module {module_id} is not unlocked for {subject}")

        if progress.completed:
            logger.info(
                "InterventionLifecycle.complete: subject=%s module=%s already completed",
                subject,
                module_id,
            )
            return self.ledger.aggregate(subject)

        if not self.storage.mark_completed(subject, module_id, utc_now()):
            raise NotFound(f"Intervention module {module_id} is not unlocked for {subject}")

        boosts = self.rules.boost_deltas(module_id)
        self.ledger.append_events(subject, boosts)
        scores = self.ledger.aggregate(subject)

        logger.info(
            "InterventionLifecycle.complete: subject=%s module=%s boosts=%d",
            subject,
            module_id,
            len(boosts),
        )
        return scores

    def get_content(self, module_id: str) -> ModuleContent:
        """Return module metadata and ordered content blocks.

        Raises:
            NotFound: If the module does not exist.
        """

        module = self.catalog.get_module(module_id, active_only=False)
        if module is None:
            raise NotFound(f"Intervention module not found: {module_id}")

        blocks = sorted(self.catalog.list_module_content(module_id), key=lambda b: b.order)
        return ModuleContent(module=module, blocks=blocks)
