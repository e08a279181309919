"""Wouch – catalog read interface.

The catalog is owned by an external content store. Engine components
depend only on the :class:`CatalogReader` protocol defined here; the
PostgreSQL implementation lives in :mod:`wouch.catalog.storage`.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from wouch.catalog.types import (
    BranchingRule,
    ContentBlock,
    ModuleDefinition,
    Question,
    ScoreDefinition,
    ScoreRule,
)


class CatalogReader(Protocol):
    """Read-only queries the engine issues against the content catalog."""

    def get_question(self, code: str) -> Optional[Question]:  # pragma: no cover - interface
        """Return the question with ``code`` or ``None``."""

    def get_first_question(self) -> Optional[Question]:  # pragma: no cover - interface
        """Return the question with the smallest ordering key, if any."""

    def get_question_after(self, ordering_key: int) -> Optional[Question]:  # pragma: no cover - interface
        """Return the question with the smallest ordering key > ``ordering_key``."""

    def count_questions(self) -> int:  # pragma: no cover - interface
        """Return the total number of questions in the catalog."""

    def list_score_definitions(self) -> List[ScoreDefinition]:  # pragma: no cover - interface
        """Return every score definition."""

    def list_score_rules(
        self,
        source_question_code: Optional[str] = None,
        component_tag: Optional[str] = None,
    ) -> List[ScoreRule]:  # pragma: no cover - interface
        """Return active score rules filtered by source question and/or tag."""

    def list_branching_rules(self) -> List[BranchingRule]:  # pragma: no cover - interface
        """Return active branching rules ordered by ascending priority."""

    def get_module(
        self, module_id: str, active_only: bool = True
    ) -> Optional[ModuleDefinition]:  # pragma: no cover - interface
        """Return the module definition, optionally only if active."""

    def list_module_content(self, module_id: str) -> List[ContentBlock]:  # pragma: no cover - interface
        """Return the module's content blocks ordered by ``order``."""
