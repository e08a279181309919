"""Wouch – content catalog package.

Read-only catalog types, the :class:`CatalogReader` protocol the engine
depends on, and the PostgreSQL-backed :class:`CatalogStorage`.
"""

from wouch.catalog.types import (
    BranchingRule,
    ContentBlock,
    InterpretationRange,
    ModuleContent,
    ModuleDefinition,
    Question,
    ScoreDefinition,
    ScoreRule,
)
from wouch.catalog.api import CatalogReader
from wouch.catalog.storage import CatalogStorage
