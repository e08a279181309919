"""Wouch – intervention package.

Lifecycle (unlock/complete/content) of remedial modules and the
PostgreSQL storage for per-subject progress.
"""

from wouch.interventions.types import InterventionProgress, InterventionStatus
from wouch.interventions.storage import InterventionProgressStorage
from wouch.interventions.engine import InterventionLifecycle
