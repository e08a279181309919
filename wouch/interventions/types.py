"""Wouch – intervention types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from wouch.core.types import SubjectKey


class InterventionStatus(str, Enum):
    """Lifecycle of a module for one subject.

    The allowed transitions are linear::

        LOCKED -> UNLOCKED -> COMPLETED

    ``COMPLETED`` is terminal.
    """

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


@dataclass(frozen=True)
class InterventionProgress:
    """Progress row for one (subject, module).

    A row exists only once the module has been unlocked; absence of a
    row means the module is locked for the subject.
    """

    subject: SubjectKey
    module_id: str
    unlocked: bool = True
    completed: bool = False
    unlocked_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def status(self) -> InterventionStatus:
        if self.completed:
            return InterventionStatus.COMPLETED
        if self.unlocked:
            return InterventionStatus.UNLOCKED
        return InterventionStatus.LOCKED
