"""Wouch – intervention progress storage.

Persists one ``user_module_progress`` row per (subject, module) in the
runtime database. The table carries a unique index on (user_id,
session_id, module_id), so a retried unlock cannot create a second row.

Database tables accessed (runtime_db via DatabaseManager):
- user_module_progress
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from wouch.core.database import DatabaseManager
from wouch.core.logging import get_logger
from wouch.core.types import SubjectKey
from wouch.interventions.types import InterventionProgress


logger = get_logger(__name__)


@dataclass
class InterventionProgressStorage:
    """Persistence helper for intervention progress rows."""

    db_manager: DatabaseManager

    def get_progress(self, subject: SubjectKey, module_id: str) -> Optional[InterventionProgress]:
        sql = """
            SELECT unlocked, completed, unlocked_at, completed_at
            FROM user_module_progress
            WHERE user_id = %s AND session_id = %s AND module_id = %s
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (subject.user_id, subject.session_id, module_id))
                row = cursor.fetchone()
            finally:
                cursor.close()

        if row is None:
            return None

        unlocked, completed, unlocked_at, completed_at = row
        return InterventionProgress(
            subject=subject,
            module_id=module_id,
            unlocked=bool(unlocked),
            completed=bool(completed),
            unlocked_at=unlocked_at,
            completed_at=completed_at,
        )

    def insert_progress(self, progress: InterventionProgress) -> bool:
        """Insert a progress row; return ``False`` if one already existed."""

        sql = """
            INSERT INTO user_module_progress (
                user_id,
                session_id,
                module_id,
                unlocked,
                completed,
                unlocked_at,
                completed_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (user_id, session_id, module_id) DO NOTHING
            RETURNING module_id
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    sql,
                    (
                        progress.subject.user_id,
                        progress.subject.session_id,
                        progress.module_id,
                        progress.unlocked,
                        progress.completed,
                        progress.unlocked_at,
                        progress.completed_at,
                    ),
                )
                row = cursor.fetchone()
                conn.commit()
            finally:
                cursor.close()

        return row is not None

    def mark_completed(
        self,
        subject: SubjectKey,
        module_id: str,
        completed_at: datetime,
    ) -> bool:
        """Set ``completed`` on an existing row; return ``False`` if none exists."""

        sql = """
            UPDATE user_module_progress
            SET completed = TRUE,
                completed_at = %s
            WHERE user_id = %s AND session_id = %s AND module_id = %s
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    sql,
                    (completed_at, subject.user_id, subject.session_id, module_id),
                )
                updated = cursor.rowcount
                conn.commit()
            finally:
                cursor.close()

        return bool(updated)
