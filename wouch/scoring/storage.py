"""Wouch – scoring storage helpers.

This module persists the score ledger, the aggregated score registers
and raised flags in the runtime database:

- Appending immutable rows to ``score_events``.
- Reading all ledger events for a subject.
- Upserting clamped values into ``scores``.
- Inserting flags into ``user_flags`` only when absent.

Database tables accessed (runtime_db via DatabaseManager):
- score_events
- scores
- user_flags

Thread safety: Safe to share; each call borrows its own pooled
connection. No cross-call transaction is held.

Author: Wouch Team
Created: 2025-11-25
Last Modified: 2025-12-01
Status: Development
Version: v0.2.0
"""

from __future__ import annotations

# ============================================================================
# Imports
# ============================================================================

from dataclasses import dataclass
from typing import List, Mapping, Sequence, Set

from wouch.core.database import DatabaseManager
from wouch.core.ids import generate_uuid
from wouch.core.logging import get_logger
from wouch.core.types import SubjectKey
from wouch.scoring.types import ScoreEvent, ScoreRegister

# ============================================================================
# Module setup
# ============================================================================

logger = get_logger(__name__)


@dataclass
class ScoreStorage:
    """Persistence helper for ledger events and score registers.

    No uniqueness is enforced on ``score_events`` beyond the generated
    ``event_id``: appending the same delta twice records it twice.

    Attributes:
        db_manager: DatabaseManager instance for connection management.
    """

    db_manager: DatabaseManager

    # ========================================================================
    # Ledger
    # ========================================================================

    def append_events(self, events: Sequence[ScoreEvent]) -> None:
        """Insert ledger events into ``score_events``."""

        if not events:
            return

        sql = """
            INSERT INTO score_events (
                event_id,
                user_id,
                session_id,
                score_code,
                delta,
                source_rule_id,
                created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                for event in events:
                    cursor.execute(
                        sql,
                        (
                            generate_uuid(),
                            event.subject.user_id,
                            event.subject.session_id,
                            event.metric_code,
                            event.delta,
                            event.source_rule_id,
                            event.created_at,
                        ),
                    )
                conn.commit()
            finally:
                cursor.close()

    def list_events(self, subject: SubjectKey) -> List[ScoreEvent]:
        """Return every ledger event for ``subject`` in insertion order."""

        sql = """
            SELECT score_code, delta, source_rule_id, created_at
            FROM score_events
            WHERE user_id = %s AND session_id = %s
            ORDER BY created_at ASC
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (subject.user_id, subject.session_id))
                rows = cursor.fetchall()
            finally:
                cursor.close()

        return [
            ScoreEvent(
                subject=subject,
                metric_code=score_code,
                delta=int(delta),
                source_rule_id=source_rule_id,
                created_at=created_at,
            )
            for score_code, delta, source_rule_id, created_at in rows
        ]

    # ========================================================================
    # Registers
    # ========================================================================

    def upsert_registers(
        self,
        subject: SubjectKey,
        values: Mapping[str, int],
        max_values: Mapping[str, int],
    ) -> None:
        """Create or overwrite one ``scores`` row per metric in ``values``."""

        if not values:
            return

        sql = """
            INSERT INTO scores (
                user_id,
                session_id,
                score_code,
                score_value,
                max_value,
                created_at,
                updated_at
            ) VALUES (%s, %s, %s, %s, %s, NOW(), NOW())
            ON CONFLICT (user_id, session_id, score_code) DO UPDATE
            SET score_value = EXCLUDED.score_value,
                max_value = EXCLUDED.max_value,
                updated_at = NOW()
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                for metric_code, value in values.items():
                    cursor.execute(
                        sql,
                        (
                            subject.user_id,
                            subject.session_id,
                            metric_code,
                            value,
                            max_values.get(metric_code, 100),
                        ),
                    )
                conn.commit()
            finally:
                cursor.close()

    def list_registers(self, subject: SubjectKey) -> List[ScoreRegister]:
        """Return the persisted registers for ``subject``."""

        sql = """
            SELECT score_code, score_value, max_value, updated_at
            FROM scores
            WHERE user_id = %s AND session_id = %s
            ORDER BY score_code
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (subject.user_id, subject.session_id))
                rows = cursor.fetchall()
            finally:
                cursor.close()

        return [
            ScoreRegister(
                subject=subject,
                metric_code=score_code,
                value=int(value),
                max_value=int(max_value) if max_value is not None else 100,
                updated_at=updated_at,
            )
            for score_code, value, max_value, updated_at in rows
        ]


@dataclass
class FlagStorage:
    """Persistence helper for raised flags.

    ``user_flags`` carries a unique index on (user_id, session_id,
    flag_code), so concurrent inserts of the same flag still leave a
    single row.
    """

    db_manager: DatabaseManager

    def list_flags(self, subject: SubjectKey) -> Set[str]:
        """Return the flag codes raised for ``subject``."""

        sql = """
            SELECT flag_code
            FROM user_flags
            WHERE user_id = %s AND session_id = %s
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (subject.user_id, subject.session_id))
                rows = cursor.fetchall()
            finally:
                cursor.close()

        return {row[0] for row in rows}

    def insert_flag_if_absent(self, subject: SubjectKey, flag_code: str) -> bool:
        """Insert a flag row; return ``True`` only if a row was created."""

        sql = """
            INSERT INTO user_flags (flag_id, user_id, session_id, flag_code, created_at)
            VALUES (%s, %s, %s, %s, NOW())
            ON CONFLICT (user_id, session_id, flag_code) DO NOTHING
            RETURNING flag_id
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    sql,
                    (generate_uuid(), subject.user_id, subject.session_id, flag_code),
                )
                row = cursor.fetchone()
                conn.commit()
            finally:
                cursor.close()

        return row is not None
