"""Wouch – flow persistence.

Stores the per-subject flow state, its append-only audit trail and every
answer submission in the runtime database.

Database tables accessed (runtime_db via DatabaseManager):
- user_flows
- user_flow_events
- question_responses
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from psycopg2.extras import Json

from wouch.branching.types import StepType
from wouch.core.database import DatabaseManager
from wouch.core.ids import generate_uuid
from wouch.core.logging import get_logger
from wouch.core.types import SubjectKey
from wouch.flow.types import FlowEvent, FlowState, FlowStatus, ResponseRecord


logger = get_logger(__name__)


@dataclass
class FlowStorage:
    """Persistence helper for flow state, audit events and responses."""

    db_manager: DatabaseManager

    # ------------------------------------------------------------------
    # Flow state
    # ------------------------------------------------------------------

    def get_flow_state(self, subject: SubjectKey) -> Optional[FlowState]:
        sql = """
            SELECT flow_code, step_type, current_step_code, last_question_code,
                   status, started_at, completed_at
            FROM user_flows
            WHERE user_id = %s AND session_id = %s
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (subject.user_id, subject.session_id))
                row = cursor.fetchone()
            finally:
                cursor.close()

        if row is None:
            return None

        (
            flow_code,
            step_type,
            step_code,
            last_question_code,
            status,
            started_at,
            completed_at,
        ) = row
        return FlowState(
            subject=subject,
            flow_code=flow_code,
            step_type=StepType(step_type),
            step_code=step_code,
            status=FlowStatus(status),
            started_at=started_at,
            last_question_code=last_question_code,
            completed_at=completed_at,
        )

    def save_flow_state(self, state: FlowState) -> None:
        """Create or overwrite the single flow row for ``state.subject``."""

        sql = """
            INSERT INTO user_flows (
                user_id,
                session_id,
                flow_code,
                step_type,
                current_step_code,
                last_question_code,
                status,
                started_at,
                completed_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (user_id, session_id) DO UPDATE
            SET step_type = EXCLUDED.step_type,
                current_step_code = EXCLUDED.current_step_code,
                last_question_code = EXCLUDED.last_question_code,
                status = EXCLUDED.status,
                completed_at = EXCLUDED.completed_at
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    sql,
                    (
                        state.subject.user_id,
                        state.subject.session_id,
                        state.flow_code,
                        state.step_type.value,
                        state.step_code,
                        state.last_question_code,
                        state.status.value,
                        state.started_at,
                        state.completed_at,
                    ),
                )
                conn.commit()
            finally:
                cursor.close()

        logger.info(
            "FlowStorage.save_flow_state: subject=%s step=%s:%s status=%s",
            state.subject,
            state.step_type.value,
            state.step_code,
            state.status.value,
        )

    def append_flow_event(self, event: FlowEvent) -> None:
        sql = """
            INSERT INTO user_flow_events (
                event_id,
                user_id,
                session_id,
                flow_code,
                step_code,
                event_type,
                created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    sql,
                    (
                        generate_uuid(),
                        event.subject.user_id,
                        event.subject.session_id,
                        event.flow_code,
                        event.step_code,
                        event.event_type.value,
                        event.created_at,
                    ),
                )
                conn.commit()
            finally:
                cursor.close()

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def append_response(self, record: ResponseRecord) -> None:
        """Insert one immutable answer submission."""

        sql = """
            INSERT INTO question_responses (
                response_id,
                user_id,
                session_id,
                question_code,
                response_data,
                selected_option_ids,
                answered_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    sql,
                    (
                        record.response_id,
                        record.subject.user_id,
                        record.subject.session_id,
                        record.question_code,
                        Json({"value": record.value}),
                        Json(record.selected_option_ids),
                        record.answered_at,
                    ),
                )
                conn.commit()
            finally:
                cursor.close()

    def list_responses(self, subject: SubjectKey) -> List[ResponseRecord]:
        """Return every submission for ``subject`` in submission order."""

        sql = """
            SELECT response_id, question_code, response_data, answered_at
            FROM question_responses
            WHERE user_id = %s AND session_id = %s
            ORDER BY answered_at ASC
        """

        with self.db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (subject.user_id, subject.session_id))
                rows = cursor.fetchall()
            finally:
                cursor.close()

        records: List[ResponseRecord] = []
        for response_id, question_code, response_data, answered_at in rows:
            value = response_data.get("value") if isinstance(response_data, dict) else response_data
            records.append(
                ResponseRecord(
                    response_id=response_id,
                    subject=subject,
                    question_code=question_code,
                    value=value,
                    answered_at=answered_at,
                )
            )
        return records
