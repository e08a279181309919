"""runtime tables

Revision ID: 0002
Revises: 0001
Create Date: 2025-11-25

This migration creates the per-subject runtime state written by the
engine:

- score_events (append-only ledger)
- scores (aggregated registers)
- user_flags
- user_flows and user_flow_events
- question_responses
- user_module_progress

Unique indexes on ``scores``, ``user_flags`` and ``user_module_progress``
back the upsert and insert-if-absent writes.
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    """Create runtime tables and indexes."""

    # score_events
    op.create_table(
        "score_events",
        sa.Column("event_id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("score_code", sa.String(length=64), nullable=False),
        sa.Column("delta", sa.Integer, nullable=False),
        sa.Column("source_rule_id", sa.String(length=64), nullable=True),
        _created_at(),
    )
    op.create_index(
        "idx_score_events_subject",
        "score_events",
        ["user_id", "session_id", "created_at"],
    )

    # scores
    op.create_table(
        "scores",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("score_code", sa.String(length=64), nullable=False),
        sa.Column("score_value", sa.Integer, nullable=False),
        sa.Column("max_value", sa.Integer, nullable=False, server_default="100"),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id", "session_id", "score_code"),
    )

    # user_flags
    op.create_table(
        "user_flags",
        sa.Column("flag_id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("flag_code", sa.String(length=128), nullable=False),
        _created_at(),
        sa.UniqueConstraint("user_id", "session_id", "flag_code", name="uq_user_flags_subject_code"),
    )

    # user_flows
    op.create_table(
        "user_flows",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("flow_code", sa.String(length=64), nullable=False),
        sa.Column("step_type", sa.String(length=16), nullable=False),
        sa.Column("current_step_code", sa.String(length=128), nullable=True),
        sa.Column("last_question_code", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("user_id", "session_id"),
    )

    # user_flow_events
    op.create_table(
        "user_flow_events",
        sa.Column("event_id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("flow_code", sa.String(length=64), nullable=False),
        sa.Column("step_code", sa.String(length=128), nullable=True),
        sa.Column("event_type", sa.String(length=16), nullable=False),
        _created_at(),
    )
    op.create_index(
        "idx_user_flow_events_subject",
        "user_flow_events",
        ["user_id", "session_id", "created_at"],
    )

    # question_responses
    op.create_table(
        "question_responses",
        sa.Column("response_id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("question_code", sa.String(length=64), nullable=False),
        sa.Column("response_data", postgresql.JSONB, nullable=True),
        sa.Column("selected_option_ids", postgresql.JSONB, nullable=True),
        sa.Column("answered_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_question_responses_subject",
        "question_responses",
        ["user_id", "session_id", "question_code"],
    )

    # user_module_progress
    op.create_table(
        "user_module_progress",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("module_id", sa.String(length=64), nullable=False),
        sa.Column("unlocked", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("user_id", "session_id", "module_id"),
    )


def downgrade() -> None:
    """Drop runtime tables."""

    op.drop_table("user_module_progress")
    op.drop_index("idx_question_responses_subject", table_name="question_responses")
    op.drop_table("question_responses")
    op.drop_index("idx_user_flow_events_subject", table_name="user_flow_events")
    op.drop_table("user_flow_events")
    op.drop_table("user_flows")
    op.drop_table("user_flags")
    op.drop_table("scores")
    op.drop_index("idx_score_events_subject", table_name="score_events")
    op.drop_table("score_events")
