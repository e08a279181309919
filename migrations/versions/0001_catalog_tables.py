"""catalog tables

Revision ID: 0001
Revises: None
Create Date: 2025-11-24

This migration creates the read-only content catalog consumed by the
engine:

- questions
- score_definitions
- score_rules
- branching_rules
- modules
- module_content
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create catalog tables and indexes."""

    # questions
    op.create_table(
        "questions",
        sa.Column("question_code", sa.String(length=64), primary_key=True),
        sa.Column("order_in_part", sa.Integer, nullable=False),
        sa.Column("part", sa.String(length=64), nullable=True),
        sa.Column("is_required", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("rule_set_ref", sa.String(length=64), nullable=True),
        sa.Column("question_text", sa.Text, nullable=True),
        sa.Column("options", postgresql.JSONB, nullable=True),
    )
    op.create_index("idx_questions_order", "questions", ["order_in_part"], unique=True)

    # score_definitions
    op.create_table(
        "score_definitions",
        sa.Column("score_code", sa.String(length=64), primary_key=True),
        sa.Column("score_name", sa.String(length=200), nullable=True),
        sa.Column("output_min", sa.Integer, nullable=False, server_default="0"),
        sa.Column("output_max", sa.Integer, nullable=False, server_default="100"),
        sa.Column("threshold_low", sa.Integer, nullable=True),
        sa.Column("threshold_medium", sa.Integer, nullable=True),
        sa.Column("threshold_high", sa.Integer, nullable=True),
        sa.Column("interpretation_low", sa.Text, nullable=True),
        sa.Column("interpretation_medium", sa.Text, nullable=True),
        sa.Column("interpretation_high", sa.Text, nullable=True),
        sa.Column("interpretation_ranges", postgresql.JSONB, nullable=True),
    )

    # score_rules
    op.create_table(
        "score_rules",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("source_question_code", sa.String(length=64), nullable=True),
        sa.Column("condition", postgresql.JSONB, nullable=True),
        sa.Column("score_code", sa.String(length=64), nullable=False),
        sa.Column("points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("component", sa.String(length=32), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
    )
    op.create_index(
        "idx_score_rules_source_status",
        "score_rules",
        ["source_question_code", "status"],
    )

    # branching_rules
    op.create_table(
        "branching_rules",
        sa.Column("rule_id", sa.String(length=64), primary_key=True),
        sa.Column("priority", sa.Integer, nullable=False),
        sa.Column("trigger_question_code", sa.String(length=64), nullable=True),
        sa.Column("condition_type", sa.String(length=32), nullable=True),
        sa.Column("condition_value", postgresql.JSONB, nullable=True),
        sa.Column("rule_type", sa.String(length=64), nullable=False),
        sa.Column("action_target", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
    )
    op.create_index("idx_branching_rules_priority", "branching_rules", ["status", "priority"])

    # modules
    op.create_table(
        "modules",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("activity_description", sa.Text, nullable=True),
        sa.Column("duration_minutes", sa.Integer, nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
    )

    # module_content
    op.create_table(
        "module_content",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "module_id",
            sa.String(length=64),
            sa.ForeignKey("modules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content_order", sa.Integer, nullable=False),
        sa.Column("content_type", sa.String(length=32), nullable=False),
        sa.Column("content_data", postgresql.JSONB, nullable=True),
    )
    op.create_index(
        "idx_module_content_module_order",
        "module_content",
        ["module_id", "content_order"],
    )


def downgrade() -> None:
    """Drop catalog tables in reverse dependency order."""

    op.drop_index("idx_module_content_module_order", table_name="module_content")
    op.drop_table("module_content")
    op.drop_table("modules")
    op.drop_index("idx_branching_rules_priority", table_name="branching_rules")
    op.drop_table("branching_rules")
    op.drop_index("idx_score_rules_source_status", table_name="score_rules")
    op.drop_table("score_rules")
    op.drop_table("score_definitions")
    op.drop_index("idx_questions_order", table_name="questions")
    op.drop_table("questions")
