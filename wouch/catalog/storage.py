"""Wouch – catalog storage.

PostgreSQL implementation of :class:`wouch.catalog.api.CatalogReader`.
All reads go to the catalog database via
:meth:`DatabaseManager.get_catalog_connection`.

Database tables accessed (catalog_db):
- questions
- score_definitions
- score_rules
- branching_rules
- modules
- module_content

Thread safety: Safe to share; each call borrows its own pooled
connection.

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

import json
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from wouch.catalog.types import (
    BranchingRule,
    ContentBlock,
    ModuleDefinition,
    Question,
    ScoreDefinition,
    ScoreRule,
)
from wouch.core.database import DatabaseManager
from wouch.core.logging import get_logger

# ============================================================================
# Module setup
# ============================================================================

logger = get_logger(__name__)

_QUESTION_COLUMNS = "question_code, order_in_part, part, is_required, rule_set_ref"


def _row_to_question(row: tuple) -> Question:
    code, ordering_key, part, required, rule_set_ref = row
    return Question(
        code=code,
        ordering_key=int(ordering_key),
        part=part,
        required=True if required is None else bool(required),
        rule_set_ref=rule_set_ref,
    )


def _decode_json(value: Any) -> Any:
    """Decode JSON text columns; JSONB columns arrive already decoded."""

    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


@dataclass
class CatalogStorage:
    """Read-only access to the content catalog tables.

    Attributes:
        db_manager: DatabaseManager used for catalog connections.
    """

    db_manager: DatabaseManager

    # ========================================================================
    # Internal helpers
    # ========================================================================

    def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[tuple]:
        with self.db_manager.get_catalog_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, tuple(params))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return list(rows)

    def _fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[tuple]:
        with self.db_manager.get_catalog_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, tuple(params))
                row = cursor.fetchone()
            finally:
                cursor.close()
        return row

    # ========================================================================
    # Questions
    # ========================================================================

    def get_question(self, code: str) -> Optional[Question]:
        sql = f"""
            SELECT {_QUESTION_COLUMNS}
            FROM questions
            WHERE question_code = %s
            LIMIT 1
        """
        row = self._fetchone(sql, (code,))
        return _row_to_question(row) if row is not None else None

    def get_first_question(self) -> Optional[Question]:
        sql = f"""
            SELECT {_QUESTION_COLUMNS}
            FROM questions
            ORDER BY order_in_part ASC
            LIMIT 1
        """
        row = self._fetchone(sql)
        return _row_to_question(row) if row is not None else None

    def get_question_after(self, ordering_key: int) -> Optional[Question]:
        sql = f"""
            SELECT {_QUESTION_COLUMNS}
            FROM questions
            WHERE order_in_part > %s
            ORDER BY order_in_part ASC
            LIMIT 1
        """
        row = self._fetchone(sql, (ordering_key,))
        return _row_to_question(row) if row is not None else None

    def count_questions(self) -> int:
        row = self._fetchone("SELECT COUNT(*) FROM questions")
        return int(row[0]) if row is not None and row[0] is not None else 0

    # ========================================================================
    # Scoring
    # ========================================================================

    def list_score_definitions(self) -> List[ScoreDefinition]:
        sql = """
            SELECT score_code,
                   score_name,
                   output_min,
                   output_max,
                   threshold_low,
                   threshold_medium,
                   threshold_high,
                   interpretation_low,
                   interpretation_medium,
                   interpretation_high,
                   interpretation_ranges
            FROM score_definitions
        """
        definitions: List[ScoreDefinition] = []
        for row in self._fetchall(sql):
            (
                code,
                name,
                out_min,
                out_max,
                t_low,
                t_medium,
                t_high,
                i_low,
                i_medium,
                i_high,
                ranges,
            ) = row
            definitions.append(
                ScoreDefinition(
                    metric_code=code,
                    name=name,
                    min_value=int(out_min) if out_min is not None else 0,
                    max_value=int(out_max) if out_max is not None else 100,
                    threshold_low=t_low,
                    threshold_medium=t_medium,
                    threshold_high=t_high,
                    interpretation_low=i_low,
                    interpretation_medium=i_medium,
                    interpretation_high=i_high,
                    interpretation_ranges=_decode_json(ranges),
                )
            )
        return definitions

    def list_score_rules(
        self,
        source_question_code: Optional[str] = None,
        component_tag: Optional[str] = None,
    ) -> List[ScoreRule]:
        clauses = ["status = 'active'"]
        params: list[Any] = []
        if source_question_code is not None:
            clauses.append("source_question_code = %s")
            params.append(source_question_code)
        if component_tag is not None:
            clauses.append("component = %s")
            params.append(component_tag)

        sql = f"""
            SELECT id, source_question_code, condition, score_code, points, component
            FROM score_rules
            WHERE {" AND ".join(clauses)}
            ORDER BY id
        """
        rules: List[ScoreRule] = []
        for rule_id, source, condition, score_code, points, component in self._fetchall(sql, params):
            rules.append(
                ScoreRule(
                    rule_id=str(rule_id),
                    source_question_code=source,
                    condition=condition,
                    target_metric=score_code,
                    delta=int(points or 0),
                    component_tag=component,
                    active=True,
                )
            )
        return rules

    # ========================================================================
    # Branching
    # ========================================================================

    def list_branching_rules(self) -> List[BranchingRule]:
        sql = """
            SELECT rule_id,
                   priority,
                   trigger_question_code,
                   condition_type,
                   condition_value,
                   rule_type,
                   action_target
            FROM branching_rules
            WHERE status = 'active'
            ORDER BY priority ASC, rule_id ASC
        """
        rules: List[BranchingRule] = []
        for row in self._fetchall(sql):
            rule_id, priority, trigger, cond_type, cond_value, rule_type, target = row
            rules.append(
                BranchingRule(
                    rule_id=str(rule_id),
                    priority=int(priority),
                    trigger_question_code=trigger,
                    condition_type=cond_type,
                    condition_payload=cond_value,
                    action_kind=rule_type,
                    action_target=target,
                    active=True,
                )
            )
        return rules

    # ========================================================================
    # Modules
    # ========================================================================

    def get_module(self, module_id: str, active_only: bool = True) -> Optional[ModuleDefinition]:
        sql = """
            SELECT id, title, activity_description, duration_minutes, status
            FROM modules
            WHERE id = %s
        """
        if active_only:
            sql += " AND status = 'active'"
        row = self._fetchone(sql, (module_id,))
        if row is None:
            return None

        mod_id, title, goal, duration, status = row
        return ModuleDefinition(
            module_id=str(mod_id),
            title=title,
            goal=goal,
            duration_minutes=duration,
            active=status == "active",
        )

    def list_module_content(self, module_id: str) -> List[ContentBlock]:
        sql = """
            SELECT content_order, content_type, content_data
            FROM module_content
            WHERE module_id = %s
            ORDER BY content_order ASC
        """
        blocks: List[ContentBlock] = []
        for order, content_type, data in self._fetchall(sql, (module_id,)):
            decoded = _decode_json(data)
            if not isinstance(decoded, dict):
                decoded = {"value": decoded}
            blocks.append(ContentBlock(order=int(order), content_type=content_type, data=decoded))

        logger.debug("CatalogStorage.list_module_content: module=%s n=%d", module_id, len(blocks))
        return blocks
