"""
Wouch: Error Taxonomy

This module defines the exception hierarchy shared by all engine
components.

- :class:`NotFound` – catalog lookup misses (question, module,
  definition) and missing progress rows.
- :class:`ValidationError` – missing or invalid caller input.
- :class:`InvalidTransition` – a state machine transition that is not
  allowed from the current state.
- :class:`PersistenceFailure` – a store read or write failed.
- :class:`MalformedRule` – an unparseable rule condition or unknown
  operator. Evaluators catch it and treat the rule as a non-match.

Author: Wouch Team
Created: 2025-11-25
Last Modified: 2025-11-25
Status: Development
Version: v0.1.0
"""

from __future__ import annotations


class WouchError(Exception):
    """Base class for all engine errors."""


class NotFound(WouchError):
    """Raised when a catalog entity or progress row does not exist."""


class ValidationError(WouchError):
    """Raised when required input is missing or invalid."""


class InvalidTransition(ValidationError):
    """Raised when a flow or intervention transition is not allowed."""


class PersistenceFailure(WouchError):
    """Raised when a database connection or operation fails."""


class MalformedRule(WouchError):
    """Raised when a rule condition cannot be parsed or evaluated."""
