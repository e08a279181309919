"""
Wouch: Core Type Definitions

Common type aliases and the subject key shared by every engine
component.

External dependencies:
- typing: Standard library typing primitives only

Thread safety: Thread-safe (no mutable global state)

Author: Wouch Team
Created: 2025-11-24
Last Modified: 2025-11-25
Status: Development
Version: v0.1.0
"""

# ============================================================================
# Imports
# ============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, TypeAlias

# ============================================================================
# Type Aliases
# ============================================================================

# Generic JSON-like mapping used for rule payloads and content blocks
JsonDict: TypeAlias = Dict[str, Any]

# Generic metadata mapping for attaching arbitrary structured data to records
MetadataDict: TypeAlias = Dict[str, Any]

# Aggregated metric values keyed by metric code
ScoreMap: TypeAlias = Dict[str, int]

# Read-only view of aggregated metric values
ReadonlyScores: TypeAlias = Mapping[str, int]


# ============================================================================
# Subject key
# ============================================================================


@dataclass(frozen=True)
class SubjectKey:
    """Identifies one assessment run.

    Attributes:
        user_id: Opaque user identifier.
        session_id: Opaque session identifier. A new run always uses a
            new session identifier.
    """

    user_id: str
    session_id: str

    def __str__(self) -> str:
        return f"{self.user_id}/{self.session_id}"
