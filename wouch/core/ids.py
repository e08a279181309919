"""
Wouch: ID Generation Utilities

Helper functions for generating unique identifiers used for ledger
events, responses, flags and audit rows.

External dependencies:
- uuid: Standard library UUID generation

Thread safety: Thread-safe (stateless functions)

Author: Wouch Team
Created: 2025-11-24
Last Modified: 2025-11-24
Status: Development
Version: v0.1.0
"""

from __future__ import annotations

import uuid


def generate_uuid() -> str:
    """Generate a random UUIDv4 string.

    Returns:
        A UUID string in standard 8-4-4-4-12 hexadecimal format.
    """

    return str(uuid.uuid4())


def generate_response_id() -> str:
    """Generate a unique identifier for a stored answer submission."""

    return generate_uuid()
