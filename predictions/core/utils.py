"""
Shared utility functions for the predictions backend.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a short unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "tok", "rtok")

    Returns:
        A unique ID like "tok_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def generate_uuid() -> str:
    """Public identifier for users and leagues (full UUID4 string)."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)
