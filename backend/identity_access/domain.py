"""
Identity domain constants and simple helpers.

Why:
- Centralize the application roles to avoid drift between tools and services.
- Keep terms aligned with the glossary (catechist, sector leader, admin) and
  used consistently across modules.
"""

from __future__ import annotations

from enum import Enum


class AppRole(str, Enum):
    """Authorization roles used throughout the dashboard."""

    CATECHIST = "catechist"
    SECTOR_LEADER = "sector_leader"
    ADMIN = "admin"


# Lowest privilege; used whenever stored data is absent or unrecognized.
DEFAULT_ROLE = AppRole.CATECHIST

# Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset(r.value for r in AppRole)

__all__ = ["AppRole", "DEFAULT_ROLE", "ALLOWED_ROLES"]
