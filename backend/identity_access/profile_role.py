"""
Effective role for a user profile.

Why:
    The profile row carries the authoritative role, but older accounts were
    promoted only in the roster (`teachers`) table. Taking the higher of the
    two keeps those users from being silently downgraded while never letting
    the roster lower a role granted on the profile.

Behavior:
    - Primary: normalize `profile.role`.
    - Secondary: when a phone is known, read the roster role and use it only
      if its priority is strictly higher.
    - Roster lookup failures, including adapter exceptions, are treated as
      "no roster role" so the profile role survives.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .domain import AppRole
from .ports import RosterStore
from .results import LookupStatus
from .roles import role_priority, to_internal_role


_log = logging.getLogger("catechesis.identity.profile_role")


@dataclass(frozen=True)
class MinimalProfile:
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


class ProfileRoleResolver:
    def __init__(self, roster: Optional[RosterStore] = None) -> None:
        self._roster = roster

    async def _roster_role(self, phone: Optional[str]) -> Optional[str]:
        if self._roster is None or not phone or not phone.strip():
            return None
        try:
            found = await self._roster.find_by_phone(phone)
        except Exception as exc:
            _log.warning("roster role lookup raised: error=%s", type(exc).__name__)
            return None
        if found.status is LookupStatus.SOFT_FAILURE:
            _log.warning("roster role lookup failed: code=%s error=%s", found.code, found.error)
            return None
        if not found.ok or found.value is None:
            return None
        return found.value.role

    async def resolve(self, profile: MinimalProfile) -> AppRole:
        profile_role = to_internal_role(profile.role)
        roster_role = await self._roster_role(profile.phone)
        if roster_role:
            candidate = to_internal_role(roster_role)
            if role_priority(candidate) > role_priority(profile_role):
                return candidate
        return profile_role


__all__ = ["MinimalProfile", "ProfileRoleResolver"]
