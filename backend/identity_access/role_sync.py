"""
Verification path for profile → roster role propagation.

Why:
    Role updates rely on a database trigger to copy `user_profiles.role` into
    the `teachers` row with the same phone. Environments restored from dumps,
    or rows that predate the trigger, can still disagree. This module reports
    such drift and can repair it from the profile side (the profile is the
    source of truth for roles).

Behavior:
    - `audit` compares normalized roles; profiles without a phone and phones
      without a roster row are skipped (nothing to sync).
    - `repair` writes the profile's stored role value to the roster row,
      concurrently and independently per item. Never raises.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .domain import AppRole
from .ports import ProfileRecord, RosterStore
from .results import LookupStatus
from .role_updates import RoleUpdateResult
from .roles import to_internal_role, to_storage_role


_log = logging.getLogger("catechesis.identity.role_sync")


@dataclass(frozen=True)
class RoleDrift:
    user_id: str
    phone: str
    profile_role: AppRole
    roster_role: Optional[AppRole]


class RoleSyncVerifier:
    def __init__(self, roster: RosterStore) -> None:
        self._roster = roster

    async def _check(self, profile: ProfileRecord) -> Optional[RoleDrift]:
        phone = (profile.phone or "").strip()
        if not phone:
            return None
        found = await self._roster.find_by_phone(phone)
        if found.status is LookupStatus.SOFT_FAILURE:
            _log.warning("roster lookup failed during role audit: user=%s code=%s", profile.id, found.code)
            return None
        if not found.ok or found.value is None:
            return None
        profile_role = to_internal_role(profile.role)
        raw_roster_role = found.value.role
        roster_role = to_internal_role(raw_roster_role) if raw_roster_role else None
        if roster_role == profile_role:
            return None
        return RoleDrift(user_id=profile.id, phone=phone, profile_role=profile_role, roster_role=roster_role)

    async def audit(self, profiles: Iterable[ProfileRecord]) -> List[RoleDrift]:
        """Return one `RoleDrift` per profile whose roster role disagrees."""
        drifts: List[RoleDrift] = []
        for profile in profiles:
            try:
                drift = await self._check(profile)
            except Exception as exc:
                _log.warning("role audit failed for user=%s error=%s", profile.id, type(exc).__name__)
                continue
            if drift is not None:
                drifts.append(drift)
        return drifts

    async def _repair_one(self, drift: RoleDrift) -> RoleUpdateResult:
        try:
            res = await self._roster.write_roster_role(drift.phone, to_storage_role(drift.profile_role))
        except Exception as exc:
            return RoleUpdateResult(user_id=drift.user_id, success=False, error=str(exc) or "Unknown error")
        if not res.ok:
            _log.warning("roster role repair failed: user=%s code=%s", drift.user_id, res.code)
            return RoleUpdateResult(user_id=drift.user_id, success=False, error=f"Failed to update roster: {res.error}")
        return RoleUpdateResult(user_id=drift.user_id, success=True)

    async def repair(self, drifts: Iterable[RoleDrift]) -> List[RoleUpdateResult]:
        return list(await asyncio.gather(*(self._repair_one(d) for d in drifts)))


__all__ = ["RoleDrift", "RoleSyncVerifier"]
