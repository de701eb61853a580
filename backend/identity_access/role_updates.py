"""
Administrative role changes.

Why:
    Admins promote/demote users from the dashboard. The profile row is the
    primary source of truth; the database trigger
    `sync_user_profile_role_to_teachers` copies the new value to the roster
    (`teachers`) row with the same phone. This service therefore writes the
    profile only.

Behavior:
    - Roles are converted to their stored representation before writing.
    - Failures are returned as `RoleUpdateResult(success=False, error=...)`;
      nothing raises, including adapters that raise synchronously.
    - Batches fan out concurrently; items are independent and results keep
      the input order.

Permissions:
    Caller must be an admin; the profile store is expected to use a client
    allowed to update other users' rows.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from .domain import AppRole
from .ports import ProfileStore
from .roles import to_internal_role, to_storage_role


_log = logging.getLogger("catechesis.identity.role_updates")


@dataclass(frozen=True)
class RoleUpdate:
    user_id: str
    new_role: Union[AppRole, str]


@dataclass(frozen=True)
class RoleUpdateResult:
    user_id: str
    success: bool
    error: Optional[str] = None


class RoleUpdateService:
    def __init__(self, profiles: ProfileStore) -> None:
        self._profiles = profiles

    async def _write(self, user_id: str, new_role: Union[AppRole, str]) -> RoleUpdateResult:
        if not isinstance(user_id, str) or not user_id.strip():
            return RoleUpdateResult(user_id=str(user_id or ""), success=False, error="invalid_user_id")
        storage_role = to_storage_role(to_internal_role(new_role))
        res = await self._profiles.write_profile_role(user_id, storage_role)
        if not res.ok:
            _log.error("failed to update profile role: user=%s code=%s error=%s", user_id, res.code, res.error)
            return RoleUpdateResult(user_id=user_id, success=False, error=f"Failed to update profile: {res.error}")
        _log.info("profile role updated: user=%s role=%s", user_id, storage_role)
        return RoleUpdateResult(user_id=user_id, success=True)

    async def update_role(self, user_id: str, new_role: Union[AppRole, str]) -> RoleUpdateResult:
        """Set a user's role on the profile row; never raises."""
        try:
            return await self._write(user_id, new_role)
        except Exception as exc:
            _log.error("unexpected error updating role: user=%s error=%s", user_id, type(exc).__name__)
            return RoleUpdateResult(user_id=str(user_id or ""), success=False, error=str(exc) or "Unknown error")

    async def update_roles_batch(self, updates: Iterable[RoleUpdate]) -> List[RoleUpdateResult]:
        """Apply several role updates concurrently; one result per update."""
        return list(
            await asyncio.gather(
                *(self.update_role(getattr(u, "user_id", ""), getattr(u, "new_role", None)) for u in updates)
            )
        )


__all__ = ["RoleUpdate", "RoleUpdateResult", "RoleUpdateService"]
