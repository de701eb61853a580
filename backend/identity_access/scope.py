"""
User scope resolution (role + assigned class).

Why:
    Access control and dashboards need one answer to "what may this user see":
    their `AppRole` and the class they are assigned to. The answer combines the
    identity provider, the profile row and the roster row. Any of those may be
    unavailable; the dashboard must still render with the least privileged
    view instead of failing.

Behavior:
    - No principal -> DEFAULT_SCOPE.
    - Profile read failures are logged; resolution continues with nulls.
    - Role resolution failures fall back to DEFAULT_ROLE.
    - Class reconciliation handles its own failures (see class_assignment).
    - Nothing raises to the caller.

Permissions:
    The stores must be bound to the caller's session (RLS) or a service role;
    this module does not decide which.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .class_assignment import ClassAssignmentReconciler
from .domain import DEFAULT_ROLE, AppRole
from .ports import IdentityProvider, Principal, ProfileRecord, ProfileStore, RosterStore
from .profile_role import MinimalProfile, ProfileRoleResolver
from .results import LookupStatus


_log = logging.getLogger("catechesis.identity.scope")


@dataclass(frozen=True)
class Scope:
    role: AppRole
    assigned_class_id: Optional[str] = None


DEFAULT_SCOPE = Scope(role=DEFAULT_ROLE, assigned_class_id=None)


class ScopeResolver:
    """Compose identity, profile and roster data into a `Scope`."""

    def __init__(
        self,
        *,
        identity: IdentityProvider,
        profiles: ProfileStore,
        roster: RosterStore,
        role_resolver: Optional[ProfileRoleResolver] = None,
        reconciler: Optional[ClassAssignmentReconciler] = None,
    ) -> None:
        self._identity = identity
        self._profiles = profiles
        self._role_resolver = role_resolver or ProfileRoleResolver(roster)
        self._reconciler = reconciler or ClassAssignmentReconciler(roster=roster, profiles=profiles)

    async def _current_principal(self) -> Optional[Principal]:
        found = await self._identity.get_current_principal()
        if found.status is LookupStatus.SOFT_FAILURE:
            _log.warning("failed to verify user session for scope: code=%s error=%s", found.code, found.error)
        return found.value if found.ok else None

    async def _profile(self, principal_id: str) -> Optional[ProfileRecord]:
        try:
            found = await self._profiles.read_profile(principal_id)
        except Exception as exc:
            _log.warning("failed to load user profile for scope: error=%s", type(exc).__name__)
            return None
        if found.status is LookupStatus.SOFT_FAILURE:
            _log.warning("failed to load user profile for scope: code=%s error=%s", found.code, found.error)
        return found.value if found.ok else None

    async def _role(self, minimal: MinimalProfile) -> AppRole:
        try:
            return await self._role_resolver.resolve(minimal)
        except Exception as exc:
            _log.warning("failed to resolve profile role for scope: error=%s", type(exc).__name__)
            return DEFAULT_ROLE

    async def _resolve(self) -> Scope:
        principal = await self._current_principal()
        if principal is None:
            return DEFAULT_SCOPE

        profile = await self._profile(principal.id)
        minimal = MinimalProfile(
            id=principal.id,
            email=profile.email if profile and profile.email is not None else principal.email,
            phone=profile.phone if profile else None,
            role=profile.role if profile else None,
        )
        role = await self._role(minimal)

        result = await self._reconciler.reconcile(
            principal_id=principal.id,
            profile_class_id=profile.class_id if profile else None,
            phone=minimal.phone,
        )
        return Scope(role=role, assigned_class_id=result.assigned_class_id)

    async def resolve_scope(self) -> Scope:
        """Return the caller's scope; never raises."""
        try:
            return await self._resolve()
        except Exception as exc:
            _log.warning("failed to resolve user scope: error=%s", type(exc).__name__)
            return DEFAULT_SCOPE


__all__ = ["Scope", "DEFAULT_SCOPE", "ScopeResolver"]
