"""
Ports used by scope resolution and role administration.

Keep these small and framework-agnostic so tests can supply simple fakes.
Implementations return classified outcomes (`Lookup`, `WriteResult`) and are
expected not to raise; callers still guard against misbehaving adapters.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol

from .results import Lookup, WriteResult


@dataclass(frozen=True)
class Principal:
    """Authenticated user as reported by the identity provider."""

    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


@dataclass(frozen=True)
class ProfileRecord:
    """Row of `user_profiles` (primary record; role stored as StorageRole)."""

    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    class_id: Optional[str] = None


@dataclass(frozen=True)
class RosterRecord:
    """Row of `teachers` (secondary record, correlated by phone)."""

    phone: str
    class_id: Optional[str] = None
    role: Optional[str] = None


class IdentityProvider(Protocol):
    async def get_current_principal(self) -> Lookup[Principal]: ...


class ProfileStore(Protocol):
    async def read_profile(self, principal_id: str) -> Lookup[ProfileRecord]: ...

    async def write_profile_class_id(self, principal_id: str, class_id: str) -> WriteResult: ...

    async def write_profile_role(self, principal_id: str, storage_role: str) -> WriteResult: ...

    async def list_profiles(self, *, limit: int, offset: int = 0) -> Lookup[List[ProfileRecord]]: ...


class RosterStore(Protocol):
    async def find_by_phone(self, phone: str) -> Lookup[RosterRecord]: ...

    async def write_roster_role(self, phone: str, storage_role: str) -> WriteResult: ...


__all__ = [
    "Principal",
    "ProfileRecord",
    "RosterRecord",
    "IdentityProvider",
    "ProfileStore",
    "RosterStore",
]
