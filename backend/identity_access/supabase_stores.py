"""
Supabase-backed identity, profile and roster stores.

These adapters implement the ports in `identity_access.ports` using a provided
async supabase-py client (`supabase.acreate_client`). They are duck-typed to
avoid a hard dependency during testing. The client is expected to expose:

- `auth.get_user(jwt=None)` -> object with `.user` (id, email, phone) or None
- `table(name)` returning a PostgREST query builder with
  `select/update/eq/limit/range`, finished by `await ... .execute()` which
  returns an object (or dict) carrying `data`.

PostgREST errors (`postgrest.exceptions.APIError`) expose `code` and
`message`; they are classified into `Lookup`/`WriteResult` outcomes and never
raised past the adapter.

Security:
- Scope resolution should use a client bound to the user's session so RLS
  applies. Role administration and the sync tool need a service-role client.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .config import get_profiles_table, get_roster_table
from .ports import Principal, ProfileRecord, RosterRecord
from .results import Lookup, WriteResult


_log = logging.getLogger("catechesis.identity.supabase")

PROFILE_COLUMNS = "id, email, phone, role, class_id"
ROSTER_COLUMNS = "phone, class_id, role"

# supabase-py raises this when no session is attached to the client.
_NO_SESSION_ERRORS = frozenset({"AuthSessionMissingError"})


def _rows(res: Any) -> List[Dict[str, Any]]:
    """Extract `data` as a list of rows from either response shape."""
    data = res.get("data") if isinstance(res, dict) else getattr(res, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [r for r in data if isinstance(r, dict)]
    return []


def _field(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


class SupabaseIdentityProvider:
    """Current principal via Supabase Auth."""

    def __init__(self, client: Any, *, access_token: Optional[str] = None) -> None:
        self._client = client
        self._access_token = access_token

    async def get_current_principal(self) -> Lookup[Principal]:
        try:
            if self._access_token:
                res = await self._client.auth.get_user(self._access_token)
            else:
                res = await self._client.auth.get_user()
        except Exception as exc:
            if type(exc).__name__ in _NO_SESSION_ERRORS:
                return Lookup.missing()
            return Lookup.from_error(exc)
        user = getattr(res, "user", None) if res is not None else None
        if user is None and isinstance(res, dict):
            user = res.get("user")
        if user is None:
            return Lookup.missing()
        uid = _field(user, "id")
        if not uid:
            return Lookup.missing()
        return Lookup.found(
            Principal(id=str(uid), email=_opt_str(_field(user, "email")), phone=_opt_str(_field(user, "phone")))
        )


class SupabaseProfileStore:
    """`user_profiles` access (read + targeted updates)."""

    def __init__(self, client: Any, *, table: Optional[str] = None) -> None:
        self._client = client
        self._table = table or get_profiles_table()

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> ProfileRecord:
        return ProfileRecord(
            id=str(row.get("id")),
            email=_opt_str(row.get("email")),
            phone=_opt_str(row.get("phone")),
            role=_opt_str(row.get("role")),
            class_id=_opt_str(row.get("class_id")),
        )

    async def read_profile(self, principal_id: str) -> Lookup[ProfileRecord]:
        try:
            res = await (
                self._client.table(self._table)
                .select(PROFILE_COLUMNS)
                .eq("id", principal_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            return Lookup.from_error(exc)
        rows = _rows(res)
        if not rows:
            return Lookup.missing()
        return Lookup.found(self._to_record(rows[0]))

    async def list_profiles(self, *, limit: int, offset: int = 0) -> Lookup[List[ProfileRecord]]:
        start = max(0, int(offset or 0))
        end = start + max(1, int(limit or 1)) - 1
        try:
            res = await (
                self._client.table(self._table)
                .select(PROFILE_COLUMNS)
                .order("id")
                .range(start, end)
                .execute()
            )
        except Exception as exc:
            return Lookup.from_error(exc)
        return Lookup.found([self._to_record(r) for r in _rows(res)])

    async def _update(self, principal_id: str, values: Dict[str, Any]) -> WriteResult:
        try:
            await self._client.table(self._table).update(values).eq("id", principal_id).execute()
        except Exception as exc:
            return WriteResult.from_error(exc)
        return WriteResult.success()

    async def write_profile_class_id(self, principal_id: str, class_id: str) -> WriteResult:
        return await self._update(principal_id, {"class_id": class_id})

    async def write_profile_role(self, principal_id: str, storage_role: str) -> WriteResult:
        return await self._update(principal_id, {"role": storage_role})


class SupabaseRosterStore:
    """`teachers` access keyed by phone.

    Phone is not guaranteed unique; the first row returned wins.
    """

    def __init__(self, client: Any, *, table: Optional[str] = None) -> None:
        self._client = client
        self._table = table or get_roster_table()

    async def find_by_phone(self, phone: str) -> Lookup[RosterRecord]:
        if not phone or not phone.strip():
            return Lookup.missing()
        try:
            res = await (
                self._client.table(self._table)
                .select(ROSTER_COLUMNS)
                .eq("phone", phone)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            return Lookup.from_error(exc)
        rows = _rows(res)
        if not rows:
            return Lookup.missing()
        row = rows[0]
        return Lookup.found(
            RosterRecord(
                phone=str(row.get("phone") or phone),
                class_id=_opt_str(row.get("class_id")),
                role=_opt_str(row.get("role")),
            )
        )

    async def write_roster_role(self, phone: str, storage_role: str) -> WriteResult:
        try:
            await self._client.table(self._table).update({"role": storage_role}).eq("phone", phone).execute()
        except Exception as exc:
            return WriteResult.from_error(exc)
        _log.debug("roster role written for phone row")
        return WriteResult.success()


__all__ = [
    "PROFILE_COLUMNS",
    "ROSTER_COLUMNS",
    "SupabaseIdentityProvider",
    "SupabaseProfileStore",
    "SupabaseRosterStore",
]
