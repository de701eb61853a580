"""
Class assignment reconciliation between profile and roster.

Why:
    A catechist's class is recorded twice: on the profile (`user_profiles`)
    and on the roster (`teachers`), which a separate workflow maintains. The
    two drift. The roster is authoritative; the profile is corrected lazily
    whenever a scope is resolved.

Behavior:
    1. Trim the profile class id; empty means absent.
    2. With a phone, look up the roster. NOT_FOUND/IGNORABLE count as "no
       data" and stay quiet; soft failures and exceptions are logged.
    3. A non-empty (trimmed) roster class id overrides the profile value.
    4. When the profile does not already hold exactly the final id, write
       the final id back (best effort). Case-only drift is corrected too and
       logged as such (`same_class` compares trimmed, case-folded ids).
    5. Return the trimmed, original-cased final id or None.

Concurrency:
    Concurrent resolutions may race on the corrective write. The write always
    converges to the roster value, so last-write-wins is acceptable.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .ports import ProfileStore, RosterStore
from .results import LookupStatus


_log = logging.getLogger("catechesis.identity.class_assignment")

SOURCE_PROFILE = "profile"
SOURCE_ROSTER = "roster"


def sanitize_class_id(value: Optional[str]) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def normalize_class_id(value: Optional[str]) -> str:
    """Comparison key for class ids (trimmed and case-folded)."""
    return sanitize_class_id(value).casefold()


def same_class(a: Optional[str], b: Optional[str]) -> bool:
    """True when both ids name the same class (ignoring case and padding)."""
    return normalize_class_id(a) == normalize_class_id(b)


@dataclass(frozen=True)
class Reconciliation:
    assigned_class_id: Optional[str]
    source: Optional[str]
    repaired: bool = False


class ClassAssignmentReconciler:
    def __init__(self, *, roster: RosterStore, profiles: ProfileStore) -> None:
        self._roster = roster
        self._profiles = profiles

    async def _roster_class_id(self, phone: Optional[str]) -> Optional[str]:
        if not phone:
            return None
        try:
            found = await self._roster.find_by_phone(phone)
        except Exception as exc:
            _log.warning("roster lookup failed for class assignment: error=%s", type(exc).__name__)
            return None
        if found.status is LookupStatus.SOFT_FAILURE:
            _log.warning("roster lookup failed for class assignment: code=%s error=%s", found.code, found.error)
            return None
        if not found.ok or found.value is None:
            return None
        return sanitize_class_id(found.value.class_id) or None

    async def _repair_profile(self, principal_id: str, class_id: str) -> bool:
        try:
            res = await self._profiles.write_profile_class_id(principal_id, class_id)
        except Exception as exc:
            _log.warning("profile class sync raised: error=%s", type(exc).__name__)
            return False
        if res.ok:
            _log.info("profile class assignment synced from roster: user=%s", principal_id)
            return True
        if res.ignorable:
            _log.debug("profile class sync skipped: code=%s", res.code)
        else:
            _log.warning("profile class sync failed: code=%s error=%s", res.code, res.error)
        return False

    async def reconcile(
        self,
        *,
        principal_id: str,
        profile_class_id: Optional[str],
        phone: Optional[str],
    ) -> Reconciliation:
        sanitized_profile = sanitize_class_id(profile_class_id)
        assigned: Optional[str] = sanitized_profile or None
        source = SOURCE_PROFILE if assigned else None

        roster_class_id = await self._roster_class_id(phone)
        if roster_class_id:
            assigned = roster_class_id
            source = SOURCE_ROSTER

        repaired = False
        if assigned and assigned != sanitized_profile:
            if same_class(assigned, sanitized_profile):
                _log.debug("profile class differs from roster only by case: user=%s", principal_id)
            repaired = await self._repair_profile(principal_id, assigned)

        return Reconciliation(assigned_class_id=assigned, source=source, repaired=repaired)


__all__ = [
    "SOURCE_PROFILE",
    "SOURCE_ROSTER",
    "Reconciliation",
    "ClassAssignmentReconciler",
    "sanitize_class_id",
    "normalize_class_id",
    "same_class",
]
