"""
Explicit outcomes for store reads and writes.

Why:
    Scope resolution must never fail, but "no row", "table missing" and
    "network down" deserve different treatment (silence vs. warning). Stores
    therefore return a classified outcome instead of raising, so each caller
    branches on the classification rather than relying on a catch-all.

Classification:
    - NOT_FOUND: no matching row (PostgREST `PGRST116`, HTTP `204`, or an
      empty result set).
    - IGNORABLE: expected environment gaps (`42501` permission denied,
      `42P01` undefined table, `42703` undefined column).
    - SOFT_FAILURE: everything else (connectivity, malformed response, ...).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar


T = TypeVar("T")

NOT_FOUND_CODES = frozenset({"PGRST116", "204"})
IGNORABLE_CODES = frozenset({"42501", "42P01", "42703"})


class LookupStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    IGNORABLE = "ignorable"
    SOFT_FAILURE = "soft_failure"


def error_code(error: Any) -> Optional[str]:
    """Extract a PostgREST/Postgres error code from an exception or error dict."""
    if error is None:
        return None
    if isinstance(error, dict):
        code = error.get("code")
    else:
        code = getattr(error, "code", None)
    if code is None:
        return None
    return str(code).strip() or None


def error_message(error: Any) -> str:
    if error is None:
        return ""
    if isinstance(error, dict):
        msg = error.get("message")
    else:
        msg = getattr(error, "message", None)
    if isinstance(msg, str) and msg:
        return msg
    return str(error) or type(error).__name__


def classify_error(error: Any) -> LookupStatus:
    """Map an error to NOT_FOUND, IGNORABLE or SOFT_FAILURE."""
    code = error_code(error)
    if code in NOT_FOUND_CODES:
        return LookupStatus.NOT_FOUND
    if code in IGNORABLE_CODES:
        return LookupStatus.IGNORABLE
    return LookupStatus.SOFT_FAILURE


def is_ignorable(error: Any) -> bool:
    """True when the error should not be logged as a warning."""
    return classify_error(error) in (LookupStatus.NOT_FOUND, LookupStatus.IGNORABLE)


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """Outcome of a read. `value` is set only when status is OK."""

    status: LookupStatus
    value: Optional[T] = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def found(cls, value: T) -> "Lookup[T]":
        return cls(LookupStatus.OK, value=value)

    @classmethod
    def missing(cls) -> "Lookup[T]":
        return cls(LookupStatus.NOT_FOUND)

    @classmethod
    def from_error(cls, error: Any) -> "Lookup[T]":
        return cls(classify_error(error), error=error_message(error), code=error_code(error))

    @property
    def ok(self) -> bool:
        return self.status is LookupStatus.OK

    @property
    def ignorable(self) -> bool:
        return self.status in (LookupStatus.NOT_FOUND, LookupStatus.IGNORABLE)


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a single-row write."""

    ok: bool
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def success(cls) -> "WriteResult":
        return cls(True)

    @classmethod
    def from_error(cls, error: Any) -> "WriteResult":
        return cls(False, error=error_message(error), code=error_code(error))

    @property
    def ignorable(self) -> bool:
        return not self.ok and is_ignorable({"code": self.code})


__all__ = [
    "NOT_FOUND_CODES",
    "IGNORABLE_CODES",
    "LookupStatus",
    "Lookup",
    "WriteResult",
    "classify_error",
    "error_code",
    "error_message",
    "is_ignorable",
]
