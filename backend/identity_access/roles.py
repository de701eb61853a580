"""
Role normalization between application roles and stored role values.

Why:
    The database stores Vietnamese role codes (`giao_ly_vien`,
    `phan_doan_truong`) while the application authorizes on `AppRole`. Older
    rows and admin imports also contain free-text spellings. Keep the mapping
    in one place so every caller agrees on what a stored value means.

Behavior:
    - `to_storage_role` is total on `AppRole`.
    - `to_internal_role` is total on any input and falls back to
      `DEFAULT_ROLE` for None, empty, non-string or unknown values.
"""
from __future__ import annotations

from typing import Dict, Optional, Union

from .domain import DEFAULT_ROLE, AppRole


STORAGE_CATECHIST = "giao_ly_vien"
STORAGE_SECTOR_LEADER = "phan_doan_truong"
STORAGE_ADMIN = "admin"

_TO_STORAGE: Dict[AppRole, str] = {
    AppRole.CATECHIST: STORAGE_CATECHIST,
    AppRole.SECTOR_LEADER: STORAGE_SECTOR_LEADER,
    AppRole.ADMIN: STORAGE_ADMIN,
}

_ADMIN_ALIASES = frozenset({
    "admin",
    "administrator",
    "administrators",
    "ban dieu hanh",
    "ban điều hành",
    "ban-dieu-hanh",
    "board",
    "board_admin",
})

_SECTOR_LEADER_ALIASES = frozenset({
    "sector_leader",
    "sectorleader",
    "leader",
    "phan_doan_truong",
    "phan doan truong",
    "phân đoàn trưởng",
    "phan-doan-truong",
    "truong nganh",
    "trưởng ngành",
})

_CATECHIST_ALIASES = frozenset({
    "catechist",
    "catechists",
    "teacher",
    "teachers",
    "giao_ly_vien",
    "giao ly vien",
    "giáo lý viên",
    "giao-ly-vien",
    "huynh truong",
    "huynh trưởng",
    "du truong",
    "dự trưởng",
})

_PRIORITY: Dict[AppRole, int] = {
    AppRole.ADMIN: 3,
    AppRole.SECTOR_LEADER: 2,
    AppRole.CATECHIST: 1,
}

_LABELS: Dict[AppRole, str] = {
    AppRole.ADMIN: "Ban điều hành",
    AppRole.SECTOR_LEADER: "Phân đoàn trưởng",
    AppRole.CATECHIST: "Giáo lý viên",
}


def _normalize_input(value: object) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def to_storage_role(role: AppRole) -> str:
    """Return the stored representation of an application role."""
    return _TO_STORAGE[AppRole(role)]


def to_internal_role(value: Union[AppRole, str, None]) -> AppRole:
    """Map a stored (or free-text) role value to an `AppRole`.

    Never raises; unknown input resolves to `DEFAULT_ROLE`.
    """
    if isinstance(value, AppRole):
        return value
    normalized = _normalize_input(value)
    if normalized in _ADMIN_ALIASES:
        return AppRole.ADMIN
    if normalized in _SECTOR_LEADER_ALIASES:
        return AppRole.SECTOR_LEADER
    if normalized in _CATECHIST_ALIASES:
        return AppRole.CATECHIST
    return DEFAULT_ROLE


def role_priority(role: AppRole) -> int:
    return _PRIORITY[AppRole(role)]


def role_label(role: Optional[AppRole]) -> str:
    """Human readable (Vietnamese) label for dashboards and exports."""
    return _LABELS[to_internal_role(role)]


__all__ = [
    "STORAGE_CATECHIST",
    "STORAGE_SECTOR_LEADER",
    "STORAGE_ADMIN",
    "to_storage_role",
    "to_internal_role",
    "role_priority",
    "role_label",
]
