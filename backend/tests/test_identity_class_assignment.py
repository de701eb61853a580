"""
Class assignment reconciliation tests.

Focus:
    - Roster assignment wins over the profile assignment.
    - The profile is corrected lazily (best effort) when it drifts.
    - Lookup and write failures never surface.
"""
from __future__ import annotations

import pytest

from identity_access.class_assignment import (
    SOURCE_PROFILE,
    SOURCE_ROSTER,
    ClassAssignmentReconciler,
    normalize_class_id,
    same_class,
    sanitize_class_id,
)
from identity_access.ports import RosterRecord
from identity_access.results import WriteResult

from utils.fake_stores import FakeProfiles, FakeRoster, ignorable, soft_failure


def _reconciler(roster: FakeRoster, profiles: FakeProfiles) -> ClassAssignmentReconciler:
    return ClassAssignmentReconciler(roster=roster, profiles=profiles)


def test_class_id_helpers():
    assert sanitize_class_id("  B2 ") == "B2"
    assert sanitize_class_id(None) == ""
    assert normalize_class_id(" B2 ") == "b2"
    assert same_class(" B2", "b2 ")
    assert not same_class("B2", "B3")


@pytest.mark.anyio
async def test_roster_wins_and_profile_is_corrected_preserving_case():
    roster = FakeRoster(RosterRecord(phone="0901", class_id=" B2 "))
    profiles = FakeProfiles()
    res = await _reconciler(roster, profiles).reconcile(principal_id="u1", profile_class_id="b2", phone="0901")
    assert res.assigned_class_id == "B2"
    assert res.source == SOURCE_ROSTER
    assert res.repaired is True
    assert profiles.class_writes == [("u1", "B2")]


@pytest.mark.anyio
async def test_roster_overrides_absent_profile_assignment():
    roster = FakeRoster(RosterRecord(phone="0901", class_id="C1"))
    profiles = FakeProfiles()
    res = await _reconciler(roster, profiles).reconcile(principal_id="u1", profile_class_id="   ", phone="0901")
    assert res.assigned_class_id == "C1"
    assert profiles.class_writes == [("u1", "C1")]


@pytest.mark.anyio
async def test_no_roster_row_keeps_profile_without_write():
    profiles = FakeProfiles()
    res = await _reconciler(FakeRoster(), profiles).reconcile(principal_id="u1", profile_class_id="A1", phone="0901")
    assert res.assigned_class_id == "A1"
    assert res.source == SOURCE_PROFILE
    assert res.repaired is False
    assert profiles.class_writes == []


@pytest.mark.anyio
async def test_matching_assignment_issues_no_write():
    roster = FakeRoster(RosterRecord(phone="0901", class_id="A1"))
    profiles = FakeProfiles()
    res = await _reconciler(roster, profiles).reconcile(principal_id="u1", profile_class_id=" A1 ", phone="0901")
    assert res.assigned_class_id == "A1"
    assert profiles.class_writes == []


@pytest.mark.anyio
async def test_whitespace_roster_id_is_treated_as_absent():
    roster = FakeRoster(RosterRecord(phone="0901", class_id="   "))
    profiles = FakeProfiles()
    res = await _reconciler(roster, profiles).reconcile(principal_id="u1", profile_class_id="A1", phone="0901")
    assert res.assigned_class_id == "A1"
    assert profiles.class_writes == []


@pytest.mark.anyio
async def test_no_phone_skips_roster_lookup():
    roster = FakeRoster(RosterRecord(phone="0901", class_id="C1"))
    res = await _reconciler(roster, FakeProfiles()).reconcile(principal_id="u1", profile_class_id=None, phone=None)
    assert res.assigned_class_id is None
    assert res.source is None
    assert roster.lookups == []


@pytest.mark.anyio
@pytest.mark.parametrize("outcome", [soft_failure(), ignorable()])
async def test_roster_lookup_failures_fall_back_to_profile(outcome):
    roster = FakeRoster()
    roster.outcome = outcome
    profiles = FakeProfiles()
    res = await _reconciler(roster, profiles).reconcile(principal_id="u1", profile_class_id="A1", phone="0901")
    assert res.assigned_class_id == "A1"
    assert profiles.class_writes == []


@pytest.mark.anyio
async def test_roster_exception_is_swallowed():
    roster = FakeRoster()
    roster.raises = ConnectionError("reset by peer")
    res = await _reconciler(roster, FakeProfiles()).reconcile(principal_id="u1", profile_class_id="A1", phone="0901")
    assert res.assigned_class_id == "A1"


@pytest.mark.anyio
async def test_failed_repair_does_not_change_result():
    roster = FakeRoster(RosterRecord(phone="0901", class_id="B2"))
    profiles = FakeProfiles()
    profiles.write_outcomes["u1"] = WriteResult(False, error="permission denied", code="42501")
    res = await _reconciler(roster, profiles).reconcile(principal_id="u1", profile_class_id="A1", phone="0901")
    assert res.assigned_class_id == "B2"
    assert res.repaired is False
    assert profiles.class_writes == [("u1", "B2")]


@pytest.mark.anyio
async def test_raising_repair_does_not_change_result():
    roster = FakeRoster(RosterRecord(phone="0901", class_id="B2"))
    profiles = FakeProfiles()
    profiles.write_raises["u1"] = TimeoutError()
    res = await _reconciler(roster, profiles).reconcile(principal_id="u1", profile_class_id="A1", phone="0901")
    assert res.assigned_class_id == "B2"
    assert res.repaired is False


@pytest.mark.anyio
async def test_case_only_drift_is_corrected_once_per_resolution():
    roster = FakeRoster(RosterRecord(phone="0901", class_id="B2"))
    profiles = FakeProfiles()
    res = await _reconciler(roster, profiles).reconcile(principal_id="u1", profile_class_id="b2", phone="0901")
    assert same_class(res.assigned_class_id, "b2")
    assert profiles.class_writes == [("u1", "B2")]
