"""Audit (and optionally repair) role drift between profiles and the roster.

Why:
    Role changes are written to `user_profiles` and copied to `teachers` by the
    database trigger `sync_user_profile_role_to_teachers`. Rows created before
    the trigger existed, or databases restored without it, can disagree. This
    tool lists every profile whose roster row carries a different role and,
    with `--repair`, copies the profile role into the roster.

Usage:
    python -m backend.tools.role_sync_audit --limit 500
    python -m backend.tools.role_sync_audit --repair

Env:
    SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY (service role; RLS would hide rows)
    PROFILES_TABLE / ROSTER_TABLE (optional overrides)

Notes:
    - Idempotent: repairing twice writes the same values.
    - Exit code 1 when drift remains (audit without --repair, or failed repairs).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Tuple

import click

from identity_access import config
from identity_access.ports import ProfileRecord
from identity_access.role_sync import RoleDrift, RoleSyncVerifier
from identity_access.role_updates import RoleUpdateResult
from identity_access.supabase_stores import SupabaseProfileStore, SupabaseRosterStore


logger = logging.getLogger("catechesis.tools.role_sync")

_PAGE_SIZE = 200


async def _load_profiles(profiles: SupabaseProfileStore, limit: Optional[int]) -> List[ProfileRecord]:
    out: List[ProfileRecord] = []
    offset = 0
    while True:
        page_size = _PAGE_SIZE if limit is None else min(_PAGE_SIZE, limit - len(out))
        if page_size <= 0:
            break
        page = await profiles.list_profiles(limit=page_size, offset=offset)
        if not page.ok:
            raise click.ClickException(f"failed to list profiles: {page.error or page.status.value}")
        rows = page.value or []
        out.extend(rows)
        if len(rows) < page_size:
            break
        offset += len(rows)
    return out


async def _run(client: Any, *, repair: bool, limit: Optional[int]) -> Tuple[List[RoleDrift], List[RoleUpdateResult]]:
    profiles = SupabaseProfileStore(client)
    verifier = RoleSyncVerifier(SupabaseRosterStore(client))
    drifts = await verifier.audit(await _load_profiles(profiles, limit))
    results: List[RoleUpdateResult] = []
    if repair and drifts:
        results = await verifier.repair(drifts)
    return drifts, results


async def _connect_and_run(*, repair: bool, limit: Optional[int]) -> Tuple[List[RoleDrift], List[RoleUpdateResult]]:
    try:
        client = await config.create_supabase_client(service_role=True)
    except RuntimeError as exc:
        raise click.ClickException("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required") from exc
    return await _run(client, repair=repair, limit=limit)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--repair", is_flag=True, help="Copy profile roles into drifting roster rows.")
@click.option("--limit", type=int, default=None, help="Only inspect the first N profiles.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(repair: bool, limit: Optional[int], verbose: bool) -> None:
    """Report profiles whose roster role differs from the profile role."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config.load_env()
    config.ensure_secure_config_on_startup()

    drifts, results = asyncio.run(_connect_and_run(repair=repair, limit=limit))
    for d in drifts:
        roster = d.roster_role.value if d.roster_role else "-"
        click.echo(f"drift user={d.user_id} profile={d.profile_role.value} roster={roster}")

    if not drifts:
        click.echo("No role drift found")
        return
    if not repair:
        click.echo(f"Found {len(drifts)} drifting roster rows (run with --repair to fix)")
        raise SystemExit(1)

    failed = [r for r in results if not r.success]
    click.echo(f"Repaired {len(results) - len(failed)} of {len(drifts)} roster rows")
    for r in failed:
        click.echo(f"repair failed user={r.user_id}: {r.error}", err=True)
    if failed:
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    cli()
