"""
Configuration and startup security checks for the identity core.

Why: Role and class data gate what catechists can see about children. A
deployment talking to Supabase with a dummy key or over plain http must not
start. Development stays permissive.

Behavior:
    - Small getters read environment variables with defaults so tests can
      override them via monkeypatch.
    - `ensure_secure_config_on_startup()` raises `SystemExit` on fatal
      misconfiguration in prod-like environments.
    - `create_supabase_client()` builds the async supabase-py client.

Permissions: Pure configuration, except `create_supabase_client` which uses
the configured key (service role for tools, anon key otherwise).
"""
from __future__ import annotations

import os
import re
import sys
from typing import Any, Optional


PROFILES_TABLE_DEFAULT = "user_profiles"
ROSTER_TABLE_DEFAULT = "teachers"
SUPABASE_TIMEOUT_DEFAULT = 10

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via CATECHESIS_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("CATECHESIS_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


def load_env() -> None:
    from dotenv import load_dotenv

    if _should_load_dotenv():
        load_dotenv()


def get_environment() -> str:
    return (os.getenv("CATECHESIS_ENV", "dev") or "dev").strip().lower()


def _is_prod_like(env: str) -> bool:
    return (env or "").lower() in {"prod", "production", "stage", "staging"}


def _table_name(var: str, default: str) -> str:
    value = (os.getenv(var) or default).strip()
    if not _IDENTIFIER.match(value):
        raise ValueError(f"invalid table name in {var}")
    return value


def get_profiles_table() -> str:
    """Profile table name (env PROFILES_TABLE, default `user_profiles`)."""
    return _table_name("PROFILES_TABLE", PROFILES_TABLE_DEFAULT)


def get_roster_table() -> str:
    """Roster table name (env ROSTER_TABLE, default `teachers`)."""
    return _table_name("ROSTER_TABLE", ROSTER_TABLE_DEFAULT)


def get_supabase_timeout() -> int:
    raw = (os.getenv("SUPABASE_TIMEOUT_SECONDS") or "").strip()
    if not raw:
        return SUPABASE_TIMEOUT_DEFAULT
    try:
        value = int(raw)
    except ValueError:
        return SUPABASE_TIMEOUT_DEFAULT
    return value if value > 0 else SUPABASE_TIMEOUT_DEFAULT


def get_supabase_url() -> str:
    return (os.getenv("SUPABASE_URL") or "").strip()


def get_supabase_key(*, service_role: bool) -> str:
    if service_role:
        return (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    return (os.getenv("SUPABASE_ANON_KEY") or "").strip()


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/stage only):
    - SUPABASE_URL must be set and use https.
    - SUPABASE_SERVICE_ROLE_KEY must be set and not a dummy placeholder.
    """
    if not _is_prod_like(get_environment()):
        return

    url = get_supabase_url()
    if not url:
        raise SystemExit("Refusing to start: SUPABASE_URL is unset in production.")
    if not url.lower().startswith("https://"):
        raise SystemExit("Refusing to start: SUPABASE_URL must use https in production.")

    srole = get_supabase_key(service_role=True)
    if not srole or srole.upper() == "DUMMY_DO_NOT_USE" or srole.upper().startswith("CHANGE_ME"):
        raise SystemExit(
            "Refusing to start: SUPABASE_SERVICE_ROLE_KEY is unset or a dummy placeholder in production."
        )


async def create_supabase_client(*, service_role: bool = False, url: Optional[str] = None, key: Optional[str] = None) -> Any:
    """Create an async supabase-py client from env (or explicit values)."""
    base = (url or get_supabase_url()).strip()
    secret = (key or get_supabase_key(service_role=service_role)).strip()
    if not base or not secret:
        raise RuntimeError("supabase_not_configured")

    from supabase import AsyncClientOptions, acreate_client

    options = AsyncClientOptions(postgrest_client_timeout=get_supabase_timeout())
    return await acreate_client(base, secret, options=options)


__all__ = [
    "PROFILES_TABLE_DEFAULT",
    "ROSTER_TABLE_DEFAULT",
    "load_env",
    "get_environment",
    "get_profiles_table",
    "get_roster_table",
    "get_supabase_timeout",
    "get_supabase_url",
    "get_supabase_key",
    "ensure_secure_config_on_startup",
    "create_supabase_client",
]
