"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors), and make
`backend/` importable so tests use the same module names as the tools.
"""
import sys
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(REPO_ROOT), str(BACKEND_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_identity_env(monkeypatch: pytest.MonkeyPatch):
    """Keep env-driven configuration deterministic per test.

    Why:
        Config getters read the environment on every call. A developer shell
        with CATECHESIS_ENV=prod or custom table names would otherwise change
        adapter and guard behavior in unrelated tests.
    """
    for var in (
        "CATECHESIS_ENV",
        "PROFILES_TABLE",
        "ROSTER_TABLE",
        "SUPABASE_TIMEOUT_SECONDS",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY",
        "SUPABASE_ANON_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    yield
