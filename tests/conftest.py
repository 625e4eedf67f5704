"""
Test configuration - ensures repo root is in sys.path + determinism guards.

This allows tests to import from top-level packages (lib, api, cli).
Tests never touch the real store under ~/.nit_registry: NIT_REGISTRY_HOME is
pointed at a temp dir for every test and the process-wide store is reset.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import lib.*, api.*, cli.*
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from lib import registry_store  # noqa: E402
from lib.registry_store import JsonFileStore, SqliteStore  # noqa: E402
from tests.fixtures import make_entity  # noqa: E402

# =============================================================================
# DETERMINISM GUARD: Block the live store
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the app home at a temp dir and forget any cached store."""
    home = tmp_path / "home"
    monkeypatch.setenv("NIT_REGISTRY_HOME", str(home))
    monkeypatch.delenv("NIT_REGISTRY_STORE", raising=False)
    monkeypatch.delenv("NIT_REGISTRY_BACKEND", raising=False)
    registry_store.reset_store()
    yield home
    registry_store.reset_store()


# =============================================================================
# STORES
# =============================================================================


@pytest.fixture
def json_store(tmp_path):
    return JsonFileStore(tmp_path / "registrations.json")


@pytest.fixture
def sqlite_store(tmp_path):
    return SqliteStore(tmp_path / "registrations.db")


@pytest.fixture(params=["json", "sqlite"])
def store(request, tmp_path):
    """Each store test runs once per backend."""
    if request.param == "json":
        return JsonFileStore(tmp_path / "registrations.json")
    return SqliteStore(tmp_path / "registrations.db")


@pytest.fixture
def entity_factory():
    return make_entity
