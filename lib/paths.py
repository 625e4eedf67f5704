from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "NIT_REGISTRY_HOME"
APP_ENV_STORE = "NIT_REGISTRY_STORE"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains lib/, api/, cli/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for the registry.
    Override with NIT_REGISTRY_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".nit_registry").resolve()


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def store_path(backend: str = "json") -> Path:
    """
    Canonical registration store path.

    Resolution order:
    1. NIT_REGISTRY_STORE env var (explicit override)
    2. ~/.nit_registry/data/registrations.json (json backend)
       ~/.nit_registry/data/registrations.db (sqlite backend)
    """
    if os.environ.get(APP_ENV_STORE):
        return Path(os.environ[APP_ENV_STORE]).expanduser().resolve()
    suffix = "db" if backend == "sqlite" else "json"
    return data_dir() / f"registrations.{suffix}"
