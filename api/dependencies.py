"""
FastAPI dependencies shared by the routers.

Tests swap the store with `app.dependency_overrides[get_registry_store]`.
"""

from fastapi import Depends

from lib.registry_store import RegistrationStore, get_store
from lib.workflow import RegistrationWorkflow


def get_registry_store() -> RegistrationStore:
    return get_store()


def get_workflow(store: RegistrationStore = Depends(get_registry_store)) -> RegistrationWorkflow:
    return RegistrationWorkflow(store)
