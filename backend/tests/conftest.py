"""
Shared pytest fixtures.

Environment is pinned before the garage package is imported so the
module-level settings pick up test values (no log file, memory storage,
local identity provider).
"""
import os
import sys

os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("AUTH_PROVIDER", "local")

# Ensure garage package is importable when running pytest from project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest  # noqa: E402

from garage.auth.gateway import IdentityGateway  # noqa: E402
from garage.auth.providers import LocalIdentityProvider  # noqa: E402
from garage.store.state import AppState  # noqa: E402

OWNER_EMAIL = "owner@garage.test"
OWNER_PASSWORD = "spanner99"


@pytest.fixture
def state():
    return AppState()


@pytest.fixture
def provider():
    return LocalIdentityProvider(
        {OWNER_EMAIL: OWNER_PASSWORD, "former@garage.test": "secret123"},
        disabled=["former@garage.test"],
    )


@pytest.fixture
def gateway(provider):
    gw = IdentityGateway(provider)
    yield gw
    gw.close()
