"""
tests/conftest.py -- Shared test fixtures for OrgAdmin integration tests.

This module provides:
  - make_test_stores(): isolated in-memory DB shared by UserStore and OrgStore
  - seed(): a small fixed world of roles, enterprises and users
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus seeded ids and a token helper

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The environment must be set before any api/auth/core import so that
get_settings() auto-generates SECRET_KEY in dev mode, hashes cheaply and
does not rate-limit the many logins the suite performs.
"""

from __future__ import annotations

import os
import re
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import PermissionGrant, Role, User, UserStatus
from auth.passwords import hash_password
from auth.permissions import PermissionEvaluator
from auth.resolver import IdentityResolver
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings
from org.models import Employee, Enterprise, Product
from org.store import OrgStore

TEST_ROUNDS = 4
PASSWORD = "testpass123"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_stores(db_suffix: str) -> tuple[UserStore, OrgStore]:
    """Create a UserStore and an OrgStore on the same named shared-memory DB.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = f"sqlite:///file:test_orgadmin_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), OrgStore(db_url=url)


@dataclass
class World:
    """Ids of the seeded rows, keyed by a short name."""

    roles: dict[str, int] = field(default_factory=dict)
    enterprises: dict[str, int] = field(default_factory=dict)
    users: dict[str, int] = field(default_factory=dict)
    employees: dict[str, int] = field(default_factory=dict)
    products: dict[str, int] = field(default_factory=dict)


def seed(user_store: UserStore, org_store: OrgStore) -> World:
    """Populate two tenants, three roles and a handful of accounts.

    Roles:
      Admin    -- the super-role, no grant rows at all
      Manager  -- products read/create/update (no delete), employees read,
                  users read, dashboard read
      Empty    -- a products grant with every flag false
    Users (password PASSWORD for all):
      admin          Admin, no enterprise
      acme_manager   Manager @ Acme
      globex_manager Manager @ Globex
      acme_empty     Empty @ Acme
      acme_locked    Manager @ Acme, status locked
    """
    world = World()
    world.roles["admin"] = user_store.ensure_default_roles()
    world.roles["manager"] = user_store.create_role(
        Role(
            name="Manager",
            description="Tenant manager",
            permissions=[
                PermissionGrant("products", can_read=True, can_create=True, can_update=True),
                PermissionGrant("employees", can_read=True),
                PermissionGrant("users", can_read=True),
                PermissionGrant("dashboard", can_read=True),
            ],
        )
    )
    world.roles["empty"] = user_store.create_role(Role(name="Empty", permissions=[PermissionGrant("products")]))

    world.enterprises["acme"] = org_store.create_enterprise(Enterprise(name="Acme", location="Berlin"))
    world.enterprises["globex"] = org_store.create_enterprise(Enterprise(name="Globex", location="Oslo"))

    digest = hash_password(PASSWORD, rounds=TEST_ROUNDS)
    accounts = [
        ("admin", "admin", None, UserStatus.active),
        ("acme_manager", "manager", "acme", UserStatus.active),
        ("globex_manager", "manager", "globex", UserStatus.active),
        ("acme_empty", "empty", "acme", UserStatus.active),
        ("acme_locked", "manager", "acme", UserStatus.locked),
    ]
    for username, role, enterprise, status in accounts:
        world.users[username] = user_store.create_user(
            User(
                username=username,
                email=f"{username}@example.com",
                hashed_password=digest,
                status=status.value,
                role_id=world.roles[role],
                enterprise_id=world.enterprises[enterprise] if enterprise else None,
            )
        )

    world.employees["ana"] = org_store.create_employee(
        Employee(name="Ana", enterprise_id=world.enterprises["acme"], department="Sales", salary=4200.0)
    )
    world.employees["bo"] = org_store.create_employee(Employee(name="Bo", enterprise_id=world.enterprises["globex"]))
    world.products["widget"] = org_store.create_product(
        Product(
            name="Widget",
            enterprise_id=world.enterprises["acme"],
            sku="ACME-001",
            price=9.5,
            employee_id=world.employees["ana"],
        )
    )
    world.products["gizmo"] = org_store.create_product(
        Product(name="Gizmo", enterprise_id=world.enterprises["globex"], sku="GLX-001")
    )
    return world


def _patch_lifespan(user_store: UserStore, org_store: OrgStore, tokens: TokenService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = get_settings()
        app.state.user_store = user_store
        app.state.org_store = org_store
        app.state.tokens = tokens
        app.state.resolver = IdentityResolver(tokens, user_store)
        app.state.evaluator = PermissionEvaluator(user_store)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    tokens: TokenService
    user_store: UserStore
    org_store: OrgStore
    world: World

    def token_for(self, username: str) -> str:
        user = self.user_store.get_by_username(username)
        return self.tokens.issue(
            subject=user.id,
            role_id=user.role_id,
            enterprise_id=user.enterprise_id,
            username=user.username,
        )

    def headers(self, username: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token_for(username)}"}


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use an isolated in-memory database
    seeded by seed().
    """
    user_store, org_store = make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    world = seed(user_store, org_store)
    tokens = TokenService(secret_key=get_settings().secret_key, ttl_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, org_store, tokens)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client=client, tokens=tokens, user_store=user_store, org_store=org_store, world=world)

    org_store.close()
    user_store.close()


@pytest.fixture()
def stores(request: pytest.FixtureRequest) -> Generator[tuple[UserStore, OrgStore], None, None]:
    """Fresh, empty stores for one store-level test."""
    user_store, org_store = make_test_stores("unit_" + re.sub(r"\W", "_", request.node.nodeid))
    yield user_store, org_store
    org_store.close()
    user_store.close()


@pytest.fixture()
def seeded(stores: tuple[UserStore, OrgStore]) -> tuple[UserStore, OrgStore, World]:
    """Fresh stores populated by seed()."""
    user_store, org_store = stores
    return user_store, org_store, seed(user_store, org_store)
