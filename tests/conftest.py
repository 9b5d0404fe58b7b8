"""Shared fixtures: in-memory repositories, a seeded two-tenant world and an API client."""

from dataclasses import dataclass
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from authz.core.auth.context import AuthContext
from authz.core.auth.dependencies import get_repositories
from authz.core.auth.jwt import create_access_token
from authz.core.auth.permissions import SystemRole
from authz.main import app
from authz.models import Company, Module, User
from authz.repositories.interfaces import Repositories
from authz.seeders import run_seeders
from tests.fakes import InMemoryStore, build_fake_repositories


@dataclass
class World:
    """Seeded tenants and users shared by most tests."""

    acme: Company
    globex: Company
    super_admin: User
    acme_admin: User
    acme_user: User
    acme_user2: User
    globex_admin: User
    globex_user: User

    def module(self, repos: Repositories, key: str) -> Module:
        module = repos.modules.get_by_key(key)
        assert module is not None, key
        return module


def make_context(user: User) -> AuthContext:
    """Build the caller context a valid token for ``user`` would produce."""
    return AuthContext(
        user_id=user.id,
        role=SystemRole(user.role),
        company_id=user.company_id,
        ip_address="127.0.0.1",
        user_agent="pytest",
    )


def auth_header(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.role, user.company_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def repos(store) -> Repositories:
    """Repositories over an in-memory store with the default catalog seeded."""
    repositories = build_fake_repositories(store)
    run_seeders(repositories)
    return repositories


@pytest.fixture
def world(repos) -> World:
    """Two companies with an admin and users each, plus a company-less super-admin."""

    def company(name: str) -> Company:
        return repos.companies.add(Company(id=uuid4(), name=name, slug=name.lower(), is_active=True))

    def user(email: str, role: SystemRole, company_id) -> User:
        return repos.users.add(
            User(
                id=uuid4(),
                email=email,
                full_name=email.split("@")[0],
                company_id=company_id,
                role=role.value,
                is_active=True,
            )
        )

    acme = company("Acme")
    globex = company("Globex")
    return World(
        acme=acme,
        globex=globex,
        super_admin=user("root@platform.test", SystemRole.SUPER_ADMIN, None),
        acme_admin=user("admin@acme.test", SystemRole.ADMIN, acme.id),
        acme_user=user("ana@acme.test", SystemRole.USER, acme.id),
        acme_user2=user("bob@acme.test", SystemRole.USER, acme.id),
        globex_admin=user("admin@globex.test", SystemRole.ADMIN, globex.id),
        globex_user=user("gil@globex.test", SystemRole.USER, globex.id),
    )


@pytest.fixture
def client(repos):
    """Test client whose requests share the in-memory repositories."""
    app.dependency_overrides[get_repositories] = lambda: repos
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
