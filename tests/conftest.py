"""
Shared fixtures for the tenantvault test suite.

Services run against a fresh ``MemoryStore`` per test with a cheap password
hash, so nothing here needs PostgreSQL.
"""

from __future__ import annotations

import pytest

from tenantvault.config import AuthConfig, Config, reset_config
from tenantvault.models import Identity, User
from tenantvault.services import Services, build_services
from tenantvault.store.memory import MemoryStore

PASSWORD = "correct-horse"


@pytest.fixture(autouse=True)
def clean_config():
    """Reset config singleton between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config() -> Config:
    return Config(auth=AuthConfig(jwt_secret="test-secret", password_rounds=1000))


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def services(store, config) -> Services:
    return build_services(store, config)


class Seed:
    """Builds tenants and users through the public services."""

    password = PASSWORD

    def __init__(self, services: Services) -> None:
        self.services = services

    @staticmethod
    def id(user: User) -> Identity:
        return Identity(user_id=user.id, tenant_id=user.tenant_id, email=user.email)

    def tenant_admin(self, email: str, slug: str) -> User:
        """Register a new tenant; the registrant is its admin."""
        return self.services.auth.register(email, PASSWORD, email.split("@")[0], slug.title(), slug).user

    def user(self, admin: User, email: str, role: str = "user", **kwargs) -> User:
        kwargs.setdefault("password", PASSWORD)
        return self.services.users.create_user(self.id(admin), email, email.split("@")[0], role=role, **kwargs)

    def super_admin(self, email: str = "root@example.com") -> User:
        user, _ = self.services.users.bootstrap_super_admin(email, PASSWORD)
        return user


@pytest.fixture
def seed(services) -> Seed:
    return Seed(services)


@pytest.fixture
def acme(seed):
    """Tenant 'acme' with an admin, two plain users and a team vault owned by the admin."""
    admin = seed.tenant_admin("admin@acme.test", "acme")
    alice = seed.user(admin, "alice@acme.test")
    bob = seed.user(admin, "bob@acme.test")
    vault, _ = seed.services.vaults.create(seed.id(admin), "Shared")
    return {"admin": admin, "alice": alice, "bob": bob, "vault": vault}
