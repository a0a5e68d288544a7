"""
Resource services — the operations the HTTP layer and the CLI call.

Every service receives its store explicitly and opens one session per
operation. ``build_services`` wires them from a store and a config.

Usage:
    from tenantvault.services import build_services
    from tenantvault.store import MemoryStore

    services = build_services(MemoryStore())
    result = services.auth.register("a@x.com", "s3cret-pass", "Ann", "Acme", "acme")
"""

from __future__ import annotations

from dataclasses import dataclass

from tenantvault.config import Config, get_config
from tenantvault.crypto import PasswordHasher
from tenantvault.services.auth import AuthResult, AuthService
from tenantvault.services.credentials import CredentialInput, CredentialService
from tenantvault.services.tenants import TenantService
from tenantvault.services.users import UserService
from tenantvault.services.vaults import VaultService
from tenantvault.store.base import Store
from tenantvault.tokens import TokenService


@dataclass
class Services:
    store: Store
    tokens: TokenService
    auth: AuthService
    tenants: TenantService
    vaults: VaultService
    credentials: CredentialService
    users: UserService


def build_services(store: Store, config: Config | None = None) -> Services:
    cfg = config or get_config()
    hasher = PasswordHasher(rounds=cfg.auth.password_rounds)
    tokens = TokenService(
        cfg.auth.jwt_secret,
        expire_hours=cfg.auth.jwt_expire_hours,
        algorithm=cfg.auth.jwt_algorithm,
    )
    min_length = cfg.auth.min_password_length
    return Services(
        store=store,
        tokens=tokens,
        auth=AuthService(store, hasher, tokens, min_password_length=min_length),
        tenants=TenantService(store),
        vaults=VaultService(store),
        credentials=CredentialService(store),
        users=UserService(store, hasher, min_password_length=min_length),
    )


__all__ = [
    "AuthResult",
    "AuthService",
    "CredentialInput",
    "CredentialService",
    "Services",
    "TenantService",
    "UserService",
    "VaultService",
    "build_services",
]
