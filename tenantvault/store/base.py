"""
Store contract — the repositories every backend provides.

A ``Store`` hands out sessions; a session is one transaction. Everything
done through a session's repositories commits together when the ``with``
block exits normally and rolls back if it raises. Services open exactly one
session per operation, so multi-step writes are atomic and nothing read
from the store outlives the request.

Repositories return ``None`` (or ``False``) for a missing row; they raise
``ConflictError`` on a uniqueness violation and ``StoreError`` on any
backend failure.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from tenantvault.models import Credential, Tenant, User, Vault, VaultMember
from tenantvault.roles import TenantRole, UserStatus, VaultRole


class TenantRepository(Protocol):
    def get(self, tenant_id: int) -> Tenant | None: ...

    def get_by_slug(self, slug: str) -> Tenant | None: ...

    def list_all(self) -> list[Tenant]: ...

    def insert(self, name: str, slug: str) -> Tenant: ...

    def update(self, tenant: Tenant) -> Tenant: ...

    def delete(self, tenant_id: int) -> bool: ...


class UserRepository(Protocol):
    def get(self, user_id: int) -> User | None: ...

    def get_by_email(self, email: str) -> User | None: ...

    def get_by_oauth(self, provider: str, oauth_id: str) -> User | None: ...

    def exists_by_email(self, email: str) -> bool: ...

    def list_all(self) -> list[User]: ...

    def list_by_tenant(self, tenant_id: int) -> list[User]: ...

    def list_by_role(self, role: TenantRole) -> list[User]: ...

    def count_by_tenant(self, tenant_id: int) -> int: ...

    def insert(self, user: User) -> User: ...

    def update(self, user: User) -> User: ...

    def update_status(self, user_id: int, status: UserStatus) -> bool: ...


class VaultRepository(Protocol):
    def get(self, vault_id: int) -> Vault | None: ...

    def insert(self, vault: Vault) -> Vault: ...

    def update(self, vault: Vault) -> Vault: ...

    def delete(self, vault_id: int) -> bool: ...

    def list_by_tenant(self, tenant_id: int) -> list[Vault]: ...

    def list_visible(self, tenant_id: int, user_id: int) -> list[Vault]:
        """Team vaults the user is a member of plus personal vaults the user owns."""
        ...


class MemberRepository(Protocol):
    def get(self, vault_id: int, user_id: int) -> VaultMember | None: ...

    def list_by_vault(self, vault_id: int) -> list[VaultMember]:
        """Memberships of a vault in insertion order."""
        ...

    def insert(self, vault_id: int, user_id: int, role: VaultRole) -> VaultMember: ...

    def update_role(self, vault_id: int, user_id: int, role: VaultRole) -> VaultMember | None: ...

    def delete(self, vault_id: int, user_id: int) -> bool: ...

    def delete_by_vault(self, vault_id: int) -> int: ...


class CredentialRepository(Protocol):
    def get(self, credential_id: int) -> Credential | None: ...

    def insert(self, credential: Credential) -> Credential: ...

    def update(self, credential: Credential) -> Credential: ...

    def delete(self, credential_id: int) -> bool: ...

    def delete_by_vault(self, vault_id: int) -> int: ...

    def list_by_vault(self, vault_id: int) -> list[Credential]: ...

    def list_visible(self, tenant_id: int, user_id: int, query: str = "") -> list[Credential]:
        """Credentials in every vault visible to the user, filtered on category/favicon."""
        ...


class Session(Protocol):
    tenants: TenantRepository
    users: UserRepository
    vaults: VaultRepository
    members: MemberRepository
    credentials: CredentialRepository


class Store(Protocol):
    def session(self) -> AbstractContextManager[Session]: ...
