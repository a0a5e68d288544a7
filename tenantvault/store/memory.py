"""
In-memory store — the same repository contract as the PostgreSQL backend,
held in plain dicts.

Used by the test suite and by ``tenantvault serve --memory`` for local
experiments. Sessions are serialized with a lock; a session that raises
restores the snapshot taken when it opened, so partial writes never leak.
Uniqueness rules mirror the schema's unique indexes.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from tenantvault.errors import ConflictError
from tenantvault.models import Credential, Tenant, User, Vault, VaultMember
from tenantvault.roles import TenantRole, UserStatus, VaultRole


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class _State:
    tenants: dict[int, Tenant] = field(default_factory=dict)
    users: dict[int, User] = field(default_factory=dict)
    vaults: dict[int, Vault] = field(default_factory=dict)
    members: dict[int, VaultMember] = field(default_factory=dict)
    credentials: dict[int, Credential] = field(default_factory=dict)
    ids: dict[str, int] = field(default_factory=dict)

    def next_id(self, table: str) -> int:
        self.ids[table] = self.ids.get(table, 0) + 1
        return self.ids[table]


class _Repository:
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    @property
    def _state(self) -> _State:
        return self._store._state


class MemoryTenantRepository(_Repository):
    def get(self, tenant_id: int) -> Tenant | None:
        tenant = self._state.tenants.get(tenant_id)
        return replace(tenant) if tenant else None

    def get_by_slug(self, slug: str) -> Tenant | None:
        for tenant in self._state.tenants.values():
            if tenant.slug == slug:
                return replace(tenant)
        return None

    def list_all(self) -> list[Tenant]:
        return [replace(t) for t in self._state.tenants.values()]

    def insert(self, name: str, slug: str) -> Tenant:
        if self.get_by_slug(slug) is not None:
            raise ConflictError("tenant slug already taken", resource="tenant")
        now = _now()
        tenant = Tenant(
            id=self._state.next_id("tenants"),
            name=name,
            slug=slug,
            created_at=now,
            updated_at=now,
        )
        self._state.tenants[tenant.id] = tenant
        return replace(tenant)

    def update(self, tenant: Tenant) -> Tenant:
        existing = self._state.tenants.get(tenant.id)
        if existing is None:
            return tenant
        clash = self.get_by_slug(tenant.slug)
        if clash is not None and clash.id != tenant.id:
            raise ConflictError("tenant slug already taken", resource="tenant")
        updated = replace(existing, name=tenant.name, slug=tenant.slug, updated_at=_now())
        self._state.tenants[tenant.id] = updated
        return replace(updated)

    def delete(self, tenant_id: int) -> bool:
        if self._state.tenants.pop(tenant_id, None) is None:
            return False
        # ON DELETE CASCADE: vaults → members, credentials
        for vault_id in [v.id for v in self._state.vaults.values() if v.tenant_id == tenant_id]:
            self._store._drop_vault(vault_id)
        for cid in [c.id for c in self._state.credentials.values() if c.tenant_id == tenant_id]:
            del self._state.credentials[cid]
        return True


class MemoryUserRepository(_Repository):
    def get(self, user_id: int) -> User | None:
        user = self._state.users.get(user_id)
        return replace(user) if user else None

    def get_by_email(self, email: str) -> User | None:
        needle = email.lower()
        for user in self._state.users.values():
            if user.email.lower() == needle:
                return replace(user)
        return None

    def get_by_oauth(self, provider: str, oauth_id: str) -> User | None:
        for user in self._state.users.values():
            if user.oauth_provider == provider and user.oauth_id == oauth_id:
                return replace(user)
        return None

    def exists_by_email(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def list_all(self) -> list[User]:
        return [replace(u) for u in self._state.users.values()]

    def list_by_tenant(self, tenant_id: int) -> list[User]:
        return [replace(u) for u in self._state.users.values() if u.tenant_id == tenant_id]

    def list_by_role(self, role: TenantRole) -> list[User]:
        return [replace(u) for u in self._state.users.values() if u.role == role]

    def count_by_tenant(self, tenant_id: int) -> int:
        return sum(1 for u in self._state.users.values() if u.tenant_id == tenant_id)

    def _check_email(self, email: str, user_id: int | None) -> None:
        clash = self.get_by_email(email)
        if clash is not None and clash.id != user_id:
            raise ConflictError("email already registered", resource="user")

    def insert(self, user: User) -> User:
        self._check_email(user.email, None)
        now = _now()
        stored = replace(user, id=self._state.next_id("users"), created_at=now, updated_at=now)
        self._state.users[stored.id] = stored
        return replace(stored)

    def update(self, user: User) -> User:
        existing = self._state.users.get(user.id)
        if existing is None:
            return user
        self._check_email(user.email, user.id)
        # master_key_salt is fixed at creation.
        updated = replace(
            user,
            master_key_salt=existing.master_key_salt,
            created_at=existing.created_at,
            updated_at=_now(),
        )
        self._state.users[user.id] = updated
        return replace(updated)

    def update_status(self, user_id: int, status: UserStatus) -> bool:
        existing = self._state.users.get(user_id)
        if existing is None:
            return False
        self._state.users[user_id] = replace(existing, status=status, updated_at=_now())
        return True


class MemoryVaultRepository(_Repository):
    def get(self, vault_id: int) -> Vault | None:
        vault = self._state.vaults.get(vault_id)
        return replace(vault) if vault else None

    def insert(self, vault: Vault) -> Vault:
        now = _now()
        stored = replace(vault, id=self._state.next_id("vaults"), created_at=now, updated_at=now)
        self._state.vaults[stored.id] = stored
        return replace(stored)

    def update(self, vault: Vault) -> Vault:
        existing = self._state.vaults.get(vault.id)
        if existing is None:
            return vault
        updated = replace(
            existing,
            name=vault.name,
            description=vault.description,
            icon=vault.icon,
            updated_at=_now(),
        )
        self._state.vaults[vault.id] = updated
        return replace(updated)

    def delete(self, vault_id: int) -> bool:
        if vault_id not in self._state.vaults:
            return False
        self._store._drop_vault(vault_id)
        return True

    def list_by_tenant(self, tenant_id: int) -> list[Vault]:
        return [replace(v) for v in self._state.vaults.values() if v.tenant_id == tenant_id]

    def list_visible(self, tenant_id: int, user_id: int) -> list[Vault]:
        return [replace(v) for v in self._store._visible_vaults(tenant_id, user_id)]


class MemoryMemberRepository(_Repository):
    def _find(self, vault_id: int, user_id: int) -> VaultMember | None:
        for member in self._state.members.values():
            if member.vault_id == vault_id and member.user_id == user_id:
                return member
        return None

    def get(self, vault_id: int, user_id: int) -> VaultMember | None:
        member = self._find(vault_id, user_id)
        return replace(member) if member else None

    def list_by_vault(self, vault_id: int) -> list[VaultMember]:
        return [replace(m) for m in self._state.members.values() if m.vault_id == vault_id]

    def insert(self, vault_id: int, user_id: int, role: VaultRole) -> VaultMember:
        if self._find(vault_id, user_id) is not None:
            raise ConflictError("user is already a member of this vault", resource="vault_member")
        if role == VaultRole.OWNER and any(
            m.vault_id == vault_id and m.role == VaultRole.OWNER for m in self._state.members.values()
        ):
            raise ConflictError("vault already has an owner", resource="vault_member")
        member = VaultMember(
            id=self._state.next_id("members"),
            vault_id=vault_id,
            user_id=user_id,
            role=role,
            created_at=_now(),
        )
        self._state.members[member.id] = member
        return replace(member)

    def update_role(self, vault_id: int, user_id: int, role: VaultRole) -> VaultMember | None:
        member = self._find(vault_id, user_id)
        if member is None or member.role == VaultRole.OWNER:
            return None
        updated = replace(member, role=role)
        self._state.members[member.id] = updated
        return replace(updated)

    def delete(self, vault_id: int, user_id: int) -> bool:
        member = self._find(vault_id, user_id)
        if member is None or member.role == VaultRole.OWNER:
            return False
        del self._state.members[member.id]
        return True

    def delete_by_vault(self, vault_id: int) -> int:
        doomed = [m.id for m in self._state.members.values() if m.vault_id == vault_id]
        for mid in doomed:
            del self._state.members[mid]
        return len(doomed)


class MemoryCredentialRepository(_Repository):
    def get(self, credential_id: int) -> Credential | None:
        credential = self._state.credentials.get(credential_id)
        return replace(credential) if credential else None

    def insert(self, credential: Credential) -> Credential:
        now = _now()
        stored = replace(
            credential,
            id=self._state.next_id("credentials"),
            created_at=now,
            updated_at=now,
        )
        self._state.credentials[stored.id] = stored
        return replace(stored)

    def update(self, credential: Credential) -> Credential:
        existing = self._state.credentials.get(credential.id)
        if existing is None:
            return credential
        updated = replace(
            credential,
            vault_id=existing.vault_id,
            tenant_id=existing.tenant_id,
            created_at=existing.created_at,
            updated_at=_now(),
        )
        self._state.credentials[credential.id] = updated
        return replace(updated)

    def delete(self, credential_id: int) -> bool:
        return self._state.credentials.pop(credential_id, None) is not None

    def delete_by_vault(self, vault_id: int) -> int:
        doomed = [c.id for c in self._state.credentials.values() if c.vault_id == vault_id]
        for cid in doomed:
            del self._state.credentials[cid]
        return len(doomed)

    def list_by_vault(self, vault_id: int) -> list[Credential]:
        return [replace(c) for c in self._state.credentials.values() if c.vault_id == vault_id]

    def list_visible(self, tenant_id: int, user_id: int, query: str = "") -> list[Credential]:
        visible = {v.id for v in self._store._visible_vaults(tenant_id, user_id)}
        needle = query.lower()
        return [
            replace(c)
            for c in self._state.credentials.values()
            if c.tenant_id == tenant_id
            and c.vault_id in visible
            and (not needle or needle in c.category.lower() or needle in c.favicon.lower())
        ]


class MemorySession:
    def __init__(self, store: MemoryStore) -> None:
        self.tenants = MemoryTenantRepository(store)
        self.users = MemoryUserRepository(store)
        self.vaults = MemoryVaultRepository(store)
        self.members = MemoryMemberRepository(store)
        self.credentials = MemoryCredentialRepository(store)


class MemoryStore:
    def __init__(self) -> None:
        self._state = _State()
        self._lock = threading.RLock()

    @contextmanager
    def session(self) -> Generator[MemorySession, None, None]:
        with self._lock:
            snapshot = copy.deepcopy(self._state)
            try:
                yield MemorySession(self)
            except BaseException:
                self._state = snapshot
                raise

    def close(self) -> None:
        pass

    def _visible_vaults(self, tenant_id: int, user_id: int) -> list[Vault]:
        member_of = {
            m.vault_id for m in self._state.members.values() if m.user_id == user_id
        }
        return [
            v
            for v in self._state.vaults.values()
            if v.tenant_id == tenant_id
            and ((v.is_personal and v.owner_id == user_id) or (not v.is_personal and v.id in member_of))
        ]

    def _drop_vault(self, vault_id: int) -> None:
        self._state.vaults.pop(vault_id, None)
        for mid in [m.id for m in self._state.members.values() if m.vault_id == vault_id]:
            del self._state.members[mid]
        for cid in [c.id for c in self._state.credentials.values() if c.vault_id == vault_id]:
            del self._state.credentials[cid]
