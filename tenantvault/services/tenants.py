"""
Tenant service — create, read, rename and delete tenants.

Creating a tenant is self-service: the caller's account moves into the new
tenant in the same transaction, so a tenant never exists without a member.
The move drops the caller's vault memberships in the old tenant and is
refused while the caller still owns a vault there.
Slugs are lowercased before the uniqueness check and re-checked right
before every write; the unique index on ``tenants.slug`` is the backstop.
"""

from __future__ import annotations

import logging

from tenantvault.errors import ConflictError
from tenantvault.guard import Guard, TenantAction
from tenantvault.models import Identity, Tenant
from tenantvault.roles import TenantRole, VaultRole
from tenantvault.store.base import Session, Store
from tenantvault.validation import normalize_slug, require_name

logger = logging.getLogger(__name__)


def _ensure_slug_free(session: Session, slug: str, tenant_id: int | None = None) -> None:
    existing = session.tenants.get_by_slug(slug)
    if existing is not None and existing.id != tenant_id:
        raise ConflictError("tenant slug already taken", resource="tenant")


def _leave_vaults(guard: Guard, session: Session, user_id: int, tenant_id: int) -> None:
    """Drop the user's memberships in ``tenant_id``; owners must delete their vaults first."""
    held = []
    for vault in session.vaults.list_by_tenant(tenant_id):
        member = guard.memberships.find_membership(vault.id, user_id)
        if vault.owner_id == user_id or (member is not None and member.role == VaultRole.OWNER):
            raise ConflictError("caller still owns vaults in their current tenant", resource="vault")
        if member is not None:
            held.append(vault.id)
    for vault_id in held:
        guard.memberships.remove_membership(vault_id, user_id)
    if held:
        logger.info("Removed user %s from %d vault(s) in tenant %s", user_id, len(held), tenant_id)


class TenantService:
    def __init__(self, store: Store) -> None:
        self._store = store

    def create(self, identity: Identity, name: str, slug: str) -> Tenant:
        name = require_name(name)
        slug = normalize_slug(slug)
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            _ensure_slug_free(s, slug)
            _leave_vaults(guard, s, caller.id, caller.tenant_id)
            tenant = s.tenants.insert(name, slug)

            caller.tenant_id = tenant.id
            if caller.role == TenantRole.USER:
                # The creator administers the tenant they just made.
                caller.role = TenantRole.ADMIN
            s.users.update(caller)

        logger.info("Tenant %s (%s) created by user %s", tenant.id, slug, caller.id)
        return tenant

    def get(self, identity: Identity, tenant_id: int) -> Tenant:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            return guard.require_tenant(caller, tenant_id, TenantAction.VIEW)

    def list(self, identity: Identity) -> list[Tenant]:
        """All tenants for a super admin, otherwise the caller's own tenant."""
        with self._store.session() as s:
            caller = Guard(s).caller(identity)
            if caller.is_super_admin:
                return s.tenants.list_all()
            tenant = s.tenants.get(caller.tenant_id)
            return [tenant] if tenant else []

    def update(
        self,
        identity: Identity,
        tenant_id: int,
        *,
        name: str | None = None,
        slug: str | None = None,
    ) -> Tenant:
        new_name = require_name(name) if name else None
        new_slug = normalize_slug(slug) if slug else None
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            tenant = guard.require_tenant(caller, tenant_id, TenantAction.MANAGE)
            if new_name:
                tenant.name = new_name
            if new_slug and new_slug != tenant.slug:
                _ensure_slug_free(s, new_slug, tenant.id)
                tenant.slug = new_slug
            tenant = s.tenants.update(tenant)

        logger.info("Tenant %s updated by user %s", tenant_id, caller.id)
        return tenant

    def delete(self, identity: Identity, tenant_id: int) -> None:
        """Remove an empty tenant together with its vaults and credentials."""
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            guard.require_tenant(caller, tenant_id, TenantAction.DELETE)
            remaining = s.users.count_by_tenant(tenant_id)
            if remaining:
                raise ConflictError(
                    f"tenant still has {remaining} user(s)", resource="tenant"
                )
            for vault in s.vaults.list_by_tenant(tenant_id):
                s.credentials.delete_by_vault(vault.id)
                s.members.delete_by_vault(vault.id)
                s.vaults.delete(vault.id)
            s.tenants.delete(tenant_id)

        logger.info("Tenant %s deleted by user %s", tenant_id, caller.id)
