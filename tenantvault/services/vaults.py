"""
Vault service — vaults and their membership lists.

A vault and its owner membership are written in one session, so a vault
never exists without its owner. Personal vaults are visible to their owner
only and never take additional members.
"""

from __future__ import annotations

import logging

from tenantvault.errors import (
    InvalidRoleError,
    NotFoundError,
    PersonalVaultNoMembersError,
)
from tenantvault.guard import Capability, Guard
from tenantvault.models import Identity, Vault, VaultMember
from tenantvault.roles import GRANTABLE_VAULT_ROLES, VaultRole, parse_vault_role
from tenantvault.store.base import Store
from tenantvault.validation import require_name

logger = logging.getLogger(__name__)


class VaultService:
    def __init__(self, store: Store) -> None:
        self._store = store

    def create(
        self,
        identity: Identity,
        name: str,
        *,
        description: str = "",
        icon: str = "",
        is_personal: bool = False,
    ) -> tuple[Vault, list[VaultMember]]:
        name = require_name(name)
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            vault = s.vaults.insert(
                Vault(
                    id=0,
                    tenant_id=caller.tenant_id,
                    name=name,
                    description=description or "",
                    icon=icon or "",
                    is_personal=is_personal,
                    owner_id=caller.id if is_personal else None,
                )
            )
            owner = guard.memberships.create_owner(vault.id, caller.id)

        logger.info(
            "Vault %s created in tenant %s by user %s (personal=%s)",
            vault.id,
            vault.tenant_id,
            caller.id,
            vault.is_personal,
        )
        return vault, [owner]

    def get(self, identity: Identity, vault_id: int) -> tuple[Vault, list[VaultMember]]:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            vault, _ = guard.require_vault(caller, vault_id, Capability.VIEW)
            return vault, guard.memberships.list_members(vault.id)

    def list(self, identity: Identity) -> list[Vault]:
        """Team vaults the caller belongs to plus the caller's personal vaults."""
        with self._store.session() as s:
            caller = Guard(s).caller(identity)
            return s.vaults.list_visible(caller.tenant_id, caller.id)

    def update(
        self,
        identity: Identity,
        vault_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        icon: str | None = None,
    ) -> Vault:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            vault, _ = guard.require_vault(caller, vault_id, Capability.MANAGE_VAULT)
            if name:
                vault.name = require_name(name)
            if description:
                vault.description = description
            if icon:
                vault.icon = icon
            vault = s.vaults.update(vault)

        logger.info("Vault %s updated by user %s", vault_id, caller.id)
        return vault

    def delete(self, identity: Identity, vault_id: int) -> None:
        """Owner-only. Members and credentials go with the vault."""
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            guard.require_vault(caller, vault_id, Capability.DELETE_VAULT)
            removed = s.credentials.delete_by_vault(vault_id)
            s.members.delete_by_vault(vault_id)
            s.vaults.delete(vault_id)

        logger.info(
            "Vault %s deleted by user %s (%d credential(s) removed)", vault_id, caller.id, removed
        )

    # ─── Members ─────────────────────────────────────────────────────────

    def list_members(self, identity: Identity, vault_id: int) -> list[VaultMember]:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            vault, _ = guard.require_vault(caller, vault_id, Capability.VIEW)
            return guard.memberships.list_members(vault.id)

    def add_member(
        self, identity: Identity, vault_id: int, user_id: int, role: VaultRole | str
    ) -> VaultMember:
        """Grant ``role`` to a user of the vault's tenant, or change their role.

        Calling it again with the same role is a no-op; the owner
        membership is never overwritten.
        """
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            vault = s.vaults.get(vault_id)
            if vault is None:
                raise NotFoundError("vault")
            if vault.is_personal:
                raise PersonalVaultNoMembersError()
            parsed = parse_vault_role(role)
            if parsed not in GRANTABLE_VAULT_ROLES:
                raise InvalidRoleError("owner role cannot be granted")
            guard.require_vault(caller, vault_id, Capability.MANAGE_MEMBERS)

            target = s.users.get(user_id)
            if target is None or target.tenant_id != vault.tenant_id:
                raise NotFoundError("user")
            member = guard.memberships.add_or_update_membership(vault_id, user_id, parsed)

        logger.info(
            "User %s granted %s on vault %s by user %s", user_id, member.role, vault_id, caller.id
        )
        return member

    def remove_member(self, identity: Identity, vault_id: int, user_id: int) -> None:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            guard.require_vault(caller, vault_id, Capability.MANAGE_MEMBERS)
            guard.memberships.remove_membership(vault_id, user_id)

        logger.info("User %s removed from vault %s by user %s", user_id, vault_id, caller.id)
