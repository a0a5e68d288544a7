"""
Authorization Guard — the single allow/deny decision made before every
tenant, vault, credential and user operation.

Two layers:

- ``decide_*`` functions are pure. They take the caller, the target as read
  from the store (``None`` when it does not exist) and the requested
  capability, and return a ``Decision(allowed, reason)``. They never raise
  and never grant anything on an unknown role.
- ``Guard`` is bound to one store session. It performs the lookups, calls
  the matching ``decide_*`` function and raises the error the reason maps
  to. Lookups are fresh on every call; store failures propagate as
  ``StoreError`` and are never turned into a decision.

Rules:
    personal vault   allow iff caller is the owner; membership changes are
                     always refused (PersonalVaultNoMembers)
    team vault       allow iff a membership exists and its role satisfies
                     the capability predicate
    user admin       caller must be admin; super_admin ignores tenant
                     scoping; only super_admin touches super_admin accounts
                     or grants/revokes super_admin; never on oneself
    tenant admin     view own tenant; manage own tenant as admin; delete
                     is super_admin only
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from tenantvault.errors import (
    AccessDeniedError,
    AuthenticationError,
    NotFoundError,
    PersonalVaultNoMembersError,
    SelfModificationDeniedError,
    TenantVaultError,
)
from tenantvault.membership import MembershipStore
from tenantvault.models import Identity, Tenant, User, Vault, VaultMember
from tenantvault.roles import (
    TenantRole,
    UserStatus,
    VaultRole,
    can_delete_credentials,
    can_delete_vault,
    can_edit_credentials,
    can_manage_members,
    can_manage_vault,
    can_view_credentials,
)
from tenantvault.store.base import Session

logger = logging.getLogger(__name__)


class Capability(StrEnum):
    """What a caller wants to do with a vault."""

    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_VAULT = "manage_vault"
    DELETE_VAULT = "delete_vault"


class TenantAction(StrEnum):
    VIEW = "view"
    MANAGE = "manage"
    DELETE = "delete"


class Reason(StrEnum):
    ALLOWED = "allowed"
    NOT_FOUND = "not_found"
    CROSS_TENANT = "cross_tenant"
    NOT_MEMBER = "not_member"
    NOT_OWNER = "not_owner"
    INSUFFICIENT_ROLE = "insufficient_role"
    PERSONAL_VAULT = "personal_vault"
    NOT_ADMIN = "not_admin"
    SUPER_ADMIN_REQUIRED = "super_admin_required"
    SELF_MODIFICATION = "self_modification"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Reason

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True, Reason.ALLOWED)


def _deny(reason: Reason) -> Decision:
    return Decision(False, reason)


_VAULT_PREDICATES: dict[Capability, Callable[[VaultRole | str | None], bool]] = {
    Capability.VIEW: can_view_credentials,
    Capability.EDIT: can_edit_credentials,
    Capability.DELETE: can_delete_credentials,
    Capability.MANAGE_MEMBERS: can_manage_members,
    Capability.MANAGE_VAULT: can_manage_vault,
    Capability.DELETE_VAULT: can_delete_vault,
}


# ─── Pure decisions ──────────────────────────────────────────────────────


def decide_vault_access(
    caller: User,
    vault: Vault | None,
    membership: VaultMember | None,
    capability: Capability,
) -> Decision:
    if vault is None:
        return _deny(Reason.NOT_FOUND)
    if vault.is_personal and capability == Capability.MANAGE_MEMBERS:
        return _deny(Reason.PERSONAL_VAULT)
    if vault.tenant_id != caller.tenant_id:
        return _deny(Reason.CROSS_TENANT)
    if vault.is_personal:
        return ALLOW if vault.owner_id == caller.id else _deny(Reason.NOT_OWNER)
    if membership is None or membership.user_id != caller.id or membership.vault_id != vault.id:
        return _deny(Reason.NOT_MEMBER)
    predicate = _VAULT_PREDICATES.get(capability)
    if predicate is None or not predicate(membership.role):
        return _deny(Reason.INSUFFICIENT_ROLE)
    return ALLOW


def _touches_super_admin(role: TenantRole | None) -> bool:
    return role == TenantRole.SUPER_ADMIN


def decide_user_admin(
    caller: User,
    target: User | None,
    *,
    new_role: TenantRole | None = None,
    modifies: bool = True,
) -> Decision:
    """Admin action on an existing user account (read when ``modifies`` is False)."""
    if target is None:
        return _deny(Reason.NOT_FOUND)
    if target.id == caller.id:
        return _deny(Reason.SELF_MODIFICATION) if modifies else ALLOW
    if not caller.is_admin:
        return _deny(Reason.NOT_ADMIN)
    if caller.is_super_admin:
        return ALLOW
    if target.tenant_id != caller.tenant_id:
        return _deny(Reason.CROSS_TENANT)
    if modifies and (target.is_super_admin or _touches_super_admin(new_role)):
        return _deny(Reason.SUPER_ADMIN_REQUIRED)
    return ALLOW


def decide_user_create(caller: User, tenant_id: int, role: TenantRole) -> Decision:
    if not caller.is_admin:
        return _deny(Reason.NOT_ADMIN)
    if caller.is_super_admin:
        return ALLOW
    if tenant_id != caller.tenant_id:
        return _deny(Reason.CROSS_TENANT)
    if _touches_super_admin(role):
        return _deny(Reason.SUPER_ADMIN_REQUIRED)
    return ALLOW


def decide_tenant_admin(caller: User, tenant: Tenant | None, action: TenantAction) -> Decision:
    if tenant is None:
        return _deny(Reason.NOT_FOUND)
    if caller.is_super_admin:
        return ALLOW
    if action == TenantAction.DELETE:
        return _deny(Reason.SUPER_ADMIN_REQUIRED)
    if tenant.id != caller.tenant_id:
        return _deny(Reason.CROSS_TENANT)
    if action == TenantAction.MANAGE and not caller.is_admin:
        return _deny(Reason.NOT_ADMIN)
    return ALLOW


# ─── Session-bound enforcement ───────────────────────────────────────────


def _error_for(decision: Decision, resource: str) -> TenantVaultError:
    match decision.reason:
        case Reason.NOT_FOUND:
            return NotFoundError(resource)
        case Reason.PERSONAL_VAULT:
            return PersonalVaultNoMembersError()
        case Reason.SELF_MODIFICATION:
            return SelfModificationDeniedError()
        case Reason.SUPER_ADMIN_REQUIRED:
            return AccessDeniedError("super admin required", resource=resource)
        case Reason.NOT_ADMIN:
            return AccessDeniedError("admin access required", resource=resource)
        case _:
            return AccessDeniedError(f"access to {resource} denied", resource=resource)


class Guard:
    """Authorization checks bound to a store session."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self.memberships = MembershipStore(session.members)

    def _enforce(self, decision: Decision, resource: str, caller: User, target_id: int | None) -> None:
        if decision.allowed:
            return
        logger.info(
            "Denied %s %s for user %s (tenant %s): %s",
            resource,
            target_id,
            caller.id,
            caller.tenant_id,
            decision.reason,
        )
        raise _error_for(decision, resource)

    def caller(self, identity: Identity) -> User:
        """Load the calling user fresh from the store; only active accounts pass."""
        user = self._session.users.get(identity.user_id)
        if user is None:
            raise AuthenticationError("account not found", resource="user")
        if user.status != UserStatus.ACTIVE:
            logger.info("Denied inactive account %s (status %s)", user.id, user.status)
            raise AccessDeniedError("account is not active", resource="user")
        return user

    def require_vault(
        self, caller: User, vault_id: int, capability: Capability
    ) -> tuple[Vault, VaultMember | None]:
        vault = self._session.vaults.get(vault_id)
        membership = None
        if vault is not None and not vault.is_personal:
            membership = self.memberships.find_membership(vault.id, caller.id)
        self._enforce(decide_vault_access(caller, vault, membership, capability), "vault", caller, vault_id)
        return vault, membership

    def require_user_admin(
        self,
        caller: User,
        user_id: int,
        *,
        new_role: TenantRole | None = None,
        modifies: bool = True,
    ) -> User:
        target = self._session.users.get(user_id)
        decision = decide_user_admin(caller, target, new_role=new_role, modifies=modifies)
        self._enforce(decision, "user", caller, user_id)
        return target

    def require_user_create(self, caller: User, tenant_id: int, role: TenantRole) -> None:
        self._enforce(decide_user_create(caller, tenant_id, role), "user", caller, None)

    def require_tenant(self, caller: User, tenant_id: int, action: TenantAction) -> Tenant:
        tenant = self._session.tenants.get(tenant_id)
        self._enforce(decide_tenant_admin(caller, tenant, action), "tenant", caller, tenant_id)
        return tenant
