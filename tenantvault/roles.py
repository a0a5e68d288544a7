"""
Role Model — tenant roles, vault roles and the capability predicates derived
from them.

Everything here is pure: no I/O, no store access. Predicates accept either
an enum member or a raw string (as read from a row) and fail closed: any
value outside the enum grants nothing.

Usage:
    from tenantvault.roles import VaultRole, can_edit_credentials

    can_edit_credentials(VaultRole.EDITOR)   # True
    can_edit_credentials("superuser")        # False
"""

from __future__ import annotations

from enum import StrEnum
from typing import assert_never

from tenantvault.errors import InvalidAccountTypeError, InvalidRoleError, InvalidStatusError


class TenantRole(StrEnum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    USER = "user"


class VaultRole(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class UserStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    INVITED = "invited"


class AccountType(StrEnum):
    PERSONAL = "personal"
    TEAM = "team"


# Roles that can be handed out through AddMember. Owner is only ever created
# together with the vault.
GRANTABLE_VAULT_ROLES: frozenset[VaultRole] = frozenset(
    {VaultRole.ADMIN, VaultRole.EDITOR, VaultRole.VIEWER}
)


def _vault_role(value: VaultRole | str | None) -> VaultRole | None:
    if isinstance(value, VaultRole):
        return value
    try:
        return VaultRole(value)
    except ValueError:
        return None


def _tenant_role(value: TenantRole | str | None) -> TenantRole | None:
    if isinstance(value, TenantRole):
        return value
    try:
        return TenantRole(value)
    except ValueError:
        return None


# ─── Vault capabilities ──────────────────────────────────────────────────


def can_view_credentials(role: VaultRole | str | None) -> bool:
    match _vault_role(role):
        case VaultRole.OWNER | VaultRole.ADMIN | VaultRole.EDITOR | VaultRole.VIEWER:
            return True
        case None:
            return False
        case unreachable:
            assert_never(unreachable)


def can_edit_credentials(role: VaultRole | str | None) -> bool:
    match _vault_role(role):
        case VaultRole.OWNER | VaultRole.ADMIN | VaultRole.EDITOR:
            return True
        case VaultRole.VIEWER | None:
            return False
        case unreachable:
            assert_never(unreachable)


def can_delete_credentials(role: VaultRole | str | None) -> bool:
    match _vault_role(role):
        case VaultRole.OWNER | VaultRole.ADMIN:
            return True
        case VaultRole.EDITOR | VaultRole.VIEWER | None:
            return False
        case unreachable:
            assert_never(unreachable)


def can_manage_members(role: VaultRole | str | None) -> bool:
    match _vault_role(role):
        case VaultRole.OWNER | VaultRole.ADMIN:
            return True
        case VaultRole.EDITOR | VaultRole.VIEWER | None:
            return False
        case unreachable:
            assert_never(unreachable)


def can_manage_vault(role: VaultRole | str | None) -> bool:
    """Rename / re-describe a vault."""
    match _vault_role(role):
        case VaultRole.OWNER | VaultRole.ADMIN:
            return True
        case VaultRole.EDITOR | VaultRole.VIEWER | None:
            return False
        case unreachable:
            assert_never(unreachable)


def can_delete_vault(role: VaultRole | str | None) -> bool:
    match _vault_role(role):
        case VaultRole.OWNER:
            return True
        case VaultRole.ADMIN | VaultRole.EDITOR | VaultRole.VIEWER | None:
            return False
        case unreachable:
            assert_never(unreachable)


# ─── Tenant roles ────────────────────────────────────────────────────────


def is_admin(role: TenantRole | str | None) -> bool:
    match _tenant_role(role):
        case TenantRole.SUPER_ADMIN | TenantRole.ADMIN:
            return True
        case TenantRole.USER | None:
            return False
        case unreachable:
            assert_never(unreachable)


def is_super_admin(role: TenantRole | str | None) -> bool:
    match _tenant_role(role):
        case TenantRole.SUPER_ADMIN:
            return True
        case TenantRole.ADMIN | TenantRole.USER | None:
            return False
        case unreachable:
            assert_never(unreachable)


# ─── Parsing (raises on values outside the enum) ─────────────────────────


def parse_vault_role(value: str) -> VaultRole:
    role = _vault_role(value.strip().lower() if isinstance(value, str) else value)
    if role is None:
        raise InvalidRoleError(f"invalid vault role: {value!r}")
    return role


def parse_tenant_role(value: str) -> TenantRole:
    role = _tenant_role(value.strip().lower() if isinstance(value, str) else value)
    if role is None:
        raise InvalidRoleError(f"invalid role: {value!r}")
    return role


def parse_status(value: str) -> UserStatus:
    try:
        return UserStatus(value.strip().lower())
    except (ValueError, AttributeError):
        raise InvalidStatusError(f"invalid status: {value!r}") from None


def parse_account_type(value: str) -> AccountType:
    try:
        return AccountType(value.strip().lower())
    except (ValueError, AttributeError):
        raise InvalidAccountTypeError(f"invalid account type: {value!r}") from None


# ─── User status machine ─────────────────────────────────────────────────


def admin_status_change_allowed(current: UserStatus, new: UserStatus) -> bool:
    """Admin-triggered status change: only active ⇄ inactive.

    ``invited → active`` happens through a password reset, and nothing ever
    returns to ``invited``.
    """
    match (current, new):
        case (UserStatus.ACTIVE, UserStatus.INACTIVE) | (UserStatus.INACTIVE, UserStatus.ACTIVE):
            return True
        case (UserStatus.ACTIVE, UserStatus.ACTIVE) | (UserStatus.INACTIVE, UserStatus.INACTIVE):
            return True
        case _:
            return False
