"""
Records and response shapes.

Records are plain dataclasses, built from database rows with the
``*_from_row`` helpers and turned into API payloads with the ``*_to_dict``
helpers. Secret-bearing columns (password hash, OAuth subject, master-key
salt) never appear in a response shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from tenantvault.roles import (
    AccountType,
    TenantRole,
    UserStatus,
    VaultRole,
    is_admin,
    is_super_admin,
)


@dataclass(frozen=True)
class Identity:
    """Caller identity established by token verification."""

    user_id: int
    tenant_id: int
    email: str


@dataclass
class Tenant:
    id: int
    name: str
    slug: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class User:
    id: int
    tenant_id: int
    email: str
    name: str = ""
    role: TenantRole = TenantRole.USER
    account_type: AccountType = AccountType.TEAM
    status: UserStatus = UserStatus.ACTIVE
    password_hash: str = ""
    master_key_salt: str = ""
    oauth_provider: str = ""
    oauth_id: str = ""
    avatar: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)

    @property
    def is_super_admin(self) -> bool:
        return is_super_admin(self.role)


@dataclass
class Vault:
    id: int
    tenant_id: int
    name: str
    description: str = ""
    icon: str = ""
    is_personal: bool = False
    owner_id: int | None = None  # set iff personal
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class VaultMember:
    id: int
    vault_id: int
    user_id: int
    role: VaultRole
    created_at: datetime | None = None


@dataclass
class Credential:
    id: int
    vault_id: int
    tenant_id: int
    title_encrypted: str
    password_encrypted: str
    url_encrypted: str = ""
    username_encrypted: str = ""
    notes_encrypted: str = ""
    category: str = ""
    favicon: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ─── Row → record ────────────────────────────────────────────────────────


def tenant_from_row(row: dict) -> Tenant:
    return Tenant(
        id=row["id"],
        name=row["name"],
        slug=row["slug"],
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def user_from_row(row: dict) -> User:
    # Enum columns are constrained in the schema; an unexpected value would
    # fail here rather than be treated as a privilege.
    return User(
        id=row["id"],
        tenant_id=row["tenant_id"],
        email=row["email"],
        name=row.get("name") or "",
        role=TenantRole(row["role"]),
        account_type=AccountType(row["account_type"]),
        status=UserStatus(row["status"]),
        password_hash=row.get("password_hash") or "",
        master_key_salt=row.get("master_key_salt") or "",
        oauth_provider=row.get("oauth_provider") or "",
        oauth_id=row.get("oauth_id") or "",
        avatar=row.get("avatar") or "",
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def vault_from_row(row: dict) -> Vault:
    return Vault(
        id=row["id"],
        tenant_id=row["tenant_id"],
        name=row["name"],
        description=row.get("description") or "",
        icon=row.get("icon") or "",
        is_personal=bool(row.get("is_personal")),
        owner_id=row.get("owner_id"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def member_from_row(row: dict) -> VaultMember:
    return VaultMember(
        id=row["id"],
        vault_id=row["vault_id"],
        user_id=row["user_id"],
        role=VaultRole(row["role"]),
        created_at=row.get("created_at"),
    )


def credential_from_row(row: dict) -> Credential:
    return Credential(
        id=row["id"],
        vault_id=row["vault_id"],
        tenant_id=row["tenant_id"],
        title_encrypted=row["title_encrypted"],
        password_encrypted=row["password_encrypted"],
        url_encrypted=row.get("url_encrypted") or "",
        username_encrypted=row.get("username_encrypted") or "",
        notes_encrypted=row.get("notes_encrypted") or "",
        category=row.get("category") or "",
        favicon=row.get("favicon") or "",
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


# ─── Record → response shape ─────────────────────────────────────────────


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def tenant_to_dict(tenant: Tenant) -> dict:
    return {
        "id": tenant.id,
        "name": tenant.name,
        "slug": tenant.slug,
        "created_at": _ts(tenant.created_at),
        "updated_at": _ts(tenant.updated_at),
    }


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "tenant_id": user.tenant_id,
        "email": user.email,
        "name": user.name,
        "avatar": user.avatar,
        "role": str(user.role),
        "account_type": str(user.account_type),
        "status": str(user.status),
        "oauth_provider": user.oauth_provider,
        "created_at": _ts(user.created_at),
        "updated_at": _ts(user.updated_at),
    }


def member_to_dict(member: VaultMember) -> dict:
    return {
        "id": member.id,
        "vault_id": member.vault_id,
        "user_id": member.user_id,
        "role": str(member.role),
        "created_at": _ts(member.created_at),
    }


def vault_to_dict(vault: Vault, members: list[VaultMember] | None = None) -> dict:
    result = {
        "id": vault.id,
        "tenant_id": vault.tenant_id,
        "name": vault.name,
        "description": vault.description,
        "icon": vault.icon,
        "is_personal": vault.is_personal,
        "owner_id": vault.owner_id,
        "created_at": _ts(vault.created_at),
        "updated_at": _ts(vault.updated_at),
    }
    if members is not None:
        result["members"] = [member_to_dict(m) for m in members]
    return result


def credential_to_dict(credential: Credential) -> dict:
    return {
        "id": credential.id,
        "vault_id": credential.vault_id,
        "tenant_id": credential.tenant_id,
        "title_encrypted": credential.title_encrypted,
        "url_encrypted": credential.url_encrypted,
        "username_encrypted": credential.username_encrypted,
        "password_encrypted": credential.password_encrypted,
        "notes_encrypted": credential.notes_encrypted,
        "category": credential.category,
        "favicon": credential.favicon,
        "created_at": _ts(credential.created_at),
        "updated_at": _ts(credential.updated_at),
    }
