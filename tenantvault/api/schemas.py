"""Pydantic request models for the tenantvault API."""

from __future__ import annotations

from pydantic import BaseModel, Field

# ─── Auth ────────────────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    tenant_name: str
    tenant_slug: str


class LoginRequest(BaseModel):
    email: str
    password: str


# ─── Tenants ─────────────────────────────────────────────────────────────


class CreateTenantRequest(BaseModel):
    name: str
    slug: str


class UpdateTenantRequest(BaseModel):
    name: str | None = None
    slug: str | None = None


# ─── Vaults ──────────────────────────────────────────────────────────────


class CreateVaultRequest(BaseModel):
    name: str
    description: str = ""
    icon: str = ""
    is_personal: bool = False


class UpdateVaultRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    icon: str | None = None


class AddMemberRequest(BaseModel):
    user_id: int
    role: str


# ─── Credentials ─────────────────────────────────────────────────────────


class CreateCredentialRequest(BaseModel):
    title_encrypted: str
    password_encrypted: str
    url_encrypted: str = ""
    username_encrypted: str = ""
    notes_encrypted: str = ""
    category: str = ""
    favicon: str = ""


class UpdateCredentialRequest(BaseModel):
    """Omitted or empty fields keep their stored value."""

    title_encrypted: str | None = None
    url_encrypted: str | None = None
    username_encrypted: str | None = None
    password_encrypted: str | None = None
    notes_encrypted: str | None = None
    category: str | None = None
    favicon: str | None = None


# ─── Users ───────────────────────────────────────────────────────────────


class CreateUserRequest(BaseModel):
    email: str
    name: str
    password: str | None = None
    account_type: str = "team"
    tenant_id: int | None = None
    role: str = "user"


class UpdateUserRequest(BaseModel):
    name: str | None = None
    role: str | None = None
    status: str | None = None
    account_type: str | None = None


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=1)
