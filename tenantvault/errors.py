"""
Error taxonomy shared by the store, the guard and the resource services.

Every error carries a ``kind`` string that the HTTP layer maps to a status
code. Only ``StoreError`` is retryable; authorization and validation errors
never are.
"""

from __future__ import annotations


class TenantVaultError(Exception):
    """Base class for all errors surfaced to callers."""

    kind = "error"
    retryable = False

    def __init__(self, message: str = "", *, resource: str | None = None) -> None:
        super().__init__(message or self.kind.replace("_", " "))
        self.message = message or self.kind.replace("_", " ")
        self.resource = resource


class NotFoundError(TenantVaultError):
    kind = "not_found"

    def __init__(self, resource: str, message: str = "") -> None:
        super().__init__(message or f"{resource} not found", resource=resource)


class AccessDeniedError(TenantVaultError):
    kind = "access_denied"


class PersonalVaultNoMembersError(TenantVaultError):
    kind = "personal_vault_no_members"

    def __init__(self, message: str = "personal vaults cannot have additional members") -> None:
        super().__init__(message, resource="vault")


class InvalidRoleError(TenantVaultError):
    kind = "invalid_role"


class InvalidStatusError(TenantVaultError):
    kind = "invalid_status"


class InvalidAccountTypeError(TenantVaultError):
    kind = "invalid_account_type"


class InvalidInputError(TenantVaultError):
    """Missing or malformed request fields (empty name, short password, bad slug)."""

    kind = "invalid_input"


class ConflictError(TenantVaultError):
    """Uniqueness violation or a write against immutable state."""

    kind = "conflict"


class OwnerImmutableError(ConflictError):
    def __init__(self, message: str = "vault owner membership cannot be changed or removed") -> None:
        super().__init__(message, resource="vault_member")


class SelfModificationDeniedError(TenantVaultError):
    kind = "self_modification_denied"

    def __init__(self, message: str = "cannot modify your own account") -> None:
        super().__init__(message, resource="user")


class AuthenticationError(TenantVaultError):
    """Bad credentials, an invalid/expired token, or an account that may not sign in."""

    kind = "unauthenticated"


class StoreError(TenantVaultError):
    """Underlying store or transport failure. Opaque to callers, safe to retry."""

    kind = "system_error"
    retryable = True

    def __init__(self, message: str = "storage temporarily unavailable") -> None:
        super().__init__(message)
