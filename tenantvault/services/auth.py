"""
Authentication — registration, password and OAuth sign-in, bearer-token
resolution.

Only ``active`` accounts authenticate. Registration and first OAuth sign-in
create a tenant and its first admin in one transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from tenantvault.crypto import PasswordHasher, generate_salt
from tenantvault.errors import AuthenticationError, ConflictError, InvalidInputError, NotFoundError
from tenantvault.guard import Guard
from tenantvault.models import Identity, Tenant, User
from tenantvault.roles import AccountType, TenantRole, UserStatus
from tenantvault.store.base import Store
from tenantvault.tokens import TokenService
from tenantvault.validation import (
    normalize_email,
    normalize_slug,
    require_email,
    require_name,
    slugify,
    validate_password,
)

logger = logging.getLogger(__name__)

# Same message for unknown email, wrong password and non-active account.
_INVALID_CREDENTIALS = "invalid credentials"


@dataclass
class AuthResult:
    token: str
    user: User
    tenant: Tenant | None
    expires_at: datetime


class AuthService:
    def __init__(
        self,
        store: Store,
        hasher: PasswordHasher,
        tokens: TokenService,
        *,
        min_password_length: int = 8,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._tokens = tokens
        self._min_password_length = min_password_length

    def _result(self, user: User, tenant: Tenant | None) -> AuthResult:
        token, expires_at = self._tokens.issue(user)
        return AuthResult(token=token, user=user, tenant=tenant, expires_at=expires_at)

    def register(
        self,
        email: str,
        password: str,
        name: str,
        tenant_name: str,
        tenant_slug: str,
    ) -> AuthResult:
        """Create a tenant and its first (admin) user, then sign in."""
        email = require_email(email)
        validate_password(password, self._min_password_length)
        name = require_name(name)
        tenant_name = require_name(tenant_name, "tenant_name")
        slug = normalize_slug(tenant_slug)

        with self._store.session() as s:
            if s.users.exists_by_email(email):
                raise ConflictError("email already registered", resource="user")
            if s.tenants.get_by_slug(slug) is not None:
                raise ConflictError("tenant slug already taken", resource="tenant")
            tenant = s.tenants.insert(tenant_name, slug)
            user = s.users.insert(
                User(
                    id=0,
                    tenant_id=tenant.id,
                    email=email,
                    name=name,
                    role=TenantRole.ADMIN,
                    account_type=AccountType.TEAM,
                    status=UserStatus.ACTIVE,
                    password_hash=self._hasher.hash(password),
                    master_key_salt=generate_salt(),
                )
            )

        logger.info("Registered user %s with tenant %s (%s)", user.id, tenant.id, slug)
        return self._result(user, tenant)

    def login(self, email: str, password: str) -> AuthResult:
        normalized = normalize_email(email)
        if normalized is None or not password:
            raise AuthenticationError(_INVALID_CREDENTIALS)
        with self._store.session() as s:
            user = s.users.get_by_email(normalized)
            if user is None or not self._hasher.verify(password, user.password_hash):
                logger.info("Failed login for %s", normalized)
                raise AuthenticationError(_INVALID_CREDENTIALS)
            if user.status != UserStatus.ACTIVE:
                logger.info("Login refused for user %s (status %s)", user.id, user.status)
                raise AuthenticationError(_INVALID_CREDENTIALS)
            tenant = s.tenants.get(user.tenant_id)

        return self._result(user, tenant)

    def oauth_login(
        self,
        provider: str,
        oauth_id: str,
        email: str,
        name: str = "",
        avatar: str = "",
    ) -> AuthResult:
        """Sign in with an external identity.

        Matches on (provider, oauth_id) first, then links an existing
        account with the same email, otherwise creates a workspace tenant
        and its admin.
        """
        if not provider or not oauth_id:
            raise InvalidInputError("provider and oauth_id are required")
        email = require_email(email)
        name = (name or "").strip() or email.split("@", 1)[0]

        with self._store.session() as s:
            user = s.users.get_by_oauth(provider, oauth_id)
            if user is None:
                user = s.users.get_by_email(email)
                if user is not None:
                    user.oauth_provider = provider
                    user.oauth_id = oauth_id
                    if not user.avatar and avatar:
                        user.avatar = avatar
                    user = s.users.update(user)
                    logger.info("Linked %s identity to user %s", provider, user.id)
                else:
                    slug = f"{slugify(name)[:80]}-{slugify(oauth_id[:8])}"
                    if s.tenants.get_by_slug(slug) is not None:
                        raise ConflictError("tenant slug already taken", resource="tenant")
                    tenant = s.tenants.insert(f"{name}'s Workspace", slug)
                    user = s.users.insert(
                        User(
                            id=0,
                            tenant_id=tenant.id,
                            email=email,
                            name=name,
                            avatar=avatar or "",
                            role=TenantRole.ADMIN,
                            account_type=AccountType.TEAM,
                            status=UserStatus.ACTIVE,
                            oauth_provider=provider,
                            oauth_id=oauth_id,
                            master_key_salt=generate_salt(),
                        )
                    )
                    logger.info("Created user %s and tenant %s from %s sign-in", user.id, tenant.id, provider)

            if user.status != UserStatus.ACTIVE:
                logger.info("OAuth login refused for user %s (status %s)", user.id, user.status)
                raise AuthenticationError("account is not active")
            tenant = s.tenants.get(user.tenant_id)

        return self._result(user, tenant)

    def authenticate(self, token: str) -> User:
        """Resolve a bearer token to the current, active account."""
        identity = self._tokens.verify(token)
        with self._store.session() as s:
            return Guard(s).caller(identity)

    def get_user_salt(self, identity: Identity) -> str:
        """The caller's own master-key salt."""
        with self._store.session() as s:
            user = Guard(s).caller(identity)
            if not user.master_key_salt:
                raise NotFoundError("salt")
            return user.master_key_salt
