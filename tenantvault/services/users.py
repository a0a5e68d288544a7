"""
User administration — create, list, update, disable/enable, reset password.

Callers must be tenant admins. A plain admin only reaches users of its own
tenant; only a super admin may touch a super admin account or hand out the
super_admin role. An admin can never change their own account through this
path, whatever their rank.

Status machine:
    invited  → active     reset_password only
    active  ⇄ inactive    disable / enable / update
    nothing returns to invited
"""

from __future__ import annotations

import logging

from tenantvault.crypto import PasswordHasher, generate_salt
from tenantvault.errors import (
    AccessDeniedError,
    ConflictError,
    InvalidStatusError,
    NotFoundError,
)
from tenantvault.guard import Guard
from tenantvault.models import Identity, User
from tenantvault.roles import (
    AccountType,
    TenantRole,
    UserStatus,
    admin_status_change_allowed,
    parse_account_type,
    parse_status,
    parse_tenant_role,
)
from tenantvault.store.base import Session, Store
from tenantvault.validation import (
    personal_tenant_slug,
    require_email,
    require_name,
    validate_password,
)

logger = logging.getLogger(__name__)

SYSTEM_TENANT_SLUG = "system"
SYSTEM_TENANT_NAME = "System"


def _ensure_email_free(session: Session, email: str) -> None:
    if session.users.exists_by_email(email):
        raise ConflictError("email already registered", resource="user")


def _check_status_change(current: UserStatus, new: UserStatus) -> None:
    if not admin_status_change_allowed(current, new):
        raise InvalidStatusError(f"cannot change status from {current} to {new}")


class UserService:
    def __init__(self, store: Store, hasher: PasswordHasher, *, min_password_length: int = 8) -> None:
        self._store = store
        self._hasher = hasher
        self._min_password_length = min_password_length

    def create_user(
        self,
        identity: Identity,
        email: str,
        name: str,
        *,
        password: str | None = None,
        account_type: str = AccountType.TEAM,
        tenant_id: int | None = None,
        role: str = TenantRole.USER,
    ) -> User:
        """Create an account. Without a password the user starts out ``invited``.

        Team accounts join ``tenant_id`` (default: the caller's tenant);
        personal accounts get a tenant of their own in the same transaction.
        """
        kind = parse_account_type(account_type)
        new_role = parse_tenant_role(role or TenantRole.USER)
        email = require_email(email)
        name = require_name(name)
        if password:
            validate_password(password, self._min_password_length)

        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)

            if kind == AccountType.TEAM:
                target_tenant = caller.tenant_id if tenant_id is None else tenant_id
                if s.tenants.get(target_tenant) is None:
                    raise NotFoundError("tenant")
                guard.require_user_create(caller, target_tenant, new_role)
                _ensure_email_free(s, email)
            else:
                guard.require_user_create(caller, caller.tenant_id, new_role)
                _ensure_email_free(s, email)
                tenant = s.tenants.insert(f"{name}'s Personal Space", personal_tenant_slug(email))
                target_tenant = tenant.id

            user = s.users.insert(
                User(
                    id=0,
                    tenant_id=target_tenant,
                    email=email,
                    name=name,
                    role=new_role,
                    account_type=kind,
                    status=UserStatus.ACTIVE if password else UserStatus.INVITED,
                    password_hash=self._hasher.hash(password) if password else "",
                    master_key_salt=generate_salt(),
                )
            )

        logger.info(
            "User %s (%s, %s) created in tenant %s by user %s",
            user.id,
            user.role,
            user.status,
            user.tenant_id,
            caller.id,
        )
        return user

    def list_users(self, identity: Identity, tenant_id: int | None = None) -> list[User]:
        """Super admin: everyone, or one tenant. Admin: their own tenant only."""
        with self._store.session() as s:
            caller = Guard(s).caller(identity)
            if caller.is_super_admin:
                if tenant_id:
                    return s.users.list_by_tenant(tenant_id)
                return s.users.list_all()
            if not caller.is_admin:
                raise AccessDeniedError("admin access required", resource="user")
            if tenant_id and tenant_id != caller.tenant_id:
                raise AccessDeniedError("access to user denied", resource="user")
            return s.users.list_by_tenant(caller.tenant_id)

    def get_user(self, identity: Identity, user_id: int) -> User:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            return guard.require_user_admin(caller, user_id, modifies=False)

    def update_user(
        self,
        identity: Identity,
        user_id: int,
        *,
        name: str | None = None,
        role: str | None = None,
        status: str | None = None,
        account_type: str | None = None,
    ) -> User:
        new_role = parse_tenant_role(role) if role else None
        new_status = parse_status(status) if status else None
        new_kind = parse_account_type(account_type) if account_type else None

        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            target = guard.require_user_admin(caller, user_id, new_role=new_role)
            if new_status is not None:
                _check_status_change(target.status, new_status)
                target.status = new_status
            if name:
                target.name = require_name(name)
            if new_role is not None:
                target.role = new_role
            if new_kind is not None:
                target.account_type = new_kind
            target = s.users.update(target)

        logger.info("User %s updated by user %s", user_id, caller.id)
        return target

    def _set_status(self, identity: Identity, user_id: int, status: UserStatus) -> None:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            target = guard.require_user_admin(caller, user_id)
            _check_status_change(target.status, status)
            if target.status != status:
                s.users.update_status(user_id, status)

        logger.info("User %s set %s by user %s", user_id, status, caller.id)

    def disable_user(self, identity: Identity, user_id: int) -> None:
        self._set_status(identity, user_id, UserStatus.INACTIVE)

    def enable_user(self, identity: Identity, user_id: int) -> None:
        self._set_status(identity, user_id, UserStatus.ACTIVE)

    def reset_password(self, identity: Identity, user_id: int, password: str) -> None:
        """Set a new password. An invited account becomes active."""
        validate_password(password, self._min_password_length)
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            target = guard.require_user_admin(caller, user_id)
            target.password_hash = self._hasher.hash(password)
            if target.status == UserStatus.INVITED:
                target.status = UserStatus.ACTIVE
            s.users.update(target)

        logger.info("Password reset for user %s by user %s", user_id, caller.id)

    def bootstrap_super_admin(self, email: str, password: str, name: str = "Super Admin") -> tuple[User, bool]:
        """Create the first super admin in the system tenant.

        Returns ``(user, created)``; when a super admin already exists it is
        returned unchanged with ``created=False``.
        """
        email = require_email(email)
        validate_password(password, self._min_password_length)
        with self._store.session() as s:
            existing = s.users.list_by_role(TenantRole.SUPER_ADMIN)
            if existing:
                return existing[0], False
            tenant = s.tenants.get_by_slug(SYSTEM_TENANT_SLUG)
            if tenant is None:
                tenant = s.tenants.insert(SYSTEM_TENANT_NAME, SYSTEM_TENANT_SLUG)
            _ensure_email_free(s, email)
            user = s.users.insert(
                User(
                    id=0,
                    tenant_id=tenant.id,
                    email=email,
                    name=require_name(name),
                    role=TenantRole.SUPER_ADMIN,
                    account_type=AccountType.TEAM,
                    status=UserStatus.ACTIVE,
                    password_hash=self._hasher.hash(password),
                    master_key_salt=generate_salt(),
                )
            )

        logger.info("Bootstrapped super admin %s in tenant %s", user.id, tenant.id)
        return user, True
