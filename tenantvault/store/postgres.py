"""
PostgreSQL store — raw SQL repositories over a pooled psycopg2 connection.

One session is one connection and one transaction. psycopg2 errors never
leave this module: unique-index violations become ``ConflictError``,
bad values and other constraint violations (overlong strings, foreign
keys) become ``InvalidInputError``, and everything else (including
statement timeouts and cancellation) becomes a retryable ``StoreError``
with the cause logged here.

Usage:
    from tenantvault.db import Database
    from tenantvault.store.postgres import PostgresStore

    store = PostgresStore(Database(get_config().db))
    with store.session() as s:
        vault = s.vaults.get(42)
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

import psycopg2
import psycopg2.errors
from psycopg2.extras import RealDictCursor

from tenantvault.db.connection import Database
from tenantvault.errors import ConflictError, InvalidInputError, StoreError
from tenantvault.models import (
    Credential,
    Tenant,
    User,
    Vault,
    VaultMember,
    credential_from_row,
    member_from_row,
    tenant_from_row,
    user_from_row,
    vault_from_row,
)
from tenantvault.roles import TenantRole, UserStatus, VaultRole

logger = logging.getLogger(__name__)

# Unique index name → message surfaced with the ConflictError.
_CONFLICT_MESSAGES: dict[str, str] = {
    "tenants_slug_key": "tenant slug already taken",
    "users_email_key": "email already registered",
    "vault_members_vault_user_key": "user is already a member of this vault",
    "vault_members_one_owner": "vault already has an owner",
}


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class _Repository:
    def __init__(self, conn) -> None:
        self._conn = conn

    def _cursor(self):
        return self._conn.cursor(cursor_factory=RealDictCursor)


# ─── Tenants ─────────────────────────────────────────────────────────────


class PostgresTenantRepository(_Repository):
    def get(self, tenant_id: int) -> Tenant | None:
        cur = self._cursor()
        cur.execute("SELECT * FROM tenants WHERE id = %s", (tenant_id,))
        row = cur.fetchone()
        return tenant_from_row(row) if row else None

    def get_by_slug(self, slug: str) -> Tenant | None:
        cur = self._cursor()
        cur.execute("SELECT * FROM tenants WHERE slug = %s", (slug,))
        row = cur.fetchone()
        return tenant_from_row(row) if row else None

    def list_all(self) -> list[Tenant]:
        cur = self._cursor()
        cur.execute("SELECT * FROM tenants ORDER BY id")
        return [tenant_from_row(r) for r in cur.fetchall()]

    def insert(self, name: str, slug: str) -> Tenant:
        cur = self._cursor()
        cur.execute(
            "INSERT INTO tenants (name, slug) VALUES (%s, %s) RETURNING *",
            (name, slug),
        )
        return tenant_from_row(cur.fetchone())

    def update(self, tenant: Tenant) -> Tenant:
        cur = self._cursor()
        cur.execute(
            """
            UPDATE tenants SET name = %s, slug = %s, updated_at = NOW()
            WHERE id = %s
            RETURNING *
        """,
            (tenant.name, tenant.slug, tenant.id),
        )
        row = cur.fetchone()
        return tenant_from_row(row) if row else tenant

    def delete(self, tenant_id: int) -> bool:
        cur = self._cursor()
        cur.execute("DELETE FROM tenants WHERE id = %s", (tenant_id,))
        return cur.rowcount > 0


# ─── Users ───────────────────────────────────────────────────────────────


class PostgresUserRepository(_Repository):
    def get(self, user_id: int) -> User | None:
        cur = self._cursor()
        cur.execute("SELECT * FROM users WHERE id = %s", (user_id,))
        row = cur.fetchone()
        return user_from_row(row) if row else None

    def get_by_email(self, email: str) -> User | None:
        cur = self._cursor()
        cur.execute("SELECT * FROM users WHERE lower(email) = lower(%s)", (email,))
        row = cur.fetchone()
        return user_from_row(row) if row else None

    def get_by_oauth(self, provider: str, oauth_id: str) -> User | None:
        cur = self._cursor()
        cur.execute(
            "SELECT * FROM users WHERE oauth_provider = %s AND oauth_id = %s",
            (provider, oauth_id),
        )
        row = cur.fetchone()
        return user_from_row(row) if row else None

    def exists_by_email(self, email: str) -> bool:
        cur = self._cursor()
        cur.execute("SELECT 1 FROM users WHERE lower(email) = lower(%s)", (email,))
        return cur.fetchone() is not None

    def list_all(self) -> list[User]:
        cur = self._cursor()
        cur.execute("SELECT * FROM users ORDER BY id")
        return [user_from_row(r) for r in cur.fetchall()]

    def list_by_tenant(self, tenant_id: int) -> list[User]:
        cur = self._cursor()
        cur.execute("SELECT * FROM users WHERE tenant_id = %s ORDER BY id", (tenant_id,))
        return [user_from_row(r) for r in cur.fetchall()]

    def list_by_role(self, role: TenantRole) -> list[User]:
        cur = self._cursor()
        cur.execute("SELECT * FROM users WHERE role = %s ORDER BY id", (str(role),))
        return [user_from_row(r) for r in cur.fetchall()]

    def count_by_tenant(self, tenant_id: int) -> int:
        cur = self._cursor()
        cur.execute("SELECT count(*) AS n FROM users WHERE tenant_id = %s", (tenant_id,))
        row = cur.fetchone()
        return row["n"] if row else 0

    def insert(self, user: User) -> User:
        cur = self._cursor()
        cur.execute(
            """
            INSERT INTO users (tenant_id, email, name, avatar, role, account_type, status,
                               password_hash, master_key_salt, oauth_provider, oauth_id)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
        """,
            (
                user.tenant_id,
                user.email,
                user.name,
                user.avatar,
                str(user.role),
                str(user.account_type),
                str(user.status),
                user.password_hash,
                user.master_key_salt,
                user.oauth_provider,
                user.oauth_id,
            ),
        )
        return user_from_row(cur.fetchone())

    def update(self, user: User) -> User:
        cur = self._cursor()
        cur.execute(
            """
            UPDATE users SET tenant_id = %s, email = %s, name = %s, avatar = %s, role = %s,
                             account_type = %s, status = %s, password_hash = %s,
                             oauth_provider = %s, oauth_id = %s, updated_at = NOW()
            WHERE id = %s
            RETURNING *
        """,
            (
                user.tenant_id,
                user.email,
                user.name,
                user.avatar,
                str(user.role),
                str(user.account_type),
                str(user.status),
                user.password_hash,
                user.oauth_provider,
                user.oauth_id,
                user.id,
            ),
        )
        row = cur.fetchone()
        return user_from_row(row) if row else user

    def update_status(self, user_id: int, status: UserStatus) -> bool:
        cur = self._cursor()
        cur.execute(
            "UPDATE users SET status = %s, updated_at = NOW() WHERE id = %s",
            (str(status), user_id),
        )
        return cur.rowcount > 0


# ─── Vaults ──────────────────────────────────────────────────────────────


class PostgresVaultRepository(_Repository):
    def get(self, vault_id: int) -> Vault | None:
        cur = self._cursor()
        cur.execute("SELECT * FROM vaults WHERE id = %s", (vault_id,))
        row = cur.fetchone()
        return vault_from_row(row) if row else None

    def insert(self, vault: Vault) -> Vault:
        cur = self._cursor()
        cur.execute(
            """
            INSERT INTO vaults (tenant_id, name, description, icon, is_personal, owner_id)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *
        """,
            (
                vault.tenant_id,
                vault.name,
                vault.description,
                vault.icon,
                vault.is_personal,
                vault.owner_id,
            ),
        )
        return vault_from_row(cur.fetchone())

    def update(self, vault: Vault) -> Vault:
        # tenant_id, is_personal and owner_id are fixed at creation.
        cur = self._cursor()
        cur.execute(
            """
            UPDATE vaults SET name = %s, description = %s, icon = %s, updated_at = NOW()
            WHERE id = %s
            RETURNING *
        """,
            (vault.name, vault.description, vault.icon, vault.id),
        )
        row = cur.fetchone()
        return vault_from_row(row) if row else vault

    def delete(self, vault_id: int) -> bool:
        cur = self._cursor()
        cur.execute("DELETE FROM vaults WHERE id = %s", (vault_id,))
        return cur.rowcount > 0

    def list_by_tenant(self, tenant_id: int) -> list[Vault]:
        cur = self._cursor()
        cur.execute("SELECT * FROM vaults WHERE tenant_id = %s ORDER BY id", (tenant_id,))
        return [vault_from_row(r) for r in cur.fetchall()]

    def list_visible(self, tenant_id: int, user_id: int) -> list[Vault]:
        cur = self._cursor()
        cur.execute(
            """
            SELECT v.* FROM vaults v
            WHERE v.tenant_id = %s
              AND (
                (v.is_personal AND v.owner_id = %s)
                OR (NOT v.is_personal AND EXISTS (
                    SELECT 1 FROM vault_members m WHERE m.vault_id = v.id AND m.user_id = %s
                ))
              )
            ORDER BY v.id
        """,
            (tenant_id, user_id, user_id),
        )
        return [vault_from_row(r) for r in cur.fetchall()]


# ─── Memberships ─────────────────────────────────────────────────────────


class PostgresMemberRepository(_Repository):
    def get(self, vault_id: int, user_id: int) -> VaultMember | None:
        cur = self._cursor()
        cur.execute(
            "SELECT * FROM vault_members WHERE vault_id = %s AND user_id = %s",
            (vault_id, user_id),
        )
        row = cur.fetchone()
        return member_from_row(row) if row else None

    def list_by_vault(self, vault_id: int) -> list[VaultMember]:
        cur = self._cursor()
        cur.execute("SELECT * FROM vault_members WHERE vault_id = %s ORDER BY id", (vault_id,))
        return [member_from_row(r) for r in cur.fetchall()]

    def insert(self, vault_id: int, user_id: int, role: VaultRole) -> VaultMember:
        cur = self._cursor()
        cur.execute(
            "INSERT INTO vault_members (vault_id, user_id, role) VALUES (%s, %s, %s) RETURNING *",
            (vault_id, user_id, str(role)),
        )
        return member_from_row(cur.fetchone())

    def update_role(self, vault_id: int, user_id: int, role: VaultRole) -> VaultMember | None:
        cur = self._cursor()
        cur.execute(
            """
            UPDATE vault_members SET role = %s
            WHERE vault_id = %s AND user_id = %s AND role <> 'owner'
            RETURNING *
        """,
            (str(role), vault_id, user_id),
        )
        row = cur.fetchone()
        return member_from_row(row) if row else None

    def delete(self, vault_id: int, user_id: int) -> bool:
        cur = self._cursor()
        cur.execute(
            "DELETE FROM vault_members WHERE vault_id = %s AND user_id = %s AND role <> 'owner'",
            (vault_id, user_id),
        )
        return cur.rowcount > 0

    def delete_by_vault(self, vault_id: int) -> int:
        cur = self._cursor()
        cur.execute("DELETE FROM vault_members WHERE vault_id = %s", (vault_id,))
        return cur.rowcount


# ─── Credentials ─────────────────────────────────────────────────────────


class PostgresCredentialRepository(_Repository):
    def get(self, credential_id: int) -> Credential | None:
        cur = self._cursor()
        cur.execute("SELECT * FROM credentials WHERE id = %s", (credential_id,))
        row = cur.fetchone()
        return credential_from_row(row) if row else None

    def insert(self, credential: Credential) -> Credential:
        cur = self._cursor()
        cur.execute(
            """
            INSERT INTO credentials (vault_id, tenant_id, title_encrypted, url_encrypted,
                                     username_encrypted, password_encrypted, notes_encrypted,
                                     category, favicon)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
        """,
            (
                credential.vault_id,
                credential.tenant_id,
                credential.title_encrypted,
                credential.url_encrypted,
                credential.username_encrypted,
                credential.password_encrypted,
                credential.notes_encrypted,
                credential.category,
                credential.favicon,
            ),
        )
        return credential_from_row(cur.fetchone())

    def update(self, credential: Credential) -> Credential:
        cur = self._cursor()
        cur.execute(
            """
            UPDATE credentials SET title_encrypted = %s, url_encrypted = %s,
                                   username_encrypted = %s, password_encrypted = %s,
                                   notes_encrypted = %s, category = %s, favicon = %s,
                                   updated_at = NOW()
            WHERE id = %s
            RETURNING *
        """,
            (
                credential.title_encrypted,
                credential.url_encrypted,
                credential.username_encrypted,
                credential.password_encrypted,
                credential.notes_encrypted,
                credential.category,
                credential.favicon,
                credential.id,
            ),
        )
        row = cur.fetchone()
        return credential_from_row(row) if row else credential

    def delete(self, credential_id: int) -> bool:
        cur = self._cursor()
        cur.execute("DELETE FROM credentials WHERE id = %s", (credential_id,))
        return cur.rowcount > 0

    def delete_by_vault(self, vault_id: int) -> int:
        cur = self._cursor()
        cur.execute("DELETE FROM credentials WHERE vault_id = %s", (vault_id,))
        return cur.rowcount

    def list_by_vault(self, vault_id: int) -> list[Credential]:
        cur = self._cursor()
        cur.execute("SELECT * FROM credentials WHERE vault_id = %s ORDER BY id", (vault_id,))
        return [credential_from_row(r) for r in cur.fetchall()]

    def list_visible(self, tenant_id: int, user_id: int, query: str = "") -> list[Credential]:
        sql = """
            SELECT c.* FROM credentials c
            JOIN vaults v ON v.id = c.vault_id
            WHERE c.tenant_id = %s
              AND (
                (v.is_personal AND v.owner_id = %s)
                OR (NOT v.is_personal AND EXISTS (
                    SELECT 1 FROM vault_members m WHERE m.vault_id = v.id AND m.user_id = %s
                ))
              )
        """
        params: list = [tenant_id, user_id, user_id]
        if query:
            pattern = _like_pattern(query)
            sql += " AND (c.category ILIKE %s OR c.favicon ILIKE %s)"
            params.extend([pattern, pattern])
        sql += " ORDER BY c.id"
        cur = self._cursor()
        cur.execute(sql, params)
        return [credential_from_row(r) for r in cur.fetchall()]


# ─── Session / store ─────────────────────────────────────────────────────


class PostgresSession:
    def __init__(self, conn) -> None:
        self.conn = conn
        self.tenants = PostgresTenantRepository(conn)
        self.users = PostgresUserRepository(conn)
        self.vaults = PostgresVaultRepository(conn)
        self.members = PostgresMemberRepository(conn)
        self.credentials = PostgresCredentialRepository(conn)


class PostgresStore:
    def __init__(self, db: Database) -> None:
        self.db = db

    @contextmanager
    def session(self) -> Generator[PostgresSession, None, None]:
        try:
            with self.db.connection() as conn:
                yield PostgresSession(conn)
        except psycopg2.errors.UniqueViolation as e:
            constraint = getattr(e.diag, "constraint_name", None) or ""
            message = _CONFLICT_MESSAGES.get(constraint, "resource already exists")
            logger.info("Unique violation on %s", constraint or "<unknown>")
            raise ConflictError(message) from e
        except (psycopg2.DataError, psycopg2.IntegrityError) as e:
            logger.info("Rejected write (%s): %s", type(e).__name__, e)
            raise InvalidInputError("invalid or oversized field value") from e
        except psycopg2.Error as e:
            logger.error("Store failure (%s): %s", type(e).__name__, e)
            raise StoreError() from e

    def close(self) -> None:
        self.db.close()
