"""
Credential service — CRUD over ciphertext records inside a vault.

Every call re-derives the caller's membership for the credential's vault
from the store: view to read, edit to create or update, delete to delete.
Field contents are opaque ciphertext and are never inspected or logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tenantvault.errors import NotFoundError
from tenantvault.guard import Capability, Guard
from tenantvault.models import Credential, Identity
from tenantvault.store.base import Session, Store
from tenantvault.validation import require_name

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "title_encrypted",
    "url_encrypted",
    "username_encrypted",
    "password_encrypted",
    "notes_encrypted",
    "category",
    "favicon",
)


@dataclass
class CredentialInput:
    """Fields accepted on create and update. ``None`` or ``""`` on update = keep."""

    title_encrypted: str | None = None
    url_encrypted: str | None = None
    username_encrypted: str | None = None
    password_encrypted: str | None = None
    notes_encrypted: str | None = None
    category: str | None = None
    favicon: str | None = None


def apply_partial_update(credential: Credential, changes: CredentialInput) -> list[str]:
    """Overwrite the fields that carry a non-empty value. Returns their names."""
    changed: list[str] = []
    for name in UPDATABLE_FIELDS:
        value = getattr(changes, name)
        if value:
            setattr(credential, name, value)
            changed.append(name)
    return changed


class CredentialService:
    def __init__(self, store: Store) -> None:
        self._store = store

    def _load(self, session: Session, credential_id: int, vault_id: int | None) -> Credential:
        credential = session.credentials.get(credential_id)
        if credential is None or (vault_id is not None and credential.vault_id != vault_id):
            raise NotFoundError("credential")
        return credential

    def create(self, identity: Identity, vault_id: int, data: CredentialInput) -> Credential:
        title = require_name(data.title_encrypted, "title_encrypted")
        password = require_name(data.password_encrypted, "password_encrypted")
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            vault, _ = guard.require_vault(caller, vault_id, Capability.EDIT)
            credential = s.credentials.insert(
                Credential(
                    id=0,
                    vault_id=vault.id,
                    tenant_id=vault.tenant_id,
                    title_encrypted=title,
                    password_encrypted=password,
                    url_encrypted=data.url_encrypted or "",
                    username_encrypted=data.username_encrypted or "",
                    notes_encrypted=data.notes_encrypted or "",
                    category=data.category or "",
                    favicon=data.favicon or "",
                )
            )

        logger.info("Credential %s created in vault %s by user %s", credential.id, vault_id, caller.id)
        return credential

    def get(self, identity: Identity, credential_id: int, *, vault_id: int | None = None) -> Credential:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            credential = self._load(s, credential_id, vault_id)
            guard.require_vault(caller, credential.vault_id, Capability.VIEW)
            return credential

    def list(self, identity: Identity, vault_id: int) -> list[Credential]:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            vault, _ = guard.require_vault(caller, vault_id, Capability.VIEW)
            return s.credentials.list_by_vault(vault.id)

    def update(
        self,
        identity: Identity,
        credential_id: int,
        changes: CredentialInput,
        *,
        vault_id: int | None = None,
    ) -> Credential:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            credential = self._load(s, credential_id, vault_id)
            guard.require_vault(caller, credential.vault_id, Capability.EDIT)
            changed = apply_partial_update(credential, changes)
            if changed:
                credential = s.credentials.update(credential)

        logger.info(
            "Credential %s updated by user %s (fields: %s)",
            credential_id,
            caller.id,
            ", ".join(changed) or "none",
        )
        return credential

    def delete(self, identity: Identity, credential_id: int, *, vault_id: int | None = None) -> None:
        with self._store.session() as s:
            guard = Guard(s)
            caller = guard.caller(identity)
            credential = self._load(s, credential_id, vault_id)
            guard.require_vault(caller, credential.vault_id, Capability.DELETE)
            s.credentials.delete(credential.id)

        logger.info("Credential %s deleted by user %s", credential_id, caller.id)

    def search(self, identity: Identity, query: str = "") -> list[Credential]:
        """Credentials across every vault the caller can see in their tenant.

        Ciphertext is never searched; the query is a case-insensitive
        substring match on the plaintext category and favicon fields. An
        empty query returns everything visible.
        """
        with self._store.session() as s:
            caller = Guard(s).caller(identity)
            return s.credentials.list_visible(caller.tenant_id, caller.id, (query or "").strip())
