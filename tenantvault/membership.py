"""
Membership Store — who holds which role in which vault.

Thin layer over a session's member repository. Reads are always fresh from
the store; nothing is cached between calls. The owner membership is
created together with its vault (``create_owner``) and is immutable
afterwards: re-roling or removing it raises ``OwnerImmutableError``.
"""

from __future__ import annotations

from collections.abc import Iterable

from tenantvault.errors import InvalidRoleError, NotFoundError, OwnerImmutableError
from tenantvault.models import VaultMember
from tenantvault.roles import GRANTABLE_VAULT_ROLES, VaultRole, parse_vault_role
from tenantvault.store.base import MemberRepository


class MembershipStore:
    def __init__(self, members: MemberRepository) -> None:
        self._members = members

    def get_membership(self, vault_id: int, user_id: int) -> VaultMember:
        """Return the membership row or raise NotFoundError."""
        member = self._members.get(vault_id, user_id)
        if member is None:
            raise NotFoundError("membership")
        return member

    def find_membership(self, vault_id: int, user_id: int) -> VaultMember | None:
        return self._members.get(vault_id, user_id)

    def has_access(self, vault_id: int, user_id: int) -> bool:
        return self._members.get(vault_id, user_id) is not None

    def has_role(self, vault_id: int, user_id: int, allowed: Iterable[VaultRole | str]) -> bool:
        member = self._members.get(vault_id, user_id)
        if member is None:
            return False
        return any(member.role == role for role in allowed)

    def list_members(self, vault_id: int) -> list[VaultMember]:
        return self._members.list_by_vault(vault_id)

    def create_owner(self, vault_id: int, user_id: int) -> VaultMember:
        return self._members.insert(vault_id, user_id, VaultRole.OWNER)

    def add_or_update_membership(
        self, vault_id: int, user_id: int, role: VaultRole | str
    ) -> VaultMember:
        """Grant a role, or change the role of an existing membership.

        Owner can never be granted here, and an existing owner membership
        is never overwritten.
        """
        parsed = parse_vault_role(role)
        if parsed not in GRANTABLE_VAULT_ROLES:
            raise InvalidRoleError("owner role cannot be granted")

        existing = self._members.get(vault_id, user_id)
        if existing is None:
            return self._members.insert(vault_id, user_id, parsed)
        if existing.role == VaultRole.OWNER:
            raise OwnerImmutableError()
        if existing.role == parsed:
            return existing
        updated = self._members.update_role(vault_id, user_id, parsed)
        if updated is None:
            raise NotFoundError("membership")
        return updated

    def remove_membership(self, vault_id: int, user_id: int) -> None:
        existing = self._members.get(vault_id, user_id)
        if existing is None:
            raise NotFoundError("membership")
        if existing.role == VaultRole.OWNER:
            raise OwnerImmutableError()
        self._members.delete(vault_id, user_id)
