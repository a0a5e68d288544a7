"""Tests for tenantvault.membership — role grants and owner immutability."""

import pytest

from tenantvault.errors import ConflictError, InvalidRoleError, NotFoundError, OwnerImmutableError
from tenantvault.membership import MembershipStore
from tenantvault.roles import VaultRole


@pytest.fixture
def session(store):
    with store.session() as s:
        yield s


@pytest.fixture
def memberships(session):
    return MembershipStore(session.members)


class TestOwner:
    def test_create_owner(self, memberships):
        owner = memberships.create_owner(1, 10)
        assert owner.role == VaultRole.OWNER
        assert memberships.get_membership(1, 10) == owner

    def test_single_owner_per_vault(self, memberships):
        memberships.create_owner(1, 10)
        with pytest.raises(ConflictError):
            memberships.create_owner(1, 11)

    def test_owner_cannot_be_reroled(self, memberships):
        memberships.create_owner(1, 10)
        with pytest.raises(OwnerImmutableError):
            memberships.add_or_update_membership(1, 10, VaultRole.VIEWER)
        assert memberships.get_membership(1, 10).role == VaultRole.OWNER

    def test_owner_cannot_be_removed(self, memberships):
        memberships.create_owner(1, 10)
        with pytest.raises(OwnerImmutableError):
            memberships.remove_membership(1, 10)
        assert memberships.has_access(1, 10)

    def test_owner_immutable_is_a_conflict(self):
        assert issubclass(OwnerImmutableError, ConflictError)


class TestGrants:
    def test_insert_then_update(self, memberships):
        memberships.create_owner(1, 10)
        first = memberships.add_or_update_membership(1, 20, "viewer")
        assert first.role == VaultRole.VIEWER
        second = memberships.add_or_update_membership(1, 20, "editor")
        assert second.role == VaultRole.EDITOR
        assert second.id == first.id
        assert len(memberships.list_members(1)) == 2

    def test_same_role_is_noop(self, memberships):
        first = memberships.add_or_update_membership(1, 20, VaultRole.EDITOR)
        again = memberships.add_or_update_membership(1, 20, VaultRole.EDITOR)
        assert again == first
        assert len(memberships.list_members(1)) == 1

    def test_owner_not_grantable(self, memberships):
        with pytest.raises(InvalidRoleError):
            memberships.add_or_update_membership(1, 20, "owner")
        assert memberships.find_membership(1, 20) is None

    def test_unknown_role_rejected(self, memberships):
        with pytest.raises(InvalidRoleError):
            memberships.add_or_update_membership(1, 20, "superuser")

    def test_has_role(self, memberships):
        memberships.add_or_update_membership(1, 20, VaultRole.ADMIN)
        assert memberships.has_role(1, 20, [VaultRole.OWNER, VaultRole.ADMIN])
        assert memberships.has_role(1, 20, ["admin"])
        assert not memberships.has_role(1, 20, [VaultRole.VIEWER])
        assert not memberships.has_role(1, 99, [VaultRole.ADMIN])


class TestRemoval:
    def test_remove(self, memberships):
        memberships.add_or_update_membership(1, 20, VaultRole.VIEWER)
        memberships.remove_membership(1, 20)
        assert not memberships.has_access(1, 20)

    def test_remove_missing(self, memberships):
        with pytest.raises(NotFoundError):
            memberships.remove_membership(1, 20)

    def test_get_missing(self, memberships):
        with pytest.raises(NotFoundError):
            memberships.get_membership(1, 20)
