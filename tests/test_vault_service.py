"""Tests for VaultService — vault lifecycle, membership management, visibility."""

from unittest.mock import patch

import pytest

from tenantvault.errors import (
    AccessDeniedError,
    ConflictError,
    InvalidInputError,
    InvalidRoleError,
    NotFoundError,
    OwnerImmutableError,
    PersonalVaultNoMembersError,
    StoreError,
)
from tenantvault.roles import VaultRole
from tenantvault.services import CredentialInput


class TestCreate:
    def test_creator_becomes_sole_owner(self, seed, acme):
        vault = acme["vault"]
        _, members = seed.services.vaults.get(seed.id(acme["admin"]), vault.id)
        assert [(m.user_id, m.role) for m in members] == [(acme["admin"].id, VaultRole.OWNER)]
        assert vault.tenant_id == acme["admin"].tenant_id
        assert vault.is_personal is False
        assert vault.owner_id is None

    def test_personal_vault_records_owner(self, seed, acme):
        vault, members = seed.services.vaults.create(seed.id(acme["alice"]), "Mine", is_personal=True)
        assert vault.is_personal is True
        assert vault.owner_id == acme["alice"].id
        assert members[0].role == VaultRole.OWNER

    def test_name_required(self, seed, acme):
        with pytest.raises(InvalidInputError):
            seed.services.vaults.create(seed.id(acme["alice"]), "   ")

    def test_owner_grant_failure_rolls_back_vault(self, seed, acme, store):
        with patch("tenantvault.membership.MembershipStore.create_owner", side_effect=StoreError()):
            with pytest.raises(StoreError):
                seed.services.vaults.create(seed.id(acme["alice"]), "Doomed")
        with store.session() as s:
            names = [v.name for v in s.vaults.list_by_tenant(acme["alice"].tenant_id)]
        assert names == ["Shared"]
        assert seed.services.vaults.list(seed.id(acme["alice"])) == []


class TestVisibility:
    def test_non_member_cannot_see_team_vault(self, seed, acme):
        with pytest.raises(AccessDeniedError):
            seed.services.vaults.get(seed.id(acme["alice"]), acme["vault"].id)
        assert seed.services.vaults.list(seed.id(acme["alice"])) == []

    def test_list_includes_memberships_and_own_personal(self, seed, acme):
        vaults = seed.services.vaults
        vaults.add_member(seed.id(acme["admin"]), acme["vault"].id, acme["alice"].id, "viewer")
        personal, _ = vaults.create(seed.id(acme["alice"]), "Mine", is_personal=True)
        vaults.create(seed.id(acme["bob"]), "Bob's", is_personal=True)

        names = sorted(v.name for v in vaults.list(seed.id(acme["alice"])))
        assert names == ["Mine", "Shared"]

    def test_personal_vault_hidden_from_tenant_admin(self, seed, acme):
        personal, _ = seed.services.vaults.create(seed.id(acme["alice"]), "Mine", is_personal=True)
        with pytest.raises(AccessDeniedError):
            seed.services.vaults.get(seed.id(acme["admin"]), personal.id)

    def test_missing_vault(self, seed, acme):
        with pytest.raises(NotFoundError):
            seed.services.vaults.get(seed.id(acme["admin"]), 9999)

    def test_other_tenant_denied(self, seed, acme):
        other = seed.tenant_admin("admin@globex.test", "globex")
        with pytest.raises(AccessDeniedError):
            seed.services.vaults.get(seed.id(other), acme["vault"].id)


class TestUpdateDelete:
    def test_admin_member_renames(self, seed, acme):
        vaults = seed.services.vaults
        vaults.add_member(seed.id(acme["admin"]), acme["vault"].id, acme["alice"].id, "admin")
        updated = vaults.update(seed.id(acme["alice"]), acme["vault"].id, name="Renamed", icon="key")
        assert updated.name == "Renamed"
        assert updated.icon == "key"

    def test_empty_fields_keep_values(self, seed, acme):
        updated = seed.services.vaults.update(
            seed.id(acme["admin"]), acme["vault"].id, name="", description=None
        )
        assert updated.name == "Shared"

    def test_editor_cannot_rename(self, seed, acme):
        vaults = seed.services.vaults
        vaults.add_member(seed.id(acme["admin"]), acme["vault"].id, acme["alice"].id, "editor")
        with pytest.raises(AccessDeniedError):
            vaults.update(seed.id(acme["alice"]), acme["vault"].id, name="Nope")

    def test_only_owner_deletes(self, seed, acme):
        vaults = seed.services.vaults
        vault_id = acme["vault"].id
        vaults.add_member(seed.id(acme["admin"]), vault_id, acme["alice"].id, "admin")
        with pytest.raises(AccessDeniedError):
            vaults.delete(seed.id(acme["alice"]), vault_id)
        vaults.delete(seed.id(acme["admin"]), vault_id)
        with pytest.raises(NotFoundError):
            vaults.get(seed.id(acme["admin"]), vault_id)

    def test_delete_cascades(self, seed, acme, store):
        vault_id = acme["vault"].id
        seed.services.vaults.add_member(seed.id(acme["admin"]), vault_id, acme["alice"].id, "viewer")
        seed.services.credentials.create(
            seed.id(acme["admin"]),
            vault_id,
            CredentialInput(title_encrypted="t", password_encrypted="p"),
        )
        seed.services.vaults.delete(seed.id(acme["admin"]), vault_id)
        with store.session() as s:
            assert s.members.list_by_vault(vault_id) == []
            assert s.credentials.list_by_vault(vault_id) == []


class TestMembers:
    def test_add_member_idempotent(self, seed, acme):
        vaults = seed.services.vaults
        admin, vault_id, alice = seed.id(acme["admin"]), acme["vault"].id, acme["alice"].id
        first = vaults.add_member(admin, vault_id, alice, "editor")
        second = vaults.add_member(admin, vault_id, alice, "editor")
        assert first.id == second.id
        assert len(vaults.list_members(admin, vault_id)) == 2

    def test_add_member_changes_role(self, seed, acme):
        vaults = seed.services.vaults
        admin, vault_id, alice = seed.id(acme["admin"]), acme["vault"].id, acme["alice"].id
        vaults.add_member(admin, vault_id, alice, "viewer")
        member = vaults.add_member(admin, vault_id, alice, "admin")
        assert member.role == VaultRole.ADMIN

    def test_owner_role_not_grantable(self, seed, acme):
        with pytest.raises(InvalidRoleError):
            seed.services.vaults.add_member(
                seed.id(acme["admin"]), acme["vault"].id, acme["alice"].id, "owner"
            )

    def test_owner_membership_immutable(self, seed, acme):
        vaults = seed.services.vaults
        vault_id = acme["vault"].id
        vaults.add_member(seed.id(acme["admin"]), vault_id, acme["alice"].id, "admin")
        alice = seed.id(acme["alice"])
        with pytest.raises(OwnerImmutableError):
            vaults.add_member(alice, vault_id, acme["admin"].id, "viewer")
        with pytest.raises(ConflictError):
            vaults.remove_member(alice, vault_id, acme["admin"].id)
        owners = [m for m in vaults.list_members(alice, vault_id) if m.role == VaultRole.OWNER]
        assert [m.user_id for m in owners] == [acme["admin"].id]

    def test_editor_cannot_manage_members(self, seed, acme):
        vaults = seed.services.vaults
        vault_id = acme["vault"].id
        vaults.add_member(seed.id(acme["admin"]), vault_id, acme["alice"].id, "editor")
        with pytest.raises(AccessDeniedError):
            vaults.add_member(seed.id(acme["alice"]), vault_id, acme["bob"].id, "viewer")

    def test_user_from_other_tenant_not_found(self, seed, acme):
        outsider = seed.tenant_admin("admin@globex.test", "globex")
        with pytest.raises(NotFoundError):
            seed.services.vaults.add_member(
                seed.id(acme["admin"]), acme["vault"].id, outsider.id, "viewer"
            )

    def test_personal_vault_takes_no_members(self, seed, acme):
        vaults = seed.services.vaults
        owner = seed.id(acme["alice"])
        personal, _ = vaults.create(owner, "Mine", is_personal=True)
        with pytest.raises(PersonalVaultNoMembersError):
            vaults.add_member(owner, personal.id, acme["bob"].id, "viewer")
        with pytest.raises(PersonalVaultNoMembersError):
            vaults.remove_member(owner, personal.id, acme["bob"].id)
        with pytest.raises(PersonalVaultNoMembersError):
            vaults.add_member(seed.id(acme["bob"]), personal.id, acme["bob"].id, "admin")

    def test_remove_member(self, seed, acme):
        vaults = seed.services.vaults
        admin, vault_id = seed.id(acme["admin"]), acme["vault"].id
        vaults.add_member(admin, vault_id, acme["alice"].id, "viewer")
        vaults.remove_member(admin, vault_id, acme["alice"].id)
        with pytest.raises(AccessDeniedError):
            vaults.get(seed.id(acme["alice"]), vault_id)

    def test_remove_non_member(self, seed, acme):
        with pytest.raises(NotFoundError):
            seed.services.vaults.remove_member(
                seed.id(acme["admin"]), acme["vault"].id, acme["bob"].id
            )

    def test_revocation_takes_effect_immediately(self, seed, acme):
        vaults, creds = seed.services.vaults, seed.services.credentials
        admin, vault_id = seed.id(acme["admin"]), acme["vault"].id
        vaults.add_member(admin, vault_id, acme["alice"].id, "editor")
        cred = creds.create(
            seed.id(acme["alice"]), vault_id, CredentialInput(title_encrypted="t", password_encrypted="p")
        )
        vaults.add_member(admin, vault_id, acme["alice"].id, "viewer")
        with pytest.raises(AccessDeniedError):
            creds.update(seed.id(acme["alice"]), cred.id, CredentialInput(notes_encrypted="n"))
        assert creds.get(seed.id(acme["alice"]), cred.id).id == cred.id
