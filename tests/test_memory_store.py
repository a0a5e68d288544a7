"""Tests for the in-memory store — transactions and uniqueness rules."""

import pytest

from tenantvault.errors import ConflictError
from tenantvault.models import Credential, User, Vault
from tenantvault.roles import VaultRole
from tenantvault.store.memory import MemoryStore


@pytest.fixture
def store():
    return MemoryStore()


class TestTransactions:
    def test_commit(self, store):
        with store.session() as s:
            s.tenants.insert("Acme", "acme")
        with store.session() as s:
            assert s.tenants.get_by_slug("acme").name == "Acme"

    def test_rollback_on_error(self, store):
        with pytest.raises(RuntimeError), store.session() as s:
            s.tenants.insert("Acme", "acme")
            raise RuntimeError("boom")
        with store.session() as s:
            assert s.tenants.list_all() == []

    def test_rollback_restores_id_sequence(self, store):
        with pytest.raises(RuntimeError), store.session() as s:
            s.tenants.insert("A", "a")
            raise RuntimeError("boom")
        with store.session() as s:
            assert s.tenants.insert("B", "b").id == 1

    def test_returned_records_are_copies(self, store):
        with store.session() as s:
            tenant = s.tenants.insert("Acme", "acme")
            tenant.name = "Mutated"
            assert s.tenants.get(tenant.id).name == "Acme"


class TestUniqueness:
    def test_slug(self, store):
        with store.session() as s:
            s.tenants.insert("Acme", "acme")
            with pytest.raises(ConflictError):
                s.tenants.insert("Acme 2", "acme")

    def test_email_case_insensitive(self, store):
        with store.session() as s:
            s.users.insert(User(id=0, tenant_id=1, email="ann@example.com"))
            with pytest.raises(ConflictError):
                s.users.insert(User(id=0, tenant_id=1, email="ANN@example.com"))
            assert s.users.exists_by_email("Ann@Example.com")

    def test_membership_pair(self, store):
        with store.session() as s:
            s.members.insert(1, 1, VaultRole.EDITOR)
            with pytest.raises(ConflictError):
                s.members.insert(1, 1, VaultRole.VIEWER)

    def test_one_owner(self, store):
        with store.session() as s:
            s.members.insert(1, 1, VaultRole.OWNER)
            with pytest.raises(ConflictError):
                s.members.insert(1, 2, VaultRole.OWNER)

    def test_owner_row_protected(self, store):
        with store.session() as s:
            s.members.insert(1, 1, VaultRole.OWNER)
            assert s.members.update_role(1, 1, VaultRole.VIEWER) is None
            assert s.members.delete(1, 1) is False
            assert s.members.get(1, 1).role == VaultRole.OWNER


class TestUpdates:
    def test_salt_is_fixed(self, store):
        with store.session() as s:
            user = s.users.insert(User(id=0, tenant_id=1, email="a@x.test", master_key_salt="salt"))
            user.master_key_salt = "other"
            user.name = "Ann"
            updated = s.users.update(user)
        assert updated.master_key_salt == "salt"
        assert updated.name == "Ann"

    def test_credential_stays_in_vault(self, store):
        with store.session() as s:
            cred = s.credentials.insert(
                Credential(id=0, vault_id=1, tenant_id=1, title_encrypted="t", password_encrypted="p")
            )
            cred.vault_id = 2
            assert s.credentials.update(cred).vault_id == 1


class TestVisibility:
    def test_visible_vaults(self, store):
        with store.session() as s:
            team = s.vaults.insert(Vault(id=0, tenant_id=1, name="team"))
            s.vaults.insert(Vault(id=0, tenant_id=1, name="other team"))
            mine = s.vaults.insert(Vault(id=0, tenant_id=1, name="mine", is_personal=True, owner_id=5))
            s.vaults.insert(Vault(id=0, tenant_id=1, name="theirs", is_personal=True, owner_id=6))
            s.members.insert(team.id, 5, VaultRole.VIEWER)
            assert {v.id for v in s.vaults.list_visible(1, 5)} == {team.id, mine.id}
            assert s.vaults.list_visible(2, 5) == []

    def test_vault_delete_cascades(self, store):
        with store.session() as s:
            vault = s.vaults.insert(Vault(id=0, tenant_id=1, name="team"))
            s.members.insert(vault.id, 5, VaultRole.OWNER)
            s.credentials.insert(
                Credential(id=0, vault_id=vault.id, tenant_id=1, title_encrypted="t", password_encrypted="p")
            )
            assert s.vaults.delete(vault.id) is True
            assert s.members.list_by_vault(vault.id) == []
            assert s.credentials.list_by_vault(vault.id) == []
