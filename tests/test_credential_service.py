"""Tests for CredentialService — role-gated CRUD and search over ciphertext records."""

import pytest

from tenantvault.errors import AccessDeniedError, InvalidInputError, NotFoundError
from tenantvault.models import Credential
from tenantvault.services import CredentialInput
from tenantvault.services.credentials import apply_partial_update


def _input(**kwargs):
    kwargs.setdefault("title_encrypted", "enc:title")
    kwargs.setdefault("password_encrypted", "enc:pw")
    return CredentialInput(**kwargs)


@pytest.fixture
def shared(seed, acme):
    """acme with alice as editor and bob as viewer of the shared vault, plus one credential."""
    admin, vault_id = seed.id(acme["admin"]), acme["vault"].id
    seed.services.vaults.add_member(admin, vault_id, acme["alice"].id, "editor")
    seed.services.vaults.add_member(admin, vault_id, acme["bob"].id, "viewer")
    cred = seed.services.credentials.create(admin, vault_id, _input(category="email", favicon="mail.png"))
    return {**acme, "cred": cred}


class TestCreate:
    def test_create_stamps_vault_tenant(self, seed, shared):
        cred = seed.services.credentials.create(
            seed.id(shared["alice"]), shared["vault"].id, _input(url_encrypted="enc:url")
        )
        assert cred.vault_id == shared["vault"].id
        assert cred.tenant_id == shared["vault"].tenant_id
        assert cred.url_encrypted == "enc:url"
        assert cred.notes_encrypted == ""

    def test_title_and_password_required(self, seed, shared):
        creds = seed.services.credentials
        with pytest.raises(InvalidInputError):
            creds.create(seed.id(shared["admin"]), shared["vault"].id, _input(title_encrypted=""))
        with pytest.raises(InvalidInputError):
            creds.create(seed.id(shared["admin"]), shared["vault"].id, _input(password_encrypted=None))

    def test_viewer_cannot_create(self, seed, shared):
        with pytest.raises(AccessDeniedError):
            seed.services.credentials.create(seed.id(shared["bob"]), shared["vault"].id, _input())


class TestRoleGates:
    def test_viewer_reads_only(self, seed, shared):
        creds, bob, cred = seed.services.credentials, seed.id(shared["bob"]), shared["cred"]
        assert creds.get(bob, cred.id).title_encrypted == "enc:title"
        assert [c.id for c in creds.list(bob, shared["vault"].id)] == [cred.id]
        with pytest.raises(AccessDeniedError):
            creds.update(bob, cred.id, CredentialInput(notes_encrypted="x"))
        with pytest.raises(AccessDeniedError):
            creds.delete(bob, cred.id)

    def test_editor_cannot_delete(self, seed, shared):
        creds, alice, cred = seed.services.credentials, seed.id(shared["alice"]), shared["cred"]
        updated = creds.update(alice, cred.id, CredentialInput(notes_encrypted="enc:notes"))
        assert updated.notes_encrypted == "enc:notes"
        with pytest.raises(AccessDeniedError):
            creds.delete(alice, cred.id)
        assert creds.get(alice, cred.id).id == cred.id

    def test_vault_admin_deletes(self, seed, shared):
        creds, admin, cred = seed.services.credentials, seed.id(shared["admin"]), shared["cred"]
        seed.services.vaults.add_member(admin, shared["vault"].id, shared["alice"].id, "admin")
        creds.delete(seed.id(shared["alice"]), cred.id)
        with pytest.raises(NotFoundError):
            creds.get(admin, cred.id)

    def test_non_member_denied_everything(self, seed, shared):
        creds, cred = seed.services.credentials, shared["cred"]
        carol = seed.id(seed.user(shared["admin"], "carol@acme.test"))
        vault_id = shared["vault"].id
        with pytest.raises(AccessDeniedError):
            creds.create(carol, vault_id, _input())
        with pytest.raises(AccessDeniedError):
            creds.get(carol, cred.id)
        with pytest.raises(AccessDeniedError):
            creds.list(carol, vault_id)
        with pytest.raises(AccessDeniedError):
            creds.update(carol, cred.id, CredentialInput(category="x"))
        with pytest.raises(AccessDeniedError):
            creds.delete(carol, cred.id)

    def test_tenant_admin_without_membership_denied(self, seed, shared):
        other_vault, _ = seed.services.vaults.create(seed.id(shared["alice"]), "Alice team")
        with pytest.raises(AccessDeniedError):
            seed.services.credentials.list(seed.id(shared["admin"]), other_vault.id)

    def test_personal_vault_owner_only(self, seed, shared):
        creds = seed.services.credentials
        personal, _ = seed.services.vaults.create(seed.id(shared["bob"]), "Bob's", is_personal=True)
        cred = creds.create(seed.id(shared["bob"]), personal.id, _input())
        with pytest.raises(AccessDeniedError):
            creds.get(seed.id(shared["admin"]), cred.id)
        creds.delete(seed.id(shared["bob"]), cred.id)


class TestLookup:
    def test_missing_credential(self, seed, shared):
        with pytest.raises(NotFoundError):
            seed.services.credentials.get(seed.id(shared["admin"]), 9999)

    def test_vault_mismatch_is_not_found(self, seed, shared):
        admin = seed.id(shared["admin"])
        other, _ = seed.services.vaults.create(admin, "Other")
        creds = seed.services.credentials
        with pytest.raises(NotFoundError):
            creds.get(admin, shared["cred"].id, vault_id=other.id)
        with pytest.raises(NotFoundError):
            creds.delete(admin, shared["cred"].id, vault_id=other.id)
        assert creds.get(admin, shared["cred"].id, vault_id=shared["vault"].id)


class TestPartialUpdate:
    def test_only_non_empty_fields_change(self, seed, shared):
        updated = seed.services.credentials.update(
            seed.id(shared["alice"]),
            shared["cred"].id,
            CredentialInput(title_encrypted="enc:new", password_encrypted="", category=None),
        )
        assert updated.title_encrypted == "enc:new"
        assert updated.password_encrypted == "enc:pw"
        assert updated.category == "email"
        assert updated.vault_id == shared["vault"].id

    def test_apply_partial_update_reports_fields(self):
        cred = Credential(id=1, vault_id=1, tenant_id=1, title_encrypted="a", password_encrypted="b")
        changed = apply_partial_update(cred, CredentialInput(favicon="f.png", notes_encrypted=""))
        assert changed == ["favicon"]
        assert cred.favicon == "f.png"


class TestSearch:
    def test_matches_category_and_favicon(self, seed, shared):
        creds, admin = seed.services.credentials, seed.id(shared["admin"])
        creds.create(admin, shared["vault"].id, _input(category="banking", favicon="bank.ico"))
        assert [c.category for c in creds.search(admin, "EMAIL")] == ["email"]
        assert [c.category for c in creds.search(admin, "bank.ico")] == ["banking"]
        assert len(creds.search(admin, "")) == 2
        assert creds.search(admin, "enc:title") == []

    def test_scoped_to_visible_vaults(self, seed, shared):
        creds = seed.services.credentials
        personal, _ = seed.services.vaults.create(seed.id(shared["admin"]), "Private", is_personal=True)
        creds.create(seed.id(shared["admin"]), personal.id, _input(category="email"))
        assert len(creds.search(seed.id(shared["admin"]), "email")) == 2
        assert len(creds.search(seed.id(shared["bob"]), "email")) == 1
        carol = seed.id(seed.user(shared["admin"], "carol@acme.test"))
        assert creds.search(carol, "email") == []
