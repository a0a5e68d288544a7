"""Vault and vault membership routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from tenantvault.api.deps import get_identity, get_services
from tenantvault.api.schemas import AddMemberRequest, CreateVaultRequest, UpdateVaultRequest
from tenantvault.models import Identity, member_to_dict, vault_to_dict
from tenantvault.services import Services

router = APIRouter(prefix="/vaults", tags=["vaults"])


@router.post("", status_code=201)
def api_create_vault(
    body: CreateVaultRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    vault, members = services.vaults.create(
        identity,
        body.name,
        description=body.description,
        icon=body.icon,
        is_personal=body.is_personal,
    )
    return vault_to_dict(vault, members)


@router.get("")
def api_list_vaults(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return {"vaults": [vault_to_dict(v) for v in services.vaults.list(identity)]}


@router.get("/{vault_id}")
def api_get_vault(
    vault_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    vault, members = services.vaults.get(identity, vault_id)
    return vault_to_dict(vault, members)


@router.put("/{vault_id}")
def api_update_vault(
    vault_id: int,
    body: UpdateVaultRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    vault = services.vaults.update(
        identity,
        vault_id,
        name=body.name,
        description=body.description,
        icon=body.icon,
    )
    return vault_to_dict(vault)


@router.delete("/{vault_id}", status_code=204)
def api_delete_vault(
    vault_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    services.vaults.delete(identity, vault_id)
    return Response(status_code=204)


# ─── Members ─────────────────────────────────────────────────────────────


@router.get("/{vault_id}/members")
def api_list_members(
    vault_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return {"members": [member_to_dict(m) for m in services.vaults.list_members(identity, vault_id)]}


@router.post("/{vault_id}/members")
def api_add_member(
    vault_id: int,
    body: AddMemberRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    member = services.vaults.add_member(identity, vault_id, body.user_id, body.role)
    return member_to_dict(member)


@router.delete("/{vault_id}/members/{user_id}", status_code=204)
def api_remove_member(
    vault_id: int,
    user_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    services.vaults.remove_member(identity, vault_id, user_id)
    return Response(status_code=204)
