"""Credential routes — nested under their vault, plus cross-vault search."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from tenantvault.api.deps import get_identity, get_services
from tenantvault.api.schemas import CreateCredentialRequest, UpdateCredentialRequest
from tenantvault.models import Identity, credential_to_dict
from tenantvault.services import CredentialInput, Services

router = APIRouter(tags=["credentials"])


@router.post("/vaults/{vault_id}/credentials", status_code=201)
def api_create_credential(
    vault_id: int,
    body: CreateCredentialRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    credential = services.credentials.create(identity, vault_id, CredentialInput(**body.model_dump()))
    return credential_to_dict(credential)


@router.get("/vaults/{vault_id}/credentials")
def api_list_credentials(
    vault_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    credentials = services.credentials.list(identity, vault_id)
    return {"credentials": [credential_to_dict(c) for c in credentials]}


@router.get("/vaults/{vault_id}/credentials/{credential_id}")
def api_get_credential(
    vault_id: int,
    credential_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return credential_to_dict(services.credentials.get(identity, credential_id, vault_id=vault_id))


@router.put("/vaults/{vault_id}/credentials/{credential_id}")
def api_update_credential(
    vault_id: int,
    credential_id: int,
    body: UpdateCredentialRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    credential = services.credentials.update(
        identity, credential_id, CredentialInput(**body.model_dump()), vault_id=vault_id
    )
    return credential_to_dict(credential)


@router.delete("/vaults/{vault_id}/credentials/{credential_id}", status_code=204)
def api_delete_credential(
    vault_id: int,
    credential_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    services.credentials.delete(identity, credential_id, vault_id=vault_id)
    return Response(status_code=204)


@router.get("/credentials/search")
def api_search_credentials(
    q: str = Query(""),
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return {"credentials": [credential_to_dict(c) for c in services.credentials.search(identity, q)]}
