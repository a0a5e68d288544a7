"""Tenant management routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from tenantvault.api.deps import get_identity, get_services
from tenantvault.api.schemas import CreateTenantRequest, UpdateTenantRequest
from tenantvault.models import Identity, tenant_to_dict
from tenantvault.services import Services

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.post("", status_code=201)
def api_create_tenant(
    body: CreateTenantRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return tenant_to_dict(services.tenants.create(identity, body.name, body.slug))


@router.get("")
def api_list_tenants(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return {"tenants": [tenant_to_dict(t) for t in services.tenants.list(identity)]}


@router.get("/{tenant_id}")
def api_get_tenant(
    tenant_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return tenant_to_dict(services.tenants.get(identity, tenant_id))


@router.put("/{tenant_id}")
def api_update_tenant(
    tenant_id: int,
    body: UpdateTenantRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    tenant = services.tenants.update(identity, tenant_id, name=body.name, slug=body.slug)
    return tenant_to_dict(tenant)


@router.delete("/{tenant_id}", status_code=204)
def api_delete_tenant(
    tenant_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    services.tenants.delete(identity, tenant_id)
    return Response(status_code=204)
