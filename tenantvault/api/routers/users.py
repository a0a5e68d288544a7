"""User administration routes (tenant admins and super admins)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from tenantvault.api.deps import get_identity, get_services
from tenantvault.api.schemas import CreateUserRequest, ResetPasswordRequest, UpdateUserRequest
from tenantvault.models import Identity, user_to_dict
from tenantvault.services import Services

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=201)
def api_create_user(
    body: CreateUserRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    user = services.users.create_user(
        identity,
        body.email,
        body.name,
        password=body.password,
        account_type=body.account_type,
        tenant_id=body.tenant_id,
        role=body.role,
    )
    return user_to_dict(user)


@router.get("")
def api_list_users(
    tenant_id: int | None = Query(None),
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return {"users": [user_to_dict(u) for u in services.users.list_users(identity, tenant_id)]}


@router.get("/{user_id}")
def api_get_user(
    user_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return user_to_dict(services.users.get_user(identity, user_id))


@router.put("/{user_id}")
def api_update_user(
    user_id: int,
    body: UpdateUserRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    user = services.users.update_user(
        identity,
        user_id,
        name=body.name,
        role=body.role,
        status=body.status,
        account_type=body.account_type,
    )
    return user_to_dict(user)


@router.post("/{user_id}/disable")
def api_disable_user(
    user_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    services.users.disable_user(identity, user_id)
    return {"success": True, "id": user_id}


@router.post("/{user_id}/enable")
def api_enable_user(
    user_id: int,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    services.users.enable_user(identity, user_id)
    return {"success": True, "id": user_id}


@router.post("/{user_id}/reset-password")
def api_reset_password(
    user_id: int,
    body: ResetPasswordRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    services.users.reset_password(identity, user_id, body.password)
    return {"success": True, "id": user_id}
