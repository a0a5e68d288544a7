"""Registration, sign-in and the caller's own account."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tenantvault.api.deps import get_current_user, get_identity, get_services
from tenantvault.api.schemas import LoginRequest, RegisterRequest
from tenantvault.models import Identity, User, tenant_to_dict, user_to_dict
from tenantvault.services import AuthResult, Services

router = APIRouter(tags=["auth"])


def _auth_payload(result: AuthResult) -> dict:
    return {
        "token": result.token,
        "expires_at": result.expires_at.isoformat(),
        "user": user_to_dict(result.user),
        "tenant": tenant_to_dict(result.tenant) if result.tenant else None,
    }


@router.post("/auth/register", status_code=201)
def api_register(body: RegisterRequest, services: Services = Depends(get_services)):
    result = services.auth.register(
        email=body.email,
        password=body.password,
        name=body.name,
        tenant_name=body.tenant_name,
        tenant_slug=body.tenant_slug,
    )
    return _auth_payload(result)


@router.post("/auth/login")
def api_login(body: LoginRequest, services: Services = Depends(get_services)):
    return _auth_payload(services.auth.login(body.email, body.password))


@router.get("/auth/salt")
def api_get_salt(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return {"salt": services.auth.get_user_salt(identity)}


@router.get("/me")
def api_me(user: User = Depends(get_current_user)):
    return user_to_dict(user)
