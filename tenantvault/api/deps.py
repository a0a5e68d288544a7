"""API dependency injection — services, bearer-token identity, current user."""

from __future__ import annotations

from fastapi import Depends, Request

from tenantvault.errors import AuthenticationError
from tenantvault.models import Identity, User
from tenantvault.services import Services


def get_services(request: Request) -> Services:
    """The services container attached to the app by ``create_app``."""
    return request.app.state.services


def get_bearer_token(request: Request) -> str:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("authorization token required")
    return token.strip()


def get_identity(
    token: str = Depends(get_bearer_token),
    services: Services = Depends(get_services),
) -> Identity:
    """Verified caller identity. Account status is checked by each service call."""
    return services.tokens.verify(token)


def get_current_user(
    token: str = Depends(get_bearer_token),
    services: Services = Depends(get_services),
) -> User:
    """The caller's account, loaded fresh and required to be active."""
    return services.auth.authenticate(token)
