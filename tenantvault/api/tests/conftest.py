"""Shared fixtures for API tests: an app over a fresh in-memory store."""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from tenantvault.api.app import create_app
from tenantvault.config import AuthConfig, Config
from tenantvault.services import build_services
from tenantvault.store.memory import MemoryStore

PASSWORD = "correct-horse"


@pytest.fixture
def config() -> Config:
    return Config(auth=AuthConfig(jwt_secret="test-secret", password_rounds=1000))


@pytest.fixture
def services(config):
    return build_services(MemoryStore(), config)


@pytest_asyncio.fixture
async def client(services, config):
    """Async HTTP client wrapping the app via ASGITransport."""
    transport = ASGITransport(app=create_app(services=services, config=config))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def register(client):
    """Register a tenant admin over HTTP; returns (auth headers, response body)."""

    async def _register(email: str, slug: str):
        resp = await client.post(
            "/api/auth/register",
            json={
                "email": email,
                "password": PASSWORD,
                "name": email.split("@")[0],
                "tenant_name": slug.title(),
                "tenant_slug": slug,
            },
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['token']}"}, body

    return _register
