"""
API tests for the OpenID Connect sign-in routes with a stubbed provider client.
"""

import pytest
import pytest_asyncio

from diagram_sync.core.config import settings
from diagram_sync.core.oidc import get_oidc_client
from diagram_sync.domains.identity.schemas import ExternalIdentity
from diagram_sync.main import app
from tests.api.helpers import API, bearer, signup

ISSUER = "https://idp.example.com"


class FakeOIDCClient:
    """Provider client returning a fixed identity for code "good-code"."""

    def __init__(self, identity):
        self.identity = identity
        self.codes = []

    async def authorization_url(self, state):
        return f"{ISSUER}/authorize?state={state}"

    async def authenticate(self, code):
        self.codes.append(code)
        return self.identity


@pytest_asyncio.fixture
async def provider(client):
    fake = FakeOIDCClient(
        ExternalIdentity(issuer=ISSUER, subject="sub-1", email="ext@example.com", name="External")
    )
    app.dependency_overrides[get_oidc_client] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_oidc_client, None)


class TestOIDCRoutes:
    """Tests for /sync/api/auth/oidc."""

    @pytest.mark.asyncio
    async def test_enabled_flag(self, client):
        response = await client.get(f"{API}/auth/oidc/enabled")

        assert response.status_code == 200
        assert response.json() == {"enabled": settings.oidc_enabled}

    @pytest.mark.asyncio
    async def test_login_disabled(self, client, monkeypatch):
        monkeypatch.setattr(settings, "oidc_enabled", False)

        response = await client.get(f"{API}/auth/oidc/login")

        assert response.status_code == 400
        assert response.json()["detail"] == "OIDC is not enabled"

    @pytest.mark.asyncio
    async def test_login_redirects_with_state_cookie(self, client, provider):
        response = await client.get(f"{API}/auth/oidc/login")

        assert response.status_code == 307
        assert response.headers["location"].startswith(f"{ISSUER}/authorize?state=")
        assert "oidc_state=" in response.headers["set-cookie"]

    @pytest.mark.asyncio
    async def test_callback_signs_in(self, client, provider):
        client.cookies.set("oidc_state", "expected-state")

        response = await client.get(
            f"{API}/auth/oidc/callback", params={"state": "expected-state", "code": "good-code"}
        )

        assert response.status_code == 307
        assert response.headers["location"] == "/sync/sync"
        assert provider.codes == ["good-code"]

        cookies = response.headers.get_list("set-cookie")
        auth_cookie = next(c for c in cookies if c.startswith("auth_token="))
        token = auth_cookie.split(";", 1)[0].split("=", 1)[1]
        client.cookies.clear()

        me = await client.get(f"{API}/auth/me", headers=bearer(token))
        assert me.status_code == 200
        assert me.json()["email"] == "ext@example.com"

    @pytest.mark.asyncio
    async def test_callback_links_existing_account(self, client, provider):
        local_token = await signup(client, email="ext@example.com")
        client.cookies.set("oidc_state", "s")

        response = await client.get(f"{API}/auth/oidc/callback", params={"state": "s", "code": "good-code"})
        assert response.status_code == 307
        client.cookies.clear()

        # the external login replaced the local session
        response = await client.get(f"{API}/auth/me", headers=bearer(local_token))
        assert response.json()["category"] == "session_expired"

    @pytest.mark.asyncio
    async def test_callback_without_state_cookie(self, client, provider):
        response = await client.get(f"{API}/auth/oidc/callback", params={"state": "x", "code": "good-code"})

        assert response.status_code == 400
        assert response.json()["detail"] == "State cookie not found"

    @pytest.mark.asyncio
    async def test_callback_state_mismatch(self, client, provider):
        client.cookies.set("oidc_state", "expected-state")

        response = await client.get(f"{API}/auth/oidc/callback", params={"state": "forged", "code": "good-code"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid state parameter"
        assert provider.codes == []

    @pytest.mark.asyncio
    async def test_callback_without_code(self, client, provider):
        client.cookies.set("oidc_state", "s")

        response = await client.get(f"{API}/auth/oidc/callback", params={"state": "s"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Authorization code not found"
