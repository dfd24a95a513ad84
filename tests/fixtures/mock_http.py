"""RESPX-based HTTP mocking fixtures for Auth API tests."""

import httpx
import pytest
import respx

from services_kit.core.oauth import HttpClientConfig, HttpxOAuthService, OAuthClientConfig
from services_kit.core.oauth.http_client import build_async_client

AUTH_BASE_URL = "https://auth.test"


@pytest.fixture
def auth_config():
    return OAuthClientConfig(base_url=AUTH_BASE_URL)


@pytest.fixture
def mock_auth_api():
    """Mock the Auth API base URL.

    Usage:
        def test_authorize(mock_auth_api):
            mock_auth_api.get("/api/auth/v2/authorize").mock(return_value=session_redirect("s"))
    """
    with respx.mock(base_url=AUTH_BASE_URL, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
async def http_client():
    """AsyncClient against the mocked base URL, without retries."""
    client = build_async_client(AUTH_BASE_URL, HttpClientConfig(max_retries=0))
    yield client
    await client.aclose()


@pytest.fixture
def oauth_service(http_client, auth_config):
    return HttpxOAuthService(http_client, auth_config)


# === Response builders ===


def session_redirect(session_id: str) -> httpx.Response:
    """``/authorize`` answer: 302 with the session cookie."""
    return httpx.Response(
        302,
        headers={
            "Location": "https://duckduckgo.com/login",
            "Set-Cookie": f"ddg_auth_session_id={session_id}; Path=/api/auth/v2/; HttpOnly; Secure",
        },
    )


def code_redirect(code: str) -> httpx.Response:
    """Login/create/exchange answer: 302 to the redirect URI carrying ``code``."""
    return httpx.Response(302, headers={"Location": f"com.duckduckgo:/authcb?code={code}"})


def auth_error(status_code: int, code: str) -> httpx.Response:
    return httpx.Response(status_code, json={"error": code})
