"""DefaultOAuthClient over HttpxOAuthService, with the Auth API mocked by respx."""

import time

import httpx
import pytest

from services_kit.core.oauth import (
    DefaultOAuthClient,
    HttpClientConfig,
    HttpxOAuthService,
    InMemoryLegacyTokenStorage,
    InMemoryTokenStorage,
    NetworkError,
    RefreshTokenExpiredError,
    TokensCachePolicy,
)
from services_kit.core.oauth.http_client import AsyncRetryTransport, build_async_client
from services_kit.core.oauth.pkce import code_challenge_for
from tests.fixtures.mock_http import AUTH_BASE_URL, auth_error, code_redirect, session_redirect
from tests.fixtures.oauth import TEST_JWKS, make_container, make_token_response


def token_body(response):
    return {"access_token": response.access_token, "refresh_token": response.refresh_token}


@pytest.fixture
def storage():
    return InMemoryTokenStorage()


@pytest.fixture
def client(oauth_service, storage, auth_config):
    return DefaultOAuthClient(
        token_storage=storage,
        auth_service=oauth_service,
        legacy_token_storage=InMemoryLegacyTokenStorage(),
        config=auth_config,
    )


@pytest.fixture
def jwks_route(mock_auth_api):
    return mock_auth_api.get("/api/auth/v2/.well-known/jwks.json").mock(
        return_value=httpx.Response(200, json=TEST_JWKS)
    )


@pytest.mark.integration
class TestAccountCreation:
    async def test_create_if_needed_runs_full_flow(
        self, client, storage, mock_auth_api, jwks_route
    ):
        issued = make_token_response()
        authorize = mock_auth_api.get("/api/auth/v2/authorize").mock(
            return_value=session_redirect("session-7")
        )
        create = mock_auth_api.post("/api/auth/v2/account/create").mock(
            return_value=code_redirect("code-7")
        )
        token = mock_auth_api.get("/api/auth/v2/token").mock(
            return_value=httpx.Response(200, json=token_body(issued))
        )

        tokens = await client.get_tokens(TokensCachePolicy.CREATE_IF_NEEDED)

        assert tokens.access_token == issued.access_token
        assert storage.get() == tokens
        assert create.calls.last.request.headers["Cookie"] == "ddg_auth_session_id=session-7"

        # PKCE: the verifier sent to /token belongs to the challenge sent to /authorize
        challenge = authorize.calls.last.request.url.params["code_challenge"]
        token_params = token.calls.last.request.url.params
        assert token_params["code"] == "code-7"
        assert code_challenge_for(token_params["code_verifier"]) == challenge
        assert jwks_route.called


@pytest.mark.integration
class TestRefresh:
    async def test_expired_tokens_are_refreshed(self, client, storage, mock_auth_api, jwks_route):
        stored = make_container(access_exp=int(time.time()) - 10)
        storage.set(stored)
        refreshed = make_token_response()
        token = mock_auth_api.get("/api/auth/v2/token").mock(
            return_value=httpx.Response(200, json=token_body(refreshed))
        )

        tokens = await client.get_tokens(TokensCachePolicy.LOCAL_VALID)

        assert tokens.access_token == refreshed.access_token
        assert token.calls.last.request.url.params["refresh_token"] == stored.refresh_token
        assert storage.get() == tokens

    async def test_dead_refresh_token(self, client, storage, mock_auth_api, jwks_route):
        stored = make_container(access_exp=int(time.time()) - 10)
        storage.set(stored)
        mock_auth_api.get("/api/auth/v2/token").mock(
            return_value=auth_error(400, "invalid_token_request")
        )

        with pytest.raises(RefreshTokenExpiredError):
            await client.get_tokens(TokensCachePolicy.LOCAL_VALID)

        assert storage.get() == stored
        assert not jwks_route.called

    async def test_lost_refresh_is_not_resent(
        self, storage, auth_config, mock_auth_api, jwks_route, monkeypatch
    ):
        monkeypatch.setattr(AsyncRetryTransport, "backoff", lambda self, attempt: 0)
        http = build_async_client(AUTH_BASE_URL, HttpClientConfig())
        client = DefaultOAuthClient(
            token_storage=storage,
            auth_service=HttpxOAuthService(http, auth_config),
            legacy_token_storage=InMemoryLegacyTokenStorage(),
            config=auth_config,
        )
        stored = make_container(access_exp=int(time.time()) - 10)
        storage.set(stored)
        token = mock_auth_api.get("/api/auth/v2/token").mock(
            side_effect=[httpx.ReadTimeout("lost"), auth_error(400, "invalid_token_request")]
        )

        try:
            with pytest.raises(NetworkError):
                await client.get_tokens(TokensCachePolicy.LOCAL_VALID)
        finally:
            await http.aclose()

        assert token.call_count == 1
        assert storage.get() == stored
        assert not jwks_route.called


@pytest.mark.integration
class TestChangeAccount:
    async def test_email_change_refreshes_tokens(
        self, client, storage, mock_auth_api, jwks_route
    ):
        stored = make_container()
        storage.set(stored)
        edit = mock_auth_api.post("/api/auth/v2/account/edit").mock(
            return_value=httpx.Response(200, json={"status": "confirm", "hash": "h9"})
        )
        confirm = mock_auth_api.get("/api/auth/v2/account/edit/confirm").mock(
            return_value=httpx.Response(
                200, json={"status": "confirmed", "email": "new@example.com"}
            )
        )
        refreshed = make_token_response(email="new@example.com")
        mock_auth_api.get("/api/auth/v2/token").mock(
            return_value=httpx.Response(200, json=token_body(refreshed))
        )

        edit_hash = await client.change_account("new@example.com")
        tokens = await client.confirm_change_account("new@example.com", "123456", edit_hash)

        assert edit.calls.last.request.url.params["email"] == "new@example.com"
        assert confirm.calls.last.request.url.params["hash"] == "h9"
        assert tokens.email == "new@example.com"
        assert storage.get() == tokens


@pytest.mark.integration
class TestLogout:
    async def test_logout_revokes_on_server(self, client, storage, mock_auth_api):
        storage.set(make_container())
        route = mock_auth_api.post("/api/auth/v2/logout").mock(return_value=httpx.Response(200))

        await client.logout()

        assert route.called
        assert storage.get() is None
