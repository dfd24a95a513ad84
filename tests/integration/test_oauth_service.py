"""HttpxOAuthService against a respx-mocked Auth API."""

import httpx
import pytest

from services_kit.core.oauth import (
    AuthAPIError,
    ConfirmEditAccountResponse,
    EditAccountResponse,
    HttpClientConfig,
    HttpxOAuthService,
    InvalidResponseCodeError,
    MissingResponseValueError,
    NetworkError,
)
from services_kit.core.oauth.constants import OAuthClientDefaults
from services_kit.core.oauth.http_client import AsyncRetryTransport, build_async_client
from tests.fixtures.mock_http import AUTH_BASE_URL, auth_error, code_redirect, session_redirect
from tests.fixtures.oauth import TEST_JWKS, make_token_response


@pytest.mark.integration
class TestAuthorize:
    async def test_returns_session_cookie(self, oauth_service, mock_auth_api):
        route = mock_auth_api.get("/api/auth/v2/authorize").mock(
            return_value=session_redirect("session-42")
        )

        session_id = await oauth_service.authorize("challenge-abc")

        assert session_id == "session-42"
        params = route.calls.last.request.url.params
        assert params["code_challenge"] == "challenge-abc"
        assert params["code_challenge_method"] == "S256"
        assert params["response_type"] == "code"
        assert params["client_id"] == OAuthClientDefaults.CLIENT_ID
        assert params["redirect_uri"] == OAuthClientDefaults.REDIRECT_URI
        assert params["scope"] == "privacypro"

    async def test_session_cookie_among_others(self, oauth_service, mock_auth_api):
        mock_auth_api.get("/api/auth/v2/authorize").mock(
            return_value=httpx.Response(
                302,
                headers=[
                    ("Set-Cookie", "other=1; Path=/"),
                    (
                        "Set-Cookie",
                        "ddg_auth_session_id=abc; Path=/api/auth/v2/; HttpOnly; Secure",
                    ),
                ],
            )
        )

        assert await oauth_service.authorize("challenge") == "abc"

    async def test_missing_cookie(self, oauth_service, mock_auth_api):
        mock_auth_api.get("/api/auth/v2/authorize").mock(return_value=httpx.Response(302))

        with pytest.raises(MissingResponseValueError):
            await oauth_service.authorize("challenge")

    async def test_error_body(self, oauth_service, mock_auth_api):
        mock_auth_api.get("/api/auth/v2/authorize").mock(
            return_value=auth_error(400, "invalid_authorization_request")
        )

        with pytest.raises(AuthAPIError) as exc_info:
            await oauth_service.authorize("challenge")

        assert exc_info.value.code == "invalid_authorization_request"
        assert "required parameters" in exc_info.value.description

    async def test_error_status_without_body(self, oauth_service, mock_auth_api):
        mock_auth_api.get("/api/auth/v2/authorize").mock(
            return_value=httpx.Response(400, text="oops")
        )

        with pytest.raises(MissingResponseValueError):
            await oauth_service.authorize("challenge")

    async def test_unexpected_status(self, oauth_service, mock_auth_api):
        mock_auth_api.get("/api/auth/v2/authorize").mock(return_value=httpx.Response(200))

        with pytest.raises(InvalidResponseCodeError) as exc_info:
            await oauth_service.authorize("challenge")

        assert exc_info.value.status_code == 200

    async def test_network_error(self, oauth_service, mock_auth_api):
        mock_auth_api.get("/api/auth/v2/authorize").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(NetworkError) as exc_info:
            await oauth_service.authorize("challenge")

        assert "connection refused" in exc_info.value.reason


@pytest.mark.integration
class TestAuthorizationCodes:
    async def test_create_account_sends_session_cookie(self, oauth_service, mock_auth_api):
        route = mock_auth_api.post("/api/auth/v2/account/create").mock(
            return_value=code_redirect("code-1")
        )

        assert await oauth_service.create_account("session-42") == "code-1"
        assert route.calls.last.request.headers["Cookie"] == "ddg_auth_session_id=session-42"

    async def test_redirect_without_code(self, oauth_service, mock_auth_api):
        mock_auth_api.post("/api/auth/v2/account/create").mock(
            return_value=httpx.Response(302, headers={"Location": "com.duckduckgo:/authcb"})
        )

        with pytest.raises(MissingResponseValueError):
            await oauth_service.create_account("session-42")

    async def test_account_create_failure(self, oauth_service, mock_auth_api):
        mock_auth_api.post("/api/auth/v2/account/create").mock(
            return_value=auth_error(500, "account_create_failed")
        )

        with pytest.raises(AuthAPIError) as exc_info:
            await oauth_service.create_account("session-42")

        assert exc_info.value.code == "account_create_failed"

    async def test_otp_flow(self, oauth_service, mock_auth_api):
        otp_route = mock_auth_api.post("/api/auth/v2/otp").mock(return_value=httpx.Response(200))
        login_route = mock_auth_api.post("/api/auth/v2/login").mock(
            return_value=code_redirect("code-otp")
        )

        await oauth_service.request_otp("session-42", "user@example.com")
        code = await oauth_service.login_with_otp("session-42", "user@example.com", "123456")

        assert code == "code-otp"
        assert otp_route.calls.last.request.url.params["email"] == "user@example.com"
        params = login_route.calls.last.request.url.params
        assert params["method"] == "otp"
        assert params["otp"] == "123456"

    async def test_login_with_signature(self, oauth_service, mock_auth_api):
        route = mock_auth_api.post("/api/auth/v2/login").mock(
            return_value=code_redirect("code-sig")
        )

        assert await oauth_service.login_with_signature("session-42", "sig==") == "code-sig"
        params = route.calls.last.request.url.params
        assert params["method"] == "signature"
        assert params["signature"] == "sig=="
        assert params["source"] == "apple_store"

    async def test_exchange_sends_bearer_and_cookie(self, oauth_service, mock_auth_api):
        route = mock_auth_api.post("/api/auth/v2/exchange").mock(
            return_value=code_redirect("code-exchange")
        )

        assert await oauth_service.exchange_token("v1-token", "session-42") == "code-exchange"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer v1-token"
        assert request.headers["Cookie"] == "ddg_auth_session_id=session-42"

    async def test_exchange_unauthorized(self, oauth_service, mock_auth_api):
        mock_auth_api.post("/api/auth/v2/exchange").mock(
            return_value=auth_error(401, "invalid_token")
        )

        with pytest.raises(AuthAPIError) as exc_info:
            await oauth_service.exchange_token("v1-token", "session-42")

        assert exc_info.value.code == "invalid_token"


@pytest.mark.integration
class TestTokens:
    async def test_get_access_token(self, oauth_service, mock_auth_api):
        tokens = make_token_response()
        route = mock_auth_api.get("/api/auth/v2/token").mock(
            return_value=httpx.Response(
                200,
                json={"access_token": tokens.access_token, "refresh_token": tokens.refresh_token},
            )
        )

        response = await oauth_service.get_access_token(
            "client", "verifier", "code-1", "com.duckduckgo:/authcb"
        )

        assert response == tokens
        params = route.calls.last.request.url.params
        assert params["grant_type"] == "authorization_code"
        assert params["code_verifier"] == "verifier"
        assert params["code"] == "code-1"

    async def test_refresh_with_dead_token(self, oauth_service, mock_auth_api):
        route = mock_auth_api.get("/api/auth/v2/token").mock(
            return_value=auth_error(400, "invalid_token_request")
        )

        with pytest.raises(AuthAPIError) as exc_info:
            await oauth_service.refresh_access_token("client", "refresh-1")

        assert exc_info.value.code == "invalid_token_request"
        params = route.calls.last.request.url.params
        assert params["grant_type"] == "refresh_token"
        assert params["refresh_token"] == "refresh-1"

    async def test_token_body_missing_field(self, oauth_service, mock_auth_api):
        mock_auth_api.get("/api/auth/v2/token").mock(
            return_value=httpx.Response(200, json={"access_token": "only-access"})
        )

        with pytest.raises(MissingResponseValueError) as exc_info:
            await oauth_service.refresh_access_token("client", "refresh-1")

        assert exc_info.value.value_name == "refresh_token"

    async def test_logout(self, oauth_service, mock_auth_api):
        route = mock_auth_api.post("/api/auth/v2/logout").mock(return_value=httpx.Response(200))

        await oauth_service.logout("access-1")

        assert route.calls.last.request.headers["Authorization"] == "Bearer access-1"

    async def test_jwks(self, oauth_service, mock_auth_api):
        mock_auth_api.get("/api/auth/v2/.well-known/jwks.json").mock(
            return_value=httpx.Response(200, json=TEST_JWKS)
        )

        assert await oauth_service.get_signing_keys() == TEST_JWKS

    async def test_jwks_without_keys(self, oauth_service, mock_auth_api):
        mock_auth_api.get("/api/auth/v2/.well-known/jwks.json").mock(
            return_value=httpx.Response(200, json={"issuer": "me"})
        )

        with pytest.raises(MissingResponseValueError):
            await oauth_service.get_signing_keys()


@pytest.mark.integration
class TestAccountEdit:
    async def test_edit_sends_email_and_bearer(self, oauth_service, mock_auth_api):
        route = mock_auth_api.post("/api/auth/v2/account/edit").mock(
            return_value=httpx.Response(200, json={"status": "confirm", "hash": "h1"})
        )

        response = await oauth_service.edit_account("client", "access-1", "new@example.com")

        assert response == EditAccountResponse(status="confirm", hash="h1")
        request = route.calls.last.request
        assert request.url.params["email"] == "new@example.com"
        assert request.headers["Authorization"] == "Bearer access-1"

    async def test_edit_without_email(self, oauth_service, mock_auth_api):
        route = mock_auth_api.post("/api/auth/v2/account/edit").mock(
            return_value=httpx.Response(200, json={"status": "confirm", "hash": "h1"})
        )

        await oauth_service.edit_account("client", "access-1", None)

        assert "email" not in route.calls.last.request.url.params

    @pytest.mark.parametrize(
        "status_code, code",
        [(401, "invalid_token"), (500, "failed_mx_check")],
    )
    async def test_edit_error_body(self, oauth_service, mock_auth_api, status_code, code):
        mock_auth_api.post("/api/auth/v2/account/edit").mock(
            return_value=auth_error(status_code, code)
        )

        with pytest.raises(AuthAPIError) as exc_info:
            await oauth_service.edit_account("client", "access-1", "new@example.com")

        assert exc_info.value.code == code

    async def test_edit_bad_request_is_unexpected(self, oauth_service, mock_auth_api):
        mock_auth_api.post("/api/auth/v2/account/edit").mock(
            return_value=auth_error(400, "invalid_request")
        )

        with pytest.raises(InvalidResponseCodeError):
            await oauth_service.edit_account("client", "access-1", "new@example.com")

    async def test_edit_without_hash(self, oauth_service, mock_auth_api):
        mock_auth_api.post("/api/auth/v2/account/edit").mock(
            return_value=httpx.Response(200, json={"status": "confirm"})
        )

        with pytest.raises(MissingResponseValueError) as exc_info:
            await oauth_service.edit_account("client", "access-1", "new@example.com")

        assert exc_info.value.value_name == "hash"

    async def test_confirm_sends_hash_and_otp(self, oauth_service, mock_auth_api):
        route = mock_auth_api.get("/api/auth/v2/account/edit/confirm").mock(
            return_value=httpx.Response(
                200, json={"status": "confirmed", "email": "new@example.com"}
            )
        )

        response = await oauth_service.confirm_edit_account(
            "access-1", "new@example.com", "h1", "123456"
        )

        assert response == ConfirmEditAccountResponse(
            status="confirmed", email="new@example.com"
        )
        request = route.calls.last.request
        assert dict(request.url.params) == {
            "email": "new@example.com",
            "hash": "h1",
            "otp": "123456",
        }
        assert request.headers["Authorization"] == "Bearer access-1"


@pytest.fixture
async def retrying_service(auth_config, monkeypatch):
    """HttpxOAuthService over the default transport settings, without backoff sleeps."""
    monkeypatch.setattr(AsyncRetryTransport, "backoff", lambda self, attempt: 0)
    client = build_async_client(AUTH_BASE_URL, HttpClientConfig())
    yield HttpxOAuthService(client, auth_config)
    await client.aclose()


@pytest.mark.integration
class TestRetryPolicy:
    async def test_refresh_is_sent_once(self, retrying_service, mock_auth_api):
        route = mock_auth_api.get("/api/auth/v2/token").mock(
            side_effect=[httpx.ReadTimeout("lost"), auth_error(400, "invalid_token_request")]
        )

        with pytest.raises(NetworkError):
            await retrying_service.refresh_access_token("client", "refresh-1")

        assert route.call_count == 1

    async def test_code_exchange_is_sent_once(self, retrying_service, mock_auth_api):
        route = mock_auth_api.get("/api/auth/v2/token").mock(
            side_effect=[httpx.Response(503), auth_error(400, "invalid_token_request")]
        )

        with pytest.raises(InvalidResponseCodeError) as exc_info:
            await retrying_service.get_access_token(
                "client", "verifier", "code-1", "com.duckduckgo:/authcb"
            )

        assert exc_info.value.status_code == 503
        assert route.call_count == 1

    async def test_account_create_is_posted_once(self, retrying_service, mock_auth_api):
        route = mock_auth_api.post("/api/auth/v2/account/create").mock(
            side_effect=[httpx.ReadTimeout("lost"), code_redirect("code-2")]
        )

        with pytest.raises(NetworkError):
            await retrying_service.create_account("session-1")

        assert route.call_count == 1

    async def test_confirm_edit_is_sent_once(self, retrying_service, mock_auth_api):
        route = mock_auth_api.get("/api/auth/v2/account/edit/confirm").mock(
            side_effect=[
                httpx.ReadTimeout("lost"),
                httpx.Response(200, json={"status": "confirmed", "email": "a@b.co"}),
            ]
        )

        with pytest.raises(NetworkError):
            await retrying_service.confirm_edit_account("access-1", "a@b.co", "h1", "123456")

        assert route.call_count == 1

    async def test_signing_keys_are_retried(self, retrying_service, mock_auth_api):
        route = mock_auth_api.get("/api/auth/v2/.well-known/jwks.json").mock(
            side_effect=[httpx.ReadTimeout("lost"), httpx.Response(200, json=TEST_JWKS)]
        )

        assert await retrying_service.get_signing_keys() == TEST_JWKS
        assert route.call_count == 2

    async def test_unreached_server_is_retried_for_post(self, retrying_service, mock_auth_api):
        route = mock_auth_api.post("/api/auth/v2/account/create").mock(
            side_effect=[httpx.ConnectError("refused"), code_redirect("code-2")]
        )

        assert await retrying_service.create_account("session-1") == "code-2"
        assert route.call_count == 2
