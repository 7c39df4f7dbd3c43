from __future__ import annotations

import base64
from unittest.mock import MagicMock, patch

import requests

from auth_client import AUTH_TIMEOUT, TokenAuthenticator

AUTH_URL = "https://authz.example.edu/oauth/token"


def _session() -> MagicMock:
    session = MagicMock()
    session.headers = {"Accept": "application/json"}
    return session


def _token_response(status: int = 200, body: object = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.json.return_value = {"access_token": "abc123", "expires_in": 3600} if body is None else body
    return response


def _authenticator(user: str = "client", secret: str = "s3cret") -> TokenAuthenticator:
    return TokenAuthenticator(
        auth_session=_session(),
        api_session=_session(),
        auth_url=AUTH_URL,
        user=user,
        secret=secret,
    )


def test_authenticate_success_installs_bearer_token() -> None:
    auth = _authenticator()
    auth.auth_session.get.return_value = _token_response()

    with patch("auth_client.time.time", return_value=1000.0):
        assert auth.authenticate() is True

    assert auth.api_session.headers["Authorization"] == "Bearer abc123"
    assert auth.access_expiry == 4600.0
    auth.auth_session.get.assert_called_once()
    _, kwargs = auth.auth_session.get.call_args
    assert kwargs["params"] == {"grant_type": "client_credentials"}
    assert kwargs["timeout"] == AUTH_TIMEOUT


def test_authenticate_uses_basic_auth_from_credentials() -> None:
    auth = _authenticator(user="client", secret="s3cret")
    auth.auth_session.get.return_value = _token_response()

    auth.authenticate()

    expected = base64.b64encode(b"client:s3cret").decode("ascii")
    assert auth.auth_session.headers["Authorization"] == f"Basic {expected}"


def test_cached_token_skips_network_call() -> None:
    auth = _authenticator()
    auth.auth_session.get.return_value = _token_response()

    with patch("auth_client.time.time", return_value=1000.0):
        auth.authenticate()
        assert auth.authenticate() is True

    assert auth.auth_session.get.call_count == 1


def test_expired_token_is_cleared_and_refreshed() -> None:
    auth = _authenticator()
    auth.auth_session.get.side_effect = [
        _token_response(body={"access_token": "first", "expires_in": 60}),
        _token_response(body={"access_token": "second", "expires_in": 60}),
    ]

    with patch("auth_client.time.time", return_value=1000.0):
        auth.authenticate()
    with patch("auth_client.time.time", return_value=1060.0):
        assert auth.authenticate() is True

    assert auth.auth_session.get.call_count == 2
    assert auth.api_session.headers["Authorization"] == "Bearer second"


def test_expired_token_removes_header_when_refresh_fails() -> None:
    auth = _authenticator()
    auth.auth_session.get.side_effect = [
        _token_response(body={"access_token": "first", "expires_in": 60}),
        _token_response(status=500),
    ]

    with patch("auth_client.time.time", return_value=1000.0):
        auth.authenticate()
    with patch("auth_client.time.time", return_value=2000.0):
        assert auth.authenticate() is False

    assert "Authorization" not in auth.api_session.headers
    assert auth.access_token is None


def test_authenticate_force_ignores_cached_token() -> None:
    auth = _authenticator()
    auth.auth_session.get.side_effect = [
        _token_response(body={"access_token": "first", "expires_in": 3600}),
        _token_response(body={"access_token": "second", "expires_in": 3600}),
    ]

    auth.authenticate()
    assert auth.authenticate_force() is True

    assert auth.auth_session.get.call_count == 2
    assert auth.api_session.headers["Authorization"] == "Bearer second"


def test_empty_credentials_fail_without_request() -> None:
    auth = _authenticator(user="", secret="")

    assert auth.authenticate() is False
    auth.auth_session.get.assert_not_called()


def test_non_200_response_fails() -> None:
    auth = _authenticator()
    auth.auth_session.get.return_value = _token_response(status=401)

    assert auth.authenticate() is False
    assert "Authorization" not in auth.api_session.headers


def test_missing_access_token_fails() -> None:
    auth = _authenticator()
    auth.auth_session.get.return_value = _token_response(body={"expires_in": 3600})

    assert auth.authenticate() is False
    assert auth.access_token is None


def test_transport_error_fails() -> None:
    auth = _authenticator()
    auth.auth_session.get.side_effect = requests.ConnectTimeout("timed out")

    assert auth.authenticate() is False
