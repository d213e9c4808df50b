"""Tests for the Auth0 Management API client."""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
import requests

from user_admin.core.auth0 import client as client_module
from user_admin.core.auth0.client import Auth0Client, get_access_token
from user_admin.core.auth0.exceptions import Auth0APIError, TokenRequestError


def _response(status_code=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    resp.text = text
    return resp


@pytest.fixture
def token_post(monkeypatch):
    post = MagicMock(return_value=_response(payload={"access_token": "mgmt-token", "expires_in": 86400}))
    monkeypatch.setattr(client_module.requests, "post", post)
    return post


def test_default_audience_and_base_url():
    client = Auth0Client("https://tenant.eu.auth0.com/", "id", "secret")
    assert client.base_url == "https://tenant.eu.auth0.com"
    assert client.audience == "https://tenant.eu.auth0.com/api/v2/"


def test_authenticate_posts_client_credentials(token_post):
    client = Auth0Client("tenant.eu.auth0.com", "id", "secret")

    assert client.authenticate() == "mgmt-token"

    url = token_post.call_args.args[0]
    body = token_post.call_args.kwargs["json"]
    assert url == "https://tenant.eu.auth0.com/oauth/token"
    assert body["grant_type"] == "client_credentials"
    assert body["audience"] == "https://tenant.eu.auth0.com/api/v2/"
    assert token_post.call_args.kwargs["timeout"] == client_module.REQUEST_TIMEOUT


def test_token_is_reused_until_expiry(token_post, monkeypatch):
    get = MagicMock(return_value=_response(payload=[]))
    monkeypatch.setattr(client_module.requests, "get", get)
    client = Auth0Client("tenant.eu.auth0.com", "id", "secret")

    client.get("/api/v2/users")
    client.get("/api/v2/users")
    assert token_post.call_count == 1
    assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer mgmt-token"

    client._token_expires_at = datetime.now() + timedelta(seconds=5)
    client.get("/api/v2/users")
    assert token_post.call_count == 2


def test_http_error_raises_auth0_api_error(token_post, monkeypatch):
    monkeypatch.setattr(
        client_module.requests, "delete",
        MagicMock(return_value=_response(404, {"statusCode": 404, "message": "The user does not exist."})),
    )
    client = Auth0Client("tenant.eu.auth0.com", "id", "secret")

    with pytest.raises(Auth0APIError) as exc:
        client.delete("/api/v2/users/auth0%7C1")

    assert exc.value.status_code == 404
    assert exc.value.message == "The user does not exist."
    assert str(exc.value) == "[404] /api/v2/users/auth0%7C1: The user does not exist."


def test_error_message_falls_back_to_text(token_post, monkeypatch):
    resp = _response(500, text="upstream exploded")
    resp.json.side_effect = ValueError("not json")
    monkeypatch.setattr(client_module.requests, "get", MagicMock(return_value=resp))
    client = Auth0Client("tenant.eu.auth0.com", "id", "secret")

    with pytest.raises(Auth0APIError) as exc:
        client.get("/api/v2/users")
    assert exc.value.message == "upstream exploded"


def test_rejected_credentials_raise_token_request_error(monkeypatch):
    monkeypatch.setattr(
        client_module.requests, "post",
        MagicMock(return_value=_response(401, {"error": "access_denied", "error_description": "Unauthorized"})),
    )
    with pytest.raises(TokenRequestError) as exc:
        Auth0Client("tenant.eu.auth0.com", "id", "bad").authenticate()
    assert exc.value.message == "Unauthorized"


def test_unreachable_tenant_raises_token_request_error(monkeypatch):
    monkeypatch.setattr(
        client_module.requests, "post",
        MagicMock(side_effect=requests.ConnectionError("dns failure")),
    )
    with pytest.raises(TokenRequestError):
        get_access_token("tenant.eu.auth0.com", "id", "secret", "https://api")


def test_get_access_token_shape(monkeypatch):
    monkeypatch.setattr(
        client_module.requests, "post",
        MagicMock(return_value=_response(payload={"access_token": "abc", "expires_in": 7200, "scope": "x"})),
    )
    assert get_access_token("tenant.eu.auth0.com", "id", "secret", "https://api") == {
        "access_token": "abc",
        "token_type": "Bearer",
        "expires_in": 7200,
    }
