from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.controllers.auth_controller import AuthController, _AuthResult
from config.settings import Settings
from conftest import run
from services.spotify_auth import SpotifyAuthError, SpotifyOAuthClient


def _controller(exchanges):
    def handler(request):
        exchanges.append(parse_qs(request.content.decode()))
        return httpx.Response(200, json={"access_token": "a", "refresh_token": "r", "expires_in": 3600})

    oauth = SpotifyOAuthClient("cid", scopes=[], transport=httpx.MockTransport(handler))
    return AuthController(oauth, Settings(client_id="cid", scopes=[]))


def _redirect_with(state_for_url, code="code"):
    def callback(authorize_url):
        sent_state = parse_qs(urlparse(authorize_url).query)["state"][0]
        return _AuthResult(code=code, state=state_for_url(sent_state))

    return callback


def test_redirect_with_matching_state_is_exchanged():
    exchanges = []
    controller = _controller(exchanges)
    controller._await_browser_callback = _redirect_with(lambda sent: sent)

    response = run(controller.authorize())

    assert response.access_token == "a"
    assert exchanges[0]["code"] == ["code"]


def test_redirect_with_foreign_state_is_rejected():
    exchanges = []
    controller = _controller(exchanges)
    controller._await_browser_callback = _redirect_with(lambda sent: "forged")

    with pytest.raises(SpotifyAuthError, match="state mismatch"):
        run(controller.authorize())
    assert exchanges == []


def test_redirect_without_state_is_rejected():
    with pytest.raises(SpotifyAuthError, match="state mismatch"):
        AuthController._validate_callback(_AuthResult(code="code"), "expected")


def test_redirect_error_is_reported():
    with pytest.raises(SpotifyAuthError, match="access_denied"):
        AuthController._validate_callback(_AuthResult(error="access_denied"), "expected")


def test_redirect_without_code_is_rejected():
    with pytest.raises(SpotifyAuthError, match="code not received"):
        AuthController._validate_callback(_AuthResult(state="expected"), "expected")
