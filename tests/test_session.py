import pytest

from conftest import FakeOAuth, run, token
from services.session import AuthFailure, Session, SessionManager
from services.spotify_auth import SpotifyAuthError


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_refresh_applies_expiry_margin():
    clock = FakeClock()
    manager = SessionManager(FakeOAuth(token(expires_in=3600)), "refresh", clock=clock)

    session = run(manager.refresh())

    assert session.expires_at == clock.now + 3590
    assert session.access_token == "abc"
    assert manager.session is session


def test_refresh_with_custom_margin():
    clock = FakeClock()
    manager = SessionManager(
        FakeOAuth(token(expires_in=3600)),
        "refresh",
        expiry_margin=60,
        clock=clock,
    )
    assert run(manager.refresh()).expires_at == clock.now + 3540


def test_refresh_without_access_token_raises_auth_failure():
    manager = SessionManager(FakeOAuth(token(access_token=None)), "refresh")
    with pytest.raises(AuthFailure):
        run(manager.refresh())
    assert manager.session is None


def test_refresh_wraps_oauth_errors():
    manager = SessionManager(FakeOAuth(SpotifyAuthError("400 bad request")), "refresh")
    with pytest.raises(AuthFailure, match="400 bad request"):
        run(manager.refresh())


def test_refresh_without_credentials_fails():
    manager = SessionManager(FakeOAuth(token()), None)
    with pytest.raises(AuthFailure):
        run(manager.refresh())


def test_interactive_authorize_used_when_no_refresh_token():
    oauth = FakeOAuth(token(access_token="second"))
    calls = []

    async def authorize():
        calls.append(True)
        return token(access_token="first", refresh_token="from-browser")

    manager = SessionManager(oauth, None, authorize=authorize)
    session = run(manager.refresh())

    assert session.access_token == "first"
    assert session.refresh_token == "from-browser"
    assert calls == [True]

    # Later refreshes use the refresh token obtained interactively.
    assert run(manager.refresh()).access_token == "second"
    assert oauth.calls == ["from-browser"]


def test_access_token_refreshes_lazily_once_expired():
    clock = FakeClock()
    oauth = FakeOAuth(token(access_token="one"), token(access_token="two"))
    manager = SessionManager(oauth, "refresh", clock=clock)

    assert run(manager.access_token()) == "one"
    clock.now += 3000
    assert run(manager.access_token()) == "one"
    clock.now += 590
    assert run(manager.access_token()) == "two"
    assert len(oauth.calls) == 2


def test_authorization_header_uses_bearer_scheme():
    manager = SessionManager(FakeOAuth(token(access_token="xyz")), "refresh")
    assert run(manager.authorization_header()) == "Bearer xyz"


def test_session_validity_is_strict():
    session = Session(access_token="a", expires_at=100.0)
    assert session.is_valid(99.9)
    assert not session.is_valid(100.0)
