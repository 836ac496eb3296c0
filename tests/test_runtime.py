import asyncio

import httpx

from app.runtime import PlayerRuntime
from app.state.ui_state import SearchPopup
from config.settings import Settings
from conftest import FakeOAuth, run, token
from services.session import Session

API = "https://api.spotify.com/v1"


def _track(name):
    return {"added_at": "", "track": {"id": name, "name": name, "artists": [], "album": {}}}


def _handler(request):
    path = request.url.path
    if path == "/v1/me/player":
        return httpx.Response(
            200,
            json={"is_playing": True, "shuffle_state": False, "repeat_state": "off"},
        )
    if path == "/v1/playlists/p1":
        return httpx.Response(
            200,
            json={
                "id": "p1",
                "name": "Mix",
                "tracks": {"items": [_track("a")], "next": f"{API}/playlists/p1/tracks?offset=1"},
            },
        )
    if path == "/v1/playlists/p1/tracks":
        return httpx.Response(200, json={"items": [_track("b")], "next": None})
    return httpx.Response(404, text="unexpected")


def _runtime():
    settings = Settings(
        client_id="cid",
        scopes=[],
        refresh_token="refresh",
        playback_refresh_interval=0.01,
        default_playlist_id="p1",
    )
    runtime = PlayerRuntime(
        settings,
        oauth=FakeOAuth(token()),
        transport=httpx.MockTransport(_handler),
    )
    runtime._start_input_thread = lambda: None
    return runtime


async def _wait_for(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        assert asyncio.get_running_loop().time() < deadline, "condition not reached"
        await asyncio.sleep(0.01)


def test_runtime_loads_state_and_stops_on_quit():
    runtime = _runtime()

    def loaded():
        with runtime.state.read() as state:
            return bool(state.current_playlist_tracks) and state.playback_context is not None

    async def scenario():
        task = asyncio.ensure_future(runtime.run())
        await _wait_for(loaded)
        runtime.handle_input("search_context_tracks")
        runtime.handle_input("/b")
        runtime.handle_input("not-a-command")
        runtime.handle_input("quit")
        await asyncio.wait_for(task, timeout=2)

    run(scenario())

    with runtime.state.read() as state:
        assert [t.track.name for t in state.current_playlist_tracks] == ["a", "b"]
        assert state.playback_context.is_playing is True
        assert state.is_running is False
    with runtime.ui.lock() as ui:
        assert ui.popup == SearchPopup(query="b")
        assert ui.is_running is False
        assert [t.track.name for t in ui.filter_items(state.current_playlist_tracks)] == ["b"]


def test_emit_requires_running_runtime():
    runtime = _runtime()
    try:
        runtime.emit(None)
    except RuntimeError as exc:
        assert "not running" in str(exc)
    else:
        raise AssertionError("emit should fail before run()")


def test_refresh_delay_waits_until_expiry():
    runtime = _runtime()
    assert runtime.refresh_delay(None) == runtime.TOKEN_RETRY_DELAY
    assert runtime.refresh_delay(Session("a", expires_at=1100.0), now=1000.0) == 100.0


def test_refresh_delay_backs_off_for_expired_session():
    runtime = _runtime()
    session = Session("a", expires_at=1000.0)
    assert runtime.refresh_delay(session, now=1000.0) == runtime.TOKEN_RETRY_DELAY
    assert runtime.refresh_delay(session, now=5000.0) == runtime.TOKEN_RETRY_DELAY


def test_token_watcher_does_not_spin_on_short_lived_tokens():
    # Lifetime below the expiry margin: every new session is already expired.
    oauth = FakeOAuth(token(expires_in=5))
    runtime = PlayerRuntime(
        Settings(client_id="cid", scopes=[], refresh_token="refresh"),
        oauth=oauth,
        transport=httpx.MockTransport(_handler),
    )
    runtime.TOKEN_RETRY_DELAY = 0.05

    async def scenario():
        await runtime.session_manager.refresh()
        watcher = asyncio.ensure_future(runtime._watch_token())
        await asyncio.sleep(0.3)
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)
        await runtime.client.aclose()

    run(scenario())
    assert 2 <= len(oauth.calls) <= 15
