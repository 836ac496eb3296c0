import os

from config.settings import REQUIRED_SCOPES, Settings

_ENV_KEYS = (
    "SPOTIFY_CLIENT_ID",
    "SPOTIFY_SCOPES",
    "SPOTIFY_REFRESH_TOKEN",
    "SPOTIFY_REDIRECT_PORT",
    "HTTP_TIMEOUT",
    "TOKEN_EXPIRY_MARGIN",
    "PLAYBACK_REFRESH_INTERVAL",
    "FUZZY_SEARCH",
    "FUZZY_MIN_SCORE",
    "DEFAULT_PLAYLIST_ID",
)


def _clear(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(monkeypatch):
    _clear(monkeypatch)
    settings = Settings.from_env()
    assert settings.client_id == ""
    assert settings.refresh_token is None
    assert settings.http_timeout == 20.0
    assert settings.token_expiry_margin == 10
    assert settings.fuzzy_search is False
    assert settings.redirect_uri == "http://127.0.0.1:8765/callback"
    assert list(REQUIRED_SCOPES) == settings.scopes


def test_placeholder_client_id_is_treated_as_missing(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "your_spotify_client_id")
    assert Settings.from_env().client_id == ""


def test_scopes_are_deduplicated_and_completed(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("SPOTIFY_SCOPES", "user-library-read, user-library-read,user-read-playback-state")
    scopes = Settings.from_env().scopes
    assert scopes[0] == "user-library-read"
    assert scopes.count("user-library-read") == 1
    assert all(scope in scopes for scope in REQUIRED_SCOPES)


def test_overrides(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "abc123456")
    monkeypatch.setenv("SPOTIFY_REFRESH_TOKEN", "tok")
    monkeypatch.setenv("HTTP_TIMEOUT", "5.5")
    monkeypatch.setenv("TOKEN_EXPIRY_MARGIN", "30")
    monkeypatch.setenv("FUZZY_SEARCH", "TRUE")
    monkeypatch.setenv("FUZZY_MIN_SCORE", "0.4")
    monkeypatch.setenv("DEFAULT_PLAYLIST_ID", "p1")
    settings = Settings.from_env()
    assert settings.client_id == "abc123456"
    assert settings.refresh_token == "tok"
    assert settings.http_timeout == 5.5
    assert settings.token_expiry_margin == 30
    assert settings.fuzzy_search is True
    assert settings.fuzzy_min_score == 0.4
    assert settings.default_playlist_id == "p1"


def test_env_file_does_not_override_process_environment(monkeypatch, tmp_path):
    import main

    env_file = tmp_path / "custom.env"
    env_file.write_text("SPOTIFY_CLIENT_ID=from-file\nPLAYER_ONLY_IN_FILE=yes\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ENV_FILE", str(env_file))
    monkeypatch.setenv("ENV_SOURCES", "")
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "from-process")
    monkeypatch.setenv("PLAYER_ONLY_IN_FILE", "")
    monkeypatch.delenv("PLAYER_ONLY_IN_FILE")

    main.load_environment()

    assert os.environ["SPOTIFY_CLIENT_ID"] == "from-process"
    assert os.environ["PLAYER_ONLY_IN_FILE"] == "yes"
    assert str(env_file) in os.environ["ENV_SOURCES"]
