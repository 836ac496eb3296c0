"""Environment-driven configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _load_env_files() -> None:
    candidates = [Path.cwd() / ".env"]

    project_root = Path(__file__).resolve().parents[1]
    candidates.append(project_root / ".env")

    for path in candidates:
        if path.is_file():
            load_dotenv(path, override=False)


_load_env_files()


REQUIRED_SCOPES = (
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "playlist-read-private",
    "playlist-read-collaborative",
)

_DEFAULT_SCOPE_STRING = ",".join(REQUIRED_SCOPES)

_PLACEHOLDER_IDS = {
    "your_spotify_client_id",
    "<your_client_id>",
    "spotify_client_id_here",
}


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    """Immutable settings resolved from environment variables."""

    client_id: str
    scopes: List[str]
    redirect_port: int = 8765
    refresh_token: Optional[str] = None
    http_timeout: float = 20.0
    token_expiry_margin: int = 10
    playback_refresh_interval: float = 1.0
    fuzzy_search: bool = False
    fuzzy_min_score: float = 0.0
    default_playlist_id: Optional[str] = None

    @property
    def redirect_uri(self) -> str:
        return f"http://127.0.0.1:{self.redirect_port}/callback"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration from environment variables."""
        client_id = os.getenv("SPOTIFY_CLIENT_ID", "")
        # Treat common placeholder values as missing so startup fails clearly
        if client_id.strip().lower() in _PLACEHOLDER_IDS:
            client_id = ""
        raw_scopes = os.getenv("SPOTIFY_SCOPES", _DEFAULT_SCOPE_STRING)
        scopes: List[str] = []
        for scope in raw_scopes.split(","):
            cleaned = scope.strip()
            if cleaned and cleaned not in scopes:
                scopes.append(cleaned)
        for required in REQUIRED_SCOPES:
            if required not in scopes:
                scopes.append(required)
        redirect_port = int(os.getenv("SPOTIFY_REDIRECT_PORT", "8765"))
        http_timeout = float(os.getenv("HTTP_TIMEOUT", "20"))
        token_expiry_margin = int(os.getenv("TOKEN_EXPIRY_MARGIN", "10"))
        playback_refresh_interval = float(
            os.getenv("PLAYBACK_REFRESH_INTERVAL", "1.0")
        )
        fuzzy_search = os.getenv("FUZZY_SEARCH", "false").lower() == "true"
        fuzzy_min_score = float(os.getenv("FUZZY_MIN_SCORE", "0"))
        return cls(
            client_id=client_id.strip(),
            scopes=scopes,
            redirect_port=redirect_port,
            refresh_token=_optional("SPOTIFY_REFRESH_TOKEN"),
            http_timeout=http_timeout,
            token_expiry_margin=token_expiry_margin,
            playback_refresh_interval=playback_refresh_interval,
            fuzzy_search=fuzzy_search,
            fuzzy_min_score=fuzzy_min_score,
            default_playlist_id=_optional("DEFAULT_PLAYLIST_ID"),
        )


settings = Settings.from_env()

if settings.client_id:
    masked = settings.client_id[:6] + "..." if len(settings.client_id) > 6 else settings.client_id
    logger.debug("Detected SPOTIFY_CLIENT_ID (masked): %s", masked)
