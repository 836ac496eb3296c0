"""Entry point for the Spotify player engine."""

import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def load_environment() -> None:
    """Load environment variables from common locations."""

    candidates: list[Path] = []

    override = os.getenv("ENV_FILE")
    if override:
        candidates.append(Path(override).expanduser())

    module_dir = Path(__file__).resolve().parent
    cwd = Path.cwd()

    candidates.extend(
        [
            module_dir / ".env",
            cwd / ".env",
        ]
    )

    loaded_paths: list[Path] = []
    seen: set[Path] = set()
    for candidate in candidates:
        if candidate in seen:
            continue
        seen.add(candidate)
        if candidate.exists():
            load_dotenv(candidate, override=False)
            loaded_paths.append(candidate)

    if not loaded_paths:
        load_dotenv()
    # Persist sources for later logging after logging is configured
    if loaded_paths:
        os.environ["ENV_SOURCES"] = ",".join(str(p) for p in loaded_paths)
    else:
        os.environ.pop("ENV_SOURCES", None)


def _default_log_directory() -> Path:
    """Determine the directory where log files should be written."""
    env_override = os.getenv("LOG_DIR")
    if env_override:
        return Path(env_override).expanduser()
    return Path.cwd() / "logs"


def configure_logging() -> None:
    """Configure logging levels for the application and dependencies."""
    log_level = os.getenv("LOG_LEVEL", "WARNING").upper()

    log_dir = _default_log_directory()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "app.log"

    handlers: list[logging.Handler] = [
        logging.FileHandler(log_file, encoding="utf-8")
    ]

    console_pref = os.getenv("ENABLE_CONSOLE_LOGS", "true")
    enable_console = console_pref.strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }
    if enable_console and sys.stderr is not None:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )

    http_info_level = os.getenv("HTTP_LOG_LEVEL", "WARNING").upper()
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(
            getattr(logging, http_info_level, logging.WARNING)
        )


def main() -> int:
    """Run the player until the user quits."""
    load_environment()
    configure_logging()

    logger = logging.getLogger(__name__)
    env_sources = os.getenv("ENV_SOURCES")
    if env_sources:
        logger.info("Loaded environment from: %s", env_sources)
    else:
        logger.info("No project .env file found; using process environment only")

    from app import PlayerRuntime
    from config.settings import Settings
    from services.spotify_auth import SpotifyAuthError

    try:
        runtime = PlayerRuntime(Settings.from_env())
        asyncio.run(runtime.run())
    except SpotifyAuthError as exc:
        logger.error("Unable to authenticate with Spotify: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
