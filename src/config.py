import os
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from src.domain.exceptions import ConfigError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_LOG_LEVEL = "info"
# The sync job runs every other week.
DEFAULT_SYNC_INTERVAL_SECONDS = 14 * 24 * 60 * 60


class Settings(BaseModel):
    """
    Process configuration read from the environment (or a .env file).
    DATABASE_URL and GITHUB_TOKEN are mandatory; everything else has a default.
    """
    model_config = ConfigDict(frozen=True)

    database_url: str
    github_token: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL
    log_dir: Optional[str] = None
    ca_file: Optional[str] = None
    sync_interval_seconds: int = DEFAULT_SYNC_INTERVAL_SECONDS
    # None means "wait until next Sunday".
    sync_initial_delay_seconds: Optional[int] = None

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """
        Loads settings from environment variables.

        Raises:
            ConfigError: If a mandatory variable is missing or a number is malformed.
        """
        if dotenv:
            load_dotenv()

        db_url = os.getenv("DATABASE_URL")
        github_token = os.getenv("GITHUB_TOKEN")

        if not db_url:
            raise ConfigError("DATABASE_URL is required")

        if not github_token:
            raise ConfigError("GITHUB_TOKEN is required")

        return cls(
            database_url=normalize_database_url(db_url),
            github_token=github_token,
            host=os.getenv("HOST") or DEFAULT_HOST,
            port=_int_env("PORT", DEFAULT_PORT),
            log_level=(os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).lower(),
            log_dir=os.getenv("LOG_DIR") or None,
            ca_file=os.getenv("CA_FILE") or None,
            sync_interval_seconds=_int_env("SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SECONDS),
            sync_initial_delay_seconds=_int_env("SYNC_INITIAL_DELAY_SECONDS", None),
        )


def normalize_database_url(db_url: str) -> str:
    """Points plain postgres URLs at the asyncpg driver."""
    for prefix in ("postgresql://", "postgres://"):
        if db_url.startswith(prefix):
            return "postgresql+asyncpg://" + db_url[len(prefix):]
    return db_url


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value
