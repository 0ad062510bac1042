import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        access_token_secret: str,
        refresh_token_secret: str,
        access_token_ttl_secs: int,
        refresh_token_ttl_secs: int,
        frontend_origin: str,
        default_locale: str,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.access_token_secret = access_token_secret
        self.refresh_token_secret = refresh_token_secret
        self.access_token_ttl_secs = access_token_ttl_secs
        self.refresh_token_ttl_secs = refresh_token_ttl_secs
        self.frontend_origin = frontend_origin
        self.default_locale = default_locale
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("TRACKER_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "tracker.db"
    database_url = os.getenv("TRACKER_DATABASE_URL", f"sqlite:///{default_db}")
    access_token_secret = os.getenv(
        "TRACKER_ACCESS_TOKEN_SECRET",
        "5f0c1d9a8e6b4c2f93a7d18e44b0c6a2e9f1b3d5c7a9e2f4b6d8a0c2e4f6a8b0",
    )
    refresh_token_secret = os.getenv(
        "TRACKER_REFRESH_TOKEN_SECRET",
        "c83e5a1f0b9d7e2a46c8f1b3d5e7a9c0b2d4f6a8c1e3b5d7f9a2c4e6b8d0f1a3",
    )
    access_token_ttl_secs = int(os.getenv("TRACKER_ACCESS_TOKEN_TTL_SECS", "900"))
    refresh_token_ttl_secs = int(
        os.getenv("TRACKER_REFRESH_TOKEN_TTL_SECS", str(7 * 24 * 3600))
    )
    frontend_origin = os.getenv("TRACKER_FRONTEND_ORIGIN", "http://localhost:3000")
    default_locale = os.getenv("TRACKER_DEFAULT_LOCALE", "vi").lower()
    if default_locale not in ("vi", "en"):
        default_locale = "vi"
    log_level = os.getenv("TRACKER_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        access_token_secret=access_token_secret,
        refresh_token_secret=refresh_token_secret,
        access_token_ttl_secs=access_token_ttl_secs,
        refresh_token_ttl_secs=refresh_token_ttl_secs,
        frontend_origin=frontend_origin,
        default_locale=default_locale,
        log_level=log_level,
    )
