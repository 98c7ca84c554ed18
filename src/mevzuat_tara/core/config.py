from __future__ import annotations

from dataclasses import dataclass

from .utils import env, env_float, env_int

DEFAULT_API_BASE_URL = "https://app.mevzuatgpt.org"
DEFAULT_SCRAPER_BASE_URL = "http://localhost:8000"
DEFAULT_STREAM_BASE_URL = "http://localhost:3000"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, normally read from MEVZUAT_* environment variables."""

    api_base_url: str = DEFAULT_API_BASE_URL
    scraper_base_url: str = DEFAULT_SCRAPER_BASE_URL
    stream_base_url: str = DEFAULT_STREAM_BASE_URL
    timeout: float = 30.0
    stream_timeout: float | None = None
    page_size: int = 1000
    grace_attempts: int = 15
    grace_interval: float = 1.0
    query_type: str = "kaysis"

    @classmethod
    def from_env(cls) -> "Settings":
        stream_timeout = env("MEVZUAT_STREAM_TIMEOUT", "")
        return cls(
            api_base_url=env("MEVZUAT_API_BASE_URL", DEFAULT_API_BASE_URL),
            scraper_base_url=env("MEVZUAT_SCRAPER_BASE_URL", DEFAULT_SCRAPER_BASE_URL),
            stream_base_url=env("MEVZUAT_STREAM_BASE_URL", DEFAULT_STREAM_BASE_URL),
            timeout=env_float("MEVZUAT_HTTP_TIMEOUT", 30.0),
            stream_timeout=float(stream_timeout) if stream_timeout else None,
            page_size=env_int("MEVZUAT_PAGE_SIZE", 1000),
            grace_attempts=env_int("MEVZUAT_GRACE_ATTEMPTS", 15),
            grace_interval=env_float("MEVZUAT_GRACE_INTERVAL", 1.0),
            query_type=env("MEVZUAT_QUERY_TYPE", "kaysis"),
        )
