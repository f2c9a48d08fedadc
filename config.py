"""Runtime configuration loaded once from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_NOCODB_URL = "https://portal.dasco.services"
DEFAULT_NOCODB_PROJECT_ID = "ppucstzqjsxvf2y"
DEFAULT_NOCODB_TABLE_ID = "m1mabuzifrwzg1h"
DEFAULT_SYNC_STATE_PATH = "last_sync.json"
DEFAULT_PAGE_DELAY_SECONDS = 0.3
DEFAULT_MOVIE_DELAY_SECONDS = 0.5

TITLE_MATCH_MODES = ("eq", "like")


@dataclass(frozen=True, slots=True)
class Settings:
    """Explicit configuration passed to every pipeline component."""

    wordpress_url: str
    tmdb_api_key: str
    nocodb_api_token: str
    nocodb_url: str = DEFAULT_NOCODB_URL
    nocodb_project_id: str = DEFAULT_NOCODB_PROJECT_ID
    nocodb_table_id: str = DEFAULT_NOCODB_TABLE_ID
    nocodb_title_match: str = "eq"
    sync_state_path: str = DEFAULT_SYNC_STATE_PATH
    page_delay_seconds: float = DEFAULT_PAGE_DELAY_SECONDS
    movie_delay_seconds: float = DEFAULT_MOVIE_DELAY_SECONDS

    @property
    def nocodb_base_url(self) -> str:
        return (
            f"{self.nocodb_url.rstrip('/')}/api/v1/db/data/v1/"
            f"{self.nocodb_project_id}/{self.nocodb_table_id}"
        )


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from the environment, failing fast on missing credentials."""
    env = os.environ if environ is None else environ

    title_match = (env.get("NOCODB_TITLE_MATCH") or "eq").strip().lower()
    if title_match not in TITLE_MATCH_MODES:
        raise RuntimeError(
            f"NOCODB_TITLE_MATCH must be one of {', '.join(TITLE_MATCH_MODES)}, got {title_match!r}"
        )

    return Settings(
        wordpress_url=_required(env, "WORDPRESS_URL"),
        tmdb_api_key=_required(env, "TMDB_API_KEY"),
        nocodb_api_token=_required(env, "NOCODB_API_TOKEN"),
        nocodb_url=env.get("NOCODB_URL") or DEFAULT_NOCODB_URL,
        nocodb_project_id=env.get("NOCODB_PROJECT_ID") or DEFAULT_NOCODB_PROJECT_ID,
        nocodb_table_id=env.get("NOCODB_TABLE_ID") or DEFAULT_NOCODB_TABLE_ID,
        nocodb_title_match=title_match,
        sync_state_path=env.get("SYNC_STATE_PATH") or DEFAULT_SYNC_STATE_PATH,
        page_delay_seconds=_seconds(env, "PAGE_DELAY_SECONDS", DEFAULT_PAGE_DELAY_SECONDS),
        movie_delay_seconds=_seconds(env, "MOVIE_DELAY_SECONDS", DEFAULT_MOVIE_DELAY_SECONDS),
    )


def _required(env: Mapping[str, str], name: str) -> str:
    value = (env.get(name) or "").strip()
    if not value:
        raise RuntimeError(f"{name} environment variable is required")
    return value


def _seconds(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if value < 0:
        raise RuntimeError(f"{name} must not be negative, got {raw!r}")
    return value
