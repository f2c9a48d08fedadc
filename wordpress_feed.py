"""WordPress REST API ingestion helpers."""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import parse_qsl, urlsplit, urlunsplit

import requests

from models import Post

REQUEST_TIMEOUT_SECONDS = 30
# WordPress answers 400 (rest_post_invalid_page_number) once page exceeds the last one.
END_OF_PAGES_STATUS = 400

LOGGER = logging.getLogger(__name__)


class ContentSourceError(RuntimeError):
    """The WordPress API could not be read; the run cannot continue."""


def fetch_all_posts(
    wordpress_url: str,
    after: str | None = None,
    page_delay_seconds: float = 0.3,
) -> list[Post]:
    """Fetch every post, page by page, until an empty page or a 400 status.

    Args:
        wordpress_url: Posts endpoint, optionally carrying its own query string.
        after: Optional ISO-8601 timestamp; only posts published after it are returned.
        page_delay_seconds: Pause between page requests to avoid throttling.
    """
    base_url, params = _split_endpoint(wordpress_url)
    params["_embed"] = "true"
    if after:
        params["after"] = after

    posts: list[Post] = []
    page = 1
    while True:
        page_posts = fetch_posts_page(base_url, params, page)
        if not page_posts:
            break

        posts.extend(page_posts)
        LOGGER.info("WordPress fetch: page=%s count=%s", page, len(page_posts))
        page += 1
        time.sleep(page_delay_seconds)

    LOGGER.info("WordPress fetch: total=%s after=%s", len(posts), after)
    return posts


def fetch_posts_since(
    wordpress_url: str,
    since: str,
    page_delay_seconds: float = 0.3,
) -> list[Post]:
    """Fetch only the posts published after ``since``."""
    LOGGER.info("Fetching posts since %s", since)
    return fetch_all_posts(wordpress_url, after=since, page_delay_seconds=page_delay_seconds)


def fetch_posts_page(base_url: str, params: dict[str, str], page: int) -> list[Post]:
    """Fetch one page of posts; an out-of-range page yields an empty list."""
    query = {**params, "page": str(page)}
    try:
        response = requests.get(base_url, params=query, timeout=REQUEST_TIMEOUT_SECONDS)
    except requests.RequestException as exc:
        raise ContentSourceError(f"WordPress request failed for page={page}: {exc}") from exc

    if response.status_code == END_OF_PAGES_STATUS:
        LOGGER.info("WordPress fetch: page=%s is past the last page", page)
        return []

    try:
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise ContentSourceError(f"WordPress request failed for page={page}: {exc}") from exc

    return _parse_posts_payload(payload)


def _parse_posts_payload(payload: Any) -> list[Post]:
    """Parse API payload into Post objects."""
    if not isinstance(payload, list):
        raise ContentSourceError("Unexpected WordPress payload shape: expected a list")

    parsed: list[Post] = []
    for item in payload:
        if not isinstance(item, dict):
            continue

        embedded = item.get("_embedded") if isinstance(item.get("_embedded"), dict) else {}
        media = _first_dict(embedded.get("wp:featuredmedia"))
        author = _first_dict(embedded.get("author"))
        author_name = _as_str(author.get("name"))
        published_at = _as_str(item.get("date"))

        parsed.append(
            Post(
                post_id=item.get("id"),
                title=_rendered(item.get("title")),
                published_at=published_at,
                date=published_at.split("T")[0] if published_at else None,
                content=_rendered(item.get("content")),
                link=_as_str(item.get("link")),
                excerpt=_rendered(item.get("excerpt")),
                image=_as_str(media.get("source_url")),
                host=author_name,
                author=author_name,
            )
        )

    return parsed


def _split_endpoint(url: str) -> tuple[str, dict[str, str]]:
    parts = urlsplit(url)
    base_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    return base_url, dict(parse_qsl(parts.query, keep_blank_values=True))


def _rendered(value: Any) -> str:
    if isinstance(value, dict):
        return _as_str(value.get("rendered"))
    return ""


def _first_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return {}


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""
