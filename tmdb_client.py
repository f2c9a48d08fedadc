"""TMDb API client for resolving movie references to canonical metadata."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from languages import language_display_name
from models import EnrichedMetadata

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
TMDB_MOVIE_URL = "https://www.themoviedb.org/movie"
POSTER_SIZE = "w500"
TOP_CAST_LIMIT = 5
REQUEST_TIMEOUT_SECONDS = 20
MAX_RETRIES = 3

LOGGER = logging.getLogger(__name__)

_QUOTE_TRANSLATION = str.maketrans({"‘": "'", "’": "'", "“": "'", "”": "'", '"': "'"})


def resolve_movie(
    title: str,
    year: int | str | None = None,
    tmdb_id: str | int | None = None,
    imdb_id: str | None = None,
    *,
    api_key: str,
) -> EnrichedMetadata | None:
    """Resolve one movie reference to TMDb metadata.

    Never raises: request failures, missing movies and malformed payloads are
    logged as warnings and returned as None.
    """
    label = f'"{title}"' + (f" ({year})" if year else "")
    try:
        if tmdb_id:
            LOGGER.info("Resolving %s by TMDb id=%s", label, tmdb_id)
            return fetch_movie_by_id(tmdb_id, api_key=api_key)

        if imdb_id:
            found_id = find_by_imdb_id(imdb_id, api_key=api_key)
            if found_id is not None:
                LOGGER.info("Resolving %s via IMDb id=%s -> TMDb id=%s", label, imdb_id, found_id)
                return fetch_movie_by_id(found_id, api_key=api_key)
            LOGGER.info("No TMDb match for IMDb id=%s, falling back to search", imdb_id)

        LOGGER.info("Resolving %s by title search", label)
        return _search_and_fetch(title, year, api_key=api_key)
    except (requests.RequestException, KeyError, TypeError, AttributeError, ValueError, RuntimeError) as exc:
        LOGGER.warning("TMDb enrichment failed for %s: %s", label, exc)
        return None


def fetch_movie_by_id(tmdb_id: str | int, *, api_key: str) -> EnrichedMetadata:
    """Fetch a movie's full record, including credits, by TMDb id."""
    payload = _get_json(
        f"/movie/{tmdb_id}",
        {"api_key": api_key, "append_to_response": "credits"},
    )
    if not isinstance(payload, dict) or "id" not in payload:
        raise RuntimeError(f"Unexpected TMDb movie payload for id={tmdb_id}")
    return _parse_movie_payload(payload)


def search_movies(title: str, year: int | str | None = None, *, api_key: str) -> list[dict[str, Any]]:
    """Search TMDb by title, optionally filtered by release year, in ranking order."""
    params: dict[str, Any] = {"api_key": api_key, "query": title.translate(_QUOTE_TRANSLATION)}
    if year:
        params["year"] = str(year)

    payload = _get_json("/search/movie", params)
    results = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(results, list):
        return []
    return [item for item in results if isinstance(item, dict)]


def find_by_imdb_id(imdb_id: str, *, api_key: str) -> int | None:
    """Map an IMDb title id (tt...) to a TMDb movie id."""
    payload = _get_json(f"/find/{imdb_id}", {"api_key": api_key, "external_source": "imdb_id"})
    results = payload.get("movie_results") if isinstance(payload, dict) else None
    if isinstance(results, list) and results and isinstance(results[0], dict):
        return results[0].get("id")
    return None


def _search_and_fetch(title: str, year: int | str | None, *, api_key: str) -> EnrichedMetadata | None:
    results = search_movies(title, year, api_key=api_key)
    if not results:
        LOGGER.info('TMDb search returned no results for "%s"', title)
        return None

    if year:
        wanted = str(year)
        for result in results:
            if _as_str(result.get("release_date"))[:4] == wanted:
                return fetch_movie_by_id(result["id"], api_key=api_key)
        LOGGER.info('No exact year match for "%s" (%s), using top result', title, year)

    return fetch_movie_by_id(results[0]["id"], api_key=api_key)


def _parse_movie_payload(data: dict[str, Any]) -> EnrichedMetadata:
    credits = data.get("credits") if isinstance(data.get("credits"), dict) else {}
    crew = _named_items(credits.get("crew"))
    cast = _named_items(credits.get("cast"))

    director = ", ".join(person["name"] for person in crew if person.get("job") == "Director")
    actors = ", ".join(person["name"] for person in cast[:TOP_CAST_LIMIT])

    poster_path = data.get("poster_path")
    poster = f"{TMDB_IMAGE_BASE_URL}/{POSTER_SIZE}{poster_path}" if isinstance(poster_path, str) and poster_path else ""

    release_date = _as_str(data.get("release_date")) or None
    original_language = _as_str(data.get("original_language"))

    return EnrichedMetadata(
        title=data.get("title") or "",
        original_title=data.get("original_title") or "",
        year=release_date[:4] if release_date else None,
        release_date=release_date,
        runtime=data.get("runtime"),
        overview=data.get("overview") or "",
        poster=poster,
        vote_average=data.get("vote_average"),
        genres=tuple(genre["name"] for genre in _named_items(data.get("genres"))),
        director=director,
        actors=actors,
        studio=_join_names(data.get("production_companies")),
        country=_join_names(data.get("production_countries")),
        language=language_display_name(original_language),
        original_language=original_language,
        imdb_id=data.get("imdb_id"),
        tmdb_id=data.get("id"),
        tmdb_url=f"{TMDB_MOVIE_URL}/{data.get('id')}",
    )


def _join_names(items: Any) -> str:
    return ", ".join(item["name"] for item in _named_items(items))


def _named_items(items: Any) -> list[dict[str, Any]]:
    """Keep only dict entries that carry a string ``name``."""
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict) and isinstance(item.get("name"), str)]


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _get_json(path: str, params: dict[str, Any]) -> Any:
    """GET a TMDb endpoint with simple exponential backoff on HTTP 429."""
    delay_seconds = 1.0
    url = f"{TMDB_API_BASE_URL}{path}"

    for attempt in range(1, MAX_RETRIES + 1):
        response = requests.get(url, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
        if response.status_code == 429 and attempt < MAX_RETRIES:
            LOGGER.warning("TMDb rate limited on %s, retrying in %.1fs", path, delay_seconds)
            time.sleep(delay_seconds)
            delay_seconds *= 2
            continue
        response.raise_for_status()
        return response.json()

    raise RuntimeError(f"TMDb request to {path} exhausted retries")
