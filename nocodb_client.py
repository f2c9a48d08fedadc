"""NocoDB data API integration for the movie catalog table."""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from config import Settings

REQUEST_TIMEOUT_SECONDS = 30

LOGGER = logging.getLogger(__name__)


class NocoDBError(RuntimeError):
    """A NocoDB lookup, insert or update call failed."""


def build_where(experiment: str, title: str, title_match: str = "eq") -> str:
    """Build the NocoDB filter for the (experiment, title) natural key."""
    return f"(experiment,eq,{experiment})~and(title,{title_match},{title})"


def find_record(settings: Settings, experiment: str, title: str) -> dict[str, Any] | None:
    """Return the first row matching (experiment, title), or None."""
    params = {
        "where": build_where(experiment, title, settings.nocodb_title_match),
        "limit": "1",
    }
    body = _request(settings, "GET", settings.nocodb_base_url, params=params)
    rows = body.get("list") if isinstance(body, dict) else None
    if isinstance(rows, list) and rows:
        return rows[0]
    return None


def insert_record(settings: Settings, payload: dict[str, Any]) -> dict[str, Any]:
    """Insert a new row and return the created record."""
    return _request(settings, "POST", settings.nocodb_base_url, json_payload=payload)


def update_record(settings: Settings, record_id: int | str, payload: dict[str, Any]) -> dict[str, Any]:
    """Patch an existing row by its Id."""
    return _request(settings, "PATCH", f"{settings.nocodb_base_url}/{record_id}", json_payload=payload)


def _headers(settings: Settings) -> dict[str, str]:
    if not settings.nocodb_api_token:
        raise NocoDBError("NOCODB_API_TOKEN is not set")
    return {
        "xc-token": settings.nocodb_api_token,
        "Content-Type": "application/json",
    }


def _request(
    settings: Settings,
    method: str,
    url: str,
    *,
    params: dict[str, str] | None = None,
    json_payload: dict[str, Any] | None = None,
) -> Any:
    """Send one NocoDB request; any failure is raised as NocoDBError."""
    try:
        response = requests.request(
            method=method,
            url=url,
            headers=_headers(settings),
            params=params,
            json=json_payload,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return response.json()
    except requests.HTTPError as exc:
        raise NocoDBError(f"NocoDB {method} failed: {exc} {_error_text(exc.response)}") from exc
    except (requests.RequestException, ValueError) as exc:
        raise NocoDBError(f"NocoDB {method} failed: {exc}") from exc


def _error_text(response: requests.Response | None) -> str:
    if response is None:
        return ""
    try:
        return json.dumps(response.json())
    except ValueError:
        return response.text
