"""Create-or-update reconciliation of canonical records against NocoDB."""

from __future__ import annotations

import logging
from typing import Any

from config import Settings
from languages import translate_language_field
from models import CanonicalRecord, ReconcileResult
from nocodb_client import NocoDBError, find_record, insert_record, update_record
from normalizer import clean_experiment_number

LOGGER = logging.getLogger(__name__)

ROW_ID_FIELD = "Id"


def build_payload(record: CanonicalRecord) -> dict[str, Any]:
    """Map a canonical record onto the NocoDB table columns."""
    genres = ", ".join(record.genres) if record.genres else ""

    return {
        "experiment": clean_experiment_number(record.experiment),
        "title": record.title or "",
        "link": record.post_url or "",
        "date": record.date or None,
        "image": record.image or "",
        "host": record.host or record.author or "",
        "year": record.year or "",
        "poster": record.poster or "",
        "synopsis": record.overview or "",
        "average_rating": _or_blank(record.vote_average),
        "director": record.director or "",
        "actors": record.actors or "",
        "studio": record.studio or "",
        "country": record.country or "",
        "genres": genres,
        "runtime": _or_blank(record.runtime),
        "language": translate_language_field(record.language),
        "imdb": record.imdb_id or "",
        "tmdb": _or_blank(record.tmdb_id),
    }


def reconcile(record: CanonicalRecord, settings: Settings) -> ReconcileResult:
    """Update the row matching (experiment, title) or insert a new one.

    Failures at any step are returned as a ``failed`` result and never retried.
    """
    experiment = clean_experiment_number(record.experiment)
    if not experiment:
        return ReconcileResult(outcome="failed", error="Record must have an experiment number")
    if not record.title:
        return ReconcileResult(outcome="failed", error="Record must have a title")

    payload = build_payload(record)

    try:
        existing = find_record(settings, experiment, record.title)
        if existing is not None:
            record_id = existing.get(ROW_ID_FIELD)
            if record_id is None:
                LOGGER.error("Matched NocoDB row for Experiment #%s %s has no Id", experiment, record.title)
                return ReconcileResult(outcome="failed", error="Matched row has no Id")
            update_record(settings, record_id, payload)
            LOGGER.info("Updated NocoDB row %s: Experiment #%s %s", record_id, experiment, record.title)
            return ReconcileResult(outcome="updated", record_id=record_id)

        created = insert_record(settings, payload)
        record_id = created.get(ROW_ID_FIELD) if isinstance(created, dict) else None
        LOGGER.info("Created NocoDB row %s: Experiment #%s %s", record_id, experiment, record.title)
        return ReconcileResult(outcome="created", record_id=record_id)
    except NocoDBError as exc:
        LOGGER.error("Failed to reconcile Experiment #%s %s: %s", experiment, record.title, exc)
        return ReconcileResult(outcome="failed", error=str(exc))


def _or_blank(value: Any) -> Any:
    return "" if value is None else value
