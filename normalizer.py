"""Merge post provenance, references and enrichment into canonical records."""

from __future__ import annotations

import re

from models import CanonicalRecord, EnrichedMetadata, MovieReference, Post

_EXPERIMENT_NUMBER = re.compile(r"Experiment\s*#?(\d+)", re.IGNORECASE)
_NON_DIGITS = re.compile(r"[^\d]")


def extract_experiment_number(title: str | None) -> str | None:
    """Return the N in "Experiment #N" from a post title, or None."""
    if not title:
        return None
    match = _EXPERIMENT_NUMBER.search(title)
    return match.group(1) if match else None


def clean_experiment_number(value: object) -> str:
    """Strip everything but digits, e.g. "#042" -> "042"."""
    if value is None:
        return ""
    return _NON_DIGITS.sub("", str(value))


def normalize(
    post: Post,
    reference: MovieReference,
    enriched: EnrichedMetadata | None = None,
) -> CanonicalRecord:
    """Layer post provenance < reference < enrichment into one record.

    Raises:
        ValueError: the post title carries no experiment number.
    """
    experiment = extract_experiment_number(post.title)
    if experiment is None:
        raise ValueError(f"No experiment number in post title: {post.title!r}")

    record = CanonicalRecord().merged_with(
        experiment=clean_experiment_number(experiment),
        post_url=post.link or None,
        date=post.date,
        image=post.image or None,
        host=post.host or None,
        author=post.author or None,
    )

    record = record.merged_with(
        title=reference.title,
        year=str(reference.year) if reference.year is not None else None,
        source_url=reference.source_url or None,
        external_id=reference.external_id,
        external_id_kind=reference.external_id_kind,
    )

    if enriched is None:
        return record

    return record.merged_with(
        title=enriched.title or None,
        year=enriched.year,
        original_title=enriched.original_title or None,
        release_date=enriched.release_date,
        runtime=enriched.runtime,
        overview=enriched.overview or None,
        poster=enriched.poster or None,
        vote_average=enriched.vote_average,
        genres=enriched.genres,
        director=enriched.director or None,
        actors=enriched.actors or None,
        studio=enriched.studio or None,
        country=enriched.country or None,
        language=enriched.language or None,
        original_language=enriched.original_language or None,
        imdb_id=enriched.imdb_id,
        tmdb_id=enriched.tmdb_id,
        tmdb_url=enriched.tmdb_url or None,
    )
