"""Shared typed models for the sync pipeline."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Literal

ExternalIdKind = Literal["tmdb", "imdb", "none"]
Outcome = Literal["created", "updated", "failed"]


@dataclass(frozen=True, slots=True)
class Post:
    """One blog post as returned by the WordPress REST API."""

    post_id: int | None
    title: str
    published_at: str
    date: str | None
    content: str
    link: str
    excerpt: str
    image: str
    host: str
    author: str


@dataclass(frozen=True, slots=True)
class MovieReference:
    """A movie mention extracted from a post body, before enrichment."""

    title: str
    year: int | None
    external_id: str | None
    external_id_kind: ExternalIdKind
    source_url: str


@dataclass(frozen=True, slots=True)
class EnrichedMetadata:
    """Canonical movie metadata resolved from TMDb."""

    title: str
    original_title: str
    year: str | None
    release_date: str | None
    runtime: int | None
    overview: str
    poster: str
    vote_average: float | None
    genres: tuple[str, ...]
    director: str
    actors: str
    studio: str
    country: str
    language: str
    original_language: str
    imdb_id: str | None
    tmdb_id: int | None
    tmdb_url: str


@dataclass(frozen=True, slots=True)
class CanonicalRecord:
    """Union of post provenance, reference, and enrichment fields.

    Every field is optional. Layers are applied with ``merged_with``, where any
    non-None value replaces the current one, so later layers win.
    """

    # Post provenance
    experiment: str | None = None
    post_url: str | None = None
    date: str | None = None
    image: str | None = None
    host: str | None = None
    author: str | None = None
    # Reference
    title: str | None = None
    year: str | None = None
    source_url: str | None = None
    external_id: str | None = None
    external_id_kind: ExternalIdKind | None = None
    # Enrichment
    original_title: str | None = None
    release_date: str | None = None
    runtime: int | None = None
    overview: str | None = None
    poster: str | None = None
    vote_average: float | None = None
    genres: tuple[str, ...] | None = None
    director: str | None = None
    actors: str | None = None
    studio: str | None = None
    country: str | None = None
    language: str | None = None
    original_language: str | None = None
    imdb_id: str | None = None
    tmdb_id: int | None = None
    tmdb_url: str | None = None

    def merged_with(self, **values: Any) -> CanonicalRecord:
        """Return a copy with every non-None value in ``values`` applied."""
        known = {f.name for f in fields(self)}
        unknown = set(values) - known
        if unknown:
            raise TypeError(f"Unknown CanonicalRecord fields: {sorted(unknown)}")
        overrides = {key: value for key, value in values.items() if value is not None}
        return replace(self, **overrides)


@dataclass(frozen=True, slots=True)
class SyncCursor:
    """Persisted watermark for incremental runs."""

    last_sync: str


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Outcome of reconciling one record against the datastore."""

    outcome: Outcome
    record_id: int | str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome != "failed"


@dataclass(slots=True)
class SyncSummary:
    """Running counters owned by the orchestrator for one run."""

    posts_total: int = 0
    posts_processed: int = 0
    posts_skipped: int = 0
    movies_found: int = 0
    movies_unmatched: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0

    @property
    def successes(self) -> int:
        return self.created + self.updated
