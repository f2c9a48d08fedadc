"""Movie reference extraction from post markup (no network calls)."""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from models import ExternalIdKind, MovieReference

LOGGER = logging.getLogger(__name__)

_TMDB_HREF = re.compile(r"themoviedb\.org/movie/(\d+)(?:-([\w-]+))?")
_IMDB_HREF = re.compile(r"imdb\.com/title/(tt\d+)")
# "Title (1985)" -> ("Title", "1985"); the year group is optional.
_TITLE_YEAR = re.compile(r"^(.*?)(?:\s*\((\d{4})\))?$", re.DOTALL)
_PARENT_YEAR = re.compile(r"\((\d{4})\)")

MIN_YEAR = 1900
MAX_YEAR = 2099


def extract_references(body: object) -> list[MovieReference]:
    """Extract movie references from a post body.

    TMDb links are scanned first, then IMDb links. An IMDb reference whose
    title matches (case-insensitively) one already captured from TMDb is
    dropped. When neither kind of link is present, falls back to
    ``extract_titled_anchor_references``.
    """
    if not isinstance(body, str) or not body.strip():
        LOGGER.warning("Empty post body provided to extract_references")
        return []

    soup = BeautifulSoup(body, "html.parser")

    references = _scan_links(soup, _TMDB_HREF, "tmdb")
    seen_titles = {ref.title.lower() for ref in references}

    for ref in _scan_links(soup, _IMDB_HREF, "imdb"):
        if ref.title.lower() in seen_titles:
            continue
        references.append(ref)

    if not references:
        references = _titled_anchor_references(soup)

    LOGGER.info("Extracted %s movie references from post body", len(references))
    return references


def extract_titled_anchor_references(body: object) -> list[MovieReference]:
    """Extract references from anchors carrying both ``href`` and ``title``.

    The movie title is the anchor's title attribute; the year is read from the
    parent element's text, e.g. ``<p><a title="X" href="...">X</a> (1985)</p>``.
    """
    if not isinstance(body, str) or not body.strip():
        return []
    return _titled_anchor_references(BeautifulSoup(body, "html.parser"))


def parse_title_and_year(text: str) -> tuple[str, int | None]:
    """Split ``"Title (YYYY)"`` into its title and optional year."""
    match = _TITLE_YEAR.match(text.strip())
    if not match:
        return text.strip(), None
    year = int(match.group(2)) if match.group(2) else None
    return match.group(1).strip(), year


def _scan_links(soup: BeautifulSoup, pattern: re.Pattern[str], kind: ExternalIdKind) -> list[MovieReference]:
    references: list[MovieReference] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        match = pattern.search(href)
        if not match:
            continue

        text = anchor.get_text().strip()
        if not text:
            continue

        title, year = parse_title_and_year(text)
        if not title:
            continue

        references.append(
            MovieReference(
                title=title,
                year=year,
                external_id=match.group(1),
                external_id_kind=kind,
                source_url=href,
            )
        )
    return references


def _titled_anchor_references(soup: BeautifulSoup) -> list[MovieReference]:
    references: list[MovieReference] = []
    for anchor in soup.select("a[title][href]"):
        url = anchor["href"].strip()
        title = anchor["title"].strip()

        parent = anchor.parent
        parent_text = parent.get_text() if parent is not None else ""
        year_match = _PARENT_YEAR.search(parent_text)

        if not (url and title and year_match):
            continue

        year = int(year_match.group(1))
        if not MIN_YEAR <= year <= MAX_YEAR:
            continue

        references.append(
            MovieReference(
                title=title,
                year=year,
                external_id=None,
                external_id_kind="none",
                source_url=url,
            )
        )
    return references
