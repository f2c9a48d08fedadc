"""CLI entrypoint for the WordPress -> TMDb -> NocoDB movie sync."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import replace
from urllib.parse import urlsplit

from dotenv import load_dotenv

from config import Settings, load_settings
from extractor import extract_references
from models import MovieReference, Post, SyncSummary
from normalizer import extract_experiment_number, normalize
from reconciler import reconcile
from sync_state import read_cursor, write_cursor
from tmdb_client import resolve_movie
from wordpress_feed import fetch_all_posts, fetch_posts_since

SYNC_MODES = ("full", "delta")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Sync movie-review posts from WordPress into NocoDB")
    parser.add_argument(
        "mode",
        nargs="?",
        default=None,
        help="'full' syncs every post; 'delta' only posts published since the last run",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Extract and enrich, but skip NocoDB writes and the sync state update",
    )
    parser.add_argument(
        "--state-file",
        default=None,
        help="Path of the last-sync JSON file (overrides SYNC_STATE_PATH)",
    )
    return parser.parse_args(argv)


def process_posts(posts: list[Post], settings: Settings, dry_run: bool = False) -> SyncSummary:
    """Extract, enrich and reconcile every movie of every post.

    Per-post and per-movie problems are logged and counted; they never abort
    the run.
    """
    summary = SyncSummary(posts_total=len(posts))
    if not posts:
        logging.info("No posts to process.")
        return summary

    logging.info("Processing %s posts...", len(posts))

    for post in posts:
        logging.info("Processing post: %s", post.title)

        experiment = extract_experiment_number(post.title)
        if not experiment:
            summary.posts_skipped += 1
            logging.warning("No experiment number found in post: %s. Skipping...", post.title)
            continue

        references = extract_references(post.content)
        if not references:
            summary.posts_skipped += 1
            logging.warning("No movies found in post: %s", post.title)
            continue

        summary.posts_processed += 1
        logging.info("Experiment #%s: found %s movies", experiment, len(references))

        for reference in references:
            summary.movies_found += 1
            try:
                _process_movie(post, reference, settings, summary, dry_run)
            except Exception as exc:  # isolate per-movie failures
                summary.errors += 1
                logging.exception("Failed processing movie %r in post %r: %s", reference.title, post.title, exc)
            # TMDb rate limit pacing
            time.sleep(settings.movie_delay_seconds)

    logging.info(
        "Processing complete. posts=%s processed=%s skipped=%s movies=%s unmatched=%s "
        "created=%s updated=%s successes=%s errors=%s",
        summary.posts_total,
        summary.posts_processed,
        summary.posts_skipped,
        summary.movies_found,
        summary.movies_unmatched,
        summary.created,
        summary.updated,
        summary.successes,
        summary.errors,
    )
    return summary


def _process_movie(
    post: Post,
    reference: MovieReference,
    settings: Settings,
    summary: SyncSummary,
    dry_run: bool,
) -> None:
    enriched = resolve_movie(
        reference.title,
        reference.year,
        tmdb_id=reference.external_id if reference.external_id_kind == "tmdb" else None,
        imdb_id=reference.external_id if reference.external_id_kind == "imdb" else None,
        api_key=settings.tmdb_api_key,
    )
    if enriched is None:
        summary.movies_unmatched += 1
        logging.warning('Could not find TMDb data for "%s"', reference.title)
        return

    record = normalize(post, reference, enriched)

    if dry_run:
        logging.info("[dry-run] Would sync: Experiment #%s %s (%s)", record.experiment, record.title, record.year)
        return

    result = reconcile(record, settings)
    if result.outcome == "created":
        summary.created += 1
    elif result.outcome == "updated":
        summary.updated += 1
    else:
        summary.errors += 1
        logging.error("Failed to sync %s: %s", record.title, result.error)


def full_sync(settings: Settings, dry_run: bool = False) -> SyncSummary:
    """Sync every post, then move the watermark."""
    logging.info("Starting FULL sync...")
    posts = fetch_all_posts(settings.wordpress_url, page_delay_seconds=settings.page_delay_seconds)
    summary = process_posts(posts, settings, dry_run=dry_run)
    _finish(settings, dry_run)
    logging.info("Full sync completed.")
    return summary


def delta_sync(settings: Settings, dry_run: bool = False) -> SyncSummary:
    """Sync only posts published since the persisted watermark."""
    cursor = read_cursor(settings.sync_state_path)
    logging.info("Starting DELTA sync for posts since %s...", cursor.last_sync)
    posts = fetch_posts_since(
        settings.wordpress_url,
        cursor.last_sync,
        page_delay_seconds=settings.page_delay_seconds,
    )
    summary = process_posts(posts, settings, dry_run=dry_run)
    _finish(settings, dry_run)
    logging.info("Delta sync completed.")
    return summary


def run(mode: str, settings: Settings, dry_run: bool = False) -> SyncSummary:
    """Run one sync cycle in the given mode."""
    if mode == "full":
        return full_sync(settings, dry_run=dry_run)
    if mode == "delta":
        return delta_sync(settings, dry_run=dry_run)
    raise ValueError(f"Unknown sync mode: {mode!r}")


def _finish(settings: Settings, dry_run: bool) -> None:
    if dry_run:
        logging.info("[dry-run] Leaving sync state at %s untouched", settings.sync_state_path)
        return
    write_cursor(settings.sync_state_path)


def _log_configuration(settings: Settings) -> None:
    logging.info(
        "Configuration: wordpress_host=%s nocodb_table=%s/%s title_match=%s state_file=%s",
        urlsplit(settings.wordpress_url).netloc or "unset",
        settings.nocodb_project_id,
        settings.nocodb_table_id,
        settings.nocodb_title_match,
        settings.sync_state_path,
    )


def main(argv: list[str] | None = None) -> int:
    """Initialize config and execute one sync; returns the process exit code."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)

    mode = (args.mode or "").lower()
    if mode not in SYNC_MODES:
        logging.error('Invalid sync mode %r. Please use "full" or "delta".', args.mode)
        return 1

    try:
        settings = load_settings()
        if args.state_file:
            settings = replace(settings, sync_state_path=args.state_file)
        _log_configuration(settings)
        run(mode, settings, dry_run=args.dry_run)
    except Exception as exc:  # fatal: watermark is not written
        logging.exception("Sync failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
