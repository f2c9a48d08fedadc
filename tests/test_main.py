"""Tests for the sync orchestrator and CLI (main.py)."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

import pytest

import main
from config import Settings
from models import EnrichedMetadata, Post, ReconcileResult
from wordpress_feed import ContentSourceError

SETTINGS = Settings(
    wordpress_url="https://blog.example.com/wp-json/wp/v2/posts",
    tmdb_api_key="tmdb",
    nocodb_api_token="noco",
)

ENV = {
    "WORDPRESS_URL": SETTINGS.wordpress_url,
    "TMDB_API_KEY": "tmdb",
    "NOCODB_API_TOKEN": "noco",
}


def _post(title: str = "Experiment #42: Nightmare Fuel", content: str | None = None) -> Post:
    if content is None:
        content = (
            '<p><a href="https://www.themoviedb.org/movie/26914-troll-2">Troll 2 (1990)</a></p>'
            '<p><a href="https://www.imdb.com/title/tt0093200/">Hard Ticket to Hawaii (1987)</a></p>'
        )
    return Post(
        post_id=42,
        title=title,
        published_at="2025-03-14T09:30:00",
        date="2025-03-14",
        content=content,
        link="https://blog.example.com/42",
        excerpt="",
        image="",
        host="Dr. Host",
        author="Dr. Host",
    )


def _enriched(title: str, tmdb_id: int = 1) -> EnrichedMetadata:
    return EnrichedMetadata(
        title=title,
        original_title=title,
        year="1990",
        release_date="1990-10-12",
        runtime=90,
        overview="",
        poster="",
        vote_average=4.0,
        genres=("Horror",),
        director="Director",
        actors="A, B",
        studio="",
        country="",
        language="English",
        original_language="en",
        imdb_id=None,
        tmdb_id=tmdb_id,
        tmdb_url=f"https://www.themoviedb.org/movie/{tmdb_id}",
    )


def _resolve_by_title(title, year=None, tmdb_id=None, imdb_id=None, *, api_key):  # noqa: ARG001
    return _enriched(title)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("main.time.sleep") as mock_sleep:
        yield mock_sleep


def test_post_without_experiment_number_is_skipped_not_errored() -> None:
    with patch("main.resolve_movie") as mock_resolve, patch("main.reconcile") as mock_reconcile:
        summary = main.process_posts([_post(title="A regular review")], SETTINGS)

    assert summary.posts_skipped == 1
    assert summary.posts_processed == 0
    assert summary.errors == 0
    mock_resolve.assert_not_called()
    mock_reconcile.assert_not_called()


def test_post_without_references_is_skipped() -> None:
    with patch("main.resolve_movie") as mock_resolve:
        summary = main.process_posts([_post(content="<p>No links today.</p>")], SETTINGS)

    assert summary.posts_skipped == 1
    assert summary.movies_found == 0
    mock_resolve.assert_not_called()


def test_each_reference_is_resolved_with_its_id_kind() -> None:
    with patch("main.resolve_movie", side_effect=_resolve_by_title) as mock_resolve, \
         patch("main.reconcile", return_value=ReconcileResult(outcome="created", record_id=1)):
        summary = main.process_posts([_post()], SETTINGS)

    first, second = mock_resolve.call_args_list
    assert first.args == ("Troll 2", 1990)
    assert first.kwargs["tmdb_id"] == "26914"
    assert first.kwargs["imdb_id"] is None
    assert second.kwargs["tmdb_id"] is None
    assert second.kwargs["imdb_id"] == "tt0093200"
    assert summary.movies_found == 2
    assert summary.created == 2


def test_enrichment_miss_is_counted_and_not_synced() -> None:
    with patch("main.resolve_movie", return_value=None), patch("main.reconcile") as mock_reconcile:
        summary = main.process_posts([_post()], SETTINGS)

    assert summary.movies_unmatched == 2
    assert summary.errors == 0
    mock_reconcile.assert_not_called()


def test_failed_movie_does_not_stop_siblings_or_later_posts() -> None:
    results = [
        ReconcileResult(outcome="failed", error="boom"),
        ReconcileResult(outcome="updated", record_id=2),
        ReconcileResult(outcome="created", record_id=3),
        ReconcileResult(outcome="created", record_id=4),
    ]
    with patch("main.resolve_movie", side_effect=_resolve_by_title), \
         patch("main.reconcile", side_effect=results) as mock_reconcile:
        summary = main.process_posts([_post(), _post(title="Experiment #43: More")], SETTINGS)

    assert mock_reconcile.call_count == 4
    assert summary.errors == 1
    assert summary.updated == 1
    assert summary.created == 2
    assert summary.successes == 3


def test_unexpected_exception_is_isolated_to_one_movie() -> None:
    side_effects = [RuntimeError("unexpected"), _enriched("Hard Ticket to Hawaii")]
    with patch("main.resolve_movie", side_effect=side_effects), \
         patch("main.reconcile", return_value=ReconcileResult(outcome="created", record_id=1)):
        summary = main.process_posts([_post()], SETTINGS)

    assert summary.errors == 1
    assert summary.created == 1


def test_movies_are_paced(no_sleep) -> None:
    with patch("main.resolve_movie", side_effect=_resolve_by_title), \
         patch("main.reconcile", return_value=ReconcileResult(outcome="created", record_id=1)):
        main.process_posts([_post()], replace(SETTINGS, movie_delay_seconds=0.5))

    assert no_sleep.call_count == 2
    no_sleep.assert_called_with(0.5)


def test_running_same_post_twice_creates_then_updates() -> None:
    rows: dict[int, dict] = {}

    def find(settings, experiment, title):  # noqa: ARG001
        return next((r for r in rows.values() if r["experiment"] == experiment and r["title"] == title), None)

    def insert(settings, payload):  # noqa: ARG001
        row = {**payload, "Id": len(rows) + 1}
        rows[row["Id"]] = row
        return row

    def update(settings, record_id, payload):  # noqa: ARG001
        rows[record_id].update(payload)
        return rows[record_id]

    post = _post(content='<p><a title="Nightmare Fuel" href="/x">Nightmare Fuel</a> (1990)</p>')

    with patch("main.resolve_movie", side_effect=_resolve_by_title), \
         patch("reconciler.find_record", side_effect=find), \
         patch("reconciler.insert_record", side_effect=insert), \
         patch("reconciler.update_record", side_effect=update):
        first = main.process_posts([post], SETTINGS)
        second = main.process_posts([post], SETTINGS)

    assert (first.created, first.updated) == (1, 0)
    assert (second.created, second.updated) == (0, 1)
    assert len(rows) == 1
    assert rows[1]["experiment"] == "42"
    assert rows[1]["title"] == "Nightmare Fuel"


def test_dry_run_skips_reconcile() -> None:
    with patch("main.resolve_movie", side_effect=_resolve_by_title), patch("main.reconcile") as mock_reconcile:
        summary = main.process_posts([_post()], SETTINGS, dry_run=True)

    mock_reconcile.assert_not_called()
    assert summary.movies_found == 2


def test_full_sync_writes_cursor_after_processing(tmp_path: Path) -> None:
    state = tmp_path / "last_sync.json"
    settings = replace(SETTINGS, sync_state_path=str(state))

    with patch("main.fetch_all_posts", return_value=[]) as mock_fetch:
        main.full_sync(settings)

    mock_fetch.assert_called_once_with(settings.wordpress_url, page_delay_seconds=settings.page_delay_seconds)
    assert "lastSync" in json.loads(state.read_text(encoding="utf-8"))


def test_full_sync_dry_run_leaves_cursor_alone(tmp_path: Path) -> None:
    state = tmp_path / "last_sync.json"

    with patch("main.fetch_all_posts", return_value=[]):
        main.full_sync(replace(SETTINGS, sync_state_path=str(state)), dry_run=True)

    assert not state.exists()


def test_content_source_failure_does_not_write_cursor(tmp_path: Path) -> None:
    state = tmp_path / "last_sync.json"

    with patch("main.fetch_all_posts", side_effect=ContentSourceError("down")):
        with pytest.raises(ContentSourceError):
            main.full_sync(replace(SETTINGS, sync_state_path=str(state)))

    assert not state.exists()


def test_delta_sync_fetches_since_cursor(tmp_path: Path) -> None:
    state = tmp_path / "last_sync.json"
    state.write_text(json.dumps({"lastSync": "2025-03-01T00:00:00.000Z"}), encoding="utf-8")
    settings = replace(SETTINGS, sync_state_path=str(state))

    with patch("main.fetch_posts_since", return_value=[]) as mock_fetch:
        main.delta_sync(settings)

    assert mock_fetch.call_args.args == (settings.wordpress_url, "2025-03-01T00:00:00.000Z")
    assert json.loads(state.read_text(encoding="utf-8"))["lastSync"] != "2025-03-01T00:00:00.000Z"


def test_run_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError):
        main.run("weekly", SETTINGS)


@pytest.mark.parametrize("argv", [["weekly"], []])
def test_main_invalid_mode_exits_1_without_touching_state(argv: list[str], tmp_path: Path) -> None:
    state = tmp_path / "last_sync.json"
    with patch("main.load_dotenv"), \
         patch.dict("os.environ", {**ENV, "SYNC_STATE_PATH": str(state)}), \
         patch("main.run") as mock_run:
        assert main.main(argv) == 1

    mock_run.assert_not_called()
    assert not state.exists()


def test_main_mode_is_case_insensitive_and_applies_state_file(tmp_path: Path) -> None:
    state = tmp_path / "custom.json"
    with patch("main.load_dotenv"), patch.dict("os.environ", ENV), patch("main.run") as mock_run:
        assert main.main(["DELTA", "--state-file", str(state), "--dry-run"]) == 0

    mode, settings = mock_run.call_args.args
    assert mode == "delta"
    assert settings.sync_state_path == str(state)
    assert mock_run.call_args.kwargs == {"dry_run": True}


def test_main_missing_credentials_exits_1() -> None:
    with patch("main.load_dotenv"), patch.dict("os.environ", {}, clear=True), patch("main.run") as mock_run:
        assert main.main(["full"]) == 1

    mock_run.assert_not_called()


def test_main_fatal_fetch_error_exits_1(tmp_path: Path) -> None:
    state = tmp_path / "last_sync.json"
    with patch("main.load_dotenv"), \
         patch.dict("os.environ", {**ENV, "SYNC_STATE_PATH": str(state)}), \
         patch("main.fetch_all_posts", side_effect=ContentSourceError("unreachable")):
        assert main.main(["full"]) == 1

    assert not state.exists()
