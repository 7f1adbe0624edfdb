"""Tests for the public package facade."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import date
from pathlib import Path

from fx_mirror import FxMirror, RateFetcher, __version__
from fx_mirror.ingestion.fetcher import FetchError
from fx_mirror.ingestion.models import RawRateEntry


class _RecordingSource:
    def __init__(self) -> None:
        self.calls: list[tuple[date, date]] = []

    def fetch(self, start: date, end: date) -> list[RawRateEntry]:
        self.calls.append((start, end))
        return [
            RawRateEntry(
                code="EUR",
                effective_timestamp=f"{start.isoformat()}T00:00:00",
                buy="61.5",
                mid="61.6",
                sell="61.8",
            )
        ]


class _DeadSource:
    def fetch(self, start: date, end: date) -> list[RawRateEntry]:
        raise FetchError("down", url="https://rates.example", attempts=1)


def test_fx_mirror_exposes_version() -> None:
    assert FxMirror.__version__ == __version__


def test_run_once_writes_to_every_target(settings, sqlite_targets) -> None:
    source = _RecordingSource()
    with FxMirror(settings, sqlite_targets, fetcher=source) as mirror:
        assert mirror.ensure_schema() == {"mirror-1": True, "mirror-2": True, "mirror-3": True}

        outcome = mirror.run_once(date(2024, 5, 1))

        assert source.calls == [(date(2024, 5, 1), date(2024, 5, 1))]
        assert len(outcome.succeeded) == 3
        for _, backend in mirror.registry.items():
            (row,) = backend.fetch_range()
            assert row.currency_code == "EUR"
            assert row.planned_rate == 61.6


def test_planned_rate_comes_from_settings(settings, sqlite_targets) -> None:
    with FxMirror(replace(settings, planned_rate="60.0"), sqlite_targets, fetcher=_RecordingSource()) as mirror:
        mirror.ensure_schema()
        mirror.run_window(date(2024, 5, 2), date(2024, 5, 2))
        (row,) = mirror.registry.backend("mirror-2").fetch_range()
        assert row.planned_rate == 60.0


def test_failed_fetch_is_reported_not_raised(settings, sqlite_targets) -> None:
    with FxMirror(settings, sqlite_targets, fetcher=_DeadSource()) as mirror:
        outcome = mirror.run_once(date(2024, 5, 1))

    assert outcome.aborted is True


def test_targets_default_to_the_connections_file(settings, tmp_path: Path) -> None:
    connections = tmp_path / "db-connections.json"
    connections.write_text(json.dumps([{"name": "Local", "url": f"sqlite:///{tmp_path / 'l.db'}"}]))

    with FxMirror(replace(settings, connections_file=connections)) as mirror:
        assert [target.name for target in mirror.registry.targets] == ["Local"]
        assert isinstance(mirror.fetcher, RateFetcher)
        assert mirror.fetcher.timeout == 5.0
        assert mirror.fetcher.retry_policy.max_retries == 3
        assert mirror.connection() == {"Local": (True, None)}


def test_start_and_close_stop_the_scheduler(settings, sqlite_targets) -> None:
    mirror = FxMirror(settings, sqlite_targets, fetcher=_RecordingSource())
    scheduler = mirror.start()
    mirror.close()

    assert scheduler.stopped
