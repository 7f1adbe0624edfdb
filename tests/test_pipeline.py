"""End-to-end pipeline tests with stubbed feeds and SQLite mirrors."""

from __future__ import annotations

from datetime import date

import pytest

from fx_mirror.db.base_backend import BackendStrategy
from fx_mirror.db.registry import BackendRegistry
from fx_mirror.db.writer import MultiTargetWriter
from fx_mirror.ingestion.fetcher import FetchError
from fx_mirror.ingestion.models import RawRateEntry
from fx_mirror.ingestion.normalizer import RateNormalizer
from fx_mirror.pipeline import RatePipeline
from fx_mirror.utils.date_range import DateRange

WINDOW = DateRange.single(date(2024, 5, 1))


class _StaticSource:
    def __init__(self, entries: list[RawRateEntry]) -> None:
        self.entries = entries
        self.calls: list[tuple[date, date]] = []

    def fetch(self, start: date, end: date) -> list[RawRateEntry]:
        self.calls.append((start, end))
        return self.entries


class _BrokenSource:
    def fetch(self, start: date, end: date) -> list[RawRateEntry]:
        raise FetchError("feed unreachable", url="https://rates.example", attempts=4)


class _CountingBackend(BackendStrategy):
    def __init__(self) -> None:
        self.writes = 0

    def ensure_schema(self) -> None:
        return None

    def upsert_rate(self, record) -> None:
        self.writes += 1

    def fetch_range(self, start=None, end=None, *, currency=None):
        return []


def _entry(code: str) -> RawRateEntry:
    return RawRateEntry(
        code=code, effective_timestamp="2024-05-01T00:00:00", buy="61.5", mid=None, sell="62.3"
    )


@pytest.fixture
def counting_registry(sqlite_targets):
    backends = {target.name: _CountingBackend() for target in sqlite_targets}
    registry = BackendRegistry(sqlite_targets, backends=backends)
    yield registry, backends
    registry.close()


def test_run_writes_every_allowed_currency_to_every_target(sqlite_targets) -> None:
    source = _StaticSource([_entry("EUR"), _entry("GBP"), _entry("USD")])
    with BackendRegistry(sqlite_targets) as registry:
        registry.ensure_schema()
        pipeline = RatePipeline(source, RateNormalizer({"EUR", "USD"}), MultiTargetWriter(registry))

        outcome = pipeline.run(WINDOW)

        assert source.calls == [(date(2024, 5, 1), date(2024, 5, 1))]
        assert outcome.aborted is False
        assert outcome.fetched == 3
        assert outcome.normalised == 2
        assert len(outcome.succeeded) == 6
        assert outcome.failed == []
        for _, backend in registry.items():
            rows = backend.fetch_range(date(2024, 5, 1), date(2024, 5, 1))
            assert {row.currency_code for row in rows} == {"EUR", "USD"}
            assert all(row.bank_mid == 62.0 for row in rows)


def test_fetch_failure_aborts_the_run(counting_registry, caplog) -> None:
    registry, backends = counting_registry
    pipeline = RatePipeline(_BrokenSource(), RateNormalizer({"EUR"}), MultiTargetWriter(registry))

    outcome = pipeline.run(WINDOW)

    assert outcome.aborted is True
    assert outcome.error == "feed unreachable"
    assert all(backend.writes == 0 for backend in backends.values())
    assert "Failed to fetch exchange rates" in caplog.text


def test_no_matching_currency_means_no_writes(counting_registry) -> None:
    registry, backends = counting_registry
    source = _StaticSource([_entry("ZZZ")])
    pipeline = RatePipeline(source, RateNormalizer({"EUR", "USD"}), MultiTargetWriter(registry))

    outcome = pipeline.run(WINDOW)

    assert outcome.aborted is False
    assert outcome.normalised == 0
    assert outcome.outcomes == []
    assert all(backend.writes == 0 for backend in backends.values())
