from __future__ import annotations

from datetime import date

import pytest

from fx_mirror.db.base_backend import BackendStrategy
from fx_mirror.ingestion.models import CanonicalRateRecord, RawRateEntry, RunOutcome, TargetOutcome
from fx_mirror.ingestion.strategy import RateSource
from fx_mirror.utils.date_range import DateRange


class _DummyBackend(BackendStrategy):
    def ensure_schema(self) -> None:
        return None

    def upsert_rate(self, record: CanonicalRateRecord) -> None:
        return None

    def fetch_range(self, start=None, end=None, *, currency=None) -> list[CanonicalRateRecord]:
        return []


class _DummySource:
    def fetch(self, start: date, end: date) -> list[RawRateEntry]:
        return [RawRateEntry(code="EUR", effective_timestamp=start.isoformat())]


def test_base_backend_defaults() -> None:
    backend = _DummyBackend()

    assert backend.probe() == (True, None)
    assert backend.close() is None


def test_base_backend_is_abstract() -> None:
    with pytest.raises(TypeError):
        BackendStrategy()  # type: ignore[abstract]


def test_rate_source_contract() -> None:
    source: RateSource = _DummySource()

    entries = source.fetch(date(2024, 1, 1), date(2024, 1, 2))

    assert entries[0].effective_timestamp == "2024-01-01"


def test_raw_entry_from_payload_maps_wire_names() -> None:
    entry = RawRateEntry.from_payload(
        {"oznaka": " EUR ", "datum": "2024-05-01T00:00:00", "kupoven": "1", "sreden": "2", "prodazen": "3"}
    )

    assert entry == RawRateEntry("EUR", "2024-05-01T00:00:00", "1", "2", "3")
    with pytest.raises(ValueError):
        RawRateEntry.from_payload({"datum": "2024-05-01"})


def test_record_row_uses_table_columns() -> None:
    record = CanonicalRateRecord("EUR", date(2024, 5, 1), 1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0)

    assert record.as_row() == {
        "valuta_id": "EUR",
        "vazi_od": date(2024, 5, 1),
        "kurs_banka_kupoven": 1.0,
        "kurs_banka_sreden": 2.0,
        "kurs_banka_prodazen": 3.0,
        "kurs_menuvacnica_kupoven": 4.0,
        "kurs_menuvacnica_prodazen": 5.0,
        "kurs_planski": 6.0,
        "kurs_referenten": 7.0,
        "kurs_presmetkoven": 8.0,
    }


def test_run_outcome_splits_results() -> None:
    outcome = RunOutcome(
        window=DateRange.single(date(2024, 5, 1)),
        outcomes=[
            TargetOutcome(target="a", currency_code="EUR", success=True),
            TargetOutcome(target="b", currency_code="EUR", success=False, error="down"),
        ],
    )

    assert [item.target for item in outcome.succeeded] == ["a"]
    assert [item.target for item in outcome.failed] == ["b"]
