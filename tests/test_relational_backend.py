"""Relational backend integration tests using SQLite."""

from datetime import date, datetime
from pathlib import Path

import pytest

from fx_mirror.db.relational_backend import (
    RelationalBackend,
    _normalise_rate_date,
    build_upsert_sql,
)
from fx_mirror.db.sqlite_backend import SQLiteBackend
from fx_mirror.ingestion.models import CanonicalRateRecord


def _record(code: str, day: date, mid: float) -> CanonicalRateRecord:
    return CanonicalRateRecord(
        currency_code=code,
        valid_from_date=day,
        bank_buy=mid - 0.2,
        bank_mid=mid,
        bank_sell=mid + 0.2,
        exchange_office_buy=mid - 0.2,
        exchange_office_sell=mid + 0.2,
        planned_rate=mid,
        reference_rate=mid + 0.2,
        settlement_rate=mid + 0.2,
    )


def test_upsert_roundtrip_overwrites_existing_key(tmp_path: Path) -> None:
    backend = SQLiteBackend.from_path(tmp_path / "relational.db")
    backend.ensure_schema()
    try:
        backend.upsert_rate(_record("EUR", date(2024, 1, 1), 61.5))
        backend.upsert_rate(_record("USD", date(2024, 1, 2), 57.0))
        backend.upsert_rate(_record("EUR", date(2024, 1, 1), 61.7))

        rows = backend.fetch_range(date(2024, 1, 1), date(2024, 1, 31))
        assert [(row.currency_code, row.valid_from_date) for row in rows] == [
            ("EUR", date(2024, 1, 1)),
            ("USD", date(2024, 1, 2)),
        ]
        assert rows[0] == _record("EUR", date(2024, 1, 1), 61.7)
        assert backend.fetch_range(currency="USD")[0].bank_mid == 57.0
        assert backend.fetch_range(start=date(2024, 1, 2))[0].currency_code == "USD"
    finally:
        backend.close()


def test_ensure_schema_is_idempotent(tmp_path: Path) -> None:
    backend = RelationalBackend(f"sqlite:///{tmp_path / 'twice.db'}")
    try:
        backend.ensure_schema()
        backend.ensure_schema()
        assert backend.fetch_range() == []
    finally:
        backend.close()


def test_upsert_fails_without_the_table(tmp_path: Path) -> None:
    backend = SQLiteBackend.from_path(tmp_path / "empty.db")
    try:
        with pytest.raises(Exception):
            backend.upsert_rate(_record("EUR", date(2024, 1, 1), 61.5))
    finally:
        backend.close()


def test_mysql_statement_updates_every_rate_column() -> None:
    sql = build_upsert_sql("mysql")

    assert sql.startswith("INSERT INTO kursna_lista (valuta_id, vazi_od, kurs_banka_kupoven")
    assert "ON DUPLICATE KEY UPDATE" in sql
    assert "kurs_presmetkoven = VALUES(kurs_presmetkoven)" in sql
    assert "valuta_id = VALUES" not in sql
    assert sql.count("= VALUES(") == 8


def test_postgres_statement_uses_on_conflict() -> None:
    sql = build_upsert_sql("postgresql")

    assert "ON CONFLICT (valuta_id, vazi_od) DO UPDATE SET" in sql
    assert sql.count("= excluded.") == 8


def test_unknown_dialect_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_upsert_sql("oracle")


def test_probe_reports_success_and_failure(tmp_path: Path) -> None:
    ok_backend = SQLiteBackend.from_path(tmp_path / "probe.db")
    broken = SQLiteBackend.from_path(tmp_path / "missing-dir" / "probe.db")
    try:
        assert ok_backend.probe() == (True, None)
        ok, message = broken.probe()
        assert ok is False
        assert message
    finally:
        ok_backend.close()
        broken.close()


def test_normalise_rate_date_handles_multiple_input_types() -> None:
    assert _normalise_rate_date(date(2024, 5, 1)) == date(2024, 5, 1)
    assert _normalise_rate_date(datetime(2024, 5, 2, 15, 0)) == date(2024, 5, 2)
    assert _normalise_rate_date("2024-05-03") == date(2024, 5, 3)
