"""Shared logic for SQL (MySQL/Postgres/SQLite) mirror backends."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine

from fx_mirror.db.base_backend import BackendStrategy
from fx_mirror.ingestion.models import (
    COLUMN_MAP,
    KEY_COLUMNS,
    RATE_TABLE,
    CanonicalRateRecord,
    rate_columns,
    record_columns,
)
from fx_mirror.utils.logger import get_logger

LOGGER = get_logger(__name__)

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {RATE_TABLE} (
    valuta_id VARCHAR(3) NOT NULL,
    vazi_od DATE NOT NULL,
    kurs_banka_kupoven NUMERIC(18, 6) NOT NULL,
    kurs_banka_sreden NUMERIC(18, 6) NOT NULL,
    kurs_banka_prodazen NUMERIC(18, 6) NOT NULL,
    kurs_menuvacnica_kupoven NUMERIC(18, 6) NOT NULL,
    kurs_menuvacnica_prodazen NUMERIC(18, 6) NOT NULL,
    kurs_planski NUMERIC(18, 6) NOT NULL,
    kurs_referenten NUMERIC(18, 6) NOT NULL,
    kurs_presmetkoven NUMERIC(18, 6) NOT NULL,
    PRIMARY KEY(valuta_id, vazi_od)
);
"""

_FIELD_BY_COLUMN = {column: field_name for field_name, column in COLUMN_MAP.items()}


def build_upsert_sql(dialect: str) -> str:
    """Return the insert-or-update statement for ``dialect``.

    Every non-key column is overwritten when a row with the same
    ``(valuta_id, vazi_od)`` already exists.
    """

    columns = record_columns()
    column_list = ", ".join(columns)
    placeholders = ", ".join(f":{column}" for column in columns)
    insert = f"INSERT INTO {RATE_TABLE} ({column_list})\nVALUES ({placeholders})"
    if dialect in {"mysql", "mariadb"}:
        updates = ",\n    ".join(f"{column} = VALUES({column})" for column in rate_columns())
        return f"{insert}\nON DUPLICATE KEY UPDATE\n    {updates}"
    if dialect in {"postgresql", "sqlite"}:
        updates = ",\n    ".join(f"{column} = excluded.{column}" for column in rate_columns())
        conflict = ", ".join(KEY_COLUMNS)
        return f"{insert}\nON CONFLICT ({conflict}) DO UPDATE SET\n    {updates}"
    raise ValueError(f"Unsupported database dialect for upserts: {dialect}")


class RelationalBackend(BackendStrategy):
    """Base class that encapsulates SQLAlchemy powered interactions.

    The engine is created on first use and kept for the lifetime of the
    backend; SQLAlchemy's engine owns the connection pool for the target.
    """

    def __init__(self, url: str | URL, **engine_options: Any) -> None:
        self.url = url
        self.engine_options = engine_options
        self._engine_instance: Engine | None = None
        self._upsert_sql: str | None = None

    def _get_engine(self) -> Engine:
        if self._engine_instance is None:
            self._engine_instance = create_engine(
                self.url, future=True, pool_pre_ping=True, **self.engine_options
            )
        return self._engine_instance

    @property
    def dialect(self) -> str:
        return self._get_engine().dialect.name

    def upsert_statement(self) -> str:
        if self._upsert_sql is None:
            self._upsert_sql = build_upsert_sql(self.dialect)
        return self._upsert_sql

    def ensure_schema(self) -> None:
        engine = self._get_engine()
        with engine.begin() as connection:
            LOGGER.info("Ensuring %s schema exists", RATE_TABLE)
            connection.execute(text("SELECT 1"))
            connection.execute(text(SCHEMA_SQL))

    def upsert_rate(self, record: CanonicalRateRecord) -> None:
        engine = self._get_engine()
        with engine.begin() as connection:
            connection.execute(text(self.upsert_statement()), self._bind(record.as_row()))

    def fetch_range(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        currency: str | None = None,
    ) -> list[CanonicalRateRecord]:
        where_clauses: list[str] = []
        params: dict[str, object] = {}
        if start is not None:
            where_clauses.append("vazi_od >= :start_date")
            params["start_date"] = start
        if end is not None:
            where_clauses.append("vazi_od <= :end_date")
            params["end_date"] = end
        if currency is not None:
            where_clauses.append("valuta_id = :currency")
            params["currency"] = currency
        query = f"SELECT {', '.join(record_columns())} FROM {RATE_TABLE}"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY vazi_od, valuta_id"

        records: list[CanonicalRateRecord] = []
        with self._get_engine().connect() as connection:
            for row in connection.execute(text(query), self._bind(params)):
                records.append(_record_from_mapping(row._mapping))
        return records

    def _bind(self, params: dict[str, Any]) -> dict[str, Any]:
        # sqlite3 keeps dates as ISO text.
        if self.dialect != "sqlite":
            return params
        return {
            key: value.isoformat() if isinstance(value, date) else value
            for key, value in params.items()
        }

    def probe(self) -> tuple[bool, str | None]:
        """Ping the target with ``SELECT 1``."""

        try:
            with self._get_engine().connect() as connection:
                connection.execute(text("SELECT 1"))
        except ModuleNotFoundError as exc:
            return False, f"Missing database driver '{exc.name or exc}'"
        except Exception as exc:  # SQLAlchemy provides error detail
            return False, str(exc)
        return True, None

    def close(self) -> None:
        if self._engine_instance is not None:
            self._engine_instance.dispose()
            self._engine_instance = None


def _record_from_mapping(mapping: Any) -> CanonicalRateRecord:
    values: dict[str, Any] = {}
    for column, field_name in _FIELD_BY_COLUMN.items():
        value = mapping[column]
        if column == "vazi_od":
            values[field_name] = _normalise_rate_date(value)
        elif column == "valuta_id":
            values[field_name] = str(value)
        else:
            values[field_name] = float(value)
    return CanonicalRateRecord(**values)


def _normalise_rate_date(value: object) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(str(value))


__all__ = ["RelationalBackend", "SCHEMA_SQL", "build_upsert_sql"]
