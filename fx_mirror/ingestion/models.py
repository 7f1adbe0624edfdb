"""Data models shared across ingestion and persistence modules."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Mapping

from fx_mirror.utils.date_range import DateRange


@dataclass(frozen=True, slots=True)
class RawRateEntry:
    """One upstream rate entry exactly as the feed delivered it."""

    code: str
    effective_timestamp: Any
    buy: Any = None
    mid: Any = None
    sell: Any = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RawRateEntry":
        """Build an entry from the feed's JSON object."""

        code = payload.get("oznaka")
        if not isinstance(code, str) or not code.strip():
            raise ValueError(f"Rate entry is missing a currency code: {payload!r}")
        return cls(
            code=code.strip(),
            effective_timestamp=payload.get("datum"),
            buy=payload.get("kupoven"),
            mid=payload.get("sreden"),
            sell=payload.get("prodazen"),
        )


@dataclass(frozen=True, slots=True)
class CanonicalRateRecord:
    """Fully defaulted rate row written to every mirror database."""

    currency_code: str
    valid_from_date: date
    bank_buy: float
    bank_mid: float
    bank_sell: float
    exchange_office_buy: float
    exchange_office_sell: float
    planned_rate: float
    reference_rate: float
    settlement_rate: float

    def as_row(self) -> dict[str, Any]:
        """Return the record keyed by ``kursna_lista`` column names."""

        return {COLUMN_MAP[item.name]: getattr(self, item.name) for item in fields(self)}


# Field order here drives the column order of every generated statement.
COLUMN_MAP: dict[str, str] = {
    "currency_code": "valuta_id",
    "valid_from_date": "vazi_od",
    "bank_buy": "kurs_banka_kupoven",
    "bank_mid": "kurs_banka_sreden",
    "bank_sell": "kurs_banka_prodazen",
    "exchange_office_buy": "kurs_menuvacnica_kupoven",
    "exchange_office_sell": "kurs_menuvacnica_prodazen",
    "planned_rate": "kurs_planski",
    "reference_rate": "kurs_referenten",
    "settlement_rate": "kurs_presmetkoven",
}
KEY_COLUMNS: tuple[str, ...] = ("valuta_id", "vazi_od")
RATE_TABLE = "kursna_lista"


def record_columns() -> list[str]:
    """Return the ``kursna_lista`` columns in record field order."""

    return [COLUMN_MAP[item.name] for item in fields(CanonicalRateRecord)]


def rate_columns() -> list[str]:
    """Return the non-key columns overwritten on conflict."""

    return [column for column in record_columns() if column not in KEY_COLUMNS]


@dataclass(slots=True)
class TargetOutcome:
    """Result of writing one record into one target database."""

    target: str
    currency_code: str
    success: bool
    error: str | None = None


@dataclass(slots=True)
class RunOutcome:
    """Summary of a single pipeline run, used for logging only."""

    window: DateRange
    fetched: int = 0
    normalised: int = 0
    outcomes: list[TargetOutcome] = field(default_factory=list)
    aborted: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> list[TargetOutcome]:
        return [outcome for outcome in self.outcomes if outcome.success]

    @property
    def failed(self) -> list[TargetOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]


__all__ = [
    "COLUMN_MAP",
    "CanonicalRateRecord",
    "KEY_COLUMNS",
    "RATE_TABLE",
    "RawRateEntry",
    "RunOutcome",
    "TargetOutcome",
    "rate_columns",
    "record_columns",
]
