"""Map raw feed entries onto complete ``kursna_lista`` records."""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Iterable

from fx_mirror.ingestion.models import CanonicalRateRecord, RawRateEntry
from fx_mirror.utils.logger import get_logger

LOGGER = get_logger(__name__)

# Used when the feed has no usable middle rate for an entry.
MID_RATE_FALLBACK = 62.0

_DATE_PREFIX = re.compile(r"^\s*(\d{4}-\d{2}-\d{2})(?:[T ].*)?\s*$")


def valid_number(value: Any, fallback: float = 0.0) -> float:
    """Return ``value`` as a finite float, or ``fallback`` when it is not one."""

    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        text = str(value).strip()
        # float() also reads Python-only digit separators such as "1_000".
        if "_" in text:
            return fallback
        try:
            parsed = float(text)
        except (TypeError, ValueError):
            return fallback
    if not math.isfinite(parsed):
        return fallback
    return parsed


def strip_time(value: Any) -> date:
    """Return the calendar day of a feed timestamp."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        match = _DATE_PREFIX.match(value)
        if match:
            return date.fromisoformat(match.group(1))
    raise ValueError(f"Unrecognised rate timestamp: {value!r}")


class RateNormalizer:
    """Filter raw entries to the allow-list and default every rate column."""

    def __init__(
        self,
        allowed_currencies: Iterable[str],
        *,
        planned_rate_override: Any = None,
        mid_fallback: float = MID_RATE_FALLBACK,
    ) -> None:
        self.allowed_currencies = frozenset(allowed_currencies)
        self.planned_rate_override = planned_rate_override
        self.mid_fallback = mid_fallback

    def filter(self, entries: Iterable[RawRateEntry]) -> list[RawRateEntry]:
        """Keep entries whose code is allowed; order and duplicates are preserved."""

        return [entry for entry in entries if entry.code in self.allowed_currencies]

    def to_canonical(self, entry: RawRateEntry) -> CanonicalRateRecord:
        mid = valid_number(entry.mid, self.mid_fallback)
        try:
            valid_from = strip_time(entry.effective_timestamp)
        except ValueError as exc:
            raise ValueError(f"{entry.code}: {exc}") from exc
        return CanonicalRateRecord(
            currency_code=entry.code,
            valid_from_date=valid_from,
            bank_buy=valid_number(entry.buy, mid),
            bank_mid=valid_number(entry.mid, mid),
            bank_sell=valid_number(entry.sell, mid),
            exchange_office_buy=valid_number(entry.buy, mid),
            exchange_office_sell=valid_number(entry.sell, mid),
            planned_rate=valid_number(self.planned_rate_override, mid),
            reference_rate=valid_number(entry.sell, mid),
            settlement_rate=valid_number(entry.sell, mid),
        )

    def normalize(self, entries: Iterable[RawRateEntry]) -> list[CanonicalRateRecord]:
        """Return one canonical record per allowed entry."""

        filtered = self.filter(entries)
        LOGGER.debug("Filtered rates: %s", filtered)
        if not filtered:
            LOGGER.info("No relevant currencies found for storage.")
            return []

        records: list[CanonicalRateRecord] = []
        for entry in filtered:
            try:
                records.append(self.to_canonical(entry))
            except ValueError as exc:
                LOGGER.warning("Skipping rate entry without a usable date: %s", exc)
        return records


def normalize(
    raw_entries: Iterable[RawRateEntry],
    allowed_currencies: Iterable[str],
    *,
    planned_rate_override: Any = None,
) -> list[CanonicalRateRecord]:
    """Shortcut for ``RateNormalizer(allowed_currencies).normalize(raw_entries)``."""

    normalizer = RateNormalizer(allowed_currencies, planned_rate_override=planned_rate_override)
    return normalizer.normalize(raw_entries)


__all__ = [
    "MID_RATE_FALLBACK",
    "RateNormalizer",
    "normalize",
    "strip_time",
    "valid_number",
]
