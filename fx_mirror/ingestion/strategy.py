"""Abstractions for pluggable rate sources."""

from __future__ import annotations

from datetime import date
from typing import Protocol

from fx_mirror.ingestion.models import RawRateEntry


class RateSource(Protocol):
    """Contract the pipeline relies on for fetching raw rates.

    Implementations retrieve the feed for an inclusive date window and either
    return the raw entries or raise :class:`~fx_mirror.ingestion.fetcher.FetchError`.
    """

    def fetch(self, start: date, end: date) -> list[RawRateEntry]:
        ...  # pragma: no cover - protocol definition


__all__ = ["RateSource"]
