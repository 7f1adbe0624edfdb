"""Best-effort fan-out of canonical rates to every mirror database."""

from __future__ import annotations

from typing import Iterable

from fx_mirror.db.registry import BackendRegistry
from fx_mirror.ingestion.models import CanonicalRateRecord, TargetOutcome
from fx_mirror.utils.logger import get_logger

LOGGER = get_logger(__name__)


class MultiTargetWriter:
    """Upsert each record into every registered target independently.

    A failing target is logged and reported in the returned outcomes; it never
    stops the remaining targets from being written and never raises.
    """

    def __init__(self, registry: BackendRegistry) -> None:
        self.registry = registry

    def write(self, record: CanonicalRateRecord) -> list[TargetOutcome]:
        outcomes: list[TargetOutcome] = []
        for target, backend in self.registry.items():
            try:
                backend.upsert_rate(record)
            except Exception as exc:
                LOGGER.error("Error storing rate in %s: %s", target.name, exc)
                outcomes.append(
                    TargetOutcome(
                        target=target.name,
                        currency_code=record.currency_code,
                        success=False,
                        error=str(exc),
                    )
                )
                continue
            LOGGER.info(
                "Stored exchange rate for %s in %s", record.currency_code, target.name
            )
            outcomes.append(
                TargetOutcome(target=target.name, currency_code=record.currency_code, success=True)
            )
        return outcomes

    def write_many(self, records: Iterable[CanonicalRateRecord]) -> list[TargetOutcome]:
        outcomes: list[TargetOutcome] = []
        for record in records:
            outcomes.extend(self.write(record))
        return outcomes


__all__ = ["MultiTargetWriter"]
