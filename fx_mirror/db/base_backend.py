"""Backend strategy interfaces for fx_mirror."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from fx_mirror.ingestion.models import CanonicalRateRecord


class BackendStrategy(ABC):
    """Common interface implemented by every mirror database backend."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the rate table when missing and verify connectivity."""

    @abstractmethod
    def upsert_rate(self, record: CanonicalRateRecord) -> None:
        """Insert ``record`` or overwrite the row with the same key."""

    @abstractmethod
    def fetch_range(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        currency: str | None = None,
    ) -> list[CanonicalRateRecord]:
        """Return stored rates constrained by the provided dates."""

    def probe(self) -> tuple[bool, str | None]:  # pragma: no cover - optional hook
        """Report whether the backend is reachable."""
        return True, None

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Backends may override to release connections/resources."""


__all__ = ["BackendStrategy"]
