"""Public interface for the fx_mirror package."""

from __future__ import annotations

from datetime import date
from importlib import metadata as importlib_metadata
from typing import Iterable

from fx_mirror.config import ConfigError, Settings, load_settings
from fx_mirror.db import DatabaseBackend
from fx_mirror.db.registry import BackendRegistry
from fx_mirror.db.targets import DatabaseTarget, load_targets
from fx_mirror.db.writer import MultiTargetWriter
from fx_mirror.ingestion.fetcher import FetchError, RateFetcher, RetryPolicy
from fx_mirror.ingestion.models import CanonicalRateRecord, RawRateEntry, RunOutcome
from fx_mirror.ingestion.normalizer import RateNormalizer, valid_number
from fx_mirror.ingestion.strategy import RateSource
from fx_mirror.pipeline import RatePipeline
from fx_mirror.scheduling.scheduler import RateScheduler
from fx_mirror.utils.date_range import DateRange
from fx_mirror.utils.logger import get_logger

__all__ = [
    "__version__",
    "BackendRegistry",
    "CanonicalRateRecord",
    "ConfigError",
    "DatabaseBackend",
    "DatabaseTarget",
    "DateRange",
    "FetchError",
    "FxMirror",
    "MultiTargetWriter",
    "RateFetcher",
    "RateNormalizer",
    "RatePipeline",
    "RateScheduler",
    "RawRateEntry",
    "RetryPolicy",
    "RunOutcome",
    "Settings",
    "load_settings",
    "load_targets",
    "valid_number",
]

try:
    __version__ = importlib_metadata.version("fx-mirror")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"

LOGGER = get_logger(__name__)


class FxMirror:
    """Package facade wiring the fetcher, normaliser, writer and scheduler."""

    __slots__ = ("settings", "registry", "fetcher", "pipeline", "_scheduler", "_owns_fetcher")

    # Provide direct access to the package version as a class attribute.
    __version__ = __version__

    def __init__(
        self,
        settings: Settings,
        targets: Iterable[DatabaseTarget] | None = None,
        *,
        fetcher: RateSource | None = None,
        registry: BackendRegistry | None = None,
    ) -> None:
        """Build the pipeline for ``settings``.

        ``targets`` defaults to the JSON list at ``settings.connections_file``.
        Callers may pass a prepared ``registry`` (which then takes precedence
        over ``targets``) or any object satisfying :class:`RateSource` as the
        ``fetcher``.
        """

        self.settings = settings
        if registry is None:
            resolved = tuple(targets) if targets is not None else load_targets(
                settings.connections_file
            )
            registry = BackendRegistry(resolved)
        self.registry = registry
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or RateFetcher(
            settings.exchange_rate_url,
            timeout=settings.request_timeout_seconds,
            retry_policy=RetryPolicy(
                max_retries=settings.max_retries,
                base_delay=settings.retry_delay_seconds,
            ),
        )
        normalizer = RateNormalizer(
            settings.currencies, planned_rate_override=settings.planned_rate
        )
        self.pipeline = RatePipeline(self.fetcher, normalizer, MultiTargetWriter(self.registry))
        self._scheduler: RateScheduler | None = None

    def run_window(self, start: date, end: date) -> RunOutcome:
        """Run the pipeline once for an explicit window."""

        return self.pipeline.run(DateRange(start=start, end=end))

    def run_once(self, day: date | None = None) -> RunOutcome:
        """Run the pipeline once for ``day`` (defaults to today)."""

        target_day = day or date.today()
        return self.run_window(target_day, target_day)

    def connection(self) -> dict[str, tuple[bool, str | None]]:
        """Attempt a round trip to every mirror database and report the outcome."""

        results = self.registry.probe()
        for name, (ok, error) in results.items():
            if ok:
                LOGGER.info("Connected to %s", name)
            else:
                LOGGER.error("Unable to connect to %s: %s", name, error)
        return results

    def ensure_schema(self) -> dict[str, bool]:
        return self.registry.ensure_schema()

    @property
    def scheduler(self) -> RateScheduler:
        if self._scheduler is None:
            self._scheduler = RateScheduler(self.settings, self.pipeline.run)
        return self._scheduler

    def start(self) -> RateScheduler:
        """Start firing runs in the background."""

        scheduler = self.scheduler
        scheduler.start()
        return scheduler

    def stop(self, wait: bool = True) -> None:
        if self._scheduler is not None:
            self._scheduler.stop(wait=wait)

    def close(self) -> None:
        """Stop scheduling and release the HTTP session and connection pools."""

        self.stop()
        if self._owns_fetcher and isinstance(self.fetcher, RateFetcher):
            self.fetcher.close()
        self.registry.close()

    def __enter__(self) -> "FxMirror":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
