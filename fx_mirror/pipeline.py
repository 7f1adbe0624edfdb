"""One ingestion run: fetch, normalise and fan the rates out."""

from __future__ import annotations

from fx_mirror.db.writer import MultiTargetWriter
from fx_mirror.ingestion.fetcher import FetchError
from fx_mirror.ingestion.models import RunOutcome
from fx_mirror.ingestion.normalizer import RateNormalizer
from fx_mirror.ingestion.strategy import RateSource
from fx_mirror.utils.date_range import DateRange
from fx_mirror.utils.logger import get_logger

LOGGER = get_logger(__name__)


class RatePipeline:
    """Glue between the rate source, the normaliser and the writer."""

    def __init__(
        self,
        source: RateSource,
        normalizer: RateNormalizer,
        writer: MultiTargetWriter,
    ) -> None:
        self.source = source
        self.normalizer = normalizer
        self.writer = writer

    def run(self, window: DateRange) -> RunOutcome:
        """Execute one run for ``window``; only a failed fetch aborts it."""

        outcome = RunOutcome(window=window)
        LOGGER.info("Starting exchange rate fetch for %s", window)
        try:
            entries = self.source.fetch(window.start, window.end)
        except FetchError as exc:
            LOGGER.error("Failed to fetch exchange rates for %s after retries", window)
            outcome.aborted = True
            outcome.error = str(exc)
            return outcome

        outcome.fetched = len(entries)
        records = self.normalizer.normalize(entries)
        outcome.normalised = len(records)
        if not records:
            return outcome

        outcome.outcomes = self.writer.write_many(records)
        LOGGER.info(
            "Run for %s finished: %s records, %s target writes succeeded, %s failed",
            window,
            outcome.normalised,
            len(outcome.succeeded),
            len(outcome.failed),
        )
        return outcome


__all__ = ["RatePipeline"]
