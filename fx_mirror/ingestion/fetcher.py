"""requests-based client for the daily exchange rate feed."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterator

import requests

from fx_mirror.ingestion.models import RawRateEntry
from fx_mirror.utils.date_range import format_feed_date
from fx_mirror.utils.logger import get_logger

LOGGER = get_logger(__name__)

START_PLACEHOLDER = "{START_DATE}"
END_PLACEHOLDER = "{END_DATE}"
DEFAULT_TIMEOUT_SECONDS = 5.0
CHUNK_SIZE = 8192


class FetchError(RuntimeError):
    """Raised once every attempt to download the feed has failed."""

    def __init__(self, message: str, *, url: str, attempts: int) -> None:
        super().__init__(message)
        self.url = url
        self.attempts = attempts


@dataclass(frozen=True)
class RetryPolicy:
    """Linear backoff: the n-th retry waits ``base_delay * n`` seconds."""

    max_retries: int = 3
    base_delay: float = 5.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    def delay_for(self, attempt: int) -> float:
        if attempt < 1:
            raise ValueError("retry attempts are numbered from 1")
        return self.base_delay * attempt

    def delays(self) -> Iterator[float]:
        for attempt in range(1, self.max_retries + 1):
            yield self.delay_for(attempt)


def build_url(template: str, start: date, end: date) -> str:
    """Substitute the feed date placeholders in ``template``."""

    return template.replace(START_PLACEHOLDER, format_feed_date(start)).replace(
        END_PLACEHOLDER, format_feed_date(end)
    )


class RateFetcher:
    """Download raw rate entries for a date window, retrying every failure.

    ``timeout`` bounds a whole attempt: ``requests`` applies it to the
    connect and to every socket read, and the body is streamed against a
    deadline so a feed that trickles bytes cannot stretch an attempt past
    ``timeout`` seconds.
    """

    def __init__(
        self,
        url_template: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_policy: RetryPolicy | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url_template = url_template
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self._owns_session = session is None
        self.session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock

    def fetch(self, start: date, end: date) -> list[RawRateEntry]:
        """Return the feed entries published for ``start``..``end``."""

        url = build_url(self.url_template, start, end)
        LOGGER.debug("Fetch URL: %s", url)
        payload = self._get_with_retry(url)
        return _entries_from_payload(payload)

    def _get_with_retry(self, url: str) -> list[Any]:
        max_retries = self.retry_policy.max_retries
        attempt = 0
        while True:
            try:
                return self._get(url)
            except (requests.RequestException, ValueError) as exc:
                if attempt >= max_retries:
                    LOGGER.error(
                        "Error fetching exchange rates after %s retries: %s",
                        max_retries,
                        exc,
                        exc_info=True,
                    )
                    raise FetchError(
                        f"Unable to fetch exchange rates from {url}: {exc}",
                        url=url,
                        attempts=attempt + 1,
                    ) from exc
                attempt += 1
                LOGGER.warning(
                    "Request failed. Retrying... (%s/%s): %s", attempt, max_retries, exc
                )
                self._sleep(self.retry_policy.delay_for(attempt))

    def _get(self, url: str) -> list[Any]:
        deadline = self._clock() + self.timeout
        response = self.session.get(url, timeout=self.timeout, stream=True)
        try:
            response.raise_for_status()
            body = self._read_body(response, deadline)
        finally:
            response.close()
        payload = json.loads(body)
        if not isinstance(payload, list):
            raise ValueError(
                f"Expected a JSON array from the rate feed, got {type(payload).__name__}"
            )
        return payload

    def _read_body(self, response: requests.Response, deadline: float) -> bytes:
        chunks: list[bytes] = []
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            chunks.append(chunk)
            if self._clock() > deadline:
                raise requests.Timeout(
                    f"Rate feed response exceeded {self.timeout}s", response=response
                )
        return b"".join(chunks)

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "RateFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _entries_from_payload(payload: list[Any]) -> list[RawRateEntry]:
    entries: list[RawRateEntry] = []
    for item in payload:
        if not isinstance(item, dict):
            LOGGER.warning("Ignoring non-object rate entry: %r", item)
            continue
        try:
            entries.append(RawRateEntry.from_payload(item))
        except ValueError as exc:
            LOGGER.warning("%s", exc)
    return entries


__all__ = ["FetchError", "RateFetcher", "RetryPolicy", "build_url"]
