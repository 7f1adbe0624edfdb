"""Process entry point: schedule exchange rate runs until terminated."""

from __future__ import annotations

import signal
import threading

from fx_mirror import FxMirror
from fx_mirror.config import load_settings
from fx_mirror.utils.logger import configure_logging, get_logger

LOGGER = get_logger(__name__)


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_dir)

    stop_requested = threading.Event()

    def _request_stop(signum, _frame) -> None:
        LOGGER.info("Received signal %s; shutting down", signum)
        stop_requested.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    with FxMirror(settings) as mirror:
        LOGGER.info(
            "Mirroring %s into %s database(s)",
            ", ".join(settings.currencies),
            len(mirror.registry),
        )
        mirror.connection()
        if settings.ensure_schema:
            mirror.ensure_schema()
        mirror.start()
        stop_requested.wait()


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
