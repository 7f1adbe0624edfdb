from __future__ import annotations

from pathlib import Path

import pytest

from fx_mirror.config import Settings
from fx_mirror.db.targets import DatabaseTarget

FEED_URL = "https://rates.example/api?from={START_DATE}&to={END_DATE}"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        currencies=("EUR", "USD"),
        exchange_rate_url=FEED_URL,
        retry_delay_ms=0,
    )


@pytest.fixture
def sqlite_targets(tmp_path: Path) -> list[DatabaseTarget]:
    return [
        DatabaseTarget(name=f"mirror-{index}", url=f"sqlite:///{tmp_path / f'mirror_{index}.db'}")
        for index in (1, 2, 3)
    ]
