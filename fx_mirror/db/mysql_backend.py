"""MySQL backend strategy."""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import URL

from fx_mirror.db.relational_backend import RelationalBackend

# Must stay below the server's ``wait_timeout``.
POOL_RECYCLE_SECONDS = 3600


class MySQLBackend(RelationalBackend):
    """Concrete relational backend for MySQL/MariaDB engines."""

    def __init__(self, url: str | URL, **engine_options: Any) -> None:
        engine_options.setdefault("pool_recycle", POOL_RECYCLE_SECONDS)
        super().__init__(url, **engine_options)


__all__ = ["MySQLBackend"]
