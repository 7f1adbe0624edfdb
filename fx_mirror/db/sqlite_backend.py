"""SQLite backend strategy implementation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy.engine import URL, make_url

from fx_mirror.db.relational_backend import RelationalBackend


class SQLiteBackend(RelationalBackend):
    """Backend strategy that stores rates in a local SQLite file.

    Scheduled runs execute on worker threads, so the pool must hand
    connections across threads.
    """

    def __init__(self, url: str | URL, **engine_options: Any) -> None:
        connect_args = dict(engine_options.pop("connect_args", {}))
        connect_args.setdefault("check_same_thread", False)
        super().__init__(url, connect_args=connect_args, **engine_options)
        self.db_path = _database_path(url)

    @classmethod
    def from_path(cls, db_path: str | Path) -> "SQLiteBackend":
        resolved = Path(db_path).expanduser().resolve()
        return cls(f"sqlite:///{resolved.as_posix()}")


def _database_path(url: str | URL) -> Path | None:
    database = make_url(url).database
    if not database or database == ":memory:":
        return None
    return Path(database)


__all__ = ["SQLiteBackend"]
