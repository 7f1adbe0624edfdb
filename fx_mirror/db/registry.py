"""Process-wide holder for the per-target connection pools."""

from __future__ import annotations

from typing import Iterable, Iterator

from fx_mirror.db import DatabaseBackend
from fx_mirror.db.base_backend import BackendStrategy
from fx_mirror.db.mysql_backend import MySQLBackend
from fx_mirror.db.postgres_backend import PostgresBackend
from fx_mirror.db.sqlite_backend import SQLiteBackend
from fx_mirror.db.targets import DatabaseTarget
from fx_mirror.utils.logger import get_logger

LOGGER = get_logger(__name__)


def build_backend(target: DatabaseTarget) -> BackendStrategy:
    """Return the backend matching the target's SQLAlchemy dialect."""

    url = target.sqlalchemy_url()
    backend = DatabaseBackend.from_dialect(url.drivername)
    if backend is DatabaseBackend.POSTGRES:
        _, _, driver = url.drivername.partition("+")
        url = url.set(drivername=f"postgresql+{driver}" if driver else "postgresql")
        return PostgresBackend(url)
    if backend is DatabaseBackend.MYSQL:
        return MySQLBackend(url)
    if backend is DatabaseBackend.SQLITE:
        return SQLiteBackend(url)
    raise ValueError(f"Unsupported backend: {backend}")


class BackendRegistry:
    """Owns one backend (and therefore one connection pool) per target.

    Create it once at startup, share it between runs and call :meth:`close`
    on shutdown. Target order is preserved.
    """

    def __init__(
        self,
        targets: Iterable[DatabaseTarget],
        *,
        backends: dict[str, BackendStrategy] | None = None,
    ) -> None:
        self.targets: tuple[DatabaseTarget, ...] = tuple(targets)
        provided = backends or {}
        self._backends: dict[str, BackendStrategy] = {}
        for target in self.targets:
            self._backends[target.name] = provided.get(target.name) or build_backend(target)
        self._closed = False

    def __len__(self) -> int:
        return len(self.targets)

    def items(self) -> Iterator[tuple[DatabaseTarget, BackendStrategy]]:
        if self._closed:
            raise RuntimeError("BackendRegistry has been closed")
        for target in self.targets:
            yield target, self._backends[target.name]

    def backend(self, name: str) -> BackendStrategy:
        try:
            return self._backends[name]
        except KeyError:
            raise KeyError(f"Unknown database target: {name}") from None

    def ensure_schema(self) -> dict[str, bool]:
        """Create the rate table on every target, isolating failures."""

        results: dict[str, bool] = {}
        for target, backend in self.items():
            try:
                backend.ensure_schema()
            except Exception as exc:
                LOGGER.error("Error preparing schema in %s: %s", target.name, exc)
                results[target.name] = False
            else:
                results[target.name] = True
        return results

    def probe(self) -> dict[str, tuple[bool, str | None]]:
        """Attempt a round trip to every target and report the outcome."""

        return {target.name: backend.probe() for target, backend in self.items()}

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for name, backend in self._backends.items():
            try:
                backend.close()
            except Exception as exc:  # pragma: no cover - best effort cleanup
                LOGGER.warning("Failed to close connection pool for %s: %s", name, exc)

    def __enter__(self) -> "BackendRegistry":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = ["BackendRegistry", "build_backend"]
