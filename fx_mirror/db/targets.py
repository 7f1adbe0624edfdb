"""Static descriptors for the mirror databases."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from sqlalchemy.engine import URL, make_url

DEFAULT_DRIVER = "mysql+pymysql"


@dataclass(frozen=True, slots=True)
class DatabaseTarget:
    """Represents one mirror database receiving the canonical rates."""

    name: str
    host: str | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    port: int | None = None
    driver: str = DEFAULT_DRIVER
    url: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DatabaseTarget":
        """Create a target from one entry of the connections file."""

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Database target is missing a name: {dict(data)!r}")
        if not data.get("url") and not data.get("database"):
            raise ValueError(f"Database target {name!r} needs either 'url' or 'database'")
        port = data.get("port")
        return cls(
            name=name.strip(),
            host=data.get("host"),
            user=data.get("user"),
            password=data.get("password"),
            database=data.get("database"),
            port=int(port) if port is not None else None,
            driver=data.get("driver") or DEFAULT_DRIVER,
            url=data.get("url"),
        )

    def sqlalchemy_url(self) -> URL:
        """Return the SQLAlchemy URL used to build this target's pool."""

        if self.url:
            return make_url(self.url)
        return URL.create(
            self.driver,
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    @property
    def dialect(self) -> str:
        """Return the backend name without the driver suffix (``mysql``, ``sqlite``...)."""

        return self.sqlalchemy_url().get_backend_name()

    def __repr__(self) -> str:
        return f"DatabaseTarget(name={self.name!r}, url={self.sqlalchemy_url()!r})"


def parse_targets(items: Any) -> tuple[DatabaseTarget, ...]:
    """Validate a decoded connections list and return it as a tuple."""

    if not isinstance(items, list):
        raise ValueError("Database connections must be a JSON array of objects")
    targets: list[DatabaseTarget] = []
    seen: set[str] = set()
    for item in items:
        if not isinstance(item, Mapping):
            raise ValueError(f"Database target must be an object, got {item!r}")
        target = DatabaseTarget.from_mapping(item)
        if target.name in seen:
            raise ValueError(f"Duplicate database target name: {target.name!r}")
        seen.add(target.name)
        targets.append(target)
    return tuple(targets)


def load_targets(path: str | Path) -> tuple[DatabaseTarget, ...]:
    """Read the mirror database list from a JSON file."""

    source = Path(path)
    with source.open(encoding="utf-8") as handle:
        return parse_targets(json.load(handle))


__all__ = ["DEFAULT_DRIVER", "DatabaseTarget", "load_targets", "parse_targets"]
