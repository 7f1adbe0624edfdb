"""Database targets and backends for the mirror databases."""

from __future__ import annotations

from enum import Enum

__all__ = ["DatabaseBackend"]


class DatabaseBackend(str, Enum):
    """Supported relational engines for mirror databases."""

    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"

    @classmethod
    def from_dialect(cls, dialect: str) -> "DatabaseBackend":
        """Normalise SQLAlchemy backend names into a DatabaseBackend value."""

        if not dialect:
            raise ValueError("Database URL must include a dialect (e.g. mysql:// or postgres://)")
        base, _, _driver = dialect.lower().partition("+")
        if base in {"postgresql", "postgres"}:
            return cls.POSTGRES
        if base in {"mysql", "mariadb"}:
            return cls.MYSQL
        if base == "sqlite":
            return cls.SQLITE
        raise ValueError(
            "Unsupported database backend. Supported values are SQLite, MySQL and Postgres."
        )
