"""Exceptions raised by the persistence layer."""

from sqlalchemy.exc import IntegrityError


class PersistenceError(Exception):
    """Base exception for persistence errors."""


class ConstraintViolationError(PersistenceError):
    """
    A statement was rejected by a storage-level integrity constraint.

    Raised when a bulk delete targets a parent row that child rows still
    reference. The driver error is kept as ``__cause__``.
    """

    def __init__(self, message: str, table: str | None = None, key: int | None = None):
        super().__init__(message)
        self.table = table
        self.key = key

    @classmethod
    def from_integrity_error(
        cls, error: IntegrityError, table: str, key: int
    ) -> "ConstraintViolationError":
        """Build from a SQLAlchemy IntegrityError raised by a statement on ``table``."""
        detail = str(error.orig) if error.orig is not None else str(error)
        return cls(
            f"Cannot delete {table} row {key}: {detail}",
            table=table,
            key=key,
        )
