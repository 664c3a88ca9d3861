"""Database layer for cascadelab."""

from cascadelab.database.errors import ConstraintViolationError, PersistenceError
from cascadelab.database.repository import OriginRepository

__all__ = [
    "ConstraintViolationError",
    "OriginRepository",
    "PersistenceError",
]
