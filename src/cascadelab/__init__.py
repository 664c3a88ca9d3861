"""
cascadelab: Origin/Content cascade-delete sample on SQLAlchemy.

Models a parent entity that owns a set of children with cascade delete
configured at the object-graph layer, and exercises how that cascade behaves
against session-level and bulk-statement deletes.
"""

from cascadelab.database.errors import ConstraintViolationError, PersistenceError
from cascadelab.database.models import Content, Origin

__all__ = [
    "ConstraintViolationError",
    "Content",
    "Origin",
    "PersistenceError",
]
