"""
Origin/Content persistence operations.

All deletes of the sample go through here. Two families exist:

- object-graph deletes (``delete_origin``, ``delete_content``) run through the
  unit of work, so the ``Origin.content`` cascade applies
- bulk statements (``bulk_delete_*``, ``purge_origin``) are sent straight to
  the database and never see the cascade

A bulk statement on a parent that still has children is rejected by the
foreign key and raised as ``ConstraintViolationError``.
"""

import logging

from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cascadelab.constants import CONTENT_TABLE, ORIGIN_TABLE
from cascadelab.database.errors import ConstraintViolationError
from cascadelab.database.models import Content, Origin

logger = logging.getLogger(__name__)


class OriginRepository:
    """Session-bound access to Origin and Content."""

    def __init__(self, session: Session, invalidate_on_bulk: bool = True):
        """
        Args:
            session: Active SQLAlchemy session
            invalidate_on_bulk: If True, objects matched by a bulk statement are
                removed from the session and the content sets of loaded Origins
                are expired. If False, both stay behind as stale copies until
                the session is expired or cleared.
        """
        self.session = session
        self.invalidate_on_bulk = invalidate_on_bulk

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_origin(self, name: str, content_names: Iterable[str] = ()) -> Origin:
        """
        Build an Origin with one Content per name and persist it.

        Args:
            name: Origin name
            content_names: Names of the Content records to attach

        Returns:
            The persisted Origin, ids assigned
        """
        origin = Origin(name=name)
        for content_name in content_names:
            origin.attach(Content(name=content_name))
        return self.persist(origin)

    def persist(self, origin: Origin) -> Origin:
        """Add an Origin (and, by cascade, its Content) and flush."""
        self.session.add(origin)
        self.session.flush()
        logger.debug(
            f"Persisted origin {origin.id} with {len(origin.content)} content record(s)"
        )
        return origin

    def attach(self, origin: Origin, name: str) -> Content:
        """Create a Content named ``name`` under ``origin`` and flush."""
        content = origin.attach(Content(name=name))
        self.session.flush()
        logger.debug(f"Attached content {content.id} to origin {origin.id}")
        return content

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_origin(self, origin_id: int) -> Origin | None:
        """Return the Origin for ``origin_id``, or None if absent."""
        return self.session.get(Origin, origin_id)

    def find_content(self, content_id: int) -> Content | None:
        """
        Return the Content for ``content_id``, or None if absent.

        Served from the identity map when the object is already loaded, so a
        stale copy can be returned after a bulk delete without invalidation.
        """
        return self.session.get(Content, content_id)

    def find_origins(self, *criteria: Any) -> list[Origin]:
        """Select Origins matching typed column criteria, e.g. ``Origin.id == 1``."""
        stmt = select(Origin).where(*criteria).order_by(Origin.id)
        return list(self.session.scalars(stmt).all())

    def list_contents(self, origin_id: int | None = None) -> list[Content]:
        """List Content ordered by id, optionally for a single Origin."""
        stmt = select(Content).order_by(Content.id)
        if origin_id is not None:
            stmt = stmt.where(Content.origin_id == origin_id)
        return list(self.session.scalars(stmt).all())

    def describe_contents(self) -> list[tuple[int, str | None, int | None]]:
        """Return ``(id, name, origin id)`` for every Content, following the relationship."""
        return [
            (content.id, content.name, content.origin.id if content.origin else None)
            for content in self.list_contents()
        ]

    def content_ids_in_storage(self, content_id: int) -> list[int]:
        """Query the CONTENT table directly, bypassing the identity map."""
        result = self.session.execute(
            text(f"SELECT id FROM {CONTENT_TABLE} WHERE id = :id"), {"id": content_id}
        )
        return list(result.scalars().all())

    def origin_ids_in_storage(self, origin_id: int) -> list[int]:
        """Query the ORIGIN table directly, bypassing the identity map."""
        result = self.session.execute(
            text(f"SELECT id FROM {ORIGIN_TABLE} WHERE id = :id"), {"id": origin_id}
        )
        return list(result.scalars().all())

    def count_contents(self, origin_id: int) -> int:
        """Count Content rows in storage that reference ``origin_id``."""
        stmt = select(func.count(Content.id)).where(Content.origin_id == origin_id)
        return self.session.execute(stmt).scalar_one()

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    def contains(self, instance: Origin | Content) -> bool:
        """Whether ``instance`` is currently tracked by the session."""
        return instance in self.session

    def clear(self) -> None:
        """Detach every object from the session."""
        self.session.expunge_all()

    def refresh(self, instance: Origin | Content) -> None:
        """Reload ``instance`` from storage."""
        self.session.refresh(instance)

    def expire(self, instance: Origin | Content, *attribute_names: str) -> None:
        """
        Mark attributes of ``instance`` stale so the next access reloads them.

        Expires every attribute when no names are given.
        """
        self.session.expire(instance, list(attribute_names) or None)

    # ------------------------------------------------------------------
    # Object-graph deletes
    # ------------------------------------------------------------------

    def delete_origin(self, origin: Origin) -> None:
        """
        Delete an Origin through the session.

        The ``Origin.content`` cascade deletes every attached Content in the
        same flush, loading the collection first if needed.
        """
        origin_id = origin.id
        self.session.delete(origin)
        self.session.flush()
        logger.debug(f"Deleted origin {origin_id} with cascade")

    def delete_content(self, content: Content) -> None:
        """
        Delete a single Content through the session.

        The owning Origin is untouched. Its in-memory ``content`` set keeps
        the deleted object until the caller clears or expires it.
        """
        content_id = content.id
        self.session.delete(content)
        self.session.flush()
        logger.debug(f"Deleted content {content_id}")

    # ------------------------------------------------------------------
    # Bulk statements
    # ------------------------------------------------------------------

    def _execution_options(self) -> dict[str, Any]:
        return {"synchronize_session": "evaluate" if self.invalidate_on_bulk else False}

    def _after_bulk(self) -> None:
        """Expire every loaded Origin.content so no set holds a bulk-deleted row."""
        if not self.invalidate_on_bulk:
            return
        for obj in list(self.session.identity_map.values()):
            if isinstance(obj, Origin):
                self.session.expire(obj, ["content"])

    def bulk_delete_content(self, content_id: int) -> int:
        """
        Delete a CONTENT row with a single statement.

        Returns:
            Number of rows deleted
        """
        stmt = delete(Content).where(Content.id == content_id)
        result = self.session.execute(stmt, execution_options=self._execution_options())
        self._after_bulk()
        logger.info(f"Bulk delete removed {result.rowcount} {CONTENT_TABLE} row(s)")
        return result.rowcount

    def bulk_delete_origin(self, origin_id: int) -> int:
        """
        Delete an ORIGIN row with a single statement.

        No cascade happens on this path.

        Returns:
            Number of rows deleted

        Raises:
            ConstraintViolationError: If CONTENT rows still reference the Origin
        """
        stmt = delete(Origin).where(Origin.id == origin_id)
        try:
            result = self.session.execute(
                stmt, execution_options=self._execution_options()
            )
        except IntegrityError as e:
            logger.warning(
                f"Bulk delete of {ORIGIN_TABLE} row {origin_id} rejected: {e.orig}"
            )
            raise ConstraintViolationError.from_integrity_error(
                e, ORIGIN_TABLE, origin_id
            ) from e
        self._after_bulk()
        logger.info(f"Bulk delete removed {result.rowcount} {ORIGIN_TABLE} row(s)")
        return result.rowcount

    def purge_origin(self, origin_id: int) -> tuple[int, int]:
        """
        Delete an Origin and its Content with bulk statements, children first.

        Returns:
            Tuple of (content rows deleted, origin rows deleted)
        """
        options = self._execution_options()
        contents = self.session.execute(
            delete(Content).where(Content.origin_id == origin_id),
            execution_options=options,
        ).rowcount
        try:
            origins = self.session.execute(
                delete(Origin).where(Origin.id == origin_id),
                execution_options=options,
            ).rowcount
        except IntegrityError as e:
            logger.warning(
                f"Purge of {ORIGIN_TABLE} row {origin_id} rejected: {e.orig}"
            )
            raise ConstraintViolationError.from_integrity_error(
                e, ORIGIN_TABLE, origin_id
            ) from e
        self._after_bulk()
        logger.info(
            f"Purged origin {origin_id}: {contents} {CONTENT_TABLE} row(s), "
            f"{origins} {ORIGIN_TABLE} row(s)"
        )
        return contents, origins
