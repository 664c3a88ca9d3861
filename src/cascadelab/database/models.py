"""
SQLAlchemy ORM models for cascadelab.

Two tables:
- ORIGIN: parent records
- CONTENT: child records pointing back at their Origin

Delete cascade lives on the ``Origin.content`` relationship only. The
``CONTENT.origin_id`` column is a plain foreign key without ``ON DELETE``,
so statements that bypass the ORM are rejected by the database while
children still reference the parent.
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from cascadelab.constants import CONTENT_TABLE, ORIGIN_TABLE


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


class Origin(Base):
    """Parent record owning a set of Content."""

    __tablename__ = ORIGIN_TABLE

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(255))

    # "all" = save-update, merge, refresh-expire, expunge, delete (no delete-orphan)
    content = relationship(
        "Content",
        back_populates="origin",
        cascade="all",
        collection_class=set,
    )

    def attach(self, content: "Content") -> "Content":
        """
        Make this Origin the owner of ``content``.

        Sets the back-reference and adds to the owning set, so both sides
        agree even before a flush.

        Args:
            content: Content to attach

        Returns:
            The attached Content
        """
        content.origin = self
        self.content.add(content)
        return content

    def __repr__(self) -> str:
        return f"<Origin(id={self.id}, name={self.name})>"


class Content(Base):
    """Child record; belongs to exactly one Origin once attached."""

    __tablename__ = CONTENT_TABLE

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(255))
    origin_id: Mapped[int | None] = mapped_column(
        ForeignKey(f"{ORIGIN_TABLE}.id"), index=True
    )

    origin = relationship("Origin", back_populates="content")

    def __repr__(self) -> str:
        return (
            f"<Content(id={self.id}, name={self.name}, origin_id={self.origin_id})>"
        )
