"""Pydantic models for Origin and Content data."""

from pydantic import BaseModel, ConfigDict, Field


class ContentSummary(BaseModel):
    """A Content row as shown to users."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None = None
    origin_id: int | None = Field(default=None, description="Owning origin id")


class OriginSummary(BaseModel):
    """An Origin with the Content it owns."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None = None
    content: list[ContentSummary] = Field(default_factory=list)

    @property
    def content_count(self) -> int:
        return len(self.content)

    @classmethod
    def from_origin(cls, origin) -> "OriginSummary":
        """Build from an ORM Origin, ordering content by id."""
        return cls(
            id=origin.id,
            name=origin.name,
            content=[
                ContentSummary.model_validate(c)
                for c in sorted(origin.content, key=lambda c: c.id)
            ],
        )
