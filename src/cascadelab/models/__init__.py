"""Pydantic models for cascadelab output."""

from cascadelab.models.origin import ContentSummary, OriginSummary

__all__ = ["ContentSummary", "OriginSummary"]
