"""Category and tag data models."""

from datetime import datetime

from studyhub.models.base import ApiModel


class CategorySummary(ApiModel):
    """Category as embedded in a post."""

    id: str
    name: str
    slug: str
    color: str | None = None


class Category(CategorySummary):
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class TagSummary(ApiModel):
    id: str
    name: str
    slug: str


class Tag(TagSummary):
    description: str | None = None
    created_at: datetime
