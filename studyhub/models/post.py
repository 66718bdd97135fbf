"""Post data models."""

from datetime import datetime

from pydantic import Field

from studyhub.models.base import ApiModel
from studyhub.models.taxonomy import CategorySummary, TagSummary


class AuthorSummary(ApiModel):
    id: str
    full_name: str | None = None
    email: str = ""
    avatar_url: str | None = None


class PostSummary(ApiModel):
    """Post fields shown in listings (no body)."""

    id: str
    title: str
    slug: str
    excerpt: str | None = None
    cover_image: str | None = None
    author_id: str
    category_id: str | None = None
    is_published: bool
    is_pinned: bool = False
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    reading_time: int | None = None
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    author: AuthorSummary
    category: CategorySummary | None = None
    tags: list[TagSummary] = []


class PostDetail(PostSummary):
    """Full post, as returned by create/update/detail."""

    content: str
    seo_title: str | None = None
    seo_description: str | None = None


class Pagination(ApiModel):
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PostList(ApiModel):
    posts: list[PostSummary]
    pagination: Pagination


class PostCreate(ApiModel):
    """Body of POST /posts.

    Title and content are optional here so that missing values surface as a
    400 from the repository rather than a schema error.
    """

    title: str | None = None
    content: str | None = None
    category_id: str | None = None
    tag_ids: list[str] | None = None
    is_published: bool = False
    cover_image: str | None = None
    seo_title: str | None = Field(default=None, max_length=200)
    seo_description: str | None = Field(default=None, max_length=320)


class PostUpdate(ApiModel):
    """Body of PATCH /posts/{id}; only fields present in the payload change."""

    title: str | None = None
    content: str | None = None
    category_id: str | None = None
    tag_ids: list[str] | None = None
    is_published: bool | None = None
    cover_image: str | None = None
    seo_title: str | None = Field(default=None, max_length=200)
    seo_description: str | None = Field(default=None, max_length=320)


class DeleteResult(ApiModel):
    success: bool = True
