"""Filtered, sorted, paginated post listings."""

import math
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.errors import ValidationError
from studyhub.models.post import Pagination, PostList
from studyhub.services.post_mapper import to_post_summary
from studyhub.services.tables import Category, Post, Tag, post_tags

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class PublishedFilter(str, Enum):
    """Which publication states a listing may include."""

    PUBLISHED = "published"
    DRAFT = "draft"
    ANY = "any"

    @classmethod
    def from_flag(cls, published: bool | None) -> "PublishedFilter":
        if published is None:
            return cls.ANY
        return cls.PUBLISHED if published else cls.DRAFT


@dataclass(frozen=True)
class PostFilters:
    page: int = 1
    limit: int = DEFAULT_LIMIT
    category_slug: str | None = None
    tag_slug: str | None = None
    search: str | None = None
    author_id: str | None = None
    slug: str | None = None
    published: PublishedFilter = PublishedFilter.PUBLISHED

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationError("page must be at least 1")
        if not 0 < self.limit <= MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def apply_filters(stmt: Select, filters: PostFilters) -> Select:
    """Add the joins and WHERE clauses for ``filters`` to ``stmt``.

    Used for both the page query and the count query so that the two can
    never disagree.
    """
    if filters.published is PublishedFilter.PUBLISHED:
        stmt = stmt.where(Post.is_published.is_(True))
    elif filters.published is PublishedFilter.DRAFT:
        stmt = stmt.where(Post.is_published.is_(False))

    if filters.author_id:
        stmt = stmt.where(Post.author_id == filters.author_id)

    if filters.slug:
        stmt = stmt.where(Post.slug == filters.slug)

    if filters.category_slug:
        stmt = stmt.join(Category, Post.category_id == Category.id).where(
            Category.slug == filters.category_slug
        )

    if filters.tag_slug:
        stmt = (
            stmt.join(post_tags, post_tags.c.post_id == Post.id)
            .join(Tag, Tag.id == post_tags.c.tag_id)
            .where(Tag.slug == filters.tag_slug)
        )

    search = (filters.search or "").strip()
    if search:
        pattern = _like_pattern(search)
        stmt = stmt.where(
            or_(
                Post.title.ilike(pattern, escape="\\"),
                Post.excerpt.ilike(pattern, escape="\\"),
                Post.content.ilike(pattern, escape="\\"),
            )
        )

    return stmt


def ordered(stmt: Select) -> Select:
    """Pinned first, then newest publish date, then newest creation date.

    The id breaks remaining ties so pages never overlap.
    """
    return stmt.order_by(
        Post.is_pinned.desc(),
        Post.published_at.desc().nulls_last(),
        Post.created_at.desc(),
        Post.id,
    )


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if total else 0
    return Pagination(
        page=page,
        limit=limit,
        total_count=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


async def list_posts(session: AsyncSession, filters: PostFilters) -> PostList:
    """Run the count and page queries for ``filters``."""
    count_stmt = select(func.count()).select_from(
        apply_filters(select(Post.id), filters).subquery()
    )
    total = (await session.execute(count_stmt)).scalar_one()

    page_stmt = (
        ordered(apply_filters(select(Post), filters))
        .options(
            selectinload(Post.author),
            selectinload(Post.category),
            selectinload(Post.tags),
        )
        .offset(filters.offset)
        .limit(filters.limit)
    )
    rows = (await session.execute(page_stmt)).scalars().all()

    return PostList(
        posts=[to_post_summary(p) for p in rows],
        pagination=build_pagination(filters.page, filters.limit, total),
    )
