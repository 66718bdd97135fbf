"""Post repository: CRUD over posts and their tag links."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    StudyHubError,
    ValidationError,
)
from studyhub.models.post import PostCreate, PostList, PostUpdate
from studyhub.services.content import create_slug, process_content
from studyhub.services.post_query import PostFilters, list_posts
from studyhub.services.tables import Category, Post, Tag, post_tags, utcnow

logger = logging.getLogger(__name__)


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    return value


def _slug_for(title: str) -> str:
    slug = create_slug(title)
    if not slug:
        raise ValidationError("Title must contain at least one letter or digit")
    return slug


def _unique(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


class PostRepository:
    """Post persistence bound to a single request's session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @asynccontextmanager
    async def _store_errors(self, action: str) -> AsyncIterator[None]:
        """Roll back and re-raise unexpected store failures as StorageError."""
        try:
            yield
        except StudyHubError:
            # Discard any half-applied changes before surfacing the error
            await self._session.rollback()
            raise
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error("Database error while trying to %s: %s", action, e)
            raise StorageError(f"Failed to {action}") from e

    async def _load(self, post_id: str) -> Post | None:
        stmt = (
            select(Post)
            .where(Post.id == post_id)
            .options(
                selectinload(Post.author),
                selectinload(Post.category),
                selectinload(Post.tags),
            )
            .execution_options(populate_existing=True)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def _slug_taken(self, slug: str, exclude_id: str | None = None) -> bool:
        stmt = select(Post.id).where(Post.slug == slug)
        if exclude_id:
            stmt = stmt.where(Post.id != exclude_id)
        return (await self._session.execute(stmt.limit(1))).first() is not None

    async def _check_references(
        self, category_id: str | None, tag_ids: list[str]
    ) -> None:
        if category_id:
            found = await self._session.get(Category, category_id)
            if found is None:
                raise ValidationError(f"Unknown category: {category_id}")
        if tag_ids:
            stmt = select(func.count()).select_from(Tag).where(Tag.id.in_(tag_ids))
            known = (await self._session.execute(stmt)).scalar_one()
            if known != len(tag_ids):
                raise ValidationError("One or more tags do not exist")

    async def _insert_tag_links(self, post_id: str, tag_ids: list[str]) -> None:
        if tag_ids:
            await self._session.execute(
                insert(post_tags),
                [{"post_id": post_id, "tag_id": tag_id} for tag_id in tag_ids],
            )

    async def create(self, data: PostCreate, author_id: str) -> Post:
        """Insert a post and its tag links, deriving slug, excerpt and reading time."""
        title = _require_text(data.title, "Title").strip()
        content = _require_text(data.content, "Content")
        slug = _slug_for(title)
        stats = process_content(content)
        tag_ids = _unique(data.tag_ids or [])

        async with self._store_errors("create post"):
            if await self._slug_taken(slug):
                raise ConflictError(f"A post with slug '{slug}' already exists")
            await self._check_references(data.category_id, tag_ids)

            post = Post(
                title=title,
                slug=slug,
                content=content,
                excerpt=stats.excerpt,
                reading_time=stats.reading_time,
                author_id=author_id,
                category_id=data.category_id or None,
                cover_image=data.cover_image or None,
                seo_title=data.seo_title,
                seo_description=data.seo_description,
                is_published=data.is_published,
                published_at=utcnow() if data.is_published else None,
            )
            self._session.add(post)
            try:
                # The post row must exist before its tag links
                await self._session.flush()
                await self._insert_tag_links(post.id, tag_ids)
                await self._session.commit()
            except IntegrityError as e:
                await self._session.rollback()
                logger.warning("Integrity error creating post '%s': %s", slug, e)
                raise ConflictError(
                    f"A post with slug '{slug}' already exists"
                ) from e

            logger.info("Created post %s (%s) for %s", post.id, slug, author_id)
            return await self._load(post.id)

    async def get_by_id(self, post_id: str) -> Post | None:
        """Fetch a post regardless of visibility (for authorized callers only)."""
        async with self._store_errors("load post"):
            return await self._load(post_id)

    async def get_author_id(self, post_id: str) -> str | None:
        async with self._store_errors("load post"):
            stmt = select(Post.author_id).where(Post.id == post_id)
            return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_by_slug(self, slug: str, viewer_id: str | None = None) -> Post | None:
        """Resolve a post for its detail view and count the view.

        Drafts resolve only for their author. Returns None when the post does
        not exist or the viewer may not see it.
        """
        visible = Post.is_published.is_(True)
        if viewer_id:
            visible = or_(visible, Post.author_id == viewer_id)

        async with self._store_errors("load post"):
            stmt = select(Post.id).where(Post.slug == slug, visible)
            post_id = (await self._session.execute(stmt)).scalar_one_or_none()
            if post_id is None:
                return None

            await self._session.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(view_count=Post.view_count + 1)
                .execution_options(synchronize_session=False)
            )
            await self._session.commit()
            return await self._load(post_id)

    async def update(self, post_id: str, data: PostUpdate) -> Post:
        """Apply the fields present in ``data``; replaces the tag set if given."""
        fields = data.model_fields_set

        async with self._store_errors("update post"):
            post = await self._session.get(Post, post_id)
            if post is None:
                raise NotFoundError("Post not found")

            if "title" in fields:
                title = _require_text(data.title, "Title").strip()
                slug = _slug_for(title)
                if slug != post.slug and await self._slug_taken(slug, post.id):
                    raise ConflictError(f"A post with slug '{slug}' already exists")
                post.title = title
                post.slug = slug

            if "content" in fields:
                content = _require_text(data.content, "Content")
                stats = process_content(content)
                post.content = content
                post.excerpt = stats.excerpt
                post.reading_time = stats.reading_time

            if "category_id" in fields:
                category_id = data.category_id or None
                await self._check_references(category_id, [])
                post.category_id = category_id

            tag_ids = None
            if "tag_ids" in fields:
                tag_ids = _unique(data.tag_ids or [])
                await self._check_references(None, tag_ids)

            if "cover_image" in fields:
                post.cover_image = data.cover_image or None
            if "seo_title" in fields:
                post.seo_title = data.seo_title
            if "seo_description" in fields:
                post.seo_description = data.seo_description

            if data.is_published is not None:
                # published_at is stamped once, on the first publish
                if data.is_published and post.published_at is None:
                    post.published_at = utcnow()
                post.is_published = data.is_published

            post.updated_at = utcnow()

            try:
                await self._session.flush()
                if tag_ids is not None:
                    # Replace the whole set: delete every link, then re-insert
                    await self._session.execute(
                        delete(post_tags).where(post_tags.c.post_id == post_id)
                    )
                    await self._insert_tag_links(post_id, tag_ids)
                await self._session.commit()
            except IntegrityError as e:
                await self._session.rollback()
                logger.warning("Integrity error updating post %s: %s", post_id, e)
                raise ConflictError("Post conflicts with an existing post") from e

            logger.info("Updated post %s (fields: %s)", post_id, sorted(fields))
            return await self._load(post_id)

    async def delete(self, post_id: str) -> None:
        """Delete a post; tag links go with it via ON DELETE CASCADE."""
        async with self._store_errors("delete post"):
            result = await self._session.execute(
                delete(Post)
                .where(Post.id == post_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("Post not found")
            await self._session.commit()
            logger.info("Deleted post %s", post_id)

    async def list(self, filters: PostFilters) -> PostList:
        async with self._store_errors("list posts"):
            return await list_posts(self._session, filters)
