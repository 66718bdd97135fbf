"""Post endpoints: listing, detail, create, update and delete."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.errors import NotFoundError
from studyhub.models.base import parse_body
from studyhub.models.post import (
    DeleteResult,
    PostCreate,
    PostDetail,
    PostList,
    PostUpdate,
)
from studyhub.services.auth import Identity, SessionContext, get_session_context
from studyhub.services.database import get_session
from studyhub.services.post_mapper import to_post_detail
from studyhub.services.post_query import DEFAULT_LIMIT, PostFilters, PublishedFilter
from studyhub.services.posts import PostRepository
from studyhub.services.profiles import ensure_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


def get_post_repository(
    session: AsyncSession = Depends(get_session),
) -> PostRepository:
    return PostRepository(session)


async def resolve_published_filter(
    repo: PostRepository,
    caller: Identity | None,
    published: bool | None,
    author_id: str | None = None,
    slug: str | None = None,
) -> PublishedFilter:
    """Decide which publication states a listing may include.

    Drafts are only visible to their author: either the listing is scoped to
    the caller's own ``author`` id, or ``slug`` names a post the caller wrote.
    Everyone else gets published posts whatever they asked for.
    """
    if caller is None:
        return PublishedFilter.PUBLISHED

    may_view_drafts = author_id == caller.id
    if not may_view_drafts and slug:
        filters = PostFilters(slug=slug, published=PublishedFilter.ANY, limit=1)
        match = await repo.list(filters)
        may_view_drafts = bool(match.posts) and match.posts[0].author_id == caller.id

    if not may_view_drafts:
        return PublishedFilter.PUBLISHED
    return PublishedFilter.from_flag(published)


@router.get("", response_model=PostList)
async def list_posts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=100),
    category: str | None = Query(default=None, description="Category slug"),
    tag: str | None = Query(default=None, description="Tag slug"),
    search: str | None = Query(
        default=None, description="Substring of title, excerpt or content"
    ),
    author: str | None = Query(default=None, description="Author id"),
    slug: str | None = Query(default=None, description="Exact post slug"),
    published: bool | None = Query(
        default=None,
        description="Publication state; honoured only for the caller's own posts",
    ),
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
):
    """List posts, newest first with pinned posts on top."""
    caller = await auth.optional_user()
    state = await resolve_published_filter(repo, caller, published, author, slug)
    filters = PostFilters(
        page=page,
        limit=limit,
        category_slug=category,
        tag_slug=tag,
        search=search,
        author_id=author,
        slug=slug,
        published=state,
    )
    return await repo.list(filters)


@router.get("/by-slug/{slug}", response_model=PostDetail)
async def get_post_by_slug(
    slug: str,
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
):
    """Get a single post for reading; counts as a view."""
    caller = await auth.optional_user()
    post = await repo.get_by_slug(slug, viewer_id=caller.id if caller else None)
    if post is None:
        raise NotFoundError("Post not found")
    return to_post_detail(post)


@router.post("", response_model=PostDetail, status_code=201)
async def create_post(
    payload: Any = Body(default=None),
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
    session: AsyncSession = Depends(get_session),
):
    """Create a post owned by the caller."""
    caller = await auth.require_user()
    body = parse_body(PostCreate, payload)
    # Posts reference users.id, so the profile row must exist first
    await ensure_profile(session, caller)
    post = await repo.create(body, author_id=caller.id)
    return to_post_detail(post)


async def _authorize_author(
    post_id: str, auth: SessionContext, repo: PostRepository
) -> Identity:
    caller = await auth.require_user()
    author_id = await repo.get_author_id(post_id)
    if author_id is None:
        raise NotFoundError("Post not found")
    SessionContext.require_ownership(author_id, caller.id)
    return caller


@router.patch("/{post_id}", response_model=PostDetail)
async def update_post(
    post_id: str,
    payload: Any = Body(default=None),
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
):
    """Update a post; only its author may do so."""
    caller = await _authorize_author(post_id, auth, repo)
    body = parse_body(PostUpdate, payload)
    post = await repo.update(post_id, body)
    logger.info("Post %s updated by %s", post_id, caller.id)
    return to_post_detail(post)


@router.delete("/{post_id}", response_model=DeleteResult)
async def delete_post(
    post_id: str,
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
):
    """Delete a post; only its author may do so."""
    caller = await _authorize_author(post_id, auth, repo)
    await repo.delete(post_id)
    logger.info("Post %s deleted by %s", post_id, caller.id)
    return DeleteResult()
