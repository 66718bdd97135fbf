"""Server-rendered pages.

Pages read through the same repository and visibility helper as the JSON API;
anything that changes data is sent from the browser to ``/api`` by small
inline scripts in the templates.
"""

from pathlib import Path
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.config import get_settings
from studyhub.errors import NotFoundError, UnauthorizedError
from studyhub.routers.posts import get_post_repository, resolve_published_filter
from studyhub.services.auth import Identity, SessionContext, get_session_context
from studyhub.services.database import get_session
from studyhub.services.post_mapper import to_post_detail, to_profile
from studyhub.services.post_query import PostFilters
from studyhub.services.posts import PostRepository
from studyhub.services.profiles import ensure_profile
from studyhub.services.rendering import render_markdown
from studyhub.services.taxonomy import list_categories, list_tags

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["markdown"] = render_markdown

router = APIRouter(include_in_schema=False, default_response_class=HTMLResponse)

RECENT_POSTS_LIMIT = 6
POSTS_PAGE_SIZE = 10
DASHBOARD_PAGE_SIZE = 20

# Dashboard tab -> requested publication state
DASHBOARD_TABS = {"all": None, "published": True, "drafts": False}


async def _viewer(auth: SessionContext) -> Identity | None:
    return await auth.optional_user()


async def _signed_in(auth: SessionContext, page: str) -> Identity:
    viewer = await auth.current_user()
    if viewer is None:
        raise UnauthorizedError(f"Sign in to {page}")
    return viewer


def _page_query(params: dict[str, str]) -> str:
    """Query-string prefix that keeps the active filters when paging."""
    query = urlencode({k: v for k, v in params.items() if v})
    return f"{query}&" if query else ""


def _render(request: Request, name: str, viewer: Identity | None, **context):
    context.setdefault("site_name", get_settings().site_name)
    context["viewer"] = viewer
    return templates.TemplateResponse(request, name, context)


@router.get("/")
async def home(
    request: Request,
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
    session: AsyncSession = Depends(get_session),
):
    viewer = await _viewer(auth)
    recent = await repo.list(PostFilters(limit=RECENT_POSTS_LIMIT))
    categories = await list_categories(session)
    return _render(
        request, "index.html", viewer, posts=recent.posts, categories=categories
    )


@router.get("/posts")
async def posts_page(
    request: Request,
    page: int = Query(default=1, ge=1),
    category: str | None = None,
    tag: str | None = None,
    search: str | None = None,
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
    session: AsyncSession = Depends(get_session),
):
    """Browse published posts with category, tag and search filters."""
    viewer = await _viewer(auth)
    filters = {"category": category or "", "tag": tag or "", "search": search or ""}
    state = await resolve_published_filter(repo, viewer, None)
    result = await repo.list(
        PostFilters(
            page=page,
            limit=POSTS_PAGE_SIZE,
            category_slug=category or None,
            tag_slug=tag or None,
            search=search or None,
            published=state,
        )
    )
    return _render(
        request,
        "posts.html",
        viewer,
        posts=result.posts,
        pagination=result.pagination,
        categories=await list_categories(session),
        tags=await list_tags(session),
        filters=filters,
        query=_page_query(filters),
    )


@router.get("/posts/{slug}")
async def post_page(
    request: Request,
    slug: str,
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
):
    viewer = await _viewer(auth)
    post = await repo.get_by_slug(slug, viewer_id=viewer.id if viewer else None)
    if post is None:
        raise NotFoundError("Post not found")
    detail = to_post_detail(post)
    return _render(
        request,
        "post_detail.html",
        viewer,
        post=detail,
        is_author=viewer is not None and viewer.id == detail.author_id,
    )


@router.get("/categories")
async def categories_page(
    request: Request,
    auth: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_session),
):
    viewer = await _viewer(auth)
    categories = await list_categories(session)
    return _render(request, "categories.html", viewer, categories=categories)


@router.get("/dashboard")
async def dashboard_page(
    request: Request,
    tab: str = "all",
    page: int = Query(default=1, ge=1),
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
):
    """The caller's own posts, drafts included."""
    viewer = await _signed_in(auth, "see your dashboard")
    if tab not in DASHBOARD_TABS:
        tab = "all"
    state = await resolve_published_filter(
        repo, viewer, DASHBOARD_TABS[tab], author_id=viewer.id
    )
    result = await repo.list(
        PostFilters(
            page=page,
            limit=DASHBOARD_PAGE_SIZE,
            author_id=viewer.id,
            published=state,
        )
    )
    return _render(
        request,
        "dashboard.html",
        viewer,
        posts=result.posts,
        pagination=result.pagination,
        tab=tab,
        tabs=list(DASHBOARD_TABS),
    )


async def _editor(
    request: Request,
    viewer: Identity,
    session: AsyncSession,
    post=None,
):
    return _render(
        request,
        "editor.html",
        viewer,
        post=post,
        categories=await list_categories(session),
        tags=await list_tags(session),
    )


@router.get("/write")
async def write_page(
    request: Request,
    auth: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_session),
):
    viewer = await _signed_in(auth, "write a post")
    return await _editor(request, viewer, session)


@router.get("/write/{slug}")
async def edit_page(
    request: Request,
    slug: str,
    auth: SessionContext = Depends(get_session_context),
    repo: PostRepository = Depends(get_post_repository),
    session: AsyncSession = Depends(get_session),
):
    """Editor for an existing post; only its author gets past the guard."""
    viewer = await _signed_in(auth, "edit a post")
    state = await resolve_published_filter(repo, viewer, None, slug=slug)
    match = await repo.list(PostFilters(slug=slug, limit=1, published=state))
    if not match.posts:
        raise NotFoundError("Post not found")
    SessionContext.require_ownership(match.posts[0].author_id, viewer.id)

    # Editing is not reading, so load by id rather than counting a view
    post = await repo.get_by_id(match.posts[0].id)
    if post is None:
        raise NotFoundError("Post not found")
    return await _editor(request, viewer, session, post=to_post_detail(post))


@router.get("/profile")
async def profile_page(
    request: Request,
    auth: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_session),
):
    viewer = await _signed_in(auth, "see your profile")
    user = await ensure_profile(session, viewer)
    return _render(request, "profile.html", viewer, profile=to_profile(user))


def render_error_page(request: Request, status_code: int, message: str):
    """Used by the app's exception handlers for non-API requests."""
    return templates.TemplateResponse(
        request,
        "error.html",
        {
            "site_name": get_settings().site_name,
            "viewer": None,
            "status_code": status_code,
            "message": message,
        },
        status_code=status_code,
    )
