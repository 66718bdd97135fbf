"""Map ORM rows onto API models.

Storage uses snake_case columns and nullable joins; the API exposes camelCase
models with an embedded author, category and tag list. Keeping the mapping
here means routers and views never poke at ORM attributes directly.
"""

from studyhub.models.post import AuthorSummary, PostDetail, PostSummary
from studyhub.models.profile import Profile
from studyhub.models.taxonomy import Category, CategorySummary, Tag, TagSummary
from studyhub.services import tables


def to_author(user: tables.User | None, author_id: str) -> AuthorSummary:
    # A profile row can be missing if the provider account was never synced
    if user is None:
        return AuthorSummary(id=author_id)
    return AuthorSummary(
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        avatar_url=user.avatar_url,
    )


def to_category_summary(category: tables.Category | None) -> CategorySummary | None:
    if category is None:
        return None
    return CategorySummary(
        id=category.id, name=category.name, slug=category.slug, color=category.color
    )


def to_tag_summary(tag: tables.Tag) -> TagSummary:
    return TagSummary(id=tag.id, name=tag.name, slug=tag.slug)


def to_category(category: tables.Category) -> Category:
    return Category(
        id=category.id,
        name=category.name,
        slug=category.slug,
        color=category.color,
        description=category.description,
        created_at=category.created_at,
        updated_at=category.updated_at,
    )


def to_tag(tag: tables.Tag) -> Tag:
    return Tag(
        id=tag.id,
        name=tag.name,
        slug=tag.slug,
        description=tag.description,
        created_at=tag.created_at,
    )


def _summary_fields(post: tables.Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "cover_image": post.cover_image,
        "author_id": post.author_id,
        "category_id": post.category_id,
        "is_published": post.is_published,
        "is_pinned": post.is_pinned,
        "view_count": post.view_count,
        "like_count": post.like_count,
        "comment_count": post.comment_count,
        "reading_time": post.reading_time,
        "published_at": post.published_at,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
        "author": to_author(post.author, post.author_id),
        "category": to_category_summary(post.category),
        "tags": [to_tag_summary(t) for t in post.tags],
    }


def to_post_summary(post: tables.Post) -> PostSummary:
    """Listing shape. Requires author, category and tags to be loaded."""
    return PostSummary(**_summary_fields(post))


def to_post_detail(post: tables.Post) -> PostDetail:
    """Full shape including content and SEO fields."""
    return PostDetail(
        **_summary_fields(post),
        content=post.content,
        seo_title=post.seo_title,
        seo_description=post.seo_description,
    )


def to_profile(user: tables.User) -> Profile:
    return Profile(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        avatar_url=user.avatar_url,
        bio=user.bio,
        website=user.website,
        github_username=user.github_username,
        twitter_username=user.twitter_username,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )
