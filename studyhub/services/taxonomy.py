"""Shared reference data: categories and tags."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.errors import StorageError
from studyhub.models.taxonomy import Category, Tag
from studyhub.services import tables
from studyhub.services.content import create_slug
from studyhub.services.post_mapper import to_category, to_tag

logger = logging.getLogger(__name__)


async def list_categories(session: AsyncSession) -> list[Category]:
    """All categories ordered by name."""
    try:
        result = await session.execute(
            select(tables.Category).order_by(tables.Category.name)
        )
    except SQLAlchemyError as e:
        logger.error("Database error listing categories: %s", e)
        raise StorageError("Failed to fetch categories") from e
    return [to_category(c) for c in result.scalars()]


async def list_tags(session: AsyncSession) -> list[Tag]:
    """All tags ordered by name."""
    try:
        result = await session.execute(select(tables.Tag).order_by(tables.Tag.name))
    except SQLAlchemyError as e:
        logger.error("Database error listing tags: %s", e)
        raise StorageError("Failed to fetch tags") from e
    return [to_tag(t) for t in result.scalars()]


async def seed_reference_data(
    session: AsyncSession,
    categories: list[dict],
    tags: list[dict],
) -> tuple[int, int]:
    """Insert categories and tags whose slugs are not present yet.

    Each entry needs ``name`` and may carry ``slug``, ``description`` and
    (categories only) ``color``. Returns ``(categories_added, tags_added)``.
    """
    added = []
    for model, entries in ((tables.Category, categories), (tables.Tag, tags)):
        existing = set((await session.execute(select(model.slug))).scalars())
        count = 0
        for entry in entries:
            slug = entry.get("slug") or create_slug(entry["name"])
            if slug in existing:
                continue
            session.add(model(**{**entry, "slug": slug}))
            existing.add(slug)
            count += 1
        added.append(count)

    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Database error seeding reference data: %s", e)
        raise StorageError("Failed to seed categories and tags") from e

    logger.info("Seeded %d categories and %d tags", added[0], added[1])
    return added[0], added[1]
