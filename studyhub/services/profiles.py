"""Profile rows mirroring auth-provider identities."""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.errors import StorageError
from studyhub.models.profile import ProfileUpdate
from studyhub.services.auth import Identity
from studyhub.services.tables import User, utcnow

logger = logging.getLogger(__name__)


async def ensure_profile(session: AsyncSession, identity: Identity) -> User:
    """Return the caller's profile row, creating it from provider data if missing."""
    try:
        user = await session.get(User, identity.id)
        if user is not None:
            return user
        user = User(
            id=identity.id,
            email=identity.email or f"{identity.id}@users.invalid",
            full_name=identity.full_name,
            avatar_url=identity.avatar_url,
        )
        session.add(user)
        await session.commit()
        logger.info("Created profile for %s", identity.id)
        return user
    except IntegrityError:
        # Lost a race with a concurrent request creating the same row
        await session.rollback()
        user = await session.get(User, identity.id)
        if user is None:
            raise StorageError("Failed to create profile")
        return user
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Database error ensuring profile %s: %s", identity.id, e)
        raise StorageError("Failed to load profile") from e


async def update_profile(
    session: AsyncSession, identity: Identity, data: ProfileUpdate
) -> User:
    """Apply the fields present in ``data`` to the caller's profile."""
    user = await ensure_profile(session, identity)
    for field in data.model_fields_set:
        value = getattr(data, field)
        if isinstance(value, str):
            value = value.strip() or None
        setattr(user, field, value)
    user.updated_at = utcnow()
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Database error updating profile %s: %s", identity.id, e)
        raise StorageError("Failed to update profile") from e
    return user
