"""Profile endpoints for the signed-in user."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.models.base import parse_body
from studyhub.models.profile import Profile, ProfileUpdate
from studyhub.services.auth import SessionContext, get_session_context
from studyhub.services.database import get_session
from studyhub.services.post_mapper import to_profile
from studyhub.services.profiles import ensure_profile, update_profile

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=Profile)
async def get_profile(
    auth: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_session),
):
    caller = await auth.require_user()
    return to_profile(await ensure_profile(session, caller))


@router.patch("", response_model=Profile)
async def patch_profile(
    payload: Any = Body(default=None),
    auth: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_session),
):
    """Update display fields; fields absent from the body are left alone."""
    caller = await auth.require_user()
    body = parse_body(ProfileUpdate, payload)
    return to_profile(await update_profile(session, caller, body))
