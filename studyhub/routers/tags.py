"""Tag endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.models.taxonomy import Tag
from studyhub.services.database import get_session
from studyhub.services.taxonomy import list_tags

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=list[Tag])
async def get_tags(session: AsyncSession = Depends(get_session)):
    """All tags, ordered by name."""
    return await list_tags(session)
