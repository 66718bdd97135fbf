"""Category endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.models.taxonomy import Category
from studyhub.services.database import get_session
from studyhub.services.taxonomy import list_categories

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[Category])
async def get_categories(session: AsyncSession = Depends(get_session)):
    """All categories, ordered by name."""
    return await list_categories(session)
