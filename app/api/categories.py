"""Category API endpoints.

Lists the categories products can be created in.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import CategoryListResponse, CategorySchema
from app.catalog.repository import CategoryRepository
from app.infrastructure.database import get_session

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get(
    "",
    response_model=CategoryListResponse,
    summary="List categories",
)
async def list_categories(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CategoryListResponse:
    """List all categories ordered by name."""
    categories = await CategoryRepository(session).list_all()
    return CategoryListResponse(
        categories=[CategorySchema.from_model(c) for c in categories],
        total=len(categories),
    )
