"""Product API endpoints.

Provides endpoints for listing products page by page and creating
products with uploaded images.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import (
    ErrorResponse,
    ProductPageResponse,
    ProductResponse,
    SortOrder,
)
from app.catalog.service import CatalogService, ErrorCode, PageOptions, ProductCreate
from app.infrastructure.config import settings
from app.infrastructure.database import get_session
from app.infrastructure.upload_client import FilePayload, ImageUploadClient, UploadGateway

router = APIRouter(prefix="/products", tags=["Products"])

ERROR_STATUS = {
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# ============================================================================
# Dependencies
# ============================================================================


async def get_upload_gateway() -> AsyncGenerator[UploadGateway, None]:
    """Get an upload client that is closed after the request."""
    client = ImageUploadClient()
    try:
        yield client
    finally:
        await client.close()


def get_catalog_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    uploads: Annotated[UploadGateway, Depends(get_upload_gateway)],
) -> CatalogService:
    """Get catalog service bound to the request's session."""
    return CatalogService.from_session(session, uploads)


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ProductPageResponse,
    summary="List products",
    description="Get one page of products with their images.",
)
async def list_products(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    page: Annotated[int, Query(ge=1, description="Page number (1-based)")] = 1,
    take: Annotated[
        int, Query(ge=1, le=settings.max_page_size, description="Items per page")
    ] = settings.default_page_size,
    order: Annotated[SortOrder, Query(description="Sort direction on id")] = SortOrder.ASC,
) -> ProductPageResponse:
    """List products.

    Args:
        service: Catalog service.
        page: Page number.
        take: Page size.
        order: Sort direction.

    Returns:
        Page of products.
    """
    result = await service.list_products(PageOptions(page=page, take=take, order=order.value))

    return ProductPageResponse(
        values=[ProductResponse.from_model(p) for p in result.values],
        item_count=result.item_count,
        page_count=result.page_count,
        has_previous_page=result.has_previous_page,
        has_next_page=result.has_next_page,
        page=result.page,
        take=result.take,
    )


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Create product",
    description="Create a product in one or more categories and upload its images.",
)
async def create_product(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    product_code: Annotated[str, Form(min_length=1, max_length=100)],
    name: Annotated[str, Form(min_length=1, max_length=500)],
    price: Annotated[int, Form(ge=0, description="Price in cents")],
    categories: Annotated[list[int], Form(description="Category ids")],
    description: Annotated[str | None, Form()] = None,
    currency: Annotated[str, Form(min_length=3, max_length=3)] = "USD",
    stock_quantity: Annotated[int, Form(ge=0)] = 0,
    files: Annotated[list[UploadFile] | None, File(description="Product images")] = None,
) -> ProductResponse:
    """Create a product.

    Args:
        service: Catalog service.
        product_code: Unique product code.
        name: Unique product name.
        price: Price in cents.
        categories: Ids of existing categories.
        description: Product description.
        currency: Currency code.
        stock_quantity: Available quantity.
        files: Image uploads.

    Returns:
        Created product.

    Raises:
        HTTPException: On duplicate product, unknown categories or
            a failed transaction.
    """
    payloads = [
        FilePayload(
            filename=f.filename or "upload",
            content=await f.read(),
            content_type=f.content_type or "application/octet-stream",
        )
        for f in files or []
    ]

    result = await service.create_product(
        ProductCreate(
            product_code=product_code,
            name=name,
            price=price,
            category_ids=categories,
            description=description,
            currency=currency,
            stock_quantity=stock_quantity,
        ),
        payloads,
    )

    if not result.success or result.product is None:
        error_code = result.error_code or ErrorCode.INTERNAL
        raise HTTPException(
            status_code=ERROR_STATUS[error_code],
            detail={
                "error_code": error_code.value,
                "message": result.error or "Failed to create product",
            },
        )

    return ProductResponse.from_model(result.product)
