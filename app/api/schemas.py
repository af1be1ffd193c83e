"""API schemas for the catalog API.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app.catalog.models import Category, Product, ProductImage


# ============================================================================
# Common Schemas
# ============================================================================


class SortOrder(str, Enum):
    """Sort direction on product id."""

    ASC = "ASC"
    DESC = "DESC"


class PriceSchema(BaseModel):
    """Price representation."""

    amount: int = Field(..., description="Amount in smallest currency unit (cents)")
    currency: str = Field(default="USD", description="Currency code")


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Catalog Schemas
# ============================================================================


class CategorySchema(BaseModel):
    """Category representation."""

    id: int = Field(..., description="Category identifier")
    name: str = Field(..., description="Category name")
    description: str | None = Field(default=None, description="Category description")

    @classmethod
    def from_model(cls, category: Category) -> "CategorySchema":
        """Convert a Category row."""
        return cls(id=category.id, name=category.name, description=category.description)


class ProductImageSchema(BaseModel):
    """Product image representation."""

    id: int = Field(..., description="Image identifier")
    url: str = Field(..., description="Public image URL")

    @classmethod
    def from_model(cls, image: ProductImage) -> "ProductImageSchema":
        """Convert a ProductImage row."""
        return cls(id=image.id, url=image.url)


class ProductResponse(BaseModel):
    """Product representation."""

    id: int = Field(..., description="Product identifier")
    product_code: str = Field(..., description="Unique product code")
    name: str = Field(..., description="Unique product name")
    description: str | None = Field(default=None, description="Product description")
    price: PriceSchema = Field(..., description="Product price")
    stock_quantity: int = Field(..., description="Available quantity")
    images: list[ProductImageSchema] = Field(
        default_factory=list, description="Uploaded images"
    )
    categories: list[CategorySchema] = Field(
        default_factory=list, description="Categories the product belongs to"
    )
    created_at: datetime | None = Field(default=None, description="When the product was created")

    @classmethod
    def from_model(cls, product: Product) -> "ProductResponse":
        """Convert a Product row with images and categories loaded."""
        return cls(
            id=product.id,
            product_code=product.product_code,
            name=product.name,
            description=product.description,
            price=PriceSchema(amount=product.price, currency=product.currency),
            stock_quantity=product.stock_quantity,
            images=[ProductImageSchema.from_model(i) for i in product.images],
            categories=[CategorySchema.from_model(c) for c in product.categories],
            created_at=product.created_at,
        )


class ProductPageResponse(BaseModel):
    """One page of products.

    ``hasNextPage`` is true whenever the page is full, even when it is
    the last one.
    """

    values: list[ProductResponse] = Field(..., description="Products on this page")
    item_count: int = Field(..., alias="itemCount", description="Items on this page")
    page_count: int = Field(..., alias="pageCount", description="Total number of pages")
    has_previous_page: bool = Field(..., alias="hasPreviousPage")
    has_next_page: bool = Field(..., alias="hasNextPage")
    page: int = Field(..., description="Current page number")
    take: int = Field(..., description="Page size")

    model_config = {"populate_by_name": True}


class CategoryListResponse(BaseModel):
    """List of categories."""

    categories: list[CategorySchema] = Field(..., description="Available categories")
    total: int = Field(..., description="Number of categories")
