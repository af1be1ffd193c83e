"""Product Catalog Service.

Provides paginated product listing and transactional product creation
with category association and image upload.
"""

from app.catalog.models import Category, Product, ProductImage
from app.catalog.repository import CategoryRepository, ProductRepository
from app.catalog.service import (
    CatalogService,
    CreateProductResult,
    ErrorCode,
    Page,
    PageOptions,
    ProductCreate,
)

__all__ = [
    # Models
    "Category",
    "Product",
    "ProductImage",
    # Repositories
    "CategoryRepository",
    "ProductRepository",
    # Service
    "CatalogService",
    "CreateProductResult",
    "ErrorCode",
    "Page",
    "PageOptions",
    "ProductCreate",
]
