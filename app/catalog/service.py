"""Catalog service for product operations.

Orchestrates product listing and product creation on top of the
catalog repositories and the image upload gateway. Creation validates
before opening a transaction, then persists the product, uploads its
images and links them, committing all of it together.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Literal, TypeVar

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog.models import Product, ProductImage
from app.catalog.repository import CategoryRepository, ProductRepository
from app.infrastructure.upload_client import FilePayload, UploadGateway, UploadGatewayError

logger = structlog.get_logger()

T = TypeVar("T")


# ============================================================================
# Pagination
# ============================================================================


@dataclass
class PageOptions:
    """Pagination parameters.

    Attributes:
        page: Page number (1-indexed).
        take: Items per page.
        skip: Rows to skip. Derived from page and take when omitted.
        order: Sort direction on product id.
    """

    page: int = 1
    take: int = 10
    skip: int | None = None
    order: Literal["ASC", "DESC"] = "ASC"

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.take < 1:
            raise ValueError(f"take must be >= 1, got {self.take}")
        if self.skip is None:
            self.skip = (self.page - 1) * self.take
        elif self.skip < 0:
            raise ValueError(f"skip must be >= 0, got {self.skip}")
        self.order = self.order.upper()  # type: ignore[assignment]
        if self.order not in ("ASC", "DESC"):
            raise ValueError(f"order must be ASC or DESC, got {self.order}")


@dataclass
class Page(Generic[T]):
    """One page of results.

    ``has_next_page`` is true whenever the page is full, including a
    full last page; it does not look ahead.
    """

    values: list[T]
    item_count: int
    page_count: int
    has_previous_page: bool
    has_next_page: bool
    page: int
    take: int

    @classmethod
    def create(cls, values: list[T], total: int, options: PageOptions) -> "Page[T]":
        """Build a page from fetched values and the total row count.

        Args:
            values: Items on this page.
            total: Total number of rows across all pages.
            options: Options the page was fetched with.

        Returns:
            Page with derived counters.
        """
        item_count = len(values)
        return cls(
            values=values,
            item_count=item_count,
            page_count=math.ceil(total / options.take),
            has_previous_page=options.page > 1,
            has_next_page=item_count == options.take,
            page=options.page,
            take=options.take,
        )


# ============================================================================
# Service Inputs and Result Types
# ============================================================================


class ErrorCode(str, Enum):
    """Error codes returned by catalog operations."""

    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"


@dataclass
class ProductCreate:
    """Fields for a new product plus the categories to attach."""

    product_code: str
    name: str
    price: int
    category_ids: list[int] = field(default_factory=list)
    description: str | None = None
    currency: str = "USD"
    stock_quantity: int = 0

    def product_fields(self) -> dict[str, Any]:
        """Scalar column values for the Product row."""
        return {
            "product_code": self.product_code,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "currency": self.currency.upper(),
            "stock_quantity": self.stock_quantity,
        }


@dataclass
class CreateProductResult:
    """Result of creating a product."""

    product: Product | None = None
    success: bool = True
    error: str | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def failure(cls, error_code: ErrorCode, error: str) -> "CreateProductResult":
        """Create a failed result."""
        return cls(success=False, error=error, error_code=error_code)


# PostgreSQL names the violated constraint, SQLite names the column
PRODUCT_UNIQUE_MARKERS = (
    "uq_products_product_code",
    "uq_products_name",
    "products.product_code",
    "products.name",
)


def _is_unique_violation(exc: IntegrityError) -> bool:
    """Check whether an integrity error came from a product business key.

    PostgreSQL reports "duplicate key value violates unique constraint
    "uq_products_name"", SQLite reports "UNIQUE constraint failed:
    products.name". Unique violations on other tables do not match.
    """
    message = str(exc.orig).lower()
    return "unique" in message and any(marker in message for marker in PRODUCT_UNIQUE_MARKERS)


# ============================================================================
# Catalog Service
# ============================================================================


class CatalogService:
    """Service for catalog operations.

    Example usage:
        async with async_session_factory() as session:
            service = CatalogService.from_session(session, ImageUploadClient())
            page = await service.list_products(PageOptions(page=1, take=20))
    """

    def __init__(
        self,
        products: ProductRepository,
        categories: CategoryRepository,
        uploads: UploadGateway,
    ) -> None:
        """Initialize service with its collaborators.

        Args:
            products: Product repository; its session is the unit of work.
            categories: Category lookups.
            uploads: Gateway used to upload product images.
        """
        self.products = products
        self.categories = categories
        self.uploads = uploads

    @classmethod
    def from_session(cls, session: AsyncSession, uploads: UploadGateway) -> "CatalogService":
        """Build a service whose repositories share one session.

        Args:
            session: Session for this unit of work.
            uploads: Upload gateway.

        Returns:
            CatalogService instance.
        """
        return cls(
            products=ProductRepository(session),
            categories=CategoryRepository(session),
            uploads=uploads,
        )

    async def list_products(self, options: PageOptions) -> Page[Product]:
        """List products one page at a time, images included.

        Args:
            options: Pagination options.

        Returns:
            Page of products.
        """
        products, total = await self.products.find_page(
            take=options.take,
            skip=options.skip or 0,
            order=options.order,
        )
        return Page.create(list(products), total, options)

    async def create_product(
        self,
        data: ProductCreate,
        files: list[FilePayload],
    ) -> CreateProductResult:
        """Create a product, attach its categories and upload its images.

        Duplicate keys and unknown categories are rejected before any
        write or upload. Everything after that runs in one transaction:
        a failure while saving the product, uploading, or saving images
        rolls back the product and its category links.

        Args:
            data: Product fields and category ids.
            files: Image files to upload, in order.

        Returns:
            CreateProductResult with the persisted product on success.
        """
        log = logger.bind(product_code=data.product_code, file_count=len(files))
        log.info("Creating product")

        existing = await self.products.find_by_code_or_name(data.product_code, data.name)
        if existing is not None:
            log.info("Product rejected: duplicate code or name", existing_id=existing.id)
            return CreateProductResult.failure(
                ErrorCode.CONFLICT, "Product code or name already exists"
            )

        categories = await self.categories.resolve_by_ids(data.category_ids)
        if not categories:
            log.info("Product rejected: no categories found", category_ids=data.category_ids)
            return CreateProductResult.failure(
                ErrorCode.NOT_FOUND, "One or more categories not found"
            )

        try:
            async with self.products.transaction():
                product = Product(**data.product_fields(), categories=categories, images=[])
                await self.products.add(product)

                upload_results = await self.uploads.upload_files(files)
                images = [
                    ProductImage(url=result.url, product=product)
                    for result in upload_results
                    if result.ok
                ]

                if images:
                    await self.products.add_images(images)
        except IntegrityError as e:
            if _is_unique_violation(e):
                log.info("Product rejected by unique constraint", error=str(e.orig))
                return CreateProductResult.failure(
                    ErrorCode.CONFLICT, "Product code or name already exists"
                )
            log.exception("Product creation rolled back")
            return CreateProductResult.failure(ErrorCode.INTERNAL, "Failed to create product")
        except (SQLAlchemyError, UploadGatewayError):
            log.exception("Product creation rolled back")
            return CreateProductResult.failure(ErrorCode.INTERNAL, "Failed to create product")

        log.info(
            "Product created",
            product_id=product.id,
            category_count=len(categories),
            image_count=len(images),
        )
        return CreateProductResult(product=product)
