"""Catalog repositories for database operations.

ProductRepository owns product and image persistence along with the
transaction boundary used by product creation. CategoryRepository
resolves category identifiers into rows.
"""

from collections.abc import AsyncIterator, Collection, Sequence
from contextlib import asynccontextmanager
from typing import Literal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.catalog.models import Category, Product, ProductImage

SortOrder = Literal["ASC", "DESC"]


class ProductRepository:
    """Repository for Product database operations.

    Example usage:
        async with async_session_factory() as session:
            repo = ProductRepository(session)
            async with repo.transaction():
                await repo.add(product)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Scope a unit of work that commits or rolls back as a whole.

        Commits when the block exits normally. Any exception rolls back
        every write made in the block and is re-raised.

        Yields:
            The session the writes go through.
        """
        try:
            yield self.session
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def add(self, product: Product) -> Product:
        """Stage a product and flush so it receives its id.

        Args:
            product: Product to persist.

        Returns:
            The same product with its identity populated.
        """
        self.session.add(product)
        await self.session.flush()
        return product

    async def add_images(self, images: list[ProductImage]) -> list[ProductImage]:
        """Stage product images and flush.

        Args:
            images: Images to persist.

        Returns:
            Persisted images.
        """
        self.session.add_all(images)
        await self.session.flush()
        return images

    async def find_by_code_or_name(self, product_code: str, name: str) -> Product | None:
        """Find a product matching either business key.

        Args:
            product_code: Product code to match.
            name: Product name to match.

        Returns:
            First matching product, or None.
        """
        query = (
            select(Product)
            .where(
                or_(
                    Product.product_code == product_code,
                    Product.name == name,
                )
            )
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def get_by_id(self, product_id: int) -> Product | None:
        """Get product by ID with images and categories loaded.

        Args:
            product_id: Product ID.

        Returns:
            Product if found, None otherwise.
        """
        query = (
            select(Product)
            .where(Product.id == product_id)
            .options(
                selectinload(Product.images),
                selectinload(Product.categories),
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_page(
        self,
        take: int,
        skip: int,
        order: SortOrder = "ASC",
    ) -> tuple[Sequence[Product], int]:
        """Fetch one page of products and the total product count.

        Args:
            take: Maximum rows to return.
            skip: Rows to skip.
            order: Sort direction on id.

        Returns:
            Tuple of (products on the page, total number of products).
        """
        sort_column = Product.id.desc() if order == "DESC" else Product.id.asc()
        query = (
            select(Product)
            .order_by(sort_column)
            .limit(take)
            .offset(skip)
            .options(
                selectinload(Product.images),
                selectinload(Product.categories),
            )
        )
        result = await self.session.execute(query)
        products = result.scalars().all()

        total = await self.count()
        return products, total

    async def count(self) -> int:
        """Count all products.

        Returns:
            Number of products.
        """
        result = await self.session.execute(select(func.count(Product.id)))
        return result.scalar_one()


class CategoryRepository:
    """Read-only lookups for categories."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def resolve_by_ids(self, ids: Collection[int]) -> list[Category]:
        """Load the categories whose id is in the given set.

        Unknown ids are ignored, so the result may be shorter than
        the input or empty.

        Args:
            ids: Category identifiers.

        Returns:
            Matching categories in no particular order.
        """
        if not ids:
            return []

        result = await self.session.execute(
            select(Category).where(Category.id.in_(set(ids)))
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Category]:
        """List every category ordered by name."""
        result = await self.session.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())
