"""Tests for product creation in the catalog service."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog.models import Category, Product, ProductImage, product_categories
from app.catalog.repository import ProductRepository
from app.catalog.service import CatalogService, ErrorCode, ProductCreate
from app.infrastructure.upload_client import UploadGatewayError
from tests.support import FakeUploadGateway, count_rows, make_files, make_product


def product_data(categories: list[Category], **overrides) -> ProductCreate:
    """Build creation input for the given categories."""
    fields = {
        "product_code": "LAPTOP-001",
        "name": "Ultrabook 13",
        "price": 129900,
        "category_ids": [c.id for c in categories],
        "description": "Thin and light",
    }
    fields.update(overrides)
    return ProductCreate(**fields)


async def image_urls(session: AsyncSession) -> list[str]:
    result = await session.execute(select(ProductImage.url).order_by(ProductImage.id))
    return list(result.scalars().all())


class TestCreateProduct:
    """Tests for CatalogService.create_product."""

    @pytest.mark.asyncio
    async def test_creates_product_with_categories_and_images(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """Product is saved with its categories and one image per upload."""
        service = CatalogService.from_session(session, gateway)

        result = await service.create_product(
            product_data(categories[:2]),
            make_files("front.jpg", "back.jpg"),
        )

        assert result.success
        assert result.error_code is None
        product = result.product
        assert product is not None
        assert product.id is not None
        assert {c.name for c in product.categories} == {"Electronics", "Books"}
        assert [i.url for i in product.images] == [
            "https://cdn.example.com/front.jpg",
            "https://cdn.example.com/back.jpg",
        ]

        stored = await ProductRepository(session).get_by_id(product.id)
        assert stored is not None
        assert stored.product_code == "LAPTOP-001"
        assert await count_rows(session, product_categories) == 2
        assert await image_urls(session) == [
            "https://cdn.example.com/front.jpg",
            "https://cdn.example.com/back.jpg",
        ]

    @pytest.mark.asyncio
    async def test_uploads_whole_batch_in_one_call(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """All files go to the gateway together."""
        service = CatalogService.from_session(session, gateway)
        files = make_files("a.jpg", "b.jpg", "c.jpg")

        await service.create_product(product_data(categories), files)

        assert gateway.calls == [files]

    @pytest.mark.asyncio
    async def test_duplicate_product_code_conflicts(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """A second product with the same code is rejected before upload."""
        service = CatalogService.from_session(session, gateway)
        first = await service.create_product(product_data(categories), make_files("a.jpg"))
        assert first.success

        result = await service.create_product(
            product_data(categories, name="Another name"),
            make_files("b.jpg"),
        )

        assert not result.success
        assert result.error_code == ErrorCode.CONFLICT
        assert result.error == "Product code or name already exists"
        assert len(gateway.calls) == 1
        assert await count_rows(session, Product) == 1
        assert await count_rows(session, product_categories) == len(categories)
        assert await count_rows(session, ProductImage) == 1

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """A second product with the same name is rejected."""
        service = CatalogService.from_session(session, gateway)
        await service.create_product(product_data(categories), [])

        result = await service.create_product(
            product_data(categories, product_code="LAPTOP-002"),
            [],
        )

        assert result.error_code == ErrorCode.CONFLICT
        assert await count_rows(session, Product) == 1

    @pytest.mark.asyncio
    async def test_unique_constraint_violation_maps_to_conflict(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """A duplicate that slips past the pre-check is still a conflict."""
        session.add(make_product(1, product_code="LAPTOP-001"))
        await session.commit()
        service = CatalogService.from_session(session, gateway)

        with patch.object(
            ProductRepository, "find_by_code_or_name", AsyncMock(return_value=None)
        ):
            result = await service.create_product(
                product_data(categories),
                make_files("a.jpg"),
            )

        assert result.error_code == ErrorCode.CONFLICT
        assert gateway.calls == []
        assert await count_rows(session, Product) == 1
        assert await count_rows(session, product_categories) == 0

    @pytest.mark.asyncio
    async def test_unknown_categories_not_found(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """Category ids that match nothing are rejected without writes."""
        service = CatalogService.from_session(session, gateway)

        result = await service.create_product(
            product_data([], category_ids=[998, 999]),
            make_files("a.jpg"),
        )

        assert not result.success
        assert result.error_code == ErrorCode.NOT_FOUND
        assert result.error == "One or more categories not found"
        assert gateway.calls == []
        assert await count_rows(session, Product) == 0
        assert await count_rows(session, ProductImage) == 0

    @pytest.mark.asyncio
    async def test_empty_category_ids_not_found(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """An empty category list resolves to nothing."""
        service = CatalogService.from_session(session, gateway)

        result = await service.create_product(product_data([]), [])

        assert result.error_code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_partial_category_match_is_accepted(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """Unknown ids next to known ones are dropped silently."""
        service = CatalogService.from_session(session, gateway)

        result = await service.create_product(
            product_data([], category_ids=[categories[0].id, 999]),
            [],
        )

        assert result.success
        assert [c.name for c in result.product.categories] == ["Electronics"]

    @pytest.mark.asyncio
    async def test_failed_uploads_are_skipped(
        self,
        session: AsyncSession,
        categories: list[Category],
    ) -> None:
        """Only uploads that produced a URL become images."""
        gateway = FakeUploadGateway(fail_filenames={"2.jpg"})
        service = CatalogService.from_session(session, gateway)

        result = await service.create_product(
            product_data(categories),
            make_files("1.jpg", "2.jpg", "3.jpg"),
        )

        assert result.success
        assert await count_rows(session, ProductImage) == 2
        assert await image_urls(session) == [
            "https://cdn.example.com/1.jpg",
            "https://cdn.example.com/3.jpg",
        ]

    @pytest.mark.asyncio
    async def test_no_successful_uploads_creates_product_without_images(
        self,
        session: AsyncSession,
        categories: list[Category],
    ) -> None:
        """A product may exist with no images."""
        gateway = FakeUploadGateway(fail_filenames={"1.jpg", "2.jpg"})
        service = CatalogService.from_session(session, gateway)

        with patch.object(ProductRepository, "add_images", AsyncMock()) as add_images:
            result = await service.create_product(
                product_data(categories),
                make_files("1.jpg", "2.jpg"),
            )

        assert result.success
        assert result.product.images == []
        add_images.assert_not_called()
        assert await count_rows(session, Product) == 1

    @pytest.mark.asyncio
    async def test_image_write_failure_rolls_back_product(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """Product and category links disappear when saving images fails."""
        service = CatalogService.from_session(session, gateway)

        with patch.object(
            ProductRepository,
            "add_images",
            AsyncMock(side_effect=SQLAlchemyError("disk full")),
        ):
            result = await service.create_product(
                product_data(categories),
                make_files("a.jpg"),
            )

        assert not result.success
        assert result.error_code == ErrorCode.INTERNAL
        assert result.product is None
        assert await count_rows(session, Product) == 0
        assert await count_rows(session, product_categories) == 0
        assert await count_rows(session, ProductImage) == 0

    @pytest.mark.asyncio
    async def test_unique_violation_on_other_table_is_internal(
        self,
        session: AsyncSession,
        categories: list[Category],
        gateway: FakeUploadGateway,
    ) -> None:
        """Only product code and name duplicates are reported as conflicts."""
        service = CatalogService.from_session(session, gateway)
        error = IntegrityError(
            "INSERT INTO product_images",
            {},
            Exception("UNIQUE constraint failed: product_images.url"),
        )

        with patch.object(ProductRepository, "add_images", AsyncMock(side_effect=error)):
            result = await service.create_product(
                product_data(categories),
                make_files("a.jpg"),
            )

        assert result.error_code == ErrorCode.INTERNAL
        assert await count_rows(session, Product) == 0

    @pytest.mark.asyncio
    async def test_gateway_unavailable_rolls_back_product(
        self,
        session: AsyncSession,
        categories: list[Category],
    ) -> None:
        """An unreachable gateway aborts the whole transaction."""
        gateway = FakeUploadGateway(
            error=UploadGatewayError("connection refused", "https://uploads.example.com")
        )
        service = CatalogService.from_session(session, gateway)

        result = await service.create_product(product_data(categories), make_files("a.jpg"))

        assert result.error_code == ErrorCode.INTERNAL
        assert len(gateway.calls) == 1
        assert await count_rows(session, Product) == 0
        assert await count_rows(session, product_categories) == 0

    @pytest.mark.asyncio
    async def test_can_create_after_rolled_back_attempt(
        self,
        session: AsyncSession,
        categories: list[Category],
    ) -> None:
        """A rolled back attempt leaves no trace that blocks a retry."""
        data = product_data(categories)
        failing = FakeUploadGateway(error=UploadGatewayError("down", "https://uploads.example.com"))
        first = await CatalogService.from_session(session, failing).create_product(
            data, make_files("a.jpg")
        )
        assert first.error_code == ErrorCode.INTERNAL

        retry = await CatalogService.from_session(session, FakeUploadGateway()).create_product(
            data, make_files("a.jpg")
        )

        assert retry.success
        assert await count_rows(session, Product) == 1
