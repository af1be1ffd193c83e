"""Test doubles and builders shared across catalog tests."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog.models import Product
from app.infrastructure.upload_client import FilePayload, UploadGateway, UploadResult


class FakeUploadGateway(UploadGateway):
    """Upload gateway that answers from memory.

    Files whose name is in ``fail_filenames`` come back as failed
    results; ``error`` is raised for the whole batch when set.
    """

    def __init__(
        self,
        fail_filenames: set[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.fail_filenames = fail_filenames or set()
        self.error = error
        self.calls: list[list[FilePayload]] = []

    async def upload_files(self, files: list[FilePayload]) -> list[UploadResult]:
        self.calls.append(list(files))
        if self.error is not None:
            raise self.error
        return [
            UploadResult.failed(f.filename, "rejected")
            if f.filename in self.fail_filenames
            else UploadResult(filename=f.filename, url=f"https://cdn.example.com/{f.filename}")
            for f in files
        ]


def make_files(*names: str) -> list[FilePayload]:
    """Build image payloads with the given filenames."""
    return [FilePayload(filename=n, content=n.encode(), content_type="image/jpeg") for n in names]


def make_product(index: int, **overrides) -> Product:
    """Build an unsaved product with unique keys derived from index."""
    fields = {
        "product_code": f"P-{index:04d}",
        "name": f"Product {index}",
        "price": 1000 + index,
        "images": [],
        "categories": [],
    }
    fields.update(overrides)
    return Product(**fields)


async def count_rows(session: AsyncSession, table) -> int:
    """Count rows in a table or mapped class."""
    result = await session.execute(select(func.count()).select_from(table))
    return result.scalar_one()
