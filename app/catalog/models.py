"""SQLAlchemy models for the product catalog.

Defines Product, Category and ProductImage tables plus the
product/category association table.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


product_categories = Table(
    "product_categories",
    Base.metadata,
    Column(
        "product_id",
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Category(Base):
    """Product category.

    Categories are created ahead of time and referenced by products;
    the catalog never creates them as part of product creation.

    Attributes:
        id: Category identifier.
        name: Unique category name.
        description: Optional description.
    """

    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("name", name="uq_categories_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Category(id={self.id}, name={self.name})>"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }


class Product(Base):
    """Product entity in the catalog.

    Attributes:
        id: Surrogate product identifier.
        product_code: Business key, unique across the catalog.
        name: Product name, unique across the catalog.
        description: Product description.
        price: Price in cents.
        currency: Currency code (default USD).
        stock_quantity: Available quantity.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
        images: Uploaded images in insertion order.
        categories: Categories the product belongs to.
    """

    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("product_code", name="uq_products_product_code"),
        UniqueConstraint("name", name="uq_products_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_code: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)  # in cents
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    # Relationships
    images: Mapped[list["ProductImage"]] = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.id",
    )
    categories: Mapped[list[Category]] = relationship(
        Category,
        secondary=product_categories,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, product_code={self.product_code}, name={self.name[:30]})>"


class ProductImage(Base):
    """Image uploaded for a product.

    Each image belongs to exactly one product and is only written
    once the owning product row exists.

    Attributes:
        id: Image identifier.
        url: Public URL returned by the upload gateway.
        product_id: Owning product.
        created_at: Creation timestamp.
    """

    __tablename__ = "product_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    product: Mapped[Product] = relationship(Product, back_populates="images")

    def __repr__(self) -> str:
        """String representation."""
        return f"<ProductImage(id={self.id}, product_id={self.product_id})>"
