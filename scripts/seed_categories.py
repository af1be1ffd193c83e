#!/usr/bin/env python3
"""Seed product categories script.

Creates catalog tables if needed and inserts a default set of
categories. Categories that already exist by name are left alone.

Usage:
    python scripts/seed_categories.py
    python scripts/seed_categories.py --name "Garden" --name "Toys"
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.catalog.models import Category
from app.infrastructure.database import async_session_factory, create_tables

DEFAULT_CATEGORIES = [
    ("Electronics", "Phones, computers and accessories"),
    ("Home & Kitchen", "Furniture, appliances and cookware"),
    ("Clothing", "Apparel, shoes and accessories"),
    ("Sports & Outdoors", "Equipment for sports and outdoor activities"),
    ("Books", "Printed and digital books"),
    ("Health & Beauty", "Personal care and cosmetics"),
]


async def seed_categories(categories: list[tuple[str, str | None]]) -> list[Category]:
    """Insert categories that do not exist yet.

    Args:
        categories: (name, description) pairs.

    Returns:
        Newly created categories.
    """
    async with async_session_factory() as session:
        result = await session.execute(select(Category.name))
        existing = set(result.scalars().all())

        created = [
            Category(name=name, description=description)
            for name, description in categories
            if name not in existing
        ]
        session.add_all(created)
        await session.commit()
        return created


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed product categories",
    )
    parser.add_argument(
        "--name",
        action="append",
        help="Category name to create (repeatable). Defaults to the built-in set.",
    )

    args = parser.parse_args()

    print("=" * 60)
    print("Catalog Category Seeder")
    print("=" * 60)

    print("Creating database tables...")
    await create_tables()
    print("Tables ready.")
    print()

    categories = [(name, None) for name in args.name] if args.name else DEFAULT_CATEGORIES
    created = await seed_categories(categories)

    for category in created:
        print(f"  ✓ Created: {category.to_dict()}")
    print(f"  ✓ Skipped: {len(categories) - len(created)} existing")

    print("=" * 60)
    print("Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
