#!/usr/bin/env python3
"""
Audit packaging catalogs for data-quality issues.

For each product: validates the hierarchy invariants (single base unit,
base_unit_quantity rules, no parent cycles), reports level vs. size ordering
mismatches, and prints the consolidated stock so broken catalogs are easy to
spot before they reach the picking screens.

Usage: python audit_packaging_hierarchy.py [PRODUCT_ID ...]
Example: python audit_packaging_hierarchy.py SKU-1001 SKU-1002
(no arguments = every product in the packaging collection)
"""

import asyncio
import sys

from motor.motor_asyncio import AsyncIOMotorClient

from packaging_conversion_engine import quantize
from packaging_engine import PackagingEngine
from packaging_errors import PackagingError
from packaging_repository import MongoPackagingRepository
from packaging_settings import load_settings


async def audit_product(repository: MongoPackagingRepository, product_id: str, decimal_places: int) -> bool:
    """Audit one product; returns True when the catalog is clean"""
    print(f"\nProduct {product_id}")
    print("-" * 80)

    try:
        engine = PackagingEngine(await repository.load_product_snapshot(product_id))
        packagings = engine.get_packagings_by_product(product_id, include_inactive=True)
        warnings = engine.audit_level_ordering(product_id)
        consolidated = engine.get_stock_consolidated(product_id)
    except PackagingError as e:
        print(f"  ❌ {e.error_code}: {e.message}")
        return False

    for packaging in packagings:
        status = "" if packaging.is_active else " (inactive)"
        base = " [BASE]" if packaging.is_base_unit else ""
        print(f"  L{packaging.level} {packaging.name}: {packaging.base_unit_quantity} base units{base}{status}")

    print(f"  Consolidated stock: {quantize(consolidated, decimal_places)} base units")

    if not warnings:
        print("  ✓ No ordering issues")
        return True

    for warning in warnings:
        print(f"  ⚠️  {warning.warning_code}: {warning.message}")
    return False


async def audit_packaging_hierarchy(product_ids):
    settings = load_settings()
    client = AsyncIOMotorClient(settings.mongo_url)
    repository = MongoPackagingRepository(
        client[settings.db_name],
        packaging_collection=settings.packaging_collection,
        stock_collection=settings.stock_collection,
    )

    print("=" * 80)
    print("PACKAGING HIERARCHY AUDIT")
    print("=" * 80)

    try:
        if not product_ids:
            product_ids = await repository.list_product_ids()
        print(f"Auditing {len(product_ids)} product(s)")

        flagged = []
        for product_id in product_ids:
            if not await audit_product(repository, product_id, settings.display_decimal_places):
                flagged.append(product_id)
    finally:
        client.close()

    print("\n" + "=" * 80)
    if flagged:
        print(f"⚠️  {len(flagged)} product(s) need catalog review: {', '.join(flagged)}")
    else:
        print("✅ All packaging catalogs are consistent")
    print("=" * 80)
    return 1 if flagged else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(audit_packaging_hierarchy(sys.argv[1:])))
