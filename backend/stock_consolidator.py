# backend/stock_consolidator.py

"""
Stock Consolidator

Stock is recorded against whatever packaging level it is racked in (one pallet,
seven boxes, thirty loose pieces). The consolidator puts those records on a
common footing:

- get_stock_by_packaging: raw records, unmodified, base unit first
- get_stock_consolidated: single base-unit total (source of truth for "how much
  do we really have")
- get_stock_summary: total plus per-packaging breakdown

INVARIANT: the consolidated total depends only on Σ quantity × base_unit_quantity.
Re-slotting stock into an equivalent amount at another level never changes it.

Read-only: the consolidator never mutates stock.
"""

from decimal import Decimal
from typing import Dict, List, Tuple
import logging

from packaging_catalog import PackagingCatalog, packaging_sort_key
from packaging_conversion_engine import ZERO, base_units_for, exact_context, validate_quantity
from packaging_models import (
    StockByPackagingLine,
    StockRecord,
    StockSummary,
    StockSummaryLine,
)
from packaging_snapshot import PackagingReader, StockReader

logger = logging.getLogger(__name__)


def available_by_packaging(catalog: PackagingCatalog, records: List[StockRecord]) -> Dict[str, Decimal]:
    """
    Sum record quantities per packaging id (packaging units, not base units).

    Raises:
        PackagingNotFoundError: a record points at a packaging outside the catalog
        InvalidQuantityError: a record quantity is negative or not finite
    """
    quantities = []
    for record in records:
        catalog.get(record.packaging_type_id)
        quantities.append((record.packaging_type_id, validate_quantity(record.quantity, "stock_record.quantity")))

    available: Dict[str, Decimal] = {}
    with exact_context(quantity for _, quantity in quantities):
        for packaging_id, quantity in quantities:
            available[packaging_id] = available.get(packaging_id, ZERO) + quantity
    return available


def consolidate(catalog: PackagingCatalog, records: List[StockRecord]) -> Decimal:
    """Σ convert_to_base_units(record.quantity, record.packaging_type_id)"""
    base_units = []
    for record in records:
        packaging = catalog.get(record.packaging_type_id)
        quantity = validate_quantity(record.quantity, "stock_record.quantity")
        base_units.append(base_units_for(quantity, packaging))

    with exact_context(base_units):
        return sum(base_units, ZERO)


class StockConsolidator:
    """Consolidates a product's stock snapshot into base units"""

    def __init__(self, packaging_reader: PackagingReader, stock_reader: StockReader):
        self.packaging_reader = packaging_reader
        self.stock_reader = stock_reader

    def load(self, product_id: str) -> Tuple[PackagingCatalog, List[StockRecord]]:
        """Fetch the product's catalog and stock records (one snapshot)"""
        catalog = PackagingCatalog.from_reader(self.packaging_reader, product_id)
        records = self.stock_reader.fetch_stock_records(product_id)
        return catalog, records

    def get_stock_by_packaging(self, product_id: str) -> List[StockByPackagingLine]:
        """
        Raw stock records, sorted by packaging level ascending (base unit first).

        No aggregation: two records of the same packaging give two lines.
        """
        catalog, records = self.load(product_id)
        ordered = sorted(
            records,
            key=lambda record: packaging_sort_key(catalog.get(record.packaging_type_id)),
        )
        return [
            StockByPackagingLine(
                packaging_type_id=record.packaging_type_id,
                quantity=record.quantity,
            )
            for record in ordered
        ]

    def get_stock_consolidated(self, product_id: str) -> Decimal:
        """Total on-hand stock of the product in base units"""
        catalog, records = self.load(product_id)
        total = consolidate(catalog, records)
        logger.debug(f"Consolidated stock for product {product_id}: {total} base units from {len(records)} records")
        return total

    def get_stock_summary(self, product_id: str) -> StockSummary:
        """Consolidated total plus one breakdown line per packaging level holding stock"""
        catalog, records = self.load(product_id)
        available = available_by_packaging(catalog, records)

        records_per_packaging: Dict[str, int] = {}
        for record in records:
            records_per_packaging[record.packaging_type_id] = records_per_packaging.get(record.packaging_type_id, 0) + 1

        lines = []
        for packaging in catalog.packagings(include_inactive=True):
            if packaging.id not in available:
                continue
            quantity = available[packaging.id]
            lines.append(StockSummaryLine(
                packaging_type_id=packaging.id,
                packaging_name=packaging.name,
                level=packaging.level,
                base_unit_quantity=packaging.base_unit_quantity,
                is_active=packaging.is_active,
                quantity=quantity,
                base_units=base_units_for(quantity, packaging),
                records_count=records_per_packaging[packaging.id],
            ))

        with exact_context(line.base_units for line in lines):
            total_base_units = sum((line.base_units for line in lines), ZERO)

        locations = {record.location_id for record in records if record.location_id is not None}

        return StockSummary(
            product_id=product_id,
            total_base_units=total_base_units,
            records_count=len(records),
            locations_count=len(locations),
            lines=lines,
        )
