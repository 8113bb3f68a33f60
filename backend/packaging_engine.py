# backend/packaging_engine.py

"""
Packaging engine facade.

Single entry point for the HTTP layer and scripts. Wires the catalog,
conversion engine, stock consolidator and picking optimizer over one snapshot
(any object implementing PackagingReader and StockReader).

Pure and synchronous: no I/O, no shared mutable state. Concurrent calls for
different products (or different snapshots) need no coordination.
"""

from decimal import Decimal
from typing import Any, List, Optional

from packaging_catalog import PackagingCatalog
from packaging_conversion_engine import PackagingConversionEngine
from packaging_errors import PackagingNotFoundError
from packaging_models import (
    HierarchyWarning,
    PackagingDefinition,
    PackagingNode,
    PickPlan,
    StockByPackagingLine,
    StockSummary,
)
from packaging_snapshot import PackagingReader, StockReader
from picking_optimizer import PickingOptimizer
from stock_consolidator import StockConsolidator


class PackagingEngine:
    """
    Packaging hierarchy conversion and picking optimization.

    Usage:
        engine = PackagingEngine(InMemorySnapshot(definitions, stock_records))
        engine.convert_to_base_units(10, "BOX_12")          # Decimal('120')
        engine.optimize_picking_by_packaging("SKU-1", 156)  # PickPlan
    """

    def __init__(self, packaging_reader: PackagingReader, stock_reader: Optional[StockReader] = None):
        self.packaging_reader = packaging_reader
        self.stock_reader = stock_reader if stock_reader is not None else packaging_reader
        self.conversion = PackagingConversionEngine(self.packaging_reader)
        self.consolidator = StockConsolidator(self.packaging_reader, self.stock_reader)
        self.optimizer = PickingOptimizer(self.consolidator)

    # ==================== CATALOG ====================

    def get_catalog(self, product_id: str) -> PackagingCatalog:
        return PackagingCatalog.from_reader(self.packaging_reader, product_id)

    def get_packaging(self, packaging_id: str) -> PackagingDefinition:
        """Any packaging by id, active or inactive"""
        return self.conversion.resolve_packaging(packaging_id)

    def get_packagings_by_product(self, product_id: str, include_inactive: bool = False) -> List[PackagingDefinition]:
        return self.get_catalog(product_id).packagings(include_inactive=include_inactive)

    def get_packaging_hierarchy(self, product_id: str) -> List[PackagingNode]:
        return self.get_catalog(product_id).hierarchy()

    def get_base_packaging(self, product_id: str) -> PackagingDefinition:
        return self.get_catalog(product_id).base_unit

    def get_packaging_by_barcode(self, barcode: str) -> PackagingDefinition:
        """Active packaging carrying `barcode`, whatever its product"""
        for packaging in self.packaging_reader.fetch_packaging_by_barcode(barcode):
            if packaging.is_active:
                return packaging
        raise PackagingNotFoundError(barcode, field="barcode")

    def audit_level_ordering(self, product_id: str) -> List[HierarchyWarning]:
        return self.get_catalog(product_id).audit_level_ordering()

    # ==================== CONVERSION ====================

    def convert_to_base_units(self, quantity: Any, packaging_type_id: str) -> Decimal:
        return self.conversion.convert_to_base_units(quantity, packaging_type_id)

    def convert_from_base_units(self, base_units: Any, packaging_type_id: str) -> Decimal:
        return self.conversion.convert_from_base_units(base_units, packaging_type_id)

    def calculate_conversion_factor(self, from_packaging_id: str, to_packaging_id: str) -> Decimal:
        return self.conversion.calculate_conversion_factor(from_packaging_id, to_packaging_id)

    def convert_between(self, quantity: Any, from_packaging_id: str, to_packaging_id: str) -> Decimal:
        return self.conversion.convert_between(quantity, from_packaging_id, to_packaging_id)

    # ==================== STOCK ====================

    def get_stock_by_packaging(self, product_id: str) -> List[StockByPackagingLine]:
        return self.consolidator.get_stock_by_packaging(product_id)

    def get_stock_consolidated(self, product_id: str) -> Decimal:
        return self.consolidator.get_stock_consolidated(product_id)

    def get_stock_summary(self, product_id: str) -> StockSummary:
        return self.consolidator.get_stock_summary(product_id)

    # ==================== PICKING ====================

    def optimize_picking_by_packaging(self, product_id: str, requested_base_units: Any) -> PickPlan:
        return self.optimizer.optimize_picking_by_packaging(product_id, requested_base_units)
