# backend/packaging_models.py

"""
Value models for the packaging engine.

All models are immutable snapshots: the engine receives them for a single
computation and never mutates them. Quantities are Decimal end to end.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ==================== CATALOG ====================

class PackagingDefinition(BaseModel):
    """One level of a product's packaging hierarchy (piece, box, display, pallet...)"""
    model_config = ConfigDict(frozen=True)

    id: str
    product_id: str
    name: str
    base_unit_quantity: Decimal = Field(gt=0)  # base units held by one unit of this level
    level: int = Field(ge=1)  # ordering hint only, never used for conversion
    parent_packaging_id: Optional[str] = None
    is_base_unit: bool = False
    is_active: bool = True
    barcode: Optional[str] = None


class PackagingNode(PackagingDefinition):
    """Packaging definition with its nested children (hierarchy view)"""
    children: List["PackagingNode"] = Field(default_factory=list)


class HierarchyWarning(BaseModel):
    """Catalog data-quality finding (non-blocking)"""
    warning_code: str  # "LEVEL_ORDER_MISMATCH" | "CHILD_NOT_LARGER_THAN_PARENT" | "DANGLING_PARENT"
    message: str
    packaging_id: str
    related_packaging_id: Optional[str] = None


# ==================== STOCK ====================

class StockRecord(BaseModel):
    """Quantity on hand, counted in units of one packaging level"""
    model_config = ConfigDict(frozen=True)

    product_id: str
    packaging_type_id: str
    quantity: Decimal = Field(ge=0)  # count of packaging units, NOT base units
    id: Optional[str] = None
    location_id: Optional[str] = None


class StockByPackagingLine(BaseModel):
    """Raw stock record as reported by get_stock_by_packaging"""
    packaging_type_id: str
    quantity: Decimal


class StockSummaryLine(BaseModel):
    """Per-packaging breakdown line of a stock summary"""
    packaging_type_id: str
    packaging_name: str
    level: int
    base_unit_quantity: Decimal
    is_active: bool
    quantity: Decimal  # summed packaging units
    base_units: Decimal  # quantity expressed in base units
    records_count: int


class StockSummary(BaseModel):
    """Consolidated stock of one product plus its per-packaging breakdown"""
    product_id: str
    total_base_units: Decimal
    records_count: int
    locations_count: int
    lines: List[StockSummaryLine]


# ==================== PICKING ====================

class PickPlanLine(BaseModel):
    """One packaging level chosen by the optimizer"""
    packaging_type_id: str
    packaging_name: str
    base_unit_quantity: Decimal
    units_used: Decimal
    base_unit_value: Decimal  # units_used × base_unit_quantity


class PickPlan(BaseModel):
    """Optimizer result. fulfilled + residual == requested, always."""
    product_id: str
    requested_base_units: Decimal
    fulfilled_base_units: Decimal
    residual_base_units: Decimal
    should_fulfill: bool
    lines: List[PickPlanLine] = Field(default_factory=list)


PackagingNode.model_rebuild()
