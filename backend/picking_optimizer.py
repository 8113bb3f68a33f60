# backend/picking_optimizer.py

"""
Picking Optimizer - which packaging units to pick for a base-unit request.

Greedy, largest packaging first, with a remainder cascade onto the base unit:

1) Validate the request (>= 0, finite). Zero → empty, fulfilled plan.
2) Candidates: active packagings with available stock > 0.
3) Sort by base_unit_quantity DESC; ties → more available stock first
   (then level, then id, so identical inputs give identical plans).
4) Per level: units = min(whole units available, remaining // base_unit_quantity).
   Never overshoots the request.
5) Leftover remainder is covered from any unused base-unit stock, fractional
   base units included.
6) Whatever is still missing is reported as residual_base_units. Insufficient
   stock is a normal outcome (should_fulfill = False), not an error.

All plan arithmetic is exact at any magnitude or precision (exact_context).

The optimizer reads a snapshot and returns a plan. Committing the plan against
persisted stock (and guarding against concurrent decrements) is the caller's job.
"""

from decimal import Decimal, ROUND_FLOOR
from typing import Any, Dict, List
import logging

from packaging_catalog import PackagingCatalog
from packaging_conversion_engine import ZERO, base_units_for, exact_context, validate_quantity
from packaging_models import PickPlan, PickPlanLine, StockRecord
from stock_consolidator import StockConsolidator, available_by_packaging

logger = logging.getLogger(__name__)


def empty_plan(product_id: str) -> PickPlan:
    return PickPlan(
        product_id=product_id,
        requested_base_units=ZERO,
        fulfilled_base_units=ZERO,
        residual_base_units=ZERO,
        should_fulfill=True,
        lines=[],
    )


def plan_picking(catalog: PackagingCatalog, records: List[StockRecord], requested: Decimal) -> PickPlan:
    """Build a pick plan for `requested` base units from one product's snapshot"""
    available = available_by_packaging(catalog, records)
    candidates = [p for p in catalog.packagings() if available.get(p.id, ZERO) > 0]

    operands = [requested]
    for packaging in candidates:
        operands += [
            available[packaging.id],
            packaging.base_unit_quantity,
            base_units_for(available[packaging.id], packaging),
        ]

    # Amounts below stay within the operands' magnitude and precision: no rounding
    with exact_context(operands):
        candidates.sort(key=lambda p: (-p.base_unit_quantity, -available[p.id], p.level, p.id))

        remaining = requested
        used: Dict[str, Decimal] = {}

        # Descending pass: whole units only, never past the outstanding amount
        for packaging in candidates:
            if remaining <= 0:
                break
            whole_available = available[packaging.id].to_integral_value(rounding=ROUND_FLOOR)
            needed = remaining // packaging.base_unit_quantity
            units = min(whole_available, needed)
            if units > 0:
                used[packaging.id] = units
                remaining -= base_units_for(units, packaging)
                logger.debug(
                    f"Pick {units} × {packaging.name} ({packaging.base_unit_quantity} ea), "
                    f"{remaining} base units outstanding"
                )

        # Remainder cascade onto the base unit
        base = catalog.active_base_unit()
        if remaining > 0 and base is not None:
            leftover = available.get(base.id, ZERO) - used.get(base.id, ZERO)
            if leftover > 0:
                extra = min(leftover, remaining)
                used[base.id] = used.get(base.id, ZERO) + extra
                remaining -= extra
                logger.debug(f"Remainder {extra} taken from base unit {base.name}")

        lines = []
        for packaging in candidates:
            if packaging.id not in used:
                continue
            units = used[packaging.id]
            lines.append(PickPlanLine(
                packaging_type_id=packaging.id,
                packaging_name=packaging.name,
                base_unit_quantity=packaging.base_unit_quantity,
                units_used=units,
                base_unit_value=base_units_for(units, packaging),
            ))

        fulfilled = sum((line.base_unit_value for line in lines), ZERO)
        residual = requested - fulfilled

    plan = PickPlan(
        product_id=catalog.product_id,
        requested_base_units=requested,
        fulfilled_base_units=fulfilled,
        residual_base_units=residual,
        should_fulfill=residual == 0,
        lines=lines,
    )

    if residual > 0:
        logger.warning(
            f"Partial pick plan for product {catalog.product_id}: "
            f"{fulfilled}/{requested} base units, residual {residual}"
        )
    else:
        logger.info(
            f"Pick plan for product {catalog.product_id}: {requested} base units in {len(lines)} line(s)"
        )
    return plan


class PickingOptimizer:
    """Computes pick plans over the consolidator's stock snapshot"""

    def __init__(self, consolidator: StockConsolidator):
        self.consolidator = consolidator

    def optimize_picking_by_packaging(self, product_id: str, requested_base_units: Any) -> PickPlan:
        """
        Pick plan satisfying `requested_base_units` with as few handling units as practical.

        Raises:
            InvalidQuantityError: negative or non-finite request (nothing computed)
            PackagingNotFoundError: stock references a packaging outside the catalog
        """
        requested = validate_quantity(requested_base_units, "requested_base_units")
        if requested == 0:
            return empty_plan(product_id)

        catalog, records = self.consolidator.load(product_id)
        return plan_picking(catalog, records, requested)
