# backend/packaging_conversion_engine.py

"""
Packaging Conversion Engine

This engine is responsible for:
- Quantity validation (finite, non-negative, Decimal)
- Packaging level → base unit conversion
- Base unit → packaging level conversion
- Conversion factor between two levels of the same product
- Presentation rounding (callers only)

This engine MUST NOT:
- Derive conversions from `level` (base_unit_quantity is authoritative)
- Convert across products
- Default an unknown packaging id to anything
- Round intermediate results

NUMERIC POLICY:
- Decimal only, never binary floats. Floats handed in by callers are read
  through str() so 0.1 stays 0.1.
- Results are unrounded; quantize() is for presentation boundaries.
- Products and sums of quantities are exact whatever their size: products via
  exact_product(), sums inside exact_context(). Only level-to-level division
  rounds, at the current context precision.
"""

from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP, getcontext, localcontext
from typing import Any, Iterable
import logging

from packaging_errors import (
    CrossProductConversionError,
    InvalidQuantityError,
    PackagingNotFoundError,
)
from packaging_models import PackagingDefinition
from packaging_snapshot import PackagingReader

logger = logging.getLogger(__name__)

ONE = Decimal(1)
ZERO = Decimal(0)


# ==================== QUANTITY VALIDATION ====================

def to_decimal(value: Any, field: str = "quantity") -> Decimal:
    """
    Coerce a caller-supplied number into a finite Decimal.

    Raises:
        InvalidQuantityError: None, bool, non-numeric strings, NaN, Infinity
    """
    if value is None or isinstance(value, bool):
        raise InvalidQuantityError(value, field, "must be a number")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidQuantityError(value, field, "must be a number")
    else:
        raise InvalidQuantityError(value, field, "must be a number")

    if not result.is_finite():
        raise InvalidQuantityError(value, field, "must be finite")

    return result


def validate_quantity(value: Any, field: str = "quantity") -> Decimal:
    """Finite and >= 0, or InvalidQuantityError"""
    result = to_decimal(value, field)
    if result < 0:
        raise InvalidQuantityError(value, field, "must not be negative")
    return result


# ==================== PURE CONVERSIONS ====================

def exact_product(a: Decimal, b: Decimal) -> Decimal:
    """a × b without rounding, whatever the current context precision"""
    digits = len(a.as_tuple().digits) + len(b.as_tuple().digits)
    return Context(prec=digits).multiply(a, b)


def exact_context(values: Iterable[Decimal]):
    """
    Local decimal context in which sums, differences and whole-unit divisions
    of `values` (and of amounts between them) are exact.

    Usage:
        with exact_context(quantities):
            total = sum(quantities, ZERO)
    """
    values = [value for value in values if value]
    context = getcontext().copy()
    if values:
        top = max(value.adjusted() for value in values)
        bottom = min(0, min(value.as_tuple().exponent for value in values))
        # one digit for the leading carry, the rest for carries across len(values) terms
        context.prec = max(context.prec, top - bottom + 2 + len(str(len(values))))
    return localcontext(context)


def base_units_for(quantity: Decimal, packaging: PackagingDefinition) -> Decimal:
    """quantity (in packaging units) × base_unit_quantity, exact"""
    return exact_product(quantity, packaging.base_unit_quantity)


def packaging_units_for(base_units: Decimal, packaging: PackagingDefinition) -> Decimal:
    """base_units ÷ base_unit_quantity (may be fractional)"""
    if packaging.base_unit_quantity == ONE:
        return base_units
    return base_units / packaging.base_unit_quantity


def quantize(value: Decimal, decimal_places: int = 3) -> Decimal:
    """
    Round for display (ROUND_HALF_UP).

    Only the presentation layer calls this; engine results are never rounded.
    """
    context = getcontext().copy()
    context.prec = max(context.prec, value.adjusted() + decimal_places + 2)
    return value.quantize(Decimal(10) ** -decimal_places, rounding=ROUND_HALF_UP, context=context)


# ==================== CONVERSION ENGINE ====================

class PackagingConversionEngine:
    """
    Stateless packaging conversion engine.

    Every lookup goes through the packaging reader; inactive definitions still
    resolve so historical stock records keep converting.
    """

    def __init__(self, reader: PackagingReader):
        self.reader = reader

    def resolve_packaging(self, packaging_id: str) -> PackagingDefinition:
        """
        Resolve a packaging id (active or inactive).

        Raises:
            PackagingNotFoundError: If the id does not resolve
        """
        packaging = self.reader.fetch_packaging_definition(packaging_id)
        if packaging is None:
            raise PackagingNotFoundError(packaging_id)
        return packaging

    def convert_to_base_units(self, quantity: Any, packaging_type_id: str) -> Decimal:
        """
        Convert `quantity` units of a packaging level into base units.

        Raises:
            InvalidQuantityError: quantity < 0 or not finite
            PackagingNotFoundError: unknown packaging id
        """
        qty = validate_quantity(quantity)
        packaging = self.resolve_packaging(packaging_type_id)
        return base_units_for(qty, packaging)

    def convert_from_base_units(self, base_units: Any, packaging_type_id: str) -> Decimal:
        """Convert base units into (possibly fractional) units of a packaging level"""
        qty = validate_quantity(base_units, "base_units")
        packaging = self.resolve_packaging(packaging_type_id)
        return packaging_units_for(qty, packaging)

    def _resolve_pair(self, from_packaging_id: str, to_packaging_id: str):
        from_packaging = self.resolve_packaging(from_packaging_id)
        to_packaging = self.resolve_packaging(to_packaging_id)

        if from_packaging.product_id != to_packaging.product_id:
            raise CrossProductConversionError(
                from_packaging.id,
                from_packaging.product_id,
                to_packaging.id,
                to_packaging.product_id,
            )
        return from_packaging, to_packaging

    def calculate_conversion_factor(self, from_packaging_id: str, to_packaging_id: str) -> Decimal:
        """
        Factor such that q_to = q_from × factor.

        factor = base_unit_quantity(from) / base_unit_quantity(to). Both are
        positive by invariant, so there is no division-by-zero path.

        Raises:
            PackagingNotFoundError: either id does not resolve
            CrossProductConversionError: ids belong to different products
        """
        from_packaging, to_packaging = self._resolve_pair(from_packaging_id, to_packaging_id)

        # Same level: exact identity, no division
        if from_packaging.id == to_packaging.id:
            return ONE

        factor = from_packaging.base_unit_quantity / to_packaging.base_unit_quantity
        logger.debug(
            f"Conversion factor {from_packaging.name} → {to_packaging.name}: "
            f"{from_packaging.base_unit_quantity} / {to_packaging.base_unit_quantity} = {factor}"
        )
        return factor

    def convert_between(self, quantity: Any, from_packaging_id: str, to_packaging_id: str) -> Decimal:
        """
        Convert a quantity from one packaging level to another of the same product.

        Multiplies before dividing so a single rounding happens at most.
        """
        qty = validate_quantity(quantity)
        from_packaging, to_packaging = self._resolve_pair(from_packaging_id, to_packaging_id)

        if from_packaging.id == to_packaging.id:
            return qty

        return packaging_units_for(base_units_for(qty, from_packaging), to_packaging)
