# backend/packaging_errors.py

"""
Packaging engine error taxonomy.

Every failure raised by the catalog, conversion engine, stock consolidator and
picking optimizer is a PackagingError carrying a stable error_code so the HTTP
layer (and any other caller) can translate it without parsing messages.

Insufficient stock is NOT an error: it is reported through
PickPlan.residual_base_units.
"""

from typing import Any, Dict, Optional


class PackagingError(Exception):
    """Base packaging engine error"""
    def __init__(self, error_code: str, message: str, field: Optional[str] = None, severity: str = "HARD_ERROR"):
        self.error_code = error_code
        self.message = message
        self.field = field
        self.severity = severity
        super().__init__(self.message)

    def as_dict(self) -> Dict[str, Any]:
        """Serialize to dict (API error payloads)"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "field": self.field,
            "severity": self.severity,
        }


class PackagingNotFoundError(PackagingError):
    """Packaging id (or barcode) does not resolve"""
    def __init__(self, packaging_ref: Any, product_id: Optional[str] = None, field: str = "packaging_type_id"):
        self.packaging_ref = packaging_ref
        self.product_id = product_id
        scope = f" for product '{product_id}'" if product_id is not None else ""
        super().__init__(
            "PACKAGING_NOT_FOUND",
            f"Packaging '{packaging_ref}' not found{scope}.",
            field=field,
        )


class InvalidQuantityError(PackagingError):
    """Quantity is negative, non-finite or not a number"""
    def __init__(self, quantity: Any, field: str = "quantity", reason: str = "must be a finite, non-negative number"):
        self.quantity = quantity
        super().__init__(
            "INVALID_QUANTITY",
            f"Invalid {field}: {quantity!r} ({reason}).",
            field=field,
        )


class CrossProductConversionError(PackagingError):
    """Conversion requested between packagings of different products"""
    def __init__(self, from_packaging_id: str, from_product_id: str, to_packaging_id: str, to_product_id: str):
        self.from_product_id = from_product_id
        self.to_product_id = to_product_id
        super().__init__(
            "CROSS_PRODUCT_CONVERSION",
            f"Cannot convert packaging '{from_packaging_id}' (product '{from_product_id}') "
            f"to packaging '{to_packaging_id}' (product '{to_product_id}'). "
            f"Conversions are only defined within one product.",
            field="to_packaging_id",
        )


class PackagingHierarchyError(PackagingError):
    """Product catalog breaks a hierarchy invariant"""
    def __init__(self, product_id: str, reason: str, packaging_id: Optional[str] = None, field: str = "parent_packaging_id"):
        self.product_id = product_id
        self.packaging_id = packaging_id
        where = f" (packaging '{packaging_id}')" if packaging_id is not None else ""
        super().__init__(
            "INVALID_PACKAGING_HIERARCHY",
            f"Invalid packaging hierarchy for product '{product_id}'{where}: {reason}",
            field=field,
        )
