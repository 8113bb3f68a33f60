# backend/packaging_catalog.py

"""
Packaging Catalog - one product's packaging hierarchy.

The catalog is an id-indexed arena of PackagingDefinition snapshots. Parent and
child relationships are resolved by id lookup, never stored as references.

INVARIANTS (ENFORCED ON LOAD):
1) At least one base unit per product, at most one of them active
2) Every base unit has base_unit_quantity == 1
3) Every other level has base_unit_quantity > 1
4) Every definition belongs to the catalog's product
5) No cycles in the parent relation

`level` is an ordering hint. Divergence between `level` ordering and
base_unit_quantity ordering is a catalog data-quality issue: it is reported by
audit_level_ordering(), never raised.
"""

from typing import Dict, Iterable, List, Optional
import logging

from packaging_errors import PackagingHierarchyError, PackagingNotFoundError
from packaging_models import HierarchyWarning, PackagingDefinition, PackagingNode
from packaging_snapshot import PackagingReader

logger = logging.getLogger(__name__)


def packaging_sort_key(packaging: PackagingDefinition):
    """Base unit first, then level, then size; id keeps it deterministic"""
    return (
        not packaging.is_base_unit,
        packaging.level,
        packaging.base_unit_quantity,
        packaging.id,
    )


class PackagingCatalog:
    """Validated packaging hierarchy of a single product"""

    def __init__(self, product_id: str, definitions: Iterable[PackagingDefinition]):
        self.product_id = product_id
        self._packagings: Dict[str, PackagingDefinition] = {}

        for packaging in definitions:
            if packaging.product_id != product_id:
                raise PackagingHierarchyError(
                    product_id,
                    f"definition belongs to product '{packaging.product_id}'",
                    packaging.id,
                    field="product_id",
                )
            self._packagings[packaging.id] = packaging

        self._validate()

    @classmethod
    def from_reader(cls, reader: PackagingReader, product_id: str) -> "PackagingCatalog":
        """Load and validate a product's catalog through the packaging reader"""
        return cls(product_id, reader.fetch_packaging_definitions(product_id))

    # ==================== VALIDATION ====================

    def _validate(self) -> None:
        if not self._packagings:
            # A product without packagings has no stock to convert; lookups raise PackagingNotFound
            return

        base_units = [p for p in self._packagings.values() if p.is_base_unit]
        if not base_units:
            raise PackagingHierarchyError(self.product_id, "no base unit defined", field="is_base_unit")
        # Retired base units may stay for historical stock; only one may be active
        active_base_units = [p for p in base_units if p.is_active]
        if len(active_base_units) > 1:
            ids = ", ".join(sorted(p.id for p in active_base_units))
            raise PackagingHierarchyError(
                self.product_id, f"more than one base unit is active ({ids})", field="is_base_unit"
            )

        for packaging in self._packagings.values():
            if packaging.is_base_unit and packaging.base_unit_quantity != 1:
                raise PackagingHierarchyError(
                    self.product_id,
                    f"base unit must hold exactly 1 base unit, got {packaging.base_unit_quantity}",
                    packaging.id,
                    field="base_unit_quantity",
                )
            if not packaging.is_base_unit and packaging.base_unit_quantity <= 1:
                raise PackagingHierarchyError(
                    self.product_id,
                    f"non-base packaging must hold more than 1 base unit, got {packaging.base_unit_quantity}",
                    packaging.id,
                    field="base_unit_quantity",
                )

        self._check_parents()

    def _check_parents(self) -> None:
        # Walk each parent chain up to a root; revisiting a node means a cycle
        for packaging in self._packagings.values():
            seen = {packaging.id}
            current = packaging
            while current.parent_packaging_id is not None:
                parent = self._packagings.get(current.parent_packaging_id)
                if parent is None:
                    break  # dangling parent: treated as a root
                if parent.id in seen:
                    raise PackagingHierarchyError(
                        self.product_id,
                        f"cycle in parent_packaging_id through '{parent.id}'",
                        packaging.id,
                    )
                seen.add(parent.id)
                current = parent

    # ==================== LOOKUPS ====================

    def __contains__(self, packaging_id: str) -> bool:
        return packaging_id in self._packagings

    def __len__(self) -> int:
        return len(self._packagings)

    def get(self, packaging_id: str) -> PackagingDefinition:
        """Resolve a packaging id of this product (active or inactive)"""
        packaging = self._packagings.get(packaging_id)
        if packaging is None:
            raise PackagingNotFoundError(packaging_id, self.product_id)
        return packaging

    def packagings(self, include_inactive: bool = False) -> List[PackagingDefinition]:
        """Flat list ordered by level ascending, base unit first"""
        items = [
            p for p in self._packagings.values()
            if include_inactive or p.is_active
        ]
        return sorted(items, key=packaging_sort_key)

    def active_base_unit(self) -> Optional[PackagingDefinition]:
        for packaging in self._packagings.values():
            if packaging.is_base_unit and packaging.is_active:
                return packaging
        return None

    @property
    def base_unit(self) -> PackagingDefinition:
        """Active base unit of the product"""
        packaging = self.active_base_unit()
        if packaging is None:
            raise PackagingNotFoundError("<base unit>", self.product_id)
        return packaging

    def find_by_barcode(self, barcode: str) -> PackagingDefinition:
        for packaging in self.packagings():
            if packaging.barcode == barcode:
                return packaging
        raise PackagingNotFoundError(barcode, self.product_id, field="barcode")

    # ==================== HIERARCHY ====================

    def hierarchy(self) -> List[PackagingNode]:
        """
        Active packagings as a forest.

        Roots are packagings without a parent, or whose parent is inactive or
        missing. Flat catalogs come back as a list of childless roots.
        """
        active = self.packagings()
        active_ids = {p.id for p in active}

        children_of: Dict[Optional[str], List[PackagingDefinition]] = {}
        for packaging in active:
            parent_id = packaging.parent_packaging_id
            if parent_id not in active_ids:
                parent_id = None
            children_of.setdefault(parent_id, []).append(packaging)

        def build(packaging: PackagingDefinition) -> PackagingNode:
            return PackagingNode(
                **packaging.model_dump(),
                children=[build(child) for child in children_of.get(packaging.id, [])],
            )

        return [build(root) for root in children_of.get(None, [])]

    def audit_level_ordering(self) -> List[HierarchyWarning]:
        """
        Report catalog data-quality issues without failing.

        - LEVEL_ORDER_MISMATCH: a higher level holds fewer (or equal) base units
        - CHILD_NOT_LARGER_THAN_PARENT: a packaging built from a parent level
          (box from pieces, pallet from boxes) does not hold more base units
        - DANGLING_PARENT: parent id does not resolve within the product
        """
        warnings: List[HierarchyWarning] = []
        ordered = sorted(self._packagings.values(), key=lambda p: (p.level, p.base_unit_quantity, p.id))

        for lower, higher in zip(ordered, ordered[1:]):
            if higher.level > lower.level and higher.base_unit_quantity <= lower.base_unit_quantity:
                warnings.append(HierarchyWarning(
                    warning_code="LEVEL_ORDER_MISMATCH",
                    message=(
                        f"'{higher.name}' has level {higher.level} but holds {higher.base_unit_quantity} "
                        f"base units, not more than '{lower.name}' (level {lower.level}, "
                        f"{lower.base_unit_quantity} base units)"
                    ),
                    packaging_id=higher.id,
                    related_packaging_id=lower.id,
                ))

        for packaging in ordered:
            parent_id = packaging.parent_packaging_id
            if parent_id is None:
                continue
            parent = self._packagings.get(parent_id)
            if parent is None:
                warnings.append(HierarchyWarning(
                    warning_code="DANGLING_PARENT",
                    message=f"'{packaging.name}' references missing parent '{parent_id}'",
                    packaging_id=packaging.id,
                    related_packaging_id=parent_id,
                ))
            elif packaging.base_unit_quantity <= parent.base_unit_quantity:
                warnings.append(HierarchyWarning(
                    warning_code="CHILD_NOT_LARGER_THAN_PARENT",
                    message=(
                        f"'{packaging.name}' ({packaging.base_unit_quantity} base units) does not hold more than its parent "
                        f"'{parent.name}' ({parent.base_unit_quantity} base units)"
                    ),
                    packaging_id=packaging.id,
                    related_packaging_id=parent.id,
                ))

        for warning in warnings:
            logger.warning(f"Packaging catalog {self.product_id}: {warning.warning_code} - {warning.message}")

        return warnings

    def __repr__(self):
        return f"<PackagingCatalog(product_id='{self.product_id}', packagings={len(self._packagings)})>"
