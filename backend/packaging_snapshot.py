# backend/packaging_snapshot.py

"""
Collaborator readers consumed by the packaging engine.

The engine never talks to a database. Whatever owns persistence (MongoDB in
this service, see packaging_repository.py) fetches the records first and hands
them over as an InMemorySnapshot, which implements both reader protocols.
"""

from typing import Dict, Iterable, List, Optional, Protocol

from packaging_models import PackagingDefinition, StockRecord


class PackagingReader(Protocol):
    """Packaging catalog reader (pure data access, no validation)"""

    def fetch_packaging_definitions(self, product_id: str) -> List[PackagingDefinition]:
        ...

    def fetch_packaging_definition(self, packaging_id: str) -> Optional[PackagingDefinition]:
        ...

    def fetch_packaging_by_barcode(self, barcode: str) -> List[PackagingDefinition]:
        ...


class StockReader(Protocol):
    """Stock snapshot reader"""

    def fetch_stock_records(self, product_id: str) -> List[StockRecord]:
        ...


class InMemorySnapshot:
    """
    Immutable snapshot of packaging definitions and stock records.

    Definitions are indexed by id (an arena); parent/child links are resolved
    by id lookup by the catalog, never stored as object references.
    """

    def __init__(
        self,
        definitions: Iterable[PackagingDefinition] = (),
        stock_records: Iterable[StockRecord] = (),
    ):
        self._definitions: Dict[str, PackagingDefinition] = {}
        self._by_product: Dict[str, List[PackagingDefinition]] = {}
        for definition in definitions:
            if definition.id in self._definitions:
                raise ValueError(f"Duplicate packaging id in snapshot: {definition.id}")
            self._definitions[definition.id] = definition
            self._by_product.setdefault(definition.product_id, []).append(definition)

        self._stock: Dict[str, List[StockRecord]] = {}
        for record in stock_records:
            self._stock.setdefault(record.product_id, []).append(record)

    def fetch_packaging_definitions(self, product_id: str) -> List[PackagingDefinition]:
        return list(self._by_product.get(product_id, []))

    def fetch_packaging_definition(self, packaging_id: str) -> Optional[PackagingDefinition]:
        return self._definitions.get(packaging_id)

    def fetch_packaging_by_barcode(self, barcode: str) -> List[PackagingDefinition]:
        return [d for d in self._definitions.values() if d.barcode == barcode]

    def fetch_stock_records(self, product_id: str) -> List[StockRecord]:
        return list(self._stock.get(product_id, []))

    def __repr__(self):
        return (
            f"<InMemorySnapshot(products={len(self._by_product)}, "
            f"packagings={len(self._definitions)}, "
            f"stock_records={sum(len(r) for r in self._stock.values())})>"
        )
