# backend/packaging_repository.py

"""
MongoDB collaborator for the packaging engine.

Pure data access: fetch documents, map them to the engine's value models and
hand back an InMemorySnapshot. Documents that cannot form a model (numbers
that are missing, non-numeric or out of range) raise the engine's errors here;
hierarchy rules (base unit, cycles, inactive packagings) belong to the catalog.

Collections (names configurable, see packaging_settings.py):

    packaging_types: {id, product_id, name, base_unit_quantity, level,
                      parent_packaging_id, is_base_unit, is_active, barcode}
    stock_records:   {id, product_id, packaging_type_id, quantity,
                      location_id, is_active}
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import logging

from bson.decimal128 import Decimal128

from packaging_conversion_engine import ZERO, to_decimal, validate_quantity
from packaging_errors import InvalidQuantityError, PackagingHierarchyError
from packaging_models import PackagingDefinition, StockRecord
from packaging_snapshot import InMemorySnapshot

logger = logging.getLogger(__name__)


def decimal_from_document(value: Any, field: str = "quantity") -> Optional[Decimal]:
    """
    Mongo numbers (Decimal128, int, float, str) → finite Decimal; floats via str()

    Raises:
        InvalidQuantityError: non-numeric or non-finite value
    """
    if value is None:
        return None
    if isinstance(value, Decimal128):
        value = value.to_decimal()
    return to_decimal(value, field)


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _level_from_document(doc: Dict[str, Any]) -> int:
    level = doc.get("level")
    if level is None:
        return 1
    try:
        value = decimal_from_document(level, "level")
    except InvalidQuantityError:
        value = None
    if value is None or value != value.to_integral_value() or value < 1:
        raise PackagingHierarchyError(
            str(doc.get("product_id")),
            f"level must be a whole number >= 1, got {level!r}",
            _optional_str(doc.get("id")),
            field="level",
        )
    return int(value)


def packaging_from_document(doc: Dict[str, Any]) -> PackagingDefinition:
    """
    Raises:
        PackagingHierarchyError: base_unit_quantity missing, not a number or
            not positive; level not a whole number >= 1
    """
    product_id = str(doc.get("product_id"))
    packaging_id = _optional_str(doc.get("id"))

    try:
        base_unit_quantity = decimal_from_document(doc.get("base_unit_quantity"), "base_unit_quantity")
    except InvalidQuantityError as e:
        raise PackagingHierarchyError(product_id, e.message, packaging_id, field="base_unit_quantity")
    if base_unit_quantity is None:
        raise PackagingHierarchyError(
            product_id,
            "packaging document has no base_unit_quantity",
            packaging_id,
            field="base_unit_quantity",
        )
    if base_unit_quantity <= 0:
        raise PackagingHierarchyError(
            product_id,
            f"base_unit_quantity must be positive, got {base_unit_quantity}",
            packaging_id,
            field="base_unit_quantity",
        )

    return PackagingDefinition(
        id=str(doc["id"]),
        product_id=str(doc["product_id"]),
        name=doc.get("name") or str(doc["id"]),
        base_unit_quantity=base_unit_quantity,
        level=_level_from_document(doc),
        parent_packaging_id=_optional_str(doc.get("parent_packaging_id")),
        is_base_unit=bool(doc.get("is_base_unit", False)),
        is_active=bool(doc.get("is_active", True)),
        barcode=doc.get("barcode"),
    )


def stock_record_from_document(doc: Dict[str, Any]) -> StockRecord:
    """
    Raises:
        InvalidQuantityError: quantity not a number, not finite or negative
    """
    quantity = decimal_from_document(doc.get("quantity"))
    return StockRecord(
        id=_optional_str(doc.get("id")),
        product_id=str(doc["product_id"]),
        packaging_type_id=str(doc["packaging_type_id"]),
        quantity=validate_quantity(quantity if quantity is not None else ZERO),
        location_id=_optional_str(doc.get("location_id")),
    )


class MongoPackagingRepository:
    """Loads packaging/stock snapshots from MongoDB (motor)"""

    def __init__(self, db, packaging_collection: str = "packaging_types", stock_collection: str = "stock_records"):
        """
        Args:
            db: Motor database instance
            packaging_collection: Collection holding packaging definitions
            stock_collection: Collection holding stock records
        """
        self.db = db
        self.packaging_collection = packaging_collection
        self.stock_collection = stock_collection

    async def _find(self, collection: str, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self.db[collection].find(query, {"_id": 0}).to_list(length=None)

    async def fetch_packaging_documents(self, query: Dict[str, Any]) -> List[PackagingDefinition]:
        documents = await self._find(self.packaging_collection, query)
        return [packaging_from_document(doc) for doc in documents]

    async def fetch_stock_documents(self, product_id: str) -> List[StockRecord]:
        documents = await self._find(
            self.stock_collection,
            {"product_id": product_id, "is_active": {"$ne": False}},
        )
        return [stock_record_from_document(doc) for doc in documents]

    async def load_product_snapshot(self, product_id: str) -> InMemorySnapshot:
        """All packagings (active and inactive) and active stock of one product"""
        definitions = await self.fetch_packaging_documents({"product_id": product_id})
        stock_records = await self.fetch_stock_documents(product_id)
        logger.debug(
            f"Loaded product {product_id}: {len(definitions)} packagings, {len(stock_records)} stock records"
        )
        return InMemorySnapshot(definitions, stock_records)

    async def load_packaging_snapshot(self, packaging_ids: Iterable[str]) -> InMemorySnapshot:
        """Only the requested packaging definitions (conversion lookups)"""
        ids = sorted(set(packaging_ids))
        definitions = await self.fetch_packaging_documents({"id": {"$in": ids}})
        return InMemorySnapshot(definitions)

    async def load_barcode_snapshot(self, barcode: str) -> InMemorySnapshot:
        """Packaging definitions carrying `barcode`"""
        definitions = await self.fetch_packaging_documents({"barcode": barcode})
        return InMemorySnapshot(definitions)

    async def list_product_ids(self) -> List[str]:
        product_ids = await self.db[self.packaging_collection].distinct("product_id")
        return sorted(str(product_id) for product_id in product_ids)

    async def create_indexes(self) -> None:
        packaging = self.db[self.packaging_collection]
        await packaging.create_index([("id", 1)], unique=True, name="packaging_id_unique")
        await packaging.create_index([("product_id", 1), ("level", 1)], name="product_level_idx")
        await packaging.create_index([("barcode", 1)], name="barcode_idx", sparse=True)
        await self.db[self.stock_collection].create_index(
            [("product_id", 1), ("packaging_type_id", 1)], name="product_packaging_idx"
        )
