# backend/tests/conftest.py

"""Shared fixtures: a four-level packaging catalog and a fake MongoDB"""

import pytest
import sys
from decimal import Decimal
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from packaging_models import PackagingDefinition, StockRecord
from packaging_snapshot import InMemorySnapshot


PRODUCT_ID = "SKU-1001"


def make_packaging(packaging_id, base_unit_quantity, level, product_id=PRODUCT_ID, **kwargs):
    return PackagingDefinition(
        id=packaging_id,
        product_id=product_id,
        name=kwargs.pop("name", packaging_id.title()),
        base_unit_quantity=Decimal(str(base_unit_quantity)),
        level=level,
        **kwargs
    )


def make_stock(packaging_id, quantity, product_id=PRODUCT_ID, **kwargs):
    return StockRecord(
        product_id=product_id,
        packaging_type_id=packaging_id,
        quantity=Decimal(str(quantity)),
        **kwargs
    )


@pytest.fixture
def standard_packagings():
    """Piece → box (12) → display (144) → pallet (1440)"""
    return [
        make_packaging("PIECE", 1, 1, is_base_unit=True, barcode="7890000000001"),
        make_packaging("BOX", 12, 2, parent_packaging_id="PIECE", barcode="7890000000012"),
        make_packaging("DISPLAY", 144, 3, parent_packaging_id="BOX", barcode="7890000000144"),
        make_packaging("PALLET", 1440, 4, parent_packaging_id="DISPLAY"),
    ]


@pytest.fixture
def other_product_packagings():
    return [
        make_packaging("OIL_BOTTLE", 1, 1, product_id="SKU-2002", is_base_unit=True),
        make_packaging("OIL_CASE", 6, 2, product_id="SKU-2002", parent_packaging_id="OIL_BOTTLE",
                       barcode="7890000002006"),
    ]


@pytest.fixture
def snapshot_factory(standard_packagings, other_product_packagings):
    """Build an InMemorySnapshot over the standard catalogs plus the given stock"""
    def build(stock_records=(), packagings=None):
        definitions = packagings if packagings is not None else standard_packagings + other_product_packagings
        return InMemorySnapshot(definitions, stock_records)
    return build


# ==================== FAKE MONGODB ====================

def _matches(document, query):
    for key, condition in query.items():
        value = document.get(key)
        if isinstance(condition, dict):
            if "$in" in condition and value not in condition["$in"]:
                return False
            if "$ne" in condition and value == condition["$ne"]:
                return False
        elif value != condition:
            return False
    return True


class MockCursor:
    """Mock motor cursor"""
    def __init__(self, documents):
        self.documents = documents

    async def to_list(self, length=None):
        if length is None:
            return list(self.documents)
        return self.documents[:length]


class MockCollection:
    """Mock motor collection"""
    def __init__(self):
        self.documents = []
        self.indexes = []

    def find(self, query, projection=None):
        return MockCursor([dict(doc) for doc in self.documents if _matches(doc, query)])

    async def distinct(self, key):
        return list({doc[key] for doc in self.documents if key in doc})

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return kwargs.get("name")


class MockDB:
    """Mock motor database"""
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, MockCollection())


@pytest.fixture
def mock_db():
    return MockDB()


@pytest.fixture
def seeded_db(mock_db):
    """Standard catalog and a little stock stored as Mongo documents"""
    mock_db["packaging_types"].documents.extend([
        {"id": "PIECE", "product_id": PRODUCT_ID, "name": "Piece", "base_unit_quantity": 1,
         "level": 1, "is_base_unit": True, "is_active": True, "barcode": "7890000000001"},
        {"id": "BOX", "product_id": PRODUCT_ID, "name": "Box", "base_unit_quantity": 12,
         "level": 2, "parent_packaging_id": "PIECE", "is_active": True, "barcode": "7890000000012"},
        {"id": "DISPLAY", "product_id": PRODUCT_ID, "name": "Display", "base_unit_quantity": "144",
         "level": 3, "parent_packaging_id": "BOX", "is_active": True},
        {"id": "PALLET", "product_id": PRODUCT_ID, "name": "Pallet", "base_unit_quantity": 1440.0,
         "level": 4, "parent_packaging_id": "DISPLAY", "is_active": True},
        {"id": "OIL_BOTTLE", "product_id": "SKU-2002", "name": "Bottle", "base_unit_quantity": 1,
         "level": 1, "is_base_unit": True, "is_active": True},
    ])
    mock_db["stock_records"].documents.extend([
        {"id": "S1", "product_id": PRODUCT_ID, "packaging_type_id": "PALLET", "quantity": 1, "location_id": "A-01"},
        {"id": "S2", "product_id": PRODUCT_ID, "packaging_type_id": "BOX", "quantity": 20, "location_id": "B-07"},
        {"id": "S3", "product_id": PRODUCT_ID, "packaging_type_id": "PIECE", "quantity": 30, "location_id": "B-07"},
        {"id": "S4", "product_id": PRODUCT_ID, "packaging_type_id": "BOX", "quantity": 99, "is_active": False},
    ])
    return mock_db
