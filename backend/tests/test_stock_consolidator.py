# backend/tests/test_stock_consolidator.py

"""
Unit tests for the Stock Consolidator

Tests cover:
- Raw stock by packaging (unmodified, base unit first, no aggregation)
- Consolidated total in base units
- Invariance to how a total is split across packaging levels
- Monotonicity in any record's quantity
- Inactive packagings still count, unknown packagings fail hard
- Stock summary breakdown
- Totals beyond the default 28-digit decimal precision
"""

import pytest
from decimal import Decimal

from conftest import PRODUCT_ID, make_packaging, make_stock
from packaging_errors import PackagingNotFoundError
from packaging_snapshot import InMemorySnapshot
from stock_consolidator import StockConsolidator


def consolidator_for(snapshot):
    return StockConsolidator(snapshot, snapshot)


class TestStockByPackaging:
    """Test raw per-packaging stock"""

    def test_sorted_base_unit_first(self, snapshot_factory):
        snapshot = snapshot_factory([
            make_stock("PALLET", 1),
            make_stock("PIECE", 30),
            make_stock("BOX", 7),
            make_stock("PIECE", 5),
        ])

        lines = consolidator_for(snapshot).get_stock_by_packaging(PRODUCT_ID)

        assert [(line.packaging_type_id, line.quantity) for line in lines] == [
            ("PIECE", Decimal("30")),
            ("PIECE", Decimal("5")),
            ("BOX", Decimal("7")),
            ("PALLET", Decimal("1")),
        ]

    def test_no_stock(self, snapshot_factory):
        assert consolidator_for(snapshot_factory()).get_stock_by_packaging(PRODUCT_ID) == []

    def test_unknown_packaging_fails(self, snapshot_factory):
        snapshot = snapshot_factory([make_stock("CRATE", 1)])

        with pytest.raises(PackagingNotFoundError):
            consolidator_for(snapshot).get_stock_by_packaging(PRODUCT_ID)


class TestStockConsolidated:
    """Test consolidated base-unit totals"""

    def test_mixed_levels(self, snapshot_factory):
        snapshot = snapshot_factory([
            make_stock("PALLET", 1),
            make_stock("BOX", 20),
            make_stock("PIECE", 30),
        ])

        assert consolidator_for(snapshot).get_stock_consolidated(PRODUCT_ID) == Decimal("1710")

    def test_empty_is_zero(self, snapshot_factory):
        assert consolidator_for(snapshot_factory()).get_stock_consolidated(PRODUCT_ID) == Decimal("0")

    def test_fractional_records(self, snapshot_factory):
        snapshot = snapshot_factory([
            make_stock("DISPLAY", "0.5"),
            make_stock("PIECE", "2.25"),
        ])

        assert consolidator_for(snapshot).get_stock_consolidated(PRODUCT_ID) == Decimal("74.25")

    @pytest.mark.parametrize("split", [
        [("PALLET", 1), ("DISPLAY", 2)],
        [("BOX", 144)],
        [("PIECE", 1728)],
        [("DISPLAY", 12)],
        [("PALLET", 1), ("BOX", 24)],
        [("DISPLAY", 11), ("BOX", 11), ("PIECE", 12)],
        [("PALLET", "1.2")],
    ])
    def test_invariant_to_split(self, snapshot_factory, split):
        """1728 base units consolidate to 1728 however they are racked"""
        snapshot = snapshot_factory([make_stock(packaging_id, qty) for packaging_id, qty in split])

        assert consolidator_for(snapshot).get_stock_consolidated(PRODUCT_ID) == Decimal("1728")

    def test_long_precision_total_is_exact(self, snapshot_factory):
        """No rounding at the default 28-digit precision"""
        snapshot = snapshot_factory([
            make_stock("PALLET", 10 ** 27),
            make_stock("PIECE", "0.0000000000000000000000000001"),
        ])

        total = consolidator_for(snapshot).get_stock_consolidated(PRODUCT_ID)

        assert total == Decimal(f"{1440 * 10 ** 27}.{'0' * 27}1")

    def test_monotonic_in_record_quantity(self, snapshot_factory):
        totals = []
        for boxes in [0, 1, 5, 12, 13, 100]:
            snapshot = snapshot_factory([make_stock("PIECE", 3), make_stock("BOX", boxes)])
            totals.append(consolidator_for(snapshot).get_stock_consolidated(PRODUCT_ID))

        assert totals == sorted(totals)
        assert totals[0] == Decimal("3")

    def test_inactive_packaging_still_counted(self, standard_packagings):
        retired = make_packaging("OLD_BOX", 10, 2, parent_packaging_id="PIECE", is_active=False)
        snapshot = InMemorySnapshot(
            standard_packagings + [retired],
            [make_stock("OLD_BOX", 4), make_stock("PIECE", 1)],
        )

        assert consolidator_for(snapshot).get_stock_consolidated(PRODUCT_ID) == Decimal("41")

    def test_packaging_of_another_product_fails(self, snapshot_factory):
        snapshot = snapshot_factory([make_stock("OIL_CASE", 2)])

        with pytest.raises(PackagingNotFoundError) as exc_info:
            consolidator_for(snapshot).get_stock_consolidated(PRODUCT_ID)

        assert exc_info.value.product_id == PRODUCT_ID

    def test_products_are_independent(self, snapshot_factory):
        snapshot = snapshot_factory([
            make_stock("BOX", 2),
            make_stock("OIL_CASE", 3, product_id="SKU-2002"),
        ])
        consolidator = consolidator_for(snapshot)

        assert consolidator.get_stock_consolidated(PRODUCT_ID) == Decimal("24")
        assert consolidator.get_stock_consolidated("SKU-2002") == Decimal("18")


class TestStockSummary:
    """Test consolidated summary with per-packaging breakdown"""

    def test_breakdown(self, snapshot_factory):
        snapshot = snapshot_factory([
            make_stock("PALLET", 1, location_id="A-01"),
            make_stock("BOX", 20, location_id="B-07"),
            make_stock("BOX", 5, location_id="B-08"),
            make_stock("PIECE", 30, location_id="B-07"),
        ])

        summary = consolidator_for(snapshot).get_stock_summary(PRODUCT_ID)

        assert summary.total_base_units == Decimal("1770")
        assert summary.records_count == 4
        assert summary.locations_count == 3
        assert [line.packaging_type_id for line in summary.lines] == ["PIECE", "BOX", "PALLET"]

        box = summary.lines[1]
        assert box.quantity == Decimal("25")
        assert box.base_units == Decimal("300")
        assert box.records_count == 2
        assert box.is_active is True

    def test_summary_total_matches_consolidated(self, snapshot_factory):
        snapshot = snapshot_factory([make_stock("DISPLAY", 3), make_stock("PIECE", "0.5")])
        consolidator = consolidator_for(snapshot)

        assert consolidator.get_stock_summary(PRODUCT_ID).total_base_units == \
            consolidator.get_stock_consolidated(PRODUCT_ID)

    def test_long_precision_lines_stay_exact(self, snapshot_factory):
        snapshot = snapshot_factory([
            make_stock("PIECE", "12345678901234567890.123456789"),
            make_stock("PIECE", "98765432109876543210.987654321"),
            make_stock("BOX", "1E+25"),
        ])

        summary = consolidator_for(snapshot).get_stock_summary(PRODUCT_ID)

        assert summary.lines[0].quantity == Decimal("111111111011111111101.111111110")
        assert summary.lines[1].base_units == Decimal("1.2E+26")
        assert summary.total_base_units == Decimal("120000111111111011111111101.111111110")
