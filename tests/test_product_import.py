# =============================================================================
# tests/test_product_import.py - CSV Import Tests
# =============================================================================
# Header normalization, per-row validation, duplicate SKUs and the
# downloadable template.
#
# Run with: pytest tests/test_product_import.py -v
# =============================================================================

import pytest

from core.services import ProductImportService, ProductService
from core.services.product_import_service import REQUIRED_COLUMNS, csv_template, normalize_header


@pytest.fixture
def importer(conn, category):
    return ProductImportService(conn)


def test_normalize_header():
    assert normalize_header(" Stock Quantity ") == "stock_quantity"
    assert normalize_header("Sale-Price") == "sale_price"


def test_template_is_importable(importer, conn):
    result = importer.import_csv(csv_template())

    assert result.success
    assert result.imported_count == 1
    product = ProductService(conn).find_by_sku("SAMPLE-001")
    assert product["name"] == "Ceylon Cinnamon Sticks 100g"
    assert float(product["sale_price"]) == 12.99
    assert product["is_organic"]


def test_template_lists_required_columns_first():
    header = csv_template().splitlines()[0].split(",")
    assert header[:len(REQUIRED_COLUMNS)] == REQUIRED_COLUMNS


class TestImport:
    """Tests for ProductImportService.import_csv."""

    def test_mixed_rows(self, importer, conn, make_product):
        make_product(sku="TAKEN-1")
        csv = (
            "SKU,Name,Price,Category,Stock Quantity\n"
            "NEW-1,Alba Sticks,18.50,Cinnamon Sticks,30\n"
            "TAKEN-1,Duplicate,5,Cinnamon Sticks,1\n"
            "NEW-2,,abc,Unknown,-3\n"
            ",,,,\n"
            "NEW-3,Powder,9,cinnamon-sticks,\n"
        )

        result = importer.import_csv(csv.encode("utf-8"))

        assert result.success
        assert [row["sku"] for row in result.imported] == ["NEW-1", "NEW-3"]
        assert [row["row"] for row in result.imported] == [2, 6]
        skipped = {row["sku"]: row["errors"] for row in result.skipped}
        assert skipped["TAKEN-1"] == ["SKU already exists"]
        assert set(skipped["NEW-2"]) == {
            "Name is required",
            "Valid price is required",
            "Category 'Unknown' not found",
            "Stock quantity must be a non-negative integer",
        }
        assert ProductService(conn).find_by_sku("NEW-1")["stock_quantity"] == 30
        assert ProductService(conn).find_by_sku("NEW-3")["stock_quantity"] == 0

    def test_category_by_id(self, importer, category, conn):
        result = importer.import_csv(f"sku,name,price,category\nID-1,Oil,4,{category['id']}\n")
        assert result.imported_count == 1
        assert ProductService(conn).find_by_sku("ID-1")["category_id"] == category["id"]

    def test_sale_price_must_be_lower(self, importer):
        result = importer.import_csv("sku,name,price,category,sale_price\nS-1,Quills,10,Cinnamon Sticks,12\n")
        assert result.skipped[0]["errors"] == ["Sale price must be less than regular price"]

    def test_same_sku_twice_in_one_file(self, importer):
        result = importer.import_csv(
            "sku,name,price,category\nD-1,First,1,Cinnamon Sticks\nD-1,Second,1,Cinnamon Sticks\n"
        )
        assert result.imported_count == 1
        assert result.skipped == [{"row": 3, "sku": "D-1", "errors": ["SKU already exists"]}]

    def test_missing_required_columns(self, importer):
        result = importer.import_csv("sku,name\nA,B\n")
        assert not result.success
        assert result.errors == ["Missing required columns: price, category"]

    def test_empty_file(self, importer):
        result = importer.import_csv(b"")
        assert not result.success
        assert result.errors == ["CSV file is empty"]

    def test_utf8_bom_is_ignored(self, importer):
        data = "\ufeffsku,name,price,category\nB-1,Kurundu,3,Cinnamon Sticks\n".encode("utf-8")
        assert importer.import_csv(data).imported_count == 1
