"""
Unit tests for table normalization
"""
from sheet_engine.agents.loader.models import Cell, CellKind, MergeRange, RawSheet
from sheet_engine.agents.normalizer import (
    TableNormalizer,
    PrimitiveKind,
    SOURCE_ROW_INDEX,
    to_snake_case,
    deduplicate_names,
    singularize,
    pluralize,
)
from sheet_engine.agents.normalizer.coercion import coerce_numeric, parse_number, uses_decimal_comma
from sheet_engine.agents.regions import RegionDetector
from sheet_engine.agents.regions.models import DataRegion


class TestNaming:
    """Test cases for name cleaning helpers"""

    def test_snake_case(self):
        assert to_snake_case("Product ID") == "product_id"
        assert to_snake_case("unitPrice") == "unit_price"
        assert to_snake_case("SKU#") == "sku"
        assert to_snake_case("  Reorder   Level ") == "reorder_level"
        assert to_snake_case("2024 Sales") == "col_2024_sales"
        assert to_snake_case("###") == "column"

    def test_deduplicate_names(self):
        assert deduplicate_names(["name", "name", "price"]) == ["name", "name_1", "price"]
        assert deduplicate_names(["name", "name", "name_1"]) == ["name", "name_2", "name_1"]

    def test_singular_and_plural(self):
        assert singularize("Categories") == "Category"
        assert singularize("Addresses") == "Address"
        assert singularize("Products") == "Product"
        assert singularize("Status") == "Status"
        assert pluralize("category") == "categories"
        assert pluralize("box") == "boxes"
        assert pluralize("order") == "orders"


class TestParseNumber:
    """Test cases for numeric coercion of cell text"""

    def test_formats(self):
        assert parse_number("1,250.50") == 1250.5
        assert parse_number("$9.99") == 9.99
        assert parse_number("(1,200)") == -1200.0
        assert parse_number("45%") == 0.45
        assert parse_number(7) == 7.0

    def test_rejects(self):
        assert parse_number("abc") is None
        assert parse_number("") is None
        assert parse_number(True) is None
        assert parse_number(None) is None

    def test_decimal_comma(self):
        assert parse_number("1,5", decimal=",") == 1.5
        assert parse_number("1.250,5", decimal=",") == 1250.5
        assert parse_number("1,5") == 15.0

    def test_decimal_comma_column(self):
        assert uses_decimal_comma(["1,5", "2,25", 3])
        assert not uses_decimal_comma(["1,250", "2,5"])
        assert not uses_decimal_comma([1, 2])

        series, ratio = coerce_numeric(["1,5", "2,25", "10,75"], 0.8)
        assert list(series) == [1.5, 2.25, 10.75]
        assert ratio == 1.0


class TestTableNormalizer:
    """Test cases for TableNormalizer"""

    def setup_method(self):
        self.normalizer = TableNormalizer()
        self.detector = RegionDetector()

    def test_names_types_and_source_rows(self, make_sheet):
        sheet = make_sheet([
            ["Product ID", "Unit Price", "Unit Price", "Added", "Notes"],
            [1, "$9.50", "$1.00", "2024-01-05", None],
            [2, "$12.25", "$2.00", "2024-02-10", None],
        ], name="Products")
        region = self.detector.detect(sheet)[0]
        table = self.normalizer.normalize(region, sheet)

        assert table.columns == ["product_id", "unit_price", "unit_price_1", "added"]
        assert table.dropped_columns == ["Notes"]
        assert table.frame.index.name == SOURCE_ROW_INDEX
        assert list(table.frame.index) == [1, 2]
        assert table.frame["unit_price"].tolist() == [9.5, 12.25]
        assert table.primitive_kinds["unit_price"] == PrimitiveKind.NUMERIC
        assert table.primitive_kinds["added"] == PrimitiveKind.DATE
        assert table.original_names["unit_price_1"] == "Unit Price"
        assert table.column_letters == {
            "product_id": "A",
            "unit_price": "B",
            "unit_price_1": "C",
            "added": "D",
        }
        assert table.field_for_letter("b") == "unit_price"
        assert table.field_for_letter("E") == ""

    def test_merged_cells_repeat_anchor_value(self):
        merge = MergeRange(top=1, left=0, bottom=2, right=0)
        sheet = RawSheet(
            name="Sales",
            cells=(
                (Cell("Region", CellKind.STRING), Cell("Sales", CellKind.STRING)),
                (Cell("East", CellKind.STRING, merge=merge), Cell(100, CellKind.NUMBER)),
                (Cell(merge=merge), Cell(200, CellKind.NUMBER)),
            ),
        )
        region = DataRegion(
            sheet_name="Sales",
            header_row=0,
            data_start_row=1,
            data_end_row=2,
            start_col=0,
            end_col=1,
            column_names=("Region", "Sales"),
            quality_score=1.0,
        )
        table = self.normalizer.normalize(region, sheet)

        assert table.frame["region"].tolist() == ["East", "East"]
        assert table.primitive_kinds["region"] == PrimitiveKind.STRING
        assert table.frame["sales"].tolist() == [100, 200]

    def test_datetime_column(self, make_sheet):
        sheet = make_sheet([
            ["Order ID", "Created"],
            [1, "2024-01-05 10:30"],
            [2, "2024-01-06 14:00"],
        ])
        region = self.detector.detect(sheet)[0]
        table = self.normalizer.normalize(region, sheet)
        assert table.primitive_kinds["created"] == PrimitiveKind.DATETIME
