"""
Unit tests for column classification
"""
import pandas as pd
import pytest

from sheet_engine.agents.classifier import ColumnClassifier, DataType, SemanticType, SemanticTypeInferer
from sheet_engine.agents.normalizer import PrimitiveKind


class TestColumnClassifier:
    """Test cases for the data type detector chain"""

    def setup_method(self):
        self.classifier = ColumnClassifier()

    def _numeric(self, name, values):
        return self.classifier.classify(name, pd.Series(values), PrimitiveKind.NUMERIC)

    def _text(self, name, values):
        return self.classifier.classify(name, pd.Series(values, dtype="object"), PrimitiveKind.STRING)

    def test_sequential_id(self):
        column = self._numeric("product_id", pd.array([1, 2, 3, 4], dtype="Int64"))
        assert column.data_type == DataType.ID
        assert column.confidence == pytest.approx(0.95)
        assert column.statistics["sequential"] is True
        assert column.is_unique

    def test_non_sequential_id(self):
        column = self._numeric("order_no", pd.array([1001, 1005, 1010, 1042], dtype="Int64"))
        assert column.data_type == DataType.ID
        assert column.confidence == pytest.approx(0.85)

    def test_unique_price_is_not_an_id(self):
        column = self._numeric("unit_price", [9.5, 12.0, 3.25])
        assert column.data_type == DataType.CURRENCY
        assert column.statistics["min"] == 3.25

    def test_integer_and_float(self):
        assert self._numeric("quantity", pd.array([5, 5, 10, 3], dtype="Int64")).data_type == DataType.INTEGER
        assert self._numeric("weight", [1.5, 2.25, 1.5]).data_type == DataType.FLOAT

    def test_percentage(self):
        assert self._numeric("ratio_a", [0.1, 0.25, 0.1]).data_type == DataType.PERCENTAGE
        assert self._numeric("discount", [5, 10, 5]).data_type == DataType.PERCENTAGE

    def test_patterns(self):
        assert self._text("contact", ["a@example.com", "b@example.org", "c@example.net"]).data_type == DataType.EMAIL
        assert self._text("site", ["https://example.com", "www.example.org"]).data_type == DataType.URL
        assert self._text("contact_no", ["555-123-4567", "(555) 987-6543"]).data_type == DataType.PHONE

    def test_boolean(self):
        column = self._text("active", ["Yes", "No", "yes", "no"])
        assert column.data_type == DataType.BOOLEAN
        assert column.confidence == 1.0

    def test_enum(self):
        column = self._text("status", ["Open", "Closed"] * 15)
        assert column.data_type == DataType.ENUM
        assert column.enum_values == ["Closed", "Open"]

    def test_text(self):
        column = self._text("name", ["Widget", "Gadget", "Gizmo"])
        assert column.data_type == DataType.TEXT
        assert column.confidence == pytest.approx(0.8)
        assert column.sample_values == ["Widget", "Gadget", "Gizmo"]

    def test_empty_and_nulls(self):
        empty = self._text("notes", [None, None])
        assert empty.data_type == DataType.EMPTY
        assert empty.nullable

        partial = self._text("name", ["Widget", None, "Gizmo"])
        assert partial.null_count == 1
        assert partial.total_count == 3

    def test_row_order_does_not_change_classification(self):
        values = ["Open", "Closed", "Open", "Pending"] * 10
        forward = self._text("status", values)
        backward = self._text("status", list(reversed(values)))

        assert forward.data_type == backward.data_type
        assert forward.confidence == backward.confidence
        assert forward.statistics == backward.statistics


class TestSemanticTypeInferer:
    """Test cases for name-based semantic types"""

    def setup_method(self):
        self.inferer = SemanticTypeInferer()

    def test_primary_keys(self):
        assert self.inferer.infer("id") == SemanticType.PRIMARY_KEY
        assert self.inferer.infer("product_id", "Products") == SemanticType.PRIMARY_KEY
        assert self.inferer.infer("category_id", "Categories") == SemanticType.PRIMARY_KEY

    def test_foreign_key(self):
        semantic = self.inferer.infer("supplier_id", "Products")
        assert semantic == "FOREIGN_KEY:supplier"
        assert SemanticType.foreign_key_target(semantic) == "supplier"

    def test_vocabularies(self):
        assert self.inferer.infer("reorder_level") == SemanticType.QUANTITY
        assert self.inferer.infer("unit_price") == SemanticType.PRICE
        assert self.inferer.infer("customer_email") == SemanticType.EMAIL
        assert self.inferer.infer("created_at") == SemanticType.DATE_CREATED
        assert self.inferer.infer("colour") is None
