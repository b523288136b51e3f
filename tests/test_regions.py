"""
Unit tests for region detection
"""
import pytest

from sheet_engine.agents.loader.models import RawSheet
from sheet_engine.agents.regions import RegionDetector
from sheet_engine.agents.regions.header_scorer import HeaderScorer
from sheet_engine.config import DetectionThresholds
from sheet_engine.errors import NoRegionDetectedError


class TestRegionDetector:
    """Test cases for RegionDetector"""

    def setup_method(self):
        self.detector = RegionDetector()

    def test_simple_table(self, make_sheet):
        sheet = make_sheet([
            ["Product ID", "Name", "Price"],
            [1, "Widget", 9.5],
            [2, "Gadget", 12.0],
            [3, "Gizmo", 3.25],
        ])
        regions = self.detector.detect(sheet)

        assert len(regions) == 1
        region = regions[0]
        assert region.header_row == 0
        assert (region.data_start_row, region.data_end_row) == (1, 3)
        assert region.n_data_rows == 3
        assert (region.start_col, region.end_col) == (0, 2)
        assert region.column_names == ("Product ID", "Name", "Price")
        assert region.quality_score == 1.0
        assert not region.headerless

    def test_empty_row_run_ends_region(self, make_sheet):
        sheet = make_sheet([
            ["Product ID", "Name", "Price"],
            [1, "Widget", 9.5],
            [2, "Gadget", 12.0],
            [3, "Gizmo", 3.25],
            [None, None, None],
            [None, None, None],
            [None, None, None],
            [4, "Doohickey", 7.0],
            [5, "Thing", 1.0],
        ])
        region = self.detector.detect(sheet)[0]

        assert region.header_row == 0
        assert region.data_end_row == 3

    def test_summary_row_ends_region(self, make_sheet):
        sheet = make_sheet([
            ["Order ID", "Amount"],
            [1, 10],
            [2, 20],
            ["Total", 30],
        ])
        region = self.detector.detect(sheet)[0]
        assert region.data_end_row == 2

    def test_second_table_becomes_secondary_region(self, make_sheet):
        sheet = make_sheet([
            ["Product ID", "Name", "Price"],
            [1, "Widget", 9.5],
            [2, "Gadget", 12.0],
            [None, None, None],
            [None, None, None],
            [None, None, None],
            [None, None, None],
            ["Supplier ID", "Name"],
            [1, "Acme"],
            [2, "Globex"],
        ])
        regions = self.detector.detect(sheet)

        assert len(regions) == 2
        assert regions[0].header_row == 0
        assert regions[1].header_row == 7
        assert any("2 regions" in w for w in regions[0].warnings)

    def test_headerless_fallback(self, make_sheet):
        sheet = make_sheet([
            [None, None, None],
            [1, 2.5, 3],
            [2, 3.5, 4],
            [3, 4.5, 5],
            [4, 5.5, 6],
        ])
        regions = self.detector.detect(sheet)

        assert len(regions) == 1
        region = regions[0]
        assert region.headerless
        assert region.column_names == ("Column_A", "Column_B", "Column_C")
        assert region.header_row == 1
        assert (region.data_start_row, region.data_end_row) == (2, 4)
        assert region.quality_score <= 0.5
        assert region.warnings

    def test_empty_sheet_raises(self):
        with pytest.raises(NoRegionDetectedError):
            self.detector.detect(RawSheet(name="Empty", cells=()))

    def test_duplicate_header_names_are_penalised(self, make_sheet):
        sheet = make_sheet([
            ["Name", "Name", "Price"],
            ["Widget", "W", 9.5],
            ["Gadget", "G", 12.0],
        ])
        region = self.detector.detect(sheet)[0]
        assert region.quality_score == pytest.approx(0.8)
        assert any(w.startswith("duplicate_column_names") for w in region.warnings)

    def test_title_row_above_table(self, make_sheet):
        sheet = make_sheet([
            ["Product Inventory"],
            ["Product ID", "Name", "Quantity"],
            [1, "Widget", 5],
            [2, "Gadget", 20],
            [3, "Gizmo", 3],
        ])
        regions = self.detector.detect(sheet)

        assert len(regions) == 1
        region = regions[0]
        assert region.header_row == 1
        assert region.column_names == ("Product ID", "Name", "Quantity")
        assert (region.data_start_row, region.data_end_row) == (2, 4)
        assert region.quality_score == 1.0

    def test_data_rows_do_not_become_headers(self, make_sheet):
        sheet = make_sheet([
            ["Name", "Name", "Price"],
            ["Widget", "W", 9.5],
            ["Gadget", "G", 12.0],
            ["Gizmo", "Z", 3.25],
            ["Sprocket", "S", 4.0],
        ])
        regions = self.detector.detect(sheet)

        assert [r.header_row for r in regions] == [0]
        assert regions[0].quality_score == pytest.approx(0.8)


class TestHeaderScorer:
    """Test cases for HeaderScorer"""

    def setup_method(self):
        self.scorer = HeaderScorer(DetectionThresholds())

    def test_header_row_signals(self, make_sheet):
        sheet = make_sheet([
            ["Product ID", "Name", "Price"],
            [1, "Widget", 9.5],
            [2, "Gadget", 12.0],
            [3, "Gizmo", 3.25],
        ])
        candidate = self.scorer.score_row(sheet, 0)

        assert candidate.signal('position') == 1.0
        assert candidate.signal('text_ratio') == 1.0
        assert candidate.signal('keywords') == 1.0
        assert candidate.signal('consistency') == 1.0
        assert candidate.signal('style') == 0.0
        assert candidate.score == pytest.approx(0.9)

    def test_data_row_scores_below_header(self, make_sheet):
        sheet = make_sheet([
            ["Product ID", "Name", "Price"],
            [1, "Widget", 9.5],
            [2, "Gadget", 12.0],
        ])
        header, data = self.scorer.score_rows(sheet)[:2]

        assert header.score > data.score
        assert data.signal('text_ratio') == pytest.approx(1 / 3)

    def test_empty_row_is_not_a_candidate(self, make_sheet):
        sheet = make_sheet([[None, None], ["Name", "Email"]])
        assert self.scorer.score_row(sheet, 0) is None
