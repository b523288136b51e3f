"""
Unit tests for the spreadsheet loader
"""
import io
import zipfile
from datetime import datetime
from types import SimpleNamespace

import pytest
import xlrd
from xlrd.sheet import Cell as XlrdCell
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.workbook.defined_name import DefinedName

from sheet_engine.agents.loader import SpreadsheetLoader, CellKind, MergeRange, NamedRange
from sheet_engine.agents.loader.loaders import ExcelLoader, XlsLoader
from sheet_engine.agents.loader.loaders import xls_loader
from sheet_engine.agents.loader.sniffer import FormatSniffer, EncodingDetector, DelimiterDetector
from sheet_engine.agents.loader.loaders.csv_loader import infer_text_cell
from sheet_engine.errors import UnsupportedFormatError, CorruptedFileError


class TestFormatSniffer:
    """Test cases for content-based format detection"""

    def setup_method(self):
        self.sniffer = FormatSniffer()

    def test_detects_csv_from_text(self):
        assert self.sniffer.sniff(b"id,name\n1,Widget\n", "data.xlsx") == "csv"

    def test_detects_legacy_excel_signature(self):
        data = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 512
        assert self.sniffer.sniff(data, "old.xls") == "xls"

    def test_zip_without_workbook_is_unsupported(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("hello.txt", "not a workbook")
        with pytest.raises(UnsupportedFormatError):
            self.sniffer.sniff(buffer.getvalue(), "archive.zip")

    def test_empty_file_is_unsupported(self):
        with pytest.raises(UnsupportedFormatError):
            self.sniffer.sniff(b"", "empty.csv")

    def test_damaged_zip_is_corrupted(self):
        with pytest.raises(CorruptedFileError):
            self.sniffer.sniff(b"PK\x03\x04" + b"garbage" * 10, "broken.xlsx")


class TestEncodingAndDelimiter:
    """Test cases for CSV sniffing helpers"""

    def test_bom_wins(self):
        assert EncodingDetector().detect(b"\xef\xbb\xbfid,name\n") == "utf-8-sig"

    def test_semicolon_delimiter(self):
        lines = ["id;name;price", "1;Widget;9,50", "2;Gadget;12,00"]
        assert DelimiterDetector().detect(lines) == ";"

    def test_tab_delimiter(self):
        lines = ["id\tname", "1\tWidget", "2\tGadget"]
        assert DelimiterDetector().detect(lines) == "\t"

    def test_quoted_delimiters_are_ignored(self):
        lines = ['id|note', '1|"a, b, c"', '2|"d, e"']
        assert DelimiterDetector().detect(lines) == "|"


class TestTextCellInference:
    """Test cases for typing delimited text cells"""

    def test_plain_integer(self):
        cell = infer_text_cell("42")
        assert cell.kind == CellKind.NUMBER
        assert cell.value == 42

    def test_thousands_separator(self):
        cell = infer_text_cell("1,250.50")
        assert cell.kind == CellKind.NUMBER
        assert cell.value == 1250.5

    def test_currency_text_stays_text_valued(self):
        cell = infer_text_cell("$9.99")
        assert cell.kind == CellKind.NUMBER
        assert cell.value == "$9.99"

    def test_iso_date(self):
        assert infer_text_cell("2024-03-01").kind == CellKind.DATE
        assert infer_text_cell("2024-03-01 10:30").kind == CellKind.DATETIME

    def test_blank(self):
        assert infer_text_cell("   ").is_empty

    def test_decimal_comma(self):
        assert infer_text_cell("1,5", decimal=",").value == 1.5
        assert infer_text_cell("1.250,75", decimal=",").value == 1250.75
        assert infer_text_cell("12", decimal=",").value == 12
        assert infer_text_cell("01.02.2024", decimal=",").kind == CellKind.DATE


class TestSpreadsheetLoader:
    """Test cases for SpreadsheetLoader"""

    def setup_method(self):
        self.loader = SpreadsheetLoader()

    def test_csv_becomes_single_sheet_named_after_file(self):
        data = "Product ID;Name\n1;Widget\n2;Gadget\n".encode("utf-8")
        result = self.loader.load(data, "products.csv")

        assert result.file_format == "csv"
        assert result.delimiter == ";"
        assert list(result.sheets) == ["products"]
        sheet = result.sheets["products"]
        assert sheet.n_rows == 3
        assert sheet.n_cols == 2
        assert sheet.cell(1, 0).value == 1
        assert sheet.cell(2, 1).value == "Gadget"

    def test_semicolon_csv_reads_decimal_commas(self):
        data = b"Product ID;Name;Price\n1;Widget;1,5\n2;Gadget;2,25\n3;Gizmo;10,75\n"
        sheet = self.loader.load(data, "prices.csv").sheets["prices"]

        assert [sheet.cell(r, 2).value for r in (1, 2, 3)] == [1.5, 2.25, 10.75]
        assert sheet.cell(1, 0).value == 1

    def test_csv_with_bom(self):
        data = b"\xef\xbb\xbfid,name\n1,Caf\xc3\xa9\n"
        result = self.loader.load(data, "cafes.csv")
        sheet = result.sheets["cafes"]
        assert result.encoding == "utf-8-sig"
        assert sheet.cell(0, 0).value == "id"
        assert sheet.cell(1, 1).value == "Café"

    def test_trailing_empty_rows_are_trimmed(self):
        data = b"a,b\n1,2\n,\n,\n"
        sheet = self.loader.load(data, "t.csv").sheets["t"]
        assert sheet.n_rows == 2

    def test_xlsx_keeps_formulas_and_sheet_order(self, make_workbook):
        data = make_workbook({
            "Products": [["Product ID", "Price", "Double"], [1, 9.5, "=B2*2"], [2, 12.0, "=B3*2"]],
            "Suppliers": [["Supplier ID", "Name"], [1, "Acme"]],
        })
        result = self.loader.load(data, "book.xlsx")

        assert result.file_format == "xlsx"
        assert [s.index for s in result.sheets.values()] == [0, 1]
        products = result.sheets["Products"]
        assert products.cell(1, 2).formula == "=B2*2"
        assert list(products.formula_cells()) == [(1, 2, "=B2*2"), (2, 2, "=B3*2")]
        assert products.cell(1, 1).kind == CellKind.NUMBER

    def test_unsupported_content(self):
        with pytest.raises(UnsupportedFormatError):
            self.loader.load(b"\x01\x02\x03\x04\x05\x06\x07\x08" * 64, "image.png")


def _report_workbook() -> bytes:
    """Titled report: merged title, bold header, workbook and sheet scoped names"""
    wb = Workbook()
    ws = wb.active
    ws.title = "Report"
    ws.append(["Quarterly Report", None, None])
    ws.merge_cells("A1:C1")
    ws.append(["Product ID", "Name", "Price"])
    for cell in ws[2]:
        cell.font = Font(bold=True)
    ws.append([1, "Widget", 9.5])
    ws.append([2, "Gadget", 12.0])
    wb.defined_names.add(DefinedName("Prices", attr_text="Report!$C$3:$C$4"))
    ws.defined_names.add(DefinedName("FirstProduct", attr_text="Report!$B$3"))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class TestExcelLoader:
    """Test cases for ExcelLoader details captured from real workbooks"""

    def setup_method(self):
        self.loader = ExcelLoader()

    def test_merges_and_bold_header(self):
        sheet = self.loader.load(_report_workbook(), "report.xlsx").sheets["Report"]

        title = MergeRange(top=0, left=0, bottom=0, right=2)
        assert sheet.merged_ranges == (title,)
        assert sheet.cell(0, 0).merge == title
        assert sheet.cell(0, 2).merge == title
        assert sheet.cell(1, 0).merge is None
        assert [sheet.cell(1, c).style.bold for c in range(3)] == [True, True, True]
        assert sheet.cell(2, 0).style.bold is False

    def test_defined_names(self):
        named = self.loader.load(_report_workbook(), "report.xlsx").named_ranges

        assert NamedRange(name="Prices", sheet="Report", reference="$C$3:$C$4") in named
        assert NamedRange(name="FirstProduct", sheet="Report", reference="$B$3") in named

    def test_formula_text_and_cached_value_are_separate(self):
        ws = Workbook().active
        ws["B2"] = 9.5
        ws["C2"] = "=B2*2"

        computed = self.loader._to_cell(ws["C2"], 19.0, None)
        assert computed.formula == "=B2*2"
        assert computed.value == 19.0
        assert computed.kind == CellKind.NUMBER

        plain = self.loader._to_cell(ws["B2"], 9.5, None)
        assert plain.formula is None
        assert plain.value == 9.5

    def test_formula_without_cached_value(self, make_workbook):
        # openpyxl never computes formulas, so the saved file holds no cached result
        data = make_workbook({"Sheet": [["Price", "Double"], [9.5, "=A2*2"]]})
        cell = self.loader.load(data, "book.xlsx").sheets["Sheet"].cell(1, 1)

        assert cell.formula == "=A2*2"
        assert cell.value is None
        assert cell.kind == CellKind.EMPTY
        assert not cell.is_empty

    def test_unreadable_sheet_is_skipped_with_warning(self, make_workbook, monkeypatch):
        data = make_workbook({
            "Products": [["Product ID", "Name"], [1, "Widget"]],
            "Broken": [["a", "b"], [1, 2]],
            "Suppliers": [["Supplier ID", "Name"], [1, "Acme"]],
        })
        read_sheet = ExcelLoader._read_sheet

        def failing_read(self, ws, ws_values, index):
            if ws.title == "Broken":
                raise ValueError("bad cell data")
            return read_sheet(self, ws, ws_values, index)

        monkeypatch.setattr(ExcelLoader, "_read_sheet", failing_read)
        result = SpreadsheetLoader().load(data, "book.xlsx")

        assert list(result.sheets) == ["Products", "Suppliers"]
        assert result.sheets["Suppliers"].index == 2
        assert result.warnings == ["Sheet 'Broken' could not be parsed: bad cell data"]

    def test_no_readable_sheet_is_corrupted(self, make_workbook, monkeypatch):
        data = make_workbook({"Only": [["a"], [1]]})

        def failing_read(self, ws, ws_values, index):
            raise ValueError("bad cell data")

        monkeypatch.setattr(ExcelLoader, "_read_sheet", failing_read)
        with pytest.raises(CorruptedFileError):
            self.loader.load(data, "book.xlsx")


class FakeXlsSheet:
    """Just enough of xlrd.sheet.Sheet for XlsLoader"""

    def __init__(self, name, rows, merged_cells=()):
        self.name = name
        self._rows = rows
        self.nrows = len(rows)
        self.ncols = max((len(r) for r in rows), default=0)
        self.merged_cells = list(merged_cells)

    def cell(self, r, c):
        row = self._rows[r]
        if c >= len(row):
            return XlrdCell(xlrd.XL_CELL_EMPTY, "", 0)
        return row[c]


class FakeXlsBook:
    datemode = 0

    def __init__(self, sheets):
        self._sheets = sheets
        self.nsheets = len(sheets)
        plain = SimpleNamespace(font_index=0, background=SimpleNamespace(fill_pattern=0))
        header = SimpleNamespace(font_index=1, background=SimpleNamespace(fill_pattern=1))
        self.xf_list = [plain, header]
        self.font_list = [SimpleNamespace(bold=0), SimpleNamespace(bold=1)]

    def sheet_by_index(self, index):
        sheet = self._sheets[index]
        if isinstance(sheet, Exception):
            raise sheet
        return sheet


def _xl(ctype, value, xf_index=0):
    return XlrdCell(ctype, value, xf_index)


class TestXlsLoader:
    """Test cases for XlsLoader over an xlrd workbook"""

    def setup_method(self):
        self.loader = XlsLoader()
        self.orders = FakeXlsSheet("Orders", [
            [_xl(xlrd.XL_CELL_TEXT, "Order Report", 1), _xl(xlrd.XL_CELL_EMPTY, "", 1)],
            [_xl(xlrd.XL_CELL_TEXT, "Order ID", 1), _xl(xlrd.XL_CELL_TEXT, "Ordered", 1),
             _xl(xlrd.XL_CELL_TEXT, "Paid", 1), _xl(xlrd.XL_CELL_TEXT, "Total", 1)],
            [_xl(xlrd.XL_CELL_NUMBER, 1.0), _xl(xlrd.XL_CELL_DATE, 45352.0),
             _xl(xlrd.XL_CELL_BOOLEAN, 1), _xl(xlrd.XL_CELL_NUMBER, 12.5)],
            [_xl(xlrd.XL_CELL_NUMBER, 2.0), _xl(xlrd.XL_CELL_DATE, 45353.0),
             _xl(xlrd.XL_CELL_BOOLEAN, 0), _xl(xlrd.XL_CELL_ERROR, 0x07)],
            [_xl(xlrd.XL_CELL_EMPTY, ""), _xl(xlrd.XL_CELL_BLANK, "")],
        ], merged_cells=[(0, 1, 0, 2)])

    def _load(self, monkeypatch, *sheets):
        book = FakeXlsBook(list(sheets))
        monkeypatch.setattr(xls_loader.xlrd, "open_workbook", lambda **kwargs: book)
        return self.loader.load(b"\xd0\xcf\x11\xe0", "orders.xls")

    def test_cells_are_typed(self, monkeypatch):
        result = self._load(monkeypatch, self.orders)

        assert result.file_format == "xls"
        assert "formula text is not available" in result.warnings[0]
        sheet = result.sheets["Orders"]
        assert sheet.source_format == "xls"
        assert sheet.n_rows == 4
        assert sheet.cell(2, 0).value == 1
        assert sheet.cell(2, 1).value == datetime(2024, 3, 1)
        assert sheet.cell(2, 1).kind == CellKind.DATE
        assert sheet.cell(2, 2).value is True
        assert sheet.cell(2, 3).value == 12.5
        assert sheet.cell(3, 3).value == "#DIV/0!"
        assert sheet.cell(3, 3).kind == CellKind.ERROR
        assert list(sheet.formula_cells()) == []

    def test_merges_and_header_style(self, monkeypatch):
        sheet = self._load(monkeypatch, self.orders).sheets["Orders"]

        title = MergeRange(top=0, left=0, bottom=0, right=1)
        assert sheet.merged_ranges == (title,)
        assert sheet.cell(0, 1).merge == title
        assert sheet.cell(1, 0).style.bold is True
        assert sheet.cell(1, 0).style.filled is True
        assert sheet.cell(2, 0).style.bold is False

    def test_unreadable_sheet_is_skipped_with_warning(self, monkeypatch):
        result = self._load(monkeypatch, ValueError("truncated record"), self.orders)

        assert list(result.sheets) == ["Orders"]
        assert result.sheets["Orders"].index == 1
        assert "Sheet #1 could not be parsed: truncated record" in result.warnings

    def test_unopenable_workbook_is_corrupted(self, monkeypatch):
        def broken(**kwargs):
            raise xlrd.XLRDError("Unsupported format, or corrupt file")

        monkeypatch.setattr(xls_loader.xlrd, "open_workbook", broken)
        with pytest.raises(CorruptedFileError):
            self.loader.load(b"\xd0\xcf\x11\xe0", "broken.xls")
