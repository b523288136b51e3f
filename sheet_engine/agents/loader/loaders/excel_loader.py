"""
Excel (xlsx) loader implementation
"""
import io
import logging
import zipfile
from datetime import date, datetime, time
from typing import Any, Dict, List, Tuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .base import FileLoader
from ..models import Cell, CellKind, CellStyle, LoadResult, MergeRange, NamedRange, RawSheet, PLAIN_STYLE
from ....errors import CorruptedFileError

logger = logging.getLogger(__name__)

EXCEL_ERRORS = {"#NULL!", "#DIV/0!", "#VALUE!", "#REF!", "#NAME?", "#NUM!", "#N/A", "#GETTING_DATA"}


def kind_of(value: Any) -> str:
    """Primitive kind of a Python value read from a workbook"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return CellKind.EMPTY
    if isinstance(value, bool):
        return CellKind.BOOLEAN
    if isinstance(value, (int, float)):
        return CellKind.NUMBER
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return CellKind.DATE
        return CellKind.DATETIME
    if isinstance(value, date):
        return CellKind.DATE
    if isinstance(value, time):
        return CellKind.STRING
    if isinstance(value, str) and value.strip() in EXCEL_ERRORS:
        return CellKind.ERROR
    return CellKind.STRING


class ExcelLoader(FileLoader):
    """Excel workbook loader (xlsx / xlsm) keeping formulas, styles and merges"""

    file_format = "xlsx"

    def load(self, file_data: bytes, file_name: str) -> LoadResult:
        """Load every sheet; a sheet that fails to parse is reported, not fatal"""
        try:
            # Formula pass keeps '=...' strings, value pass gives cached results
            wb_formulas = load_workbook(io.BytesIO(file_data), data_only=False)
            wb_values = load_workbook(io.BytesIO(file_data), data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
            logger.error(f"Failed to open workbook '{file_name}': {e}")
            raise CorruptedFileError(f"Cannot open workbook '{file_name}': {e}") from e

        sheets: Dict[str, RawSheet] = {}
        warnings: List[str] = []

        for index, ws in enumerate(wb_formulas.worksheets):
            try:
                ws_values = wb_values[ws.title]
                sheets[ws.title] = self._read_sheet(ws, ws_values, index)
                logger.debug(f"Loaded sheet '{ws.title}': {sheets[ws.title].n_rows} rows")
            except Exception as e:
                logger.warning(f"Skipping unreadable sheet '{ws.title}' in '{file_name}': {e}")
                warnings.append(f"Sheet '{ws.title}' could not be parsed: {e}")

        if not sheets:
            raise CorruptedFileError(f"No readable sheet in workbook '{file_name}'")

        return LoadResult(
            source_file=file_name,
            file_format="xlsx",
            sheets=sheets,
            named_ranges=self._read_named_ranges(wb_formulas),
            warnings=warnings,
        )

    def _read_sheet(self, ws, ws_values, index: int) -> RawSheet:
        merges = tuple(
            MergeRange(
                top=int(cr.min_row) - 1,
                left=int(cr.min_col) - 1,
                bottom=int(cr.max_row) - 1,
                right=int(cr.max_col) - 1,
            )
            for cr in ws.merged_cells.ranges
        )

        max_row = int(ws.max_row or 0)
        max_col = int(ws.max_column or 0)

        rows: List[Tuple[Cell, ...]] = []
        formula_rows = ws.iter_rows(min_row=1, max_row=max_row, max_col=max_col)
        value_rows = ws_values.iter_rows(min_row=1, max_row=max_row, max_col=max_col, values_only=True)
        for r, (formula_row, value_row) in enumerate(zip(formula_rows, value_rows)):
            row_cells = []
            for c, (cell, cached) in enumerate(zip(formula_row, value_row)):
                row_cells.append(self._to_cell(cell, cached, self._merge_for(merges, r, c)))
            rows.append(tuple(row_cells))

        while rows and all(c.is_empty for c in rows[-1]):
            rows.pop()

        return RawSheet(
            name=str(ws.title),
            cells=tuple(rows),
            merged_ranges=merges,
            source_format="xlsx",
            index=index,
        )

    @staticmethod
    def _merge_for(merges: Tuple[MergeRange, ...], row: int, col: int):
        for mr in merges:
            if mr.contains(row, col):
                return mr
        return None

    def _to_cell(self, cell, cached: Any, merge) -> Cell:
        raw = cell.value
        formula = None
        if cell.data_type == "f" or (isinstance(raw, str) and raw.startswith("=")):
            formula = str(raw) if isinstance(raw, str) else getattr(raw, "text", None)
            value = cached
        else:
            value = raw

        if isinstance(value, str):
            value = value.strip()

        return Cell(
            value=value if value != "" else None,
            kind=kind_of(value),
            formula=formula,
            style=self._style_of(cell),
            merge=merge,
        )

    @staticmethod
    def _style_of(cell) -> CellStyle:
        if not cell.has_style:
            return PLAIN_STYLE
        bold = bool(cell.font and cell.font.b)
        fill = cell.fill
        filled = bool(fill is not None and fill.fill_type not in (None, "none"))
        number_format = cell.number_format if cell.number_format != "General" else None
        if not bold and not filled and number_format is None:
            return PLAIN_STYLE
        return CellStyle(bold=bold, filled=filled, number_format=number_format)

    @staticmethod
    def _read_named_ranges(wb) -> List[NamedRange]:
        named: List[NamedRange] = []
        for name, defined in wb.defined_names.items():
            for sheet_title, reference in defined.destinations:
                named.append(NamedRange(name=name, sheet=sheet_title, reference=reference))
        for ws in wb.worksheets:
            for name, defined in ws.defined_names.items():
                for _, reference in defined.destinations:
                    named.append(NamedRange(name=name, sheet=ws.title, reference=reference))
        return named
