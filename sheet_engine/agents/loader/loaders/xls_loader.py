"""
Legacy binary Excel (xls) loader implementation
"""
import logging
from typing import Dict, List, Tuple

import xlrd
from xlrd.compdoc import CompDocError

from .base import FileLoader
from .excel_loader import kind_of
from ..models import Cell, CellKind, CellStyle, LoadResult, MergeRange, RawSheet, PLAIN_STYLE
from ....errors import CorruptedFileError

logger = logging.getLogger(__name__)


class XlsLoader(FileLoader):
    """Legacy .xls loader; xlrd exposes cached values and formatting but no formula text"""

    file_format = "xls"

    def load(self, file_data: bytes, file_name: str) -> LoadResult:
        try:
            wb = xlrd.open_workbook(file_contents=file_data, formatting_info=True)
        except (xlrd.XLRDError, CompDocError, AssertionError, IndexError, ValueError) as e:
            logger.error(f"Failed to open legacy workbook '{file_name}': {e}")
            raise CorruptedFileError(f"Cannot open legacy workbook '{file_name}': {e}") from e

        sheets: Dict[str, RawSheet] = {}
        warnings: List[str] = [
            f"'{file_name}' is a legacy .xls workbook; formula text is not available"
        ]

        for index in range(wb.nsheets):
            try:
                sh = wb.sheet_by_index(index)
                sheets[sh.name] = self._read_sheet(wb, sh, index)
            except Exception as e:
                logger.warning(f"Skipping unreadable sheet #{index} in '{file_name}': {e}")
                warnings.append(f"Sheet #{index + 1} could not be parsed: {e}")

        if not sheets:
            raise CorruptedFileError(f"No readable sheet in workbook '{file_name}'")

        return LoadResult(source_file=file_name, file_format="xls", sheets=sheets, warnings=warnings)

    def _read_sheet(self, wb, sh, index: int) -> RawSheet:
        # xlrd merged ranges are (rlo, rhi, clo, chi) with exclusive upper bounds
        merges = tuple(
            MergeRange(top=rlo, left=clo, bottom=rhi - 1, right=chi - 1)
            for rlo, rhi, clo, chi in sh.merged_cells
        )

        rows: List[Tuple[Cell, ...]] = []
        for r in range(sh.nrows):
            row_cells = []
            for c in range(sh.ncols):
                merge = next((mr for mr in merges if mr.contains(r, c)), None)
                row_cells.append(self._to_cell(wb, sh.cell(r, c), merge))
            rows.append(tuple(row_cells))

        while rows and all(c.is_empty for c in rows[-1]):
            rows.pop()

        return RawSheet(name=sh.name, cells=tuple(rows), merged_ranges=merges, source_format="xls", index=index)

    def _to_cell(self, wb, xl_cell, merge) -> Cell:
        ctype = xl_cell.ctype
        if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
            return Cell(style=self._style_of(wb, xl_cell), merge=merge)

        if ctype == xlrd.XL_CELL_DATE:
            value = xlrd.xldate_as_datetime(xl_cell.value, wb.datemode)
        elif ctype == xlrd.XL_CELL_BOOLEAN:
            value = bool(xl_cell.value)
        elif ctype == xlrd.XL_CELL_ERROR:
            return Cell(value=xlrd.error_text_from_code.get(xl_cell.value, "#ERR"), kind=CellKind.ERROR, merge=merge)
        elif ctype == xlrd.XL_CELL_NUMBER:
            value = xl_cell.value
            if float(value).is_integer():
                value = int(value)
        else:
            value = str(xl_cell.value).strip() or None

        return Cell(value=value, kind=kind_of(value), style=self._style_of(wb, xl_cell), merge=merge)

    @staticmethod
    def _style_of(wb, xl_cell) -> CellStyle:
        try:
            xf = wb.xf_list[xl_cell.xf_index]
            font = wb.font_list[xf.font_index]
        except (IndexError, TypeError):
            return PLAIN_STYLE
        bold = bool(font.bold)
        filled = xf.background.fill_pattern not in (0, None)
        if not bold and not filled:
            return PLAIN_STYLE
        return CellStyle(bold=bold, filled=filled)
