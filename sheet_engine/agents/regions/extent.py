"""
Region extent: column span from the header, terminal row from a downward scan
"""
import re
from typing import List, Optional, Tuple
import logging

from openpyxl.utils import get_column_letter

from ..loader.models import RawSheet
from ...config import DetectionThresholds

logger = logging.getLogger(__name__)

SUMMARY_KEYWORDS = ['grand total', 'subtotal', 'total', 'summary', 'average', 'count']
_SUMMARY_PATTERN = re.compile(r"\b(" + "|".join(re.escape(k) for k in SUMMARY_KEYWORDS) + r")\b")


def generated_column_name(col: int) -> str:
    return f"Column_{get_column_letter(col + 1)}"


class RegionExtentFinder:
    """Finds the rectangular data block belonging to a header row"""

    def __init__(self, thresholds: DetectionThresholds):
        self.thresholds = thresholds

    def column_span(self, sheet: RawSheet, header_row: int) -> Optional[Tuple[int, int]]:
        populated = [c for c, cell in enumerate(sheet.row(header_row)) if not cell.is_empty]
        if not populated:
            return None
        return populated[0], populated[-1]

    def find_data_rows(self, sheet: RawSheet, header_row: int, start_col: int, end_col: int) -> Optional[Tuple[int, int]]:
        """
        Scan below the header for the data block

        Returns:
            (data_start_row, data_end_row) or None when no data row exists
        """
        first_data: Optional[int] = None
        last_data: Optional[int] = None
        empty_run = 0

        for r in range(header_row + 1, sheet.n_rows):
            if sheet.is_row_empty(r, start_col, end_col):
                empty_run += 1
                if empty_run >= self.thresholds.empty_row_run:
                    logger.debug(f"Region below row {header_row} ends at empty run starting row {r - empty_run + 1}")
                    break
                continue

            empty_run = 0
            if self._is_summary_row(sheet, r, start_col):
                logger.debug(f"Summary row {r} terminates region below row {header_row}")
                break

            if first_data is None:
                first_data = r
            last_data = r

        if first_data is None:
            return None
        return first_data, last_data

    @staticmethod
    def _is_summary_row(sheet: RawSheet, row: int, start_col: int) -> bool:
        for col in (start_col, start_col + 1):
            text = sheet.cell(row, col).text.lower()
            if text and _SUMMARY_PATTERN.search(text):
                return True
        return False

    def header_names(self, sheet: RawSheet, header_row: int, start_col: int, end_col: int) -> Tuple[List[str], int]:
        """
        Column names for the span; merged header cells inherit their anchor text

        Returns:
            (names, generated_count)
        """
        names: List[str] = []
        generated = 0
        for col in range(start_col, end_col + 1):
            cell = sheet.cell(header_row, col)
            text = cell.text
            if not text and cell.merge is not None:
                text = sheet.cell(cell.merge.top, cell.merge.left).text
            if not text:
                text = generated_column_name(col)
                generated += 1
            names.append(text)
        return names, generated
