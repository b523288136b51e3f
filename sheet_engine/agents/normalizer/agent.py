"""
TableNormalizer - converts a detected region into a typed table
"""
from typing import Any, Dict, List, Optional
import logging

import pandas as pd
from openpyxl.utils import get_column_letter

from .models import NormalizedTable, SOURCE_ROW_INDEX
from .naming import to_snake_case, deduplicate_names
from .coercion import coerce_column
from ..loader.models import RawSheet
from ..regions.models import DataRegion
from ...config import EngineConfig
from ...observability import trace_agent

logger = logging.getLogger(__name__)


class TableNormalizer:
    """
    Normalizer - one record per non-empty data row, cleaned and
    de-duplicated column names, primitive type per column
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.thresholds = self.config.thresholds

    @trace_agent("TableNormalizer")
    def normalize(self, region: DataRegion, sheet: RawSheet) -> NormalizedTable:
        """
        Build a typed table from a region

        Args:
            region: Region produced by the RegionDetector
            sheet: Sheet the region belongs to

        Returns:
            NormalizedTable indexed by source row
        """
        columns = list(range(region.start_col, region.end_col + 1))
        rows = [
            r for r in range(region.data_start_row, region.data_end_row + 1)
            if not sheet.is_row_empty(r, region.start_col, region.end_col)
        ]

        names = deduplicate_names([to_snake_case(n) for n in region.column_names])

        data: Dict[str, pd.Series] = {}
        kinds: Dict[str, str] = {}
        ratios: Dict[str, float] = {}
        original_names: Dict[str, str] = {}
        letters: Dict[str, str] = {}
        dropped: List[str] = []

        for name, original, col in zip(names, region.column_names, columns):
            cells = [sheet.cell(r, col) for r in rows]
            if all(c.is_empty for c in cells):
                dropped.append(original)
                continue

            values = [self._cell_value(sheet, r, col) for r in rows]
            series, kind, ratio = coerce_column(values, self.thresholds.coercion_ratio)
            series.index = pd.Index(rows, name=SOURCE_ROW_INDEX)

            data[name] = series
            kinds[name] = kind
            ratios[name] = ratio
            original_names[name] = original
            letters[name] = get_column_letter(col + 1)

        if dropped:
            logger.debug(f"Sheet '{sheet.name}': dropped empty column(s) {dropped}")

        frame = pd.DataFrame(data, index=pd.Index(rows, name=SOURCE_ROW_INDEX))
        logger.info(f"Normalized '{sheet.name}': {len(frame)} rows x {len(frame.columns)} columns")

        return NormalizedTable(
            name=sheet.name,
            sheet_index=sheet.index,
            region=region,
            frame=frame,
            primitive_kinds=kinds,
            coercion_ratios=ratios,
            original_names=original_names,
            column_letters=letters,
            dropped_columns=dropped,
        )

    @staticmethod
    def _cell_value(sheet: RawSheet, row: int, col: int) -> Any:
        """Cell value; empty cells inside a merged range repeat the anchor value"""
        cell = sheet.cell(row, col)
        if cell.value is None and cell.merge is not None:
            return sheet.cell(cell.merge.top, cell.merge.left).value
        if isinstance(cell.value, str) and not cell.value.strip():
            return None
        return cell.value
