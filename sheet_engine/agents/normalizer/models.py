"""
Data models for table normalization
"""
from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from ..regions.models import DataRegion

SOURCE_ROW_INDEX = "_source_row"


@dataclass
class NormalizedTable:
    """
    Typed table built from one data region.

    The frame index holds the 0-based source row of each record
    (named '_source_row'); it is traceability only and never part of a schema.
    """
    name: str                                    # Source sheet name
    sheet_index: int                             # Position in the workbook
    region: DataRegion
    frame: pd.DataFrame
    primitive_kinds: Dict[str, str] = field(default_factory=dict)
    coercion_ratios: Dict[str, float] = field(default_factory=dict)
    original_names: Dict[str, str] = field(default_factory=dict)
    column_letters: Dict[str, str] = field(default_factory=dict)
    dropped_columns: List[str] = field(default_factory=list)

    @property
    def columns(self) -> List[str]:
        return list(self.frame.columns)

    @property
    def row_count(self) -> int:
        return len(self.frame)

    def field_for_letter(self, letter: str) -> str:
        """Field name for a sheet column letter, '' when not part of the table"""
        for name, col_letter in self.column_letters.items():
            if col_letter == letter.upper():
                return name
        return ""
