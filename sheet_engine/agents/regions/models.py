"""
Data models for region detection
"""
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class HeaderCandidate:
    """A row considered as a header, with the signals behind its score"""
    row: int
    score: float
    signals: Tuple[Tuple[str, float], ...] = ()

    def signal(self, name: str) -> float:
        return dict(self.signals).get(name, 0.0)


@dataclass(frozen=True)
class DataRegion:
    """Rectangular table inside a sheet: header row plus the data block below it"""
    sheet_name: str
    header_row: int
    data_start_row: int
    data_end_row: int
    start_col: int
    end_col: int
    column_names: Tuple[str, ...]
    quality_score: float
    header_score: float = 0.0
    headerless: bool = False
    warnings: Tuple[str, ...] = ()

    @property
    def n_data_rows(self) -> int:
        return self.data_end_row - self.data_start_row + 1

    @property
    def n_columns(self) -> int:
        return self.end_col - self.start_col + 1

    def holds_row_of(self, other: 'DataRegion') -> bool:
        """True when other's header row is one of this region's data rows, inside its column span"""
        return (
            self.data_start_row <= other.header_row <= self.data_end_row
            and self.start_col <= other.start_col
            and other.end_col <= self.end_col
        )

    def overlaps(self, other: 'DataRegion') -> bool:
        rows_overlap = self.header_row <= other.data_end_row and other.header_row <= self.data_end_row
        cols_overlap = self.start_col <= other.end_col and other.start_col <= self.end_col
        return rows_overlap and cols_overlap


@dataclass
class QualityReport:
    """Quality score with the penalties that produced it"""
    score: float
    penalties: List[Tuple[str, float]] = field(default_factory=list)
    density: float = 0.0
