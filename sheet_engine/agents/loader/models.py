"""
Data models for the spreadsheet loader
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


class CellKind:
    """Primitive kind of a raw cell"""
    EMPTY = "empty"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    ERROR = "error"


@dataclass(frozen=True)
class MergeRange:
    """Merged cell range, 0-based and inclusive"""
    top: int
    left: int
    bottom: int
    right: int

    def contains(self, row: int, col: int) -> bool:
        return self.top <= row <= self.bottom and self.left <= col <= self.right


@dataclass(frozen=True)
class CellStyle:
    """Style hints relevant to header detection"""
    bold: bool = False
    filled: bool = False
    number_format: Optional[str] = None

    @property
    def is_styled(self) -> bool:
        return self.bold or self.filled


PLAIN_STYLE = CellStyle()


@dataclass(frozen=True)
class Cell:
    """A single raw cell: cached value, primitive kind and optional formula text"""
    value: Any = None
    kind: str = CellKind.EMPTY
    formula: Optional[str] = None
    style: CellStyle = PLAIN_STYLE
    merge: Optional[MergeRange] = None

    @property
    def is_empty(self) -> bool:
        return self.kind == CellKind.EMPTY and self.formula is None

    @property
    def text(self) -> str:
        """Value rendered as stripped text ('' for empty cells)"""
        if self.value is None:
            return ""
        return str(self.value).strip()


EMPTY_CELL = Cell()


@dataclass(frozen=True)
class RawSheet:
    """Immutable 2-D grid of cells for one sheet (or one CSV file)"""
    name: str
    cells: Tuple[Tuple[Cell, ...], ...]
    merged_ranges: Tuple[MergeRange, ...] = ()
    source_format: str = "csv"
    index: int = 0                               # Position in the workbook

    @property
    def n_rows(self) -> int:
        return len(self.cells)

    @property
    def n_cols(self) -> int:
        return max((len(r) for r in self.cells), default=0)

    def cell(self, row: int, col: int) -> Cell:
        if row < 0 or row >= len(self.cells):
            return EMPTY_CELL
        cells_row = self.cells[row]
        if col < 0 or col >= len(cells_row):
            return EMPTY_CELL
        return cells_row[col]

    def row(self, row: int, start_col: int = 0, end_col: Optional[int] = None) -> List[Cell]:
        """Cells of a row between start_col and end_col (inclusive)"""
        last = self.n_cols - 1 if end_col is None else end_col
        return [self.cell(row, c) for c in range(start_col, last + 1)]

    def is_row_empty(self, row: int, start_col: int = 0, end_col: Optional[int] = None) -> bool:
        return all(c.is_empty for c in self.row(row, start_col, end_col))

    def formula_cells(self) -> Iterator[Tuple[int, int, str]]:
        """Yield (row, col, formula) for every cell carrying formula text"""
        for r, cells_row in enumerate(self.cells):
            for c, cell in enumerate(cells_row):
                if cell.formula:
                    yield r, c, cell.formula


@dataclass(frozen=True)
class NamedRange:
    """Workbook or sheet scoped defined name"""
    name: str
    sheet: Optional[str]
    reference: str


@dataclass
class LoadResult:
    """Everything the loader extracted from one file"""
    source_file: str
    file_format: str
    sheets: Dict[str, RawSheet]
    named_ranges: List[NamedRange] = field(default_factory=list)
    encoding: Optional[str] = None
    delimiter: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
