"""
CSV / delimited text loader implementation
"""
import io
import logging
import re
from pathlib import Path
from typing import List

import pandas as pd

from .base import FileLoader
from ..models import Cell, CellKind, LoadResult, RawSheet
from ..sniffer import EncodingDetector, DelimiterDetector
from ....errors import CorruptedFileError

logger = logging.getLogger(__name__)

_PLAIN_NUMBER = re.compile(r"^[-+]?(\d{1,3}(,\d{3})+|\d+)?(\.\d+)?([eE][-+]?\d+)?$")
_DECORATED_NUMBER = re.compile(r"^\(?[-+]?[$€£¥]?\s?[\d,]*\.?\d+\s?%?\)?$")
_COMMA_DECIMAL_NUMBER = re.compile(r"^[-+]?(\d{1,3}(\.\d{3})+|\d+)(,\d+)?$")
_ISO_DATE = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}(?P<time>[ T]\d{1,2}:\d{2}(:\d{2}(\.\d+)?)?)?$")
_LOCAL_DATE = re.compile(r"^\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}(?P<time>\s+\d{1,2}:\d{2}(:\d{2})?(\s?[AaPp][Mm])?)?$")
_BOOLEAN_WORDS = {"true", "false"}


def infer_text_cell(text: str, decimal: str = ".") -> Cell:
    """
    Type a text cell coming from delimited input

    With decimal=",", '1,5' reads as 1.5 and '1.250,75' as 1250.75.
    """
    stripped = text.strip()
    if not stripped:
        return Cell()

    if decimal == "," and _COMMA_DECIMAL_NUMBER.match(stripped):
        number = float(stripped.replace(".", "").replace(",", "."))
        value = int(number) if number.is_integer() and "," not in stripped else number
        return Cell(value=value, kind=CellKind.NUMBER)

    if any(ch.isdigit() for ch in stripped) and _PLAIN_NUMBER.match(stripped):
        number = float(stripped.replace(",", ""))
        value = int(number) if number.is_integer() and "." not in stripped and "e" not in stripped.lower() else number
        return Cell(value=value, kind=CellKind.NUMBER)

    if any(ch.isdigit() for ch in stripped) and _DECORATED_NUMBER.match(stripped):
        return Cell(value=stripped, kind=CellKind.NUMBER)

    for pattern in (_ISO_DATE, _LOCAL_DATE):
        match = pattern.match(stripped)
        if match:
            kind = CellKind.DATETIME if match.group("time") else CellKind.DATE
            return Cell(value=stripped, kind=kind)

    if stripped.lower() in _BOOLEAN_WORDS:
        return Cell(value=stripped, kind=CellKind.BOOLEAN)

    return Cell(value=stripped, kind=CellKind.STRING)


class CSVLoader(FileLoader):
    """Delimited text loader (comma, tab, semicolon, pipe)"""

    file_format = "csv"

    def __init__(self, sample_bytes: int = 65536, sample_lines: int = 50):
        self.sample_bytes = sample_bytes
        self.sample_lines = sample_lines
        self.encoding_detector = EncodingDetector()
        self.delimiter_detector = DelimiterDetector()

    def load(self, file_data: bytes, file_name: str) -> LoadResult:
        """Load delimited text as a single implicit sheet named after the file"""
        encoding = self.encoding_detector.detect(file_data[:self.sample_bytes])
        text = file_data.decode(encoding, errors="replace")
        lines = text.splitlines()

        delimiter = self.delimiter_detector.detect(lines[:self.sample_lines])
        decimal = "," if delimiter == ";" else "."
        width = max((DelimiterDetector.field_count(line, delimiter) for line in lines), default=1)

        try:
            df = pd.read_csv(
                io.StringIO(text),
                sep=delimiter,
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
            )
        except (pd.errors.ParserError, ValueError) as e:
            logger.error(f"Failed to parse delimited text '{file_name}': {e}")
            raise CorruptedFileError(f"Cannot parse '{file_name}' as delimited text: {e}") from e

        sheet_name = Path(file_name).stem or "Sheet1"
        cells = tuple(
            tuple(self._to_cell(value, decimal) for value in row)
            for row in df.itertuples(index=False, name=None)
        )
        sheet = RawSheet(name=sheet_name, cells=_trim_trailing(cells), source_format="csv")

        logger.debug(
            f"Loaded CSV '{file_name}': {sheet.n_rows} rows, {sheet.n_cols} columns "
            f"(encoding={encoding}, delimiter={delimiter!r}, decimal={decimal!r})"
        )
        return LoadResult(
            source_file=file_name,
            file_format="csv",
            sheets={sheet_name: sheet},
            encoding=encoding,
            delimiter=delimiter,
        )

    @staticmethod
    def _to_cell(value, decimal: str = ".") -> Cell:
        if value is None or (isinstance(value, float) and pd.isna(value)):
            return Cell()
        return infer_text_cell(str(value), decimal)


def _trim_trailing(cells) -> tuple:
    """Drop trailing fully-empty rows so the grid ends at the last populated row"""
    rows: List[tuple] = list(cells)
    while rows and all(c.is_empty for c in rows[-1]):
        rows.pop()
    return tuple(rows)
