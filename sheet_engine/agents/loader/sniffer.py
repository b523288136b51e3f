"""
Content-based format, encoding and delimiter detection
"""
import io
import logging
import re
import zipfile
from collections import Counter
from typing import List, Optional, Tuple

import chardet

from ...errors import UnsupportedFormatError, CorruptedFileError

logger = logging.getLogger(__name__)

ZIP_SIGNATURE = b"PK\x03\x04"
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

DELIMITER_CANDIDATES = [",", "\t", ";", "|"]

_BOMS = [
    (b"\xef\xbb\xbf", "utf-8-sig"),
    (b"\xff\xfe", "utf-16"),
    (b"\xfe\xff", "utf-16"),
]

_QUOTED = re.compile(r'"(?:[^"]|"")*"')


class FormatSniffer:
    """Identifies the container format from file content, never from the extension"""

    def __init__(self, sample_bytes: int = 65536):
        self.sample_bytes = sample_bytes
        self.encoding_detector = EncodingDetector()

    def sniff(self, file_data: bytes, file_name: str = "") -> str:
        """
        Detect container format

        Args:
            file_data: Raw file bytes
            file_name: Used only for log messages

        Returns:
            'xlsx', 'xls' or 'csv'

        Raises:
            UnsupportedFormatError: no signature matches
            CorruptedFileError: a zip container that cannot be opened
        """
        if not file_data:
            raise UnsupportedFormatError(f"'{file_name}' is empty")

        if file_data.startswith(ZIP_SIGNATURE):
            return self._sniff_zip(file_data, file_name)

        if file_data.startswith(OLE2_SIGNATURE):
            logger.debug(f"'{file_name}' has an OLE2 signature (legacy Excel)")
            return "xls"

        if self._looks_like_text(file_data[:self.sample_bytes]):
            logger.debug(f"'{file_name}' looks like delimited text")
            return "csv"

        raise UnsupportedFormatError(
            f"'{file_name}' is neither an Excel workbook nor delimited text"
        )

    def _sniff_zip(self, file_data: bytes, file_name: str) -> str:
        try:
            with zipfile.ZipFile(io.BytesIO(file_data)) as archive:
                names = set(archive.namelist())
        except zipfile.BadZipFile as e:
            raise CorruptedFileError(f"'{file_name}' is a damaged zip container: {e}") from e

        if "xl/workbook.xml" in names:
            return "xlsx"

        raise UnsupportedFormatError(f"'{file_name}' is a zip archive but not an Excel workbook")

    def _looks_like_text(self, sample: bytes) -> bool:
        encoding = self.encoding_detector.detect(sample)
        if not encoding.startswith("utf-16") and b"\x00" in sample:
            return False
        try:
            text = sample.decode(encoding, errors="strict")
        except (UnicodeDecodeError, LookupError):
            # A multi-byte sequence may be cut at the end of the sample
            text = sample.decode(encoding, errors="ignore")
        if not text:
            return False
        printable = sum(1 for ch in text if ch.isprintable() or ch in "\r\n\t")
        return printable / len(text) >= 0.95


class EncodingDetector:
    """Statistical character encoding detection backed by chardet"""

    def __init__(self, min_confidence: float = 0.5):
        self.min_confidence = min_confidence

    def detect(self, sample: bytes) -> str:
        for bom, encoding in _BOMS:
            if sample.startswith(bom):
                return encoding

        result = chardet.detect(sample)
        logger.debug(f"chardet.detect -> {result}")
        encoding = result.get("encoding")
        confidence = result.get("confidence") or 0.0

        if encoding and confidence >= self.min_confidence:
            # ascii is a strict subset; keep utf-8 so later non-ascii bytes still decode
            return "utf-8" if encoding.lower() == "ascii" else encoding.lower()

        for candidate in ("utf-8", "cp1252"):
            try:
                sample.decode(candidate)
                return candidate
            except UnicodeDecodeError:
                continue
        return "latin-1"


class DelimiterDetector:
    """Picks the delimiter whose per-line frequency is most consistent"""

    def __init__(self, candidates: Optional[List[str]] = None):
        self.candidates = candidates or DELIMITER_CANDIDATES

    def detect(self, lines: List[str]) -> str:
        lines = [_QUOTED.sub("", line) for line in lines if line.strip()]
        if not lines:
            return ","

        best: Optional[Tuple[float, float, int]] = None
        best_delimiter = ","
        for order, delimiter in enumerate(self.candidates):
            counts = [line.count(delimiter) for line in lines]
            mode, mode_freq = Counter(counts).most_common(1)[0]
            if mode == 0:
                continue
            consistency = mode_freq / len(lines)
            mean = sum(counts) / len(counts)
            # Higher consistency, then higher frequency, then candidate order
            key = (consistency, mean, -order)
            if best is None or key > best:
                best = key
                best_delimiter = delimiter

        logger.debug(f"Detected delimiter {best_delimiter!r} (score={best})")
        return best_delimiter

    @staticmethod
    def field_count(line: str, delimiter: str) -> int:
        return _QUOTED.sub("", line).count(delimiter) + 1
