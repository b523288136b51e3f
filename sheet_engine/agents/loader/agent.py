"""
SpreadsheetLoader - format sniffing and dispatch to format-specific loaders
"""
from typing import Optional
import logging

from .models import LoadResult
from .sniffer import FormatSniffer
from .loaders import CSVLoader, ExcelLoader, XlsLoader
from ...config import EngineConfig
from ...errors import UnsupportedFormatError
from ...observability import trace_agent

logger = logging.getLogger(__name__)


class SpreadsheetLoader:
    """
    Loads xlsx / xls / csv content into immutable RawSheet grids.
    The container format is decided from the bytes, not the file extension.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.sniffer = FormatSniffer(self.config.csv_sample_bytes)
        self.loaders = [
            ExcelLoader(),
            XlsLoader(),
            CSVLoader(self.config.csv_sample_bytes, self.config.csv_sample_lines),
        ]

    @trace_agent("SpreadsheetLoader")
    def load(self, file_data: bytes, file_name: str) -> LoadResult:
        """
        Load a spreadsheet file

        Args:
            file_data: Raw file bytes
            file_name: Original file name

        Returns:
            LoadResult with sheets keyed by sheet name

        Raises:
            UnsupportedFormatError: content matches no supported signature
            CorruptedFileError: container identified but unreadable
        """
        file_format = self.sniffer.sniff(file_data, file_name)
        logger.info(f"Loading '{file_name}' as {file_format} ({len(file_data)} bytes)")

        for loader in self.loaders:
            if loader.can_load(file_format):
                result = loader.load(file_data, file_name)
                logger.info(
                    f"Loaded {len(result.sheets)} sheet(s) from '{file_name}'"
                    + (f" with {len(result.warnings)} warning(s)" if result.warnings else "")
                )
                return result

        raise UnsupportedFormatError(f"No loader found for format '{file_format}'")
