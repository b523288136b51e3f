"""
Abstract base class for file loaders
"""
from abc import ABC, abstractmethod
from ..models import LoadResult


class FileLoader(ABC):
    """Abstract file loader interface"""

    file_format: str = ""

    def can_load(self, file_format: str) -> bool:
        """
        Check if this loader can handle the sniffed container format

        Args:
            file_format: Format reported by FormatSniffer (xlsx, xls, csv)

        Returns:
            True if this loader can handle the file
        """
        return file_format == self.file_format

    @abstractmethod
    def load(self, file_data: bytes, file_name: str) -> LoadResult:
        """
        Load file data into raw sheets

        Args:
            file_data: Raw file bytes
            file_name: Original file name (used for CSV sheet naming)

        Returns:
            LoadResult with one RawSheet per sheet
        """
        pass
