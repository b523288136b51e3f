"""Spreadsheet analysis engine: schema, relationships and automation rules from a workbook"""
from .workflow import AnalysisWorkflow
from .config import EngineConfig, DetectionThresholds
from .models import AnalysisResult
from .errors import (
    SpreadsheetAnalysisError,
    UnsupportedFormatError,
    CorruptedFileError,
    NoRegionDetectedError,
    NoUsableDataError,
    FormulaSyntaxError,
    FormulaTooComplexError,
)

__version__ = "1.0.0"

__all__ = [
    'AnalysisWorkflow',
    'EngineConfig',
    'DetectionThresholds',
    'AnalysisResult',
    'SpreadsheetAnalysisError',
    'UnsupportedFormatError',
    'CorruptedFileError',
    'NoRegionDetectedError',
    'NoUsableDataError',
    'FormulaSyntaxError',
    'FormulaTooComplexError',
]
