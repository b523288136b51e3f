"""
Exception hierarchy for spreadsheet analysis
"""


class SpreadsheetAnalysisError(Exception):
    """Base class for every error raised by the engine"""


class UnsupportedFormatError(SpreadsheetAnalysisError):
    """File content matches none of the xlsx / xls / delimited-text signatures"""


class CorruptedFileError(SpreadsheetAnalysisError):
    """Container was identified but could not be parsed"""


class NoRegionDetectedError(SpreadsheetAnalysisError):
    """A sheet holds no usable data region (not fatal for the analysis)"""

    def __init__(self, sheet_name: str, reason: str = "no data region found"):
        self.sheet_name = sheet_name
        self.reason = reason
        super().__init__(f"Sheet '{sheet_name}': {reason}")


class NoUsableDataError(SpreadsheetAnalysisError):
    """No sheet of the file yielded usable data"""


class FormulaSyntaxError(SpreadsheetAnalysisError):
    """Formula text could not be tokenized or parsed"""


class FormulaTooComplexError(FormulaSyntaxError):
    """Formula exceeds the AST node limit"""
