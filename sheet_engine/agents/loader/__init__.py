"""Spreadsheet loading: format sniffing and raw cell grids"""
from .agent import SpreadsheetLoader
from .models import Cell, CellKind, CellStyle, LoadResult, MergeRange, NamedRange, RawSheet

__all__ = [
    'SpreadsheetLoader',
    'Cell',
    'CellKind',
    'CellStyle',
    'LoadResult',
    'MergeRange',
    'NamedRange',
    'RawSheet',
]
