"""File loader implementations"""
from .base import FileLoader
from .csv_loader import CSVLoader
from .excel_loader import ExcelLoader
from .xls_loader import XlsLoader

__all__ = ['FileLoader', 'CSVLoader', 'ExcelLoader', 'XlsLoader']
