"""Shared fixtures: in-memory sheets and workbooks"""
import io
from typing import Dict, List

import pytest
from openpyxl import Workbook

from sheet_engine.config import EngineConfig
from sheet_engine.agents.loader.loaders.excel_loader import kind_of
from sheet_engine.agents.loader.models import Cell, RawSheet
from sheet_engine.agents.regions import RegionDetector
from sheet_engine.agents.normalizer import TableNormalizer
from sheet_engine.agents.classifier import ColumnClassifier
from sheet_engine.agents.architect import SchemaEntityBuilder


def build_sheet(rows: List[list], name: str = "Sheet1", index: int = 0) -> RawSheet:
    """RawSheet from plain values; strings starting with '=' become formula cells"""
    cells = []
    for row in rows:
        cells_row = []
        for value in row:
            if isinstance(value, str) and value.startswith("="):
                cells_row.append(Cell(formula=value))
            else:
                cells_row.append(Cell(value=value, kind=kind_of(value)))
        cells.append(tuple(cells_row))
    return RawSheet(name=name, cells=tuple(cells), source_format="xlsx", index=index)


def build_workbook(sheets: Dict[str, List[list]]) -> bytes:
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def config():
    return EngineConfig(max_workers=1)


@pytest.fixture
def make_sheet():
    return build_sheet


@pytest.fixture
def make_workbook():
    return build_workbook


@pytest.fixture
def make_entities(config):
    """Run region detection through entity extraction over {sheet name: rows}"""
    detector = RegionDetector(config)
    normalizer = TableNormalizer(config)
    classifier = ColumnClassifier(config)
    builder = SchemaEntityBuilder(config)

    def _make(sheets: Dict[str, List[list]]):
        raw = {}
        tables = {}
        for index, (name, rows) in enumerate(sheets.items()):
            sheet = build_sheet(rows, name=name, index=index)
            region = detector.detect(sheet)[0]
            raw[name] = sheet
            tables[name] = classifier.classify_table(normalizer.normalize(region, sheet))
        return builder.extract(tables), raw

    return _make
