"""
Region quality scoring
"""
from typing import Sequence
import logging

from ..loader.models import RawSheet
from ...config import DetectionThresholds
from .models import QualityReport

logger = logging.getLogger(__name__)


class RegionQualityScorer:
    """Starts at 1.0 and applies penalties for structural problems"""

    def __init__(self, thresholds: DetectionThresholds):
        self.thresholds = thresholds

    def score(
        self,
        sheet: RawSheet,
        column_names: Sequence[str],
        generated_count: int,
        data_start_row: int,
        data_end_row: int,
        start_col: int,
        end_col: int,
    ) -> QualityReport:
        t = self.thresholds
        penalties = []

        lowered = [n.strip().lower() for n in column_names]
        if len(set(lowered)) < len(lowered):
            penalties.append(('duplicate_column_names', t.duplicate_name_penalty))

        if column_names and generated_count:
            penalties.append(('generated_column_names', t.generated_name_penalty * generated_count / len(column_names)))

        n_rows = data_end_row - data_start_row + 1
        n_cols = end_col - start_col + 1
        filled = sum(
            1
            for r in range(data_start_row, data_end_row + 1)
            for c in range(start_col, end_col + 1)
            if not sheet.cell(r, c).is_empty
        )
        density = filled / (n_rows * n_cols) if n_rows > 0 and n_cols > 0 else 0.0
        if density < t.sparse_density:
            penalties.append(('sparse_data', t.sparse_density_penalty))
        elif density < t.low_density:
            penalties.append(('low_density', t.low_density_penalty))

        if n_rows < t.min_data_rows:
            penalties.append(('too_few_rows', t.few_rows_penalty))
        if n_cols < t.min_columns:
            penalties.append(('too_few_columns', t.few_columns_penalty))

        score = max(0.0, min(1.0, 1.0 - sum(p for _, p in penalties)))
        return QualityReport(score=score, penalties=penalties, density=density)
