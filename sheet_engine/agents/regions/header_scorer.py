"""
Header row candidate scoring
"""
import re
from typing import List, Optional
import logging

from ..loader.models import RawSheet, CellKind
from ...config import DetectionThresholds
from .models import HeaderCandidate

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = [
    'id', 'name', 'date', 'total', 'status', 'amount', 'price', 'cost', 'qty',
    'quantity', 'description', 'type', 'code', 'number', 'no', 'email', 'phone',
    'address', 'category', 'count', 'sku', 'customer', 'product', 'order',
    'supplier', 'title', 'created', 'updated', 'level', 'stock', 'unit',
]

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


class HeaderScorer:
    """Scores each row as a header candidate from six weighted signals"""

    def __init__(self, thresholds: DetectionThresholds):
        self.thresholds = thresholds
        self.keywords = set(HEADER_KEYWORDS)

    def score_rows(self, sheet: RawSheet) -> List[HeaderCandidate]:
        """Score every non-empty row of the sheet"""
        candidates = []
        for row in range(sheet.n_rows):
            candidate = self.score_row(sheet, row)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def score_row(self, sheet: RawSheet, row: int) -> Optional[HeaderCandidate]:
        t = self.thresholds
        cells = sheet.row(row)
        populated = [i for i, c in enumerate(cells) if not c.is_empty]
        if not populated:
            return None

        first, last = populated[0], populated[-1]
        span_cells = cells[first:last + 1]
        non_empty = [c for c in span_cells if not c.is_empty]

        signals = {
            'position': max(0.0, 1.0 - row / t.header_position_rows),
            'text_ratio': sum(1 for c in non_empty if c.kind == CellKind.STRING) / len(non_empty),
            'fill_ratio': len(non_empty) / len(span_cells),
            'style': 1.0 if any(c.style.is_styled for c in non_empty) else 0.0,
            'keywords': 1.0 if any(self._has_keyword(c.text) for c in non_empty) else 0.0,
            'consistency': self._type_consistency(sheet, row, first, last),
        }

        score = (
            signals['position'] * t.header_position_weight
            + signals['text_ratio'] * t.header_text_weight
            + signals['fill_ratio'] * t.header_fill_weight
            + signals['style'] * t.header_style_weight
            + signals['keywords'] * t.header_keyword_weight
            + signals['consistency'] * t.header_consistency_weight
        )

        return HeaderCandidate(row=row, score=score, signals=tuple(signals.items()))

    def _has_keyword(self, text: str) -> bool:
        tokens = [tok for tok in _TOKEN_SPLIT.split(text.lower()) if tok]
        return any(tok in self.keywords for tok in tokens)

    def _type_consistency(self, sheet: RawSheet, row: int, first: int, last: int) -> float:
        """Share of columns whose next rows agree on one primitive kind"""
        t = self.thresholds
        total = last - first + 1
        consistent = 0
        for col in range(first, last + 1):
            kinds = []
            for r in range(row + 1, row + 1 + t.type_consistency_window):
                cell = sheet.cell(r, col)
                if not cell.is_empty:
                    # Dates with and without a time part are the same column type
                    kinds.append(CellKind.DATE if cell.kind == CellKind.DATETIME else cell.kind)
            if not kinds:
                continue
            dominant = max(kinds.count(k) for k in set(kinds))
            if dominant / len(kinds) >= t.type_consistency_ratio:
                consistent += 1
        return consistent / total
