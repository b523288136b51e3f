"""
ColumnClassifier - data type and semantic type per column
"""
from typing import Optional
import logging

import pandas as pd

from .models import ColumnMetadata, ClassifiedTable
from .detectors import ColumnProfile, TypeDetectorChain
from .semantic import SemanticTypeInferer
from .values import canonical_key, json_safe
from ..normalizer.models import NormalizedTable
from ..normalizer.coercion import PrimitiveKind
from ...config import EngineConfig
from ...observability import trace_agent

logger = logging.getLogger(__name__)


class ColumnClassifier:
    """
    Column Classifier

    Data types come from an ordered detector chain over the values;
    semantic types come from an independent pass over the column name.
    Both passes are insensitive to row order.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.detector_chain = TypeDetectorChain(self.config.thresholds)
        self.semantic_inferer = SemanticTypeInferer()

    def classify(
        self,
        name: str,
        series: pd.Series,
        primitive_kind: str = PrimitiveKind.STRING,
        original_name: str = "",
        column_letter: str = "",
        table_name: Optional[str] = None,
        coercion_ratio: float = 1.0,
    ) -> ColumnMetadata:
        """
        Classify one normalized column

        Args:
            name: snake_case column name
            series: Column values (nulls allowed)
            primitive_kind: Kind assigned by the normalizer
            original_name: Header text as it appears in the sheet
            column_letter: Sheet column letter
            table_name: Owning sheet name, for '<table>_id' recognition
            coercion_ratio: Share of values the normalizer converted

        Returns:
            ColumnMetadata
        """
        profile = ColumnProfile(name, series, primitive_kind, coercion_ratio)
        decision = self.detector_chain.detect(profile)
        semantic_type = self.semantic_inferer.infer(name, table_name)

        total = len(series)
        null_count = total - profile.count

        return ColumnMetadata(
            name=name,
            data_type=decision.data_type,
            confidence=decision.confidence,
            original_name=original_name or name,
            semantic_type=semantic_type,
            is_unique=profile.count > 0 and profile.distinct_count == profile.count,
            nullable=null_count > 0,
            null_count=null_count,
            total_count=total,
            distinct_count=profile.distinct_count,
            sample_values=self._samples(profile),
            statistics=decision.statistics,
            column_letter=column_letter,
        )

    @trace_agent("ColumnClassifier")
    def classify_table(self, table: NormalizedTable) -> ClassifiedTable:
        """Classify every column of a normalized table, keeping column order"""
        columns = [
            self.classify(
                name,
                table.frame[name],
                primitive_kind=table.primitive_kinds.get(name, PrimitiveKind.STRING),
                original_name=table.original_names.get(name, name),
                column_letter=table.column_letters.get(name, ""),
                table_name=table.name,
                coercion_ratio=table.coercion_ratios.get(name, 1.0),
            )
            for name in table.columns
        ]
        logger.info(
            f"Classified {len(columns)} column(s) of '{table.name}': "
            + ", ".join(f"{c.name}={c.data_type}" for c in columns)
        )
        return ClassifiedTable(table=table, columns=columns)

    def _samples(self, profile: ColumnProfile) -> list:
        """First distinct non-null values, in row order"""
        samples = []
        seen = set()
        for value in profile.non_null:
            key = canonical_key(value)
            if key is None or key in seen:
                continue
            seen.add(key)
            samples.append(json_safe(value))
            if len(samples) >= self.config.sample_values_count:
                break
        return samples
