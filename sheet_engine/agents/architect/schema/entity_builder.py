"""
Schema entity builder - one entity per classified table
"""
from typing import Dict, List, Optional
import logging

from ..models import Entity
from .primary_key_selector import PrimaryKeySelector
from ...classifier.models import ClassifiedTable
from ...normalizer.naming import to_snake_case, singularize
from ....config import EngineConfig
from ....observability import trace_agent

logger = logging.getLogger(__name__)


class SchemaEntityBuilder:
    """Entity Extractor: naming, primary key and confidence per table"""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.thresholds = self.config.thresholds
        self.pk_selector = PrimaryKeySelector()

    @trace_agent("SchemaEntityBuilder")
    def extract(self, tables: Dict[str, ClassifiedTable]) -> List[Entity]:
        """
        Build entities from classified tables

        Args:
            tables: Classified tables keyed by sheet name, in workbook order

        Returns:
            List of Entity, one per table
        """
        ordered = sorted(tables.values(), key=lambda t: t.table.sheet_index)
        base_names = [to_snake_case(t.name, fallback="table") for t in ordered]
        colliding = {n for n in base_names if base_names.count(n) > 1}

        entities = []
        for table, base_name in zip(ordered, base_names):
            table_name = base_name
            if base_name in colliding:
                table_name = f"{base_name}_{table.table.sheet_index + 1}"
                logger.warning(
                    f"Table name '{base_name}' is shared by several sheets; "
                    f"sheet '{table.name}' becomes '{table_name}'"
                )
            entities.append(self.build_entity(table, table_name))

        logger.info(f"Extracted {len(entities)} entities")
        return entities

    def build_entity(self, table: ClassifiedTable, table_name: str) -> Entity:
        t = self.thresholds
        columns = list(table.columns)
        primary_key, rule = self.pk_selector.select(columns)

        if columns:
            confidence = sum(c.confidence for c in columns) / len(columns)
            empty_fraction = sum(1 for c in columns if c.is_empty) / len(columns)
        else:
            confidence, empty_fraction = 0.0, 0.0
        if primary_key is None:
            confidence -= t.missing_pk_penalty
        confidence -= t.empty_column_penalty * empty_fraction
        confidence = max(0.0, min(1.0, confidence))

        display_name = singularize(table.name.strip()) or table_name
        if primary_key:
            logger.debug(f"Entity '{table_name}': primary key '{primary_key}' ({rule})")
        else:
            logger.warning(f"Entity '{table_name}' has no usable primary key")

        return Entity(
            entity_id=table_name,
            name=display_name,
            table_name=table_name,
            source_sheet=table.name,
            sheet_index=table.table.sheet_index,
            columns=columns,
            primary_key=primary_key,
            description=(
                f"{display_name} records from sheet '{table.name}' "
                f"({table.table.row_count} rows, {len(columns)} columns)"
            ),
            row_count=table.table.row_count,
            confidence=confidence,
            table=table,
        )
