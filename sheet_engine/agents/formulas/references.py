"""
Cross-sheet formula references as relationships
"""
from typing import Dict, List, Optional
import logging

from .resolver import SheetResolver
from .tokenizer import FormulaTokenizer, TokenKind, parse_address, range_columns, column_letter
from .translator import sheet_formula_cells
from ..architect.models import Cardinality, Entity, Relationship, RelationshipType
from ..architect.relationships import RelationshipMerger
from ..architect.semantics import RelationshipTemplates
from ..loader.models import RawSheet
from ...config import EngineConfig
from ...errors import FormulaSyntaxError
from ...observability import trace_agent

logger = logging.getLogger(__name__)


class CrossSheetReferenceFinder:
    """
    Emits a FORMULA_REFERENCE relationship whenever a formula anywhere on
    an entity's sheet reads a cell or range of another entity's sheet.
    One relationship survives per (from_entity, to_entity) pair.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.thresholds = self.config.thresholds
        self.tokenizer = FormulaTokenizer()
        self.templates = RelationshipTemplates()
        self.merger = RelationshipMerger(self.thresholds.relationship_accept)

    @trace_agent("CrossSheetReferenceFinder")
    def find(self, sheets: Dict[str, RawSheet], entities: List[Entity], resolver: SheetResolver) -> List[Relationship]:
        """
        Args:
            sheets: Raw sheets by name
            entities: Extracted entities
            resolver: Sheet name resolver over the same entities

        Returns:
            FORMULA_REFERENCE relationships, one per entity pair
        """
        found: List[Relationship] = []
        for entity in entities:
            sheet = sheets.get(entity.source_sheet)
            if sheet is None or entity.table is None:
                continue
            region = entity.table.table.region
            for row, col, formula, _ in sheet_formula_cells(sheet, region):
                found.extend(self._references_in(formula, entity, row, col, sheet.name, resolver))

        relationships = self.merger.deduplicate_by_entity_pair(found)
        if relationships:
            logger.info(f"Found {len(relationships)} cross-sheet formula reference(s)")
        return relationships

    def _references_in(
        self,
        formula: str,
        entity: Entity,
        row: int,
        col: int,
        sheet_name: str,
        resolver: SheetResolver,
    ) -> List[Relationship]:
        try:
            tokens = self.tokenizer.tokenize(formula)
        except FormulaSyntaxError as e:
            logger.debug(f"Skipping unparseable formula at {sheet_name}!{column_letter(col)}{row + 1}: {e}")
            return []

        source_column = entity.column_for_letter(column_letter(col))
        from_column = source_column.name if source_column else column_letter(col)
        location = f"{sheet_name}!{column_letter(col)}{row + 1}"

        relationships = []
        for token in tokens:
            token = resolver.expand(token, sheet_name)
            if token.kind not in TokenKind.REFERENCES or not token.sheet or token.sheet == sheet_name:
                continue
            target = resolver.resolve(token.sheet)
            if target is None:
                logger.debug(f"Formula at {location} references unknown sheet '{token.sheet}'")
                continue
            if target.entity_id == entity.entity_id:
                continue

            if token.kind == TokenKind.RANGE:
                columns = range_columns(token.address)
                target_col = columns[0] if columns else None
            else:
                address = parse_address(token.address)
                target_col = address.column if address else None
            target_column = SheetResolver.column_at(target, target_col) if target_col is not None else None

            if target_column is not None:
                to_column = target_column.name
                confidence = self.thresholds.formula_reference_resolved
            else:
                to_column = target.primary_key or ""
                confidence = self.thresholds.formula_reference_unresolved

            relationships.append(Relationship(
                relationship_id=f"ref_{entity.entity_id}_{from_column}_{target.entity_id}",
                from_entity=entity.entity_id,
                from_column=from_column,
                to_entity=target.entity_id,
                to_column=to_column,
                type=RelationshipType.FORMULA_REFERENCE,
                cardinality=Cardinality.MANY_TO_ONE,
                confidence=confidence,
                description=self.templates.describe(
                    RelationshipType.FORMULA_REFERENCE,
                    Cardinality.MANY_TO_ONE,
                    entity.name,
                    target.name,
                    from_column,
                    to_column,
                ),
                metadata={
                    'detection_method': 'formula_reference',
                    'formula': formula,
                    'location': location,
                    'referenced_sheet': token.sheet,
                },
            ))
        return relationships
