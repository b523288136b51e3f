"""
Data models for entity extraction and relationship detection
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..classifier.models import ColumnMetadata, ClassifiedTable


class RelationshipType:
    FOREIGN_KEY = "FOREIGN_KEY"
    FORMULA_REFERENCE = "FORMULA_REFERENCE"


class Cardinality:
    ONE_TO_ONE = "ONE_TO_ONE"
    ONE_TO_MANY = "ONE_TO_MANY"
    MANY_TO_ONE = "MANY_TO_ONE"
    MANY_TO_MANY = "MANY_TO_MANY"


@dataclass(frozen=True)
class Entity:
    """Candidate database table built from one sheet region"""
    entity_id: str
    name: str                                    # Display name ('Product')
    table_name: str                              # snake_case ('products')
    source_sheet: str
    sheet_index: int
    columns: List[ColumnMetadata]
    primary_key: Optional[str]
    description: str
    row_count: int
    confidence: float
    table: Optional[ClassifiedTable] = field(default=None, compare=False, repr=False)

    def column(self, name: str) -> Optional[ColumnMetadata]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    @property
    def primary_key_column(self) -> Optional[ColumnMetadata]:
        return self.column(self.primary_key) if self.primary_key else None

    def column_for_letter(self, letter: str) -> Optional[ColumnMetadata]:
        for col in self.columns:
            if col.column_letter == letter.upper():
                return col
        return None


@dataclass(frozen=True)
class Relationship:
    """Directed edge between two entities"""
    relationship_id: str
    from_entity: str
    from_column: str
    to_entity: str
    to_column: str
    type: str
    cardinality: str
    confidence: float
    description: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RelationshipCandidate:
    """Intermediate candidate before acceptance"""
    source: Entity
    target: Entity
    source_column: ColumnMetadata
    target_column: ColumnMetadata
    raw_scores: Dict[str, float] = field(default_factory=dict)
