"""
Data models for column classification
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..normalizer.models import NormalizedTable


class DataType:
    """Column data types"""
    ID = "id"
    TEXT = "text"
    DATE = "date"
    DATETIME = "datetime"
    INTEGER = "integer"
    FLOAT = "float"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    BOOLEAN = "boolean"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    ENUM = "enum"
    EMPTY = "empty"

    NUMERIC_FAMILY = frozenset({ID, INTEGER, FLOAT})


class SemanticType:
    """Name-based semantic roles"""
    PRIMARY_KEY = "PRIMARY_KEY"
    FOREIGN_KEY = "FOREIGN_KEY"
    NAME = "NAME"
    DESCRIPTION = "DESCRIPTION"
    STATUS = "STATUS"
    QUANTITY = "QUANTITY"
    PRICE = "PRICE"
    DATE_CREATED = "DATE_CREATED"
    DATE_MODIFIED = "DATE_MODIFIED"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    ADDRESS = "ADDRESS"

    @staticmethod
    def foreign_key(entity: str) -> str:
        return f"FOREIGN_KEY:{entity}"

    @staticmethod
    def foreign_key_target(semantic_type: Optional[str]) -> Optional[str]:
        """'FOREIGN_KEY:supplier' -> 'supplier'"""
        if semantic_type and semantic_type.startswith("FOREIGN_KEY:"):
            return semantic_type.split(":", 1)[1]
        return None


@dataclass(frozen=True)
class TypeDecision:
    """Output of one type detector"""
    data_type: str
    confidence: float
    statistics: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ColumnMetadata:
    """Classified column; never mutated after classification"""
    name: str
    data_type: str
    confidence: float
    original_name: str = ""
    semantic_type: Optional[str] = None
    is_unique: bool = False
    nullable: bool = True
    null_count: int = 0
    total_count: int = 0
    distinct_count: int = 0
    sample_values: List[Any] = field(default_factory=list)
    statistics: Dict[str, Any] = field(default_factory=dict)
    column_letter: str = ""

    @property
    def is_empty(self) -> bool:
        return self.data_type == DataType.EMPTY

    @property
    def enum_values(self) -> List[Any]:
        return list(self.statistics.get('values', []))


@dataclass
class ClassifiedTable:
    """Normalized table with one ColumnMetadata per column, in column order"""
    table: NormalizedTable
    columns: List[ColumnMetadata]

    @property
    def name(self) -> str:
        return self.table.name

    def column(self, name: str) -> Optional[ColumnMetadata]:
        for col in self.columns:
            if col.name == name:
                return col
        return None
