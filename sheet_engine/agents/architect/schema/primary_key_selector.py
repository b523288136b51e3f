"""
Primary key selection for extracted entities
"""
from typing import List, Optional, Tuple
import logging

from ...classifier.models import ColumnMetadata, DataType, SemanticType

logger = logging.getLogger(__name__)

LITERAL_KEY_NAMES = ('id', 'pk', 'key')


class PrimaryKeySelector:
    """
    Selects a primary key, first rule that matches wins:

    (a) semantic PRIMARY_KEY and unique
    (b) named id / pk / key and unique
    (c) data type id and unique
    (d) any unique, non-nullable column
    (e) none
    """

    def select(self, columns: List[ColumnMetadata]) -> Tuple[Optional[str], str]:
        """
        Args:
            columns: Classified columns in table order

        Returns:
            (column name or None, rule that selected it)
        """
        rules = [
            ('semantic_primary_key', lambda c: c.semantic_type == SemanticType.PRIMARY_KEY),
            ('literal_key_name', lambda c: c.name in LITERAL_KEY_NAMES),
            ('id_type', lambda c: c.data_type == DataType.ID),
            ('unique_not_null', lambda c: not c.nullable),
        ]
        for rule_name, matches in rules:
            for col in columns:
                if col.is_unique and matches(col):
                    return col.name, rule_name
        return None, 'none'
