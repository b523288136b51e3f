"""
Name-based semantic type inference
"""
from typing import Optional
import logging

from .models import SemanticType
from .taxonomy import SEMANTIC_VOCABULARIES, PRIMARY_KEY_NAMES, name_matches
from ..normalizer.naming import to_snake_case, singularize, pluralize

logger = logging.getLogger(__name__)


class SemanticTypeInferer:
    """
    Assigns at most one semantic type from the column name alone.
    Vocabularies are tried in a fixed order; the first match wins.
    """

    def infer(self, column_name: str, table_name: Optional[str] = None) -> Optional[str]:
        """
        Args:
            column_name: snake_case column name
            table_name: Source sheet / table name, used to recognise '<table>_id'

        Returns:
            Semantic type string or None
        """
        name = column_name.lower()

        if name in PRIMARY_KEY_NAMES or self._is_own_key(name, table_name):
            return SemanticType.PRIMARY_KEY

        if name.endswith("_id") and len(name) > 3:
            return SemanticType.foreign_key(name[:-3])

        for semantic_type, keywords in SEMANTIC_VOCABULARIES.items():
            if name_matches(name, keywords):
                return semantic_type

        return None

    @staticmethod
    def _is_own_key(name: str, table_name: Optional[str]) -> bool:
        if not table_name:
            return False
        table = to_snake_case(table_name)
        variants = {table, singularize(table), pluralize(singularize(table))}
        return name in {f"{v}_id" for v in variants}
