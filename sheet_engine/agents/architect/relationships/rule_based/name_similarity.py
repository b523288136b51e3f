"""
Name similarity between a source column and a target entity
"""
from typing import List, Tuple
import logging

from ...models import Entity
from ....normalizer.naming import to_snake_case, singularize, pluralize

logger = logging.getLogger(__name__)


class NameSimilarityCalculator:
    """
    Rule-based score of how strongly a column name points at an entity

    1.0   '<table>_id' or '<name>_id'
    0.95  '<variant>_id' where the variant is the other singular / plural form
    0.9   starts with the table or entity name
    0.7   contains the table or entity name
    0.65  contains a singular / plural variant
    """

    def name_forms(self, entity: Entity) -> Tuple[List[str], List[str]]:
        """(primary forms, singular / plural variants) of an entity name"""
        singular = to_snake_case(entity.name)
        primary = _unique([entity.table_name, singular])
        variants = [
            v for v in _unique([pluralize(singular), singularize(entity.table_name)])
            if v not in primary
        ]
        return primary, variants

    def score(self, column_name: str, target: Entity) -> float:
        name = column_name.lower()
        primary, variants = self.name_forms(target)

        if any(name == f"{form}_id" for form in primary):
            return 1.0
        if any(name == f"{form}_id" for form in variants):
            return 0.95
        if any(name.startswith(form) for form in primary):
            return 0.9
        if any(form in name for form in primary):
            return 0.7
        if any(form in name for form in variants):
            return 0.65
        return 0.0


def _unique(names: List[str]) -> List[str]:
    seen = []
    for n in names:
        if n and n not in seen:
            seen.append(n)
    return seen
