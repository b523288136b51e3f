"""
Value overlap between a source column and a target key column
"""
from typing import Dict, FrozenSet, List, Tuple
import logging

from ...models import Entity
from ....classifier.values import canonical_key

logger = logging.getLogger(__name__)


class ValueOverlapCalculator:
    """
    |source distinct ∩ target values| / |source distinct|

    Values are compared by canonical key so that 3, 3.0 and '3' match.
    index() builds every distinct-value set up front; afterwards the
    calculator is read-only and safe to share between worker threads.
    """

    def __init__(self):
        self._values: Dict[Tuple[str, str], FrozenSet[str]] = {}

    def index(self, entities: List[Entity]) -> None:
        self._values = {
            (entity.entity_id, col.name): self._collect(entity, col.name)
            for entity in entities
            for col in entity.columns
        }
        logger.debug(f"Indexed distinct values for {len(self._values)} columns")

    def distinct_values(self, entity: Entity, column: str) -> FrozenSet[str]:
        key = (entity.entity_id, column)
        if key in self._values:
            return self._values[key]
        return self._collect(entity, column)

    def overlap(self, source: Entity, source_column: str, target: Entity, target_column: str) -> float:
        source_values = self.distinct_values(source, source_column)
        if not source_values:
            return 0.0
        target_values = self.distinct_values(target, target_column)
        return len(source_values & target_values) / len(source_values)

    @staticmethod
    def _collect(entity: Entity, column: str) -> FrozenSet[str]:
        if entity.table is None or column not in entity.table.table.frame.columns:
            return frozenset()
        series = entity.table.table.frame[column].dropna()
        return frozenset(k for k in (canonical_key(v) for v in series) if k is not None)
