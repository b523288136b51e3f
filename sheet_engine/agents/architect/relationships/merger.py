"""
Relationship deduplication
"""
from typing import Dict, List, Optional, Tuple
import logging

from ..models import Relationship

logger = logging.getLogger(__name__)


class RelationshipMerger:
    """Keeps the best relationship per (from_entity, from_column)"""

    def __init__(self, min_confidence: float = 0.6):
        self.min_confidence = min_confidence

    def deduplicate(self, relationships: List[Relationship]) -> List[Relationship]:
        """
        Keep the highest-confidence relationship for each source column

        A pure projection: applying it to its own output returns the same list.

        Args:
            relationships: Accepted relationships

        Returns:
            Deduplicated relationships ordered by (from_entity, from_column)
        """
        best: Dict[Tuple[str, str], Relationship] = {}
        for rel in relationships:
            if rel.confidence < self.min_confidence or rel.from_entity == rel.to_entity:
                logger.debug(f"Dropping relationship {rel.relationship_id} (confidence={rel.confidence:.2f})")
                continue
            key = (rel.from_entity, rel.from_column)
            best[key] = self._better(best.get(key), rel)

        merged = [best[key] for key in sorted(best)]
        if len(merged) != len(relationships):
            logger.info(f"Deduplicated {len(relationships)} relationships to {len(merged)}")
        return merged

    def deduplicate_by_entity_pair(self, relationships: List[Relationship]) -> List[Relationship]:
        """Keep the highest-confidence relationship per (from_entity, to_entity)"""
        best: Dict[Tuple[str, str], Relationship] = {}
        for rel in relationships:
            key = (rel.from_entity, rel.to_entity)
            best[key] = self._better(best.get(key), rel)
        return [best[key] for key in sorted(best)]

    @staticmethod
    def _better(current: Optional[Relationship], candidate: Relationship) -> Relationship:
        if current is None:
            return candidate
        # Ties resolve on ids so the result does not depend on input order
        if (candidate.confidence, current.relationship_id) > (current.confidence, candidate.relationship_id):
            return candidate
        return current
