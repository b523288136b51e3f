"""
Weighted confidence for relationship candidates
"""
from typing import Dict, Tuple
import logging

from ....config import DetectionThresholds

logger = logging.getLogger(__name__)


class RelationshipConfidenceScorer:
    """Combines name, value-overlap and type scores into one confidence"""

    def __init__(self, thresholds: DetectionThresholds):
        self.thresholds = thresholds

    def calculate_confidence(
        self,
        name_similarity: float,
        value_overlap: float,
        type_compatibility: float,
    ) -> Tuple[float, Dict[str, float]]:
        """
        Returns:
            (confidence, breakdown of weighted contributions)
        """
        t = self.thresholds
        breakdown = {
            'name_similarity': name_similarity * t.name_weight,
            'value_overlap': value_overlap * t.value_overlap_weight,
            'type_compatibility': type_compatibility * t.type_weight,
        }
        confidence = max(0.0, min(1.0, sum(breakdown.values())))
        return confidence, breakdown

    def accepts(self, confidence: float) -> bool:
        return confidence >= self.thresholds.relationship_accept
