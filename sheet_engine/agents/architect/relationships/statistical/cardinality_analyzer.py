"""
Cardinality from column uniqueness
"""
import logging

from ...models import Cardinality

logger = logging.getLogger(__name__)


class CardinalityAnalyzer:
    """Infers cardinality purely from the uniqueness flags of both columns"""

    def infer(self, source_unique: bool, target_unique: bool) -> str:
        if source_unique and target_unique:
            return Cardinality.ONE_TO_ONE
        if target_unique:
            return Cardinality.MANY_TO_ONE
        if source_unique:
            return Cardinality.ONE_TO_MANY
        return Cardinality.MANY_TO_MANY
