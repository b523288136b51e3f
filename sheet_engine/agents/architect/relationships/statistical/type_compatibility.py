"""
Data type compatibility for foreign key candidates
"""
import logging

from ....classifier.models import DataType

logger = logging.getLogger(__name__)


class TypeCompatibility:
    """Scores whether a source column can hold values of the target key type"""

    def score(self, source_type: str, target_type: str) -> float:
        """
        Returns:
            1.0 same type, 0.9 both numeric-like (id / integer / float),
            0.7 text source (stringified keys), else 0.0
        """
        if source_type == target_type:
            return 1.0
        if source_type in DataType.NUMERIC_FAMILY and target_type in DataType.NUMERIC_FAMILY:
            return 0.9
        if source_type == DataType.TEXT:
            return 0.7
        return 0.0
