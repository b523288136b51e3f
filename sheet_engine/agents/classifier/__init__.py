"""Column classification: data types, semantic types and statistics"""
from .agent import ColumnClassifier
from .models import ColumnMetadata, ClassifiedTable, DataType, SemanticType, TypeDecision
from .detectors import ColumnProfile, TypeDetector, TypeDetectorChain
from .semantic import SemanticTypeInferer
from .values import canonical_key, json_safe

__all__ = [
    'ColumnClassifier',
    'ColumnMetadata',
    'ClassifiedTable',
    'DataType',
    'SemanticType',
    'TypeDecision',
    'ColumnProfile',
    'TypeDetector',
    'TypeDetectorChain',
    'SemanticTypeInferer',
    'canonical_key',
    'json_safe',
]
