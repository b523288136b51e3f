"""Relationship detection signals and deduplication"""
from .merger import RelationshipMerger
from .rule_based import NameSimilarityCalculator
from .statistical import TypeCompatibility, ValueOverlapCalculator, CardinalityAnalyzer

__all__ = [
    'RelationshipMerger',
    'NameSimilarityCalculator',
    'TypeCompatibility',
    'ValueOverlapCalculator',
    'CardinalityAnalyzer',
]
