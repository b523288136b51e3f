"""Statistical relationship signals"""
from .type_compatibility import TypeCompatibility
from .value_overlap import ValueOverlapCalculator
from .cardinality_analyzer import CardinalityAnalyzer

__all__ = ['TypeCompatibility', 'ValueOverlapCalculator', 'CardinalityAnalyzer']
