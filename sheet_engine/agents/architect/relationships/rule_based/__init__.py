"""Rule-based relationship signals"""
from .name_similarity import NameSimilarityCalculator

__all__ = ['NameSimilarityCalculator']
