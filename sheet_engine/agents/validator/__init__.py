"""Analysis confidence scoring and review warnings"""
from .scorer import ValidationScorer
from .models import AnalysisWarning, ConfidenceScore, Severity

__all__ = ['ValidationScorer', 'AnalysisWarning', 'ConfidenceScore', 'Severity']
