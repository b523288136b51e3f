"""Relationship confidence scoring"""
from .scorer import RelationshipConfidenceScorer

__all__ = ['RelationshipConfidenceScorer']
