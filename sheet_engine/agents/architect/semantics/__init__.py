"""Relationship descriptions"""
from .templates import RelationshipTemplates

__all__ = ['RelationshipTemplates']
