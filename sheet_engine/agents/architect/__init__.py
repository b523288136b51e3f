"""Entity extraction and relationship detection"""
from .agent import RelationshipFinder
from .models import Entity, Relationship, RelationshipCandidate, RelationshipType, Cardinality
from .schema import SchemaEntityBuilder, PrimaryKeySelector
from .relationships import RelationshipMerger

__all__ = [
    'RelationshipFinder',
    'SchemaEntityBuilder',
    'PrimaryKeySelector',
    'RelationshipMerger',
    'Entity',
    'Relationship',
    'RelationshipCandidate',
    'RelationshipType',
    'Cardinality',
]
