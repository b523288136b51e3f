"""Entity extraction"""
from .entity_builder import SchemaEntityBuilder
from .primary_key_selector import PrimaryKeySelector

__all__ = ['SchemaEntityBuilder', 'PrimaryKeySelector']
