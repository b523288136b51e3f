"""Table normalization: typed, de-duplicated columns indexed by source row"""
from .agent import TableNormalizer
from .models import NormalizedTable, SOURCE_ROW_INDEX
from .coercion import PrimitiveKind
from .naming import to_snake_case, deduplicate_names, singularize, pluralize

__all__ = [
    'TableNormalizer',
    'NormalizedTable',
    'SOURCE_ROW_INDEX',
    'PrimitiveKind',
    'to_snake_case',
    'deduplicate_names',
    'singularize',
    'pluralize',
]
