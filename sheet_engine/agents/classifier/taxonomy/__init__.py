"""Classification vocabularies"""
from .keywords import (
    VALUE_PATTERNS,
    PHONE_MIN_DIGITS,
    CODE_PATTERN,
    UUID_PATTERN,
    BOOLEAN_VOCABULARIES,
    ID_KEYWORDS,
    CURRENCY_KEYWORDS,
    PERCENTAGE_KEYWORDS,
    QUANTITY_KEYWORDS,
    SEMANTIC_VOCABULARIES,
    PRIMARY_KEY_NAMES,
    name_matches,
)

__all__ = [
    'VALUE_PATTERNS',
    'PHONE_MIN_DIGITS',
    'CODE_PATTERN',
    'UUID_PATTERN',
    'BOOLEAN_VOCABULARIES',
    'ID_KEYWORDS',
    'CURRENCY_KEYWORDS',
    'PERCENTAGE_KEYWORDS',
    'QUANTITY_KEYWORDS',
    'SEMANTIC_VOCABULARIES',
    'PRIMARY_KEY_NAMES',
    'name_matches',
]
