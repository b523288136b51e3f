"""
Vocabularies and value patterns for column classification
"""
import re
from typing import Dict, FrozenSet, List, Tuple


# Regex patterns tested against string values, in order
VALUE_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ('email', re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$")),
    ('url', re.compile(r"^(https?://|www\.)[^\s/$.?#].[^\s]*$", re.IGNORECASE)),
    ('phone', re.compile(r"^\+?[\d\s().\-]{7,20}$")),
]

# Minimum digit count for a phone match
PHONE_MIN_DIGITS = 7

CODE_PATTERN = re.compile(r"^[A-Za-z]{0,5}[-_]?\d+$")
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

BOOLEAN_VOCABULARIES: List[FrozenSet[str]] = [
    frozenset({'true', 'false'}),
    frozenset({'yes', 'no'}),
    frozenset({'y', 'n'}),
    frozenset({'0', '1'}),
    frozenset({'t', 'f'}),
]

# Name vocabularies used by the data type pass
ID_KEYWORDS = ['id', 'pk', 'key', 'code', 'sku', 'uuid', 'guid', 'ref', 'no', 'number']
CURRENCY_KEYWORDS = [
    'price', 'cost', 'amount', 'total', 'subtotal', 'revenue', 'salary', 'fee',
    'payment', 'balance', 'budget', 'spend', 'value', 'usd', 'eur', 'gbp',
]
PERCENTAGE_KEYWORDS = ['percent', 'percentage', 'pct', 'rate', 'ratio', 'share', 'margin', 'discount']
QUANTITY_KEYWORDS = ['qty', 'quantity', 'count', 'stock', 'units', 'level', 'inventory', 'on_hand']


# Semantic vocabularies, first match wins
SEMANTIC_VOCABULARIES: Dict[str, List[str]] = {
    'NAME': ['name', 'title', 'label', 'full_name', 'first_name', 'last_name'],
    'DESCRIPTION': ['description', 'desc', 'notes', 'note', 'comment', 'comments', 'details', 'remarks'],
    'STATUS': ['status', 'state', 'stage'],
    'QUANTITY': ['qty', 'quantity', 'stock', 'units', 'inventory', 'on_hand', 'reorder_level', 'stock_level'],
    'PRICE': ['price', 'cost', 'amount', 'total', 'fee', 'unit_price'],
    'DATE_CREATED': ['created', 'created_at', 'created_on', 'date_created', 'date_added', 'creation_date'],
    'DATE_MODIFIED': ['modified', 'updated', 'updated_at', 'last_updated', 'date_modified', 'changed'],
    'EMAIL': ['email', 'e_mail', 'mail'],
    'PHONE': ['phone', 'mobile', 'telephone', 'tel', 'fax', 'cell'],
    'ADDRESS': ['address', 'street', 'city', 'zip', 'postal_code', 'postcode'],
}

PRIMARY_KEY_NAMES = ['id', 'pk', 'key', 'uuid', 'guid']


def name_matches(name: str, keywords: List[str]) -> bool:
    """Token-boundary match of a snake_case name against keywords"""
    padded = f"_{name.lower()}_"
    return any(f"_{kw}_" in padded for kw in keywords)
