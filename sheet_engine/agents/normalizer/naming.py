"""
Column and table name cleaning
"""
import re
from typing import List

_NON_WORD = re.compile(r"[\W_]+")
_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_WORD = re.compile(r"([A-Z]+)([A-Z][a-z])")


def to_snake_case(text: str, fallback: str = "column") -> str:
    """
    'Product ID' -> 'product_id', 'unitPrice' -> 'unit_price', 'SKU#' -> 'sku'

    Punctuation is stripped, case boundaries split words, result is lower-cased.
    A leading digit gets a 'col_' prefix so the name stays a valid identifier.
    """
    text = _NON_WORD.sub(" ", str(text))
    text = _ACRONYM_WORD.sub(r"\1 \2", text)
    text = _LOWER_UPPER.sub(r"\1 \2", text)
    words = text.lower().split()
    if not words:
        return fallback
    name = "_".join(words)
    if name[0].isdigit():
        name = f"col_{name}"
    return name


def deduplicate_names(names: List[str]) -> List[str]:
    """Append _1, _2, ... to repeated names in encounter order"""
    seen = set(names)
    counts = {}
    result = []
    used = set()
    for name in names:
        if name not in used:
            used.add(name)
            result.append(name)
            continue
        n = counts.get(name, 0)
        while True:
            n += 1
            candidate = f"{name}_{n}"
            if candidate not in used and candidate not in seen:
                break
        counts[name] = n
        used.add(candidate)
        result.append(candidate)
    return result


_INVARIANT_ENDINGS = ('ss', 'us', 'is')


def singularize(word: str) -> str:
    """
    Singular form of the last word: 'Categories' -> 'Category',
    'Addresses' -> 'Address', 'Products' -> 'Product'
    """
    if not word:
        return word
    head, sep, last = word.rpartition(" ")
    lower = last.lower()
    if lower.endswith("ies") and len(lower) > 3:
        last = last[:-3] + ("Y" if last[-3:].isupper() else "y")
    elif lower.endswith("sses"):
        last = last[:-2]
    elif lower.endswith("s") and not lower.endswith(_INVARIANT_ENDINGS) and len(lower) > 1:
        last = last[:-1]
    return f"{head}{sep}{last}"


def pluralize(word: str) -> str:
    """Plural form of the last word: 'category' -> 'categories', 'box' -> 'boxes'"""
    if not word:
        return word
    lower = word.lower()
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"
