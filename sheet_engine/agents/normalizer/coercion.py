"""
Primitive type coercion for normalized columns
"""
import re
from datetime import date, datetime
from typing import Any, List, Optional, Tuple
import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class PrimitiveKind:
    NUMERIC = "numeric"
    DATE = "date"
    DATETIME = "datetime"
    STRING = "string"


_CURRENCY_SYMBOLS = re.compile(r"[$€£¥\s]")
_DECIMAL_COMMA = re.compile(r"^[-+]?\d+,\d{1,2}$")
_DATE_LIKE = re.compile(
    r"\d{1,4}[-/.]\d{1,2}|\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\b",
    re.IGNORECASE,
)


def parse_number(value: Any, decimal: str = ".") -> Optional[float]:
    """
    Convert a cell value to a number, or None

    Understands thousands separators, currency symbols, parenthesised
    negatives and trailing percent signs ('45%' -> 0.45). With
    decimal="," the roles of comma and dot swap ('1.250,5' -> 1250.5).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        return None if pd.isna(value) else float(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    percent = text.endswith("%")
    if percent:
        text = text[:-1]
    text = _CURRENCY_SYMBOLS.sub("", text)
    if decimal == ",":
        text = text.replace(".", "").replace(",", ".")
    else:
        text = text.replace(",", "")

    try:
        number = float(text)
    except ValueError:
        return None
    if np.isnan(number) or np.isinf(number):
        return None
    if percent:
        number /= 100.0
    return -number if negative else number


def uses_decimal_comma(values: List[Any]) -> bool:
    """True when every text value reads like '1,5' or '10,75' (comma as decimal separator)"""
    texts = [v.strip() for v in values if isinstance(v, str)]
    return bool(texts) and all(_DECIMAL_COMMA.match(t) for t in texts)


def coerce_numeric(values: List[Any], min_ratio: float) -> Optional[Tuple[pd.Series, float]]:
    """Numeric series and conversion ratio if at least min_ratio of non-null values convert"""
    non_null = [v for v in values if v is not None]
    if not non_null:
        return None
    decimal = "," if uses_decimal_comma(non_null) else "."
    parsed = [parse_number(v, decimal) for v in values]
    converted = sum(1 for v, p in zip(values, parsed) if v is not None and p is not None)
    ratio = converted / len(non_null)
    if ratio < min_ratio:
        return None

    series = pd.Series([np.nan if p is None else p for p in parsed], dtype="float64")
    valid = series.dropna()
    if not valid.empty and (valid == valid.round()).all():
        return series.round().astype("Int64"), ratio
    return series, ratio


def coerce_dates(values: List[Any], min_ratio: float) -> Optional[Tuple[pd.Series, str, float]]:
    """
    Datetime series, its kind (date / datetime) and parse ratio if at
    least min_ratio of non-null values parse as dates
    """
    non_null = [v for v in values if v is not None]
    if not non_null:
        return None

    prepared: List[Any] = []
    for v in values:
        if isinstance(v, (datetime, date)):
            prepared.append(v)
        elif isinstance(v, str) and _DATE_LIKE.search(v):
            prepared.append(v.strip())
        else:
            prepared.append(None)

    if sum(1 for p in prepared if p is not None) / len(non_null) < min_ratio:
        return None

    parsed = pd.to_datetime(
        pd.Series([str(p) if isinstance(p, str) else p for p in prepared], dtype="object"),
        format="mixed",
        errors="coerce",
    )
    ratio = float(parsed.notna().sum()) / len(non_null)
    if ratio < min_ratio:
        return None

    valid = parsed.dropna()
    has_time = bool(
        ((valid.dt.hour != 0) | (valid.dt.minute != 0) | (valid.dt.second != 0)).any()
    )
    return parsed, PrimitiveKind.DATETIME if has_time else PrimitiveKind.DATE, ratio


def coerce_strings(values: List[Any]) -> pd.Series:
    return pd.Series(
        [None if v is None else str(v).strip() or None for v in values],
        dtype="object",
    )


def coerce_column(values: List[Any], min_ratio: float) -> Tuple[pd.Series, str, float]:
    """
    Numeric, then date / datetime, else trimmed string

    Returns:
        (series, primitive kind, share of non-null values that converted)
    """
    numeric = coerce_numeric(values, min_ratio)
    if numeric is not None:
        series, ratio = numeric
        return series, PrimitiveKind.NUMERIC, ratio

    dated = coerce_dates(values, min_ratio)
    if dated is not None:
        return dated

    return coerce_strings(values), PrimitiveKind.STRING, 1.0
