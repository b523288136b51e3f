"""
Ordered data type detectors

Each detector is a (name, predicate, producer) triple evaluated in a fixed
sequence; the first detector whose predicate holds produces the decision.
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import logging

import numpy as np
import pandas as pd

from .models import DataType, TypeDecision
from .values import canonical_key, json_safe
from .taxonomy import (
    VALUE_PATTERNS,
    PHONE_MIN_DIGITS,
    CODE_PATTERN,
    UUID_PATTERN,
    BOOLEAN_VOCABULARIES,
    ID_KEYWORDS,
    CURRENCY_KEYWORDS,
    PERCENTAGE_KEYWORDS,
    QUANTITY_KEYWORDS,
    name_matches,
)
from ..normalizer.coercion import PrimitiveKind
from ...config import DetectionThresholds

logger = logging.getLogger(__name__)


@dataclass
class ColumnProfile:
    """Everything the detectors need to know about one column"""
    name: str
    series: pd.Series
    primitive_kind: str
    coercion_ratio: float = 1.0
    non_null: pd.Series = field(init=False)
    keys: List[str] = field(init=False)

    def __post_init__(self):
        self.non_null = self.series.dropna()
        self.keys = [k for k in (canonical_key(v) for v in self.non_null) if k is not None]

    @property
    def count(self) -> int:
        return len(self.keys)

    @property
    def distinct_count(self) -> int:
        return len(set(self.keys))

    @property
    def uniqueness(self) -> float:
        return self.distinct_count / self.count if self.count else 0.0

    @property
    def is_numeric(self) -> bool:
        return self.primitive_kind == PrimitiveKind.NUMERIC

    def numbers(self) -> np.ndarray:
        return self.non_null.astype("float64").to_numpy()


@dataclass(frozen=True)
class TypeDetector:
    name: str
    predicate: Callable[[ColumnProfile], bool]
    producer: Callable[[ColumnProfile], TypeDecision]


class TypeDetectorChain:
    """Builds and evaluates the ordered detector list"""

    def __init__(self, thresholds: DetectionThresholds):
        self.thresholds = thresholds
        self.detectors: List[TypeDetector] = [
            TypeDetector('empty', self._is_empty, self._empty),
            TypeDetector('pattern', self._matches_pattern, self._pattern),
            TypeDetector('id', self._is_identifier, self._identifier),
            TypeDetector('boolean', self._is_boolean, self._boolean),
            TypeDetector('date', self._is_date, self._date),
            TypeDetector('numeric', self._is_numeric, self._numeric),
            TypeDetector('enum', self._is_enum, self._enum),
            TypeDetector('text', lambda profile: True, self._text),
        ]

    def detect(self, profile: ColumnProfile) -> TypeDecision:
        for detector in self.detectors:
            if detector.predicate(profile):
                decision = detector.producer(profile)
                logger.debug(
                    f"Column '{profile.name}': {detector.name} detector -> "
                    f"{decision.data_type} ({decision.confidence:.2f})"
                )
                return decision
        return self._text(profile)

    # empty

    @staticmethod
    def _is_empty(profile: ColumnProfile) -> bool:
        return profile.count == 0

    @staticmethod
    def _empty(profile: ColumnProfile) -> TypeDecision:
        return TypeDecision(DataType.EMPTY, 0.5)

    # email / url / phone

    def _best_pattern(self, profile: ColumnProfile) -> Optional[TypeDecision]:
        if profile.primitive_kind != PrimitiveKind.STRING or not profile.count:
            return None
        for data_type, pattern in VALUE_PATTERNS:
            matched = sum(1 for k in profile.keys if pattern.match(k) and _pattern_extra(data_type, k))
            ratio = matched / profile.count
            if ratio >= self.thresholds.pattern_ratio:
                return TypeDecision(data_type, ratio)
        return None

    def _matches_pattern(self, profile: ColumnProfile) -> bool:
        return self._best_pattern(profile) is not None

    def _pattern(self, profile: ColumnProfile) -> TypeDecision:
        return self._best_pattern(profile)

    # id

    def _is_identifier(self, profile: ColumnProfile) -> bool:
        if profile.count < 2 or profile.uniqueness < self.thresholds.unique_id:
            return False

        measure_name = name_matches(profile.name, CURRENCY_KEYWORDS + PERCENTAGE_KEYWORDS + QUANTITY_KEYWORDS)
        if measure_name and not name_matches(profile.name, ID_KEYWORDS):
            return False

        if profile.is_numeric:
            numbers = profile.numbers()
            return bool(np.all(numbers == np.round(numbers)))
        if profile.primitive_kind == PrimitiveKind.STRING:
            return all(CODE_PATTERN.match(k) or UUID_PATTERN.match(k) for k in profile.keys)
        return False

    def _identifier(self, profile: ColumnProfile) -> TypeDecision:
        t = self.thresholds
        stats = {}
        if profile.is_numeric:
            numbers = np.sort(profile.numbers())
            steps = np.diff(numbers)
            deviation = float(np.mean(np.abs(steps - 1.0))) if len(steps) else 1.0
            sequential = deviation < t.sequential_tolerance
            stats = {
                'min': json_safe(numbers.min()),
                'max': json_safe(numbers.max()),
                'sequential': sequential,
            }
            confidence = t.sequential_id_confidence if sequential else t.numeric_id_confidence
        else:
            confidence = t.numeric_id_confidence
        return TypeDecision(DataType.ID, confidence, stats)

    # boolean

    @staticmethod
    def _is_boolean(profile: ColumnProfile) -> bool:
        observed = frozenset(k.lower() for k in profile.keys)
        return any(observed == vocabulary for vocabulary in BOOLEAN_VOCABULARIES)

    @staticmethod
    def _boolean(profile: ColumnProfile) -> TypeDecision:
        counts = Counter(k.lower() for k in profile.keys)
        return TypeDecision(DataType.BOOLEAN, 1.0, {'value_counts': dict(sorted(counts.items()))})

    # date / datetime

    @staticmethod
    def _is_date(profile: ColumnProfile) -> bool:
        return profile.primitive_kind in (PrimitiveKind.DATE, PrimitiveKind.DATETIME)

    @staticmethod
    def _date(profile: ColumnProfile) -> TypeDecision:
        data_type = DataType.DATETIME if profile.primitive_kind == PrimitiveKind.DATETIME else DataType.DATE
        stats = {
            'min': json_safe(profile.non_null.min()),
            'max': json_safe(profile.non_null.max()),
        }
        return TypeDecision(data_type, profile.coercion_ratio, stats)

    # currency / percentage / integer / float

    @staticmethod
    def _is_numeric(profile: ColumnProfile) -> bool:
        return profile.is_numeric

    def _numeric(self, profile: ColumnProfile) -> TypeDecision:
        numbers = profile.numbers()
        integral = bool(np.all(numbers == np.round(numbers)))
        in_unit_range = bool(np.all((numbers >= 0) & (numbers <= 1)))
        in_percent_range = bool(np.all((numbers >= 0) & (numbers <= 100)))

        if name_matches(profile.name, CURRENCY_KEYWORDS):
            data_type = DataType.CURRENCY
        elif (in_unit_range and not integral) or (in_percent_range and name_matches(profile.name, PERCENTAGE_KEYWORDS)):
            data_type = DataType.PERCENTAGE
        elif integral:
            data_type = DataType.INTEGER
        else:
            data_type = DataType.FLOAT

        stats = {
            'min': float(numbers.min()),
            'max': float(numbers.max()),
            'mean': float(numbers.mean()),
        }
        return TypeDecision(data_type, profile.coercion_ratio, stats)

    # enum

    def _is_enum(self, profile: ColumnProfile) -> bool:
        t = self.thresholds
        return profile.uniqueness < t.enum_max_ratio and profile.distinct_count < t.enum_max_distinct

    @staticmethod
    def _enum(profile: ColumnProfile) -> TypeDecision:
        counts = Counter(profile.keys)
        top = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:5]
        stats = {
            'values': sorted(counts),
            'top_values': [{'value': value, 'count': count} for value, count in top],
        }
        confidence = min(0.95, 0.7 + (1.0 - profile.uniqueness) * 0.25)
        return TypeDecision(DataType.ENUM, confidence, stats)

    # text

    def _text(self, profile: ColumnProfile) -> TypeDecision:
        lengths = [len(k) for k in profile.keys] or [0]
        stats = {
            'min_length': min(lengths),
            'max_length': max(lengths),
            'mean_length': sum(lengths) / len(lengths),
        }
        return TypeDecision(DataType.TEXT, self.thresholds.text_confidence, stats)


def _pattern_extra(data_type: str, value: str) -> bool:
    if data_type == 'phone':
        return sum(ch.isdigit() for ch in value) >= PHONE_MIN_DIGITS
    return True
