"""
Automation rule models

Each rule type has exactly one implementation payload shape; the payload's
`kind` field mirrors the rule type so serialized rules stay self-describing.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


class RuleType:
    TRIGGER = "TRIGGER"
    COMPUTED_FIELD = "COMPUTED_FIELD"
    VALIDATION = "VALIDATION"
    AGGREGATE = "AGGREGATE"
    LOOKUP = "LOOKUP"
    FORMULA = "FORMULA"                          # Unrecognised, kept for manual handling


RULE_PRIORITIES = {
    RuleType.TRIGGER: 1,
    RuleType.VALIDATION: 2,
    RuleType.LOOKUP: 3,
    RuleType.AGGREGATE: 4,
    RuleType.COMPUTED_FIELD: 5,
    RuleType.FORMULA: 9,
}


@dataclass(frozen=True)
class Operand:
    """
    Formula operand: a field, a literal, a nested expression, or a
    cell reference that could not be mapped to a field
    """
    field: Optional[str] = None
    value: Any = None
    expression: Optional[str] = None
    reference: Optional[str] = None

    def render(self) -> str:
        if self.field is not None:
            return self.field
        if self.expression is not None:
            return self.expression
        if self.reference is not None:
            return self.reference
        if isinstance(self.value, str):
            return f'"{self.value}"'
        return str(self.value)


@dataclass(frozen=True)
class Condition:
    left: Operand
    operator: str
    right: Optional[Operand] = None

    def render(self) -> str:
        if self.right is None:
            return self.left.render()
        return f"{self.left.render()} {self.operator} {self.right.render()}"


@dataclass(frozen=True)
class ConditionalCase:
    condition: Condition
    value: Operand


@dataclass(frozen=True)
class TriggerAction:
    action: str                                  # SET_FIELD or NOTIFY
    field: Optional[str] = None
    value: Any = None
    message: Optional[str] = None


@dataclass(frozen=True)
class TriggerImplementation:
    condition: Condition
    actions: List[TriggerAction]
    else_actions: List[TriggerAction] = field(default_factory=list)
    kind: str = RuleType.TRIGGER


@dataclass(frozen=True)
class ComputedFieldImplementation:
    target_field: Optional[str]
    operation: str                               # MATH, CONCAT, CONDITIONAL, DATE, ROW_AGGREGATE
    expression: str
    dependencies: List[str] = field(default_factory=list)
    cases: List[ConditionalCase] = field(default_factory=list)
    default: Optional[Operand] = None
    kind: str = RuleType.COMPUTED_FIELD


@dataclass(frozen=True)
class ValidationImplementation:
    target_field: Optional[str]
    expression: str
    dependencies: List[str] = field(default_factory=list)
    kind: str = RuleType.VALIDATION


@dataclass(frozen=True)
class AggregateFilter:
    field: Optional[str]
    operator: str
    value: Operand


@dataclass(frozen=True)
class AggregateImplementation:
    operation: str                               # SUM, COUNT, AVERAGE, MAX, MIN
    source_entity: Optional[str]
    source_field: Optional[str]
    result_field: Optional[str]
    filters: List[AggregateFilter] = field(default_factory=list)
    kind: str = RuleType.AGGREGATE


@dataclass(frozen=True)
class LookupImplementation:
    function: str                                # VLOOKUP, HLOOKUP, XLOOKUP, INDEX_MATCH
    lookup_field: Optional[str]
    target_entity: Optional[str]
    target_sheet: Optional[str]
    target_column_index: Optional[int]
    target_column: Optional[str]
    destination_field: Optional[str]
    exact_match: bool = True
    key_column: Optional[str] = None
    post_expression: Optional[str] = None        # Surrounding arithmetic, LOOKUP() marks the lookup result
    kind: str = RuleType.LOOKUP


@dataclass(frozen=True)
class FormulaImplementation:
    formula: str
    dependencies: List[str] = field(default_factory=list)
    reason: str = "unrecognized pattern"
    kind: str = RuleType.FORMULA


Implementation = Union[
    TriggerImplementation,
    ComputedFieldImplementation,
    ValidationImplementation,
    AggregateImplementation,
    LookupImplementation,
    FormulaImplementation,
]


@dataclass(frozen=True)
class AutomationRule:
    """Rule derived from one (possibly dragged) formula"""
    rule_id: str
    name: str
    type: str
    entity: str
    formula: str
    location: str                                # 'Inventory!G2'
    confidence: float
    description: str
    implementation: Implementation
    target_field: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)
    applies_to: Optional[str] = None             # 'Inventory!G2:G11' for dragged formulas
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def priority(self) -> int:
        return RULE_PRIORITIES.get(self.type, 9)
