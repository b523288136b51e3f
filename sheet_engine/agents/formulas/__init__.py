"""Formula parsing and translation into automation rules"""
from .translator import FormulaTranslator, FormulaContext, sheet_formula_cells
from .references import CrossSheetReferenceFinder
from .resolver import SheetResolver
from .parser import FormulaParser, FormulaAst, NodeKind
from .tokenizer import FormulaTokenizer, Token, TokenKind
from .models import (
    AutomationRule,
    RuleType,
    RULE_PRIORITIES,
    Operand,
    Condition,
    ConditionalCase,
    TriggerAction,
    TriggerImplementation,
    ComputedFieldImplementation,
    ValidationImplementation,
    AggregateFilter,
    AggregateImplementation,
    LookupImplementation,
    FormulaImplementation,
)

__all__ = [
    'FormulaTranslator',
    'FormulaContext',
    'sheet_formula_cells',
    'CrossSheetReferenceFinder',
    'SheetResolver',
    'FormulaParser',
    'FormulaAst',
    'NodeKind',
    'FormulaTokenizer',
    'Token',
    'TokenKind',
    'AutomationRule',
    'RuleType',
    'RULE_PRIORITIES',
    'Operand',
    'Condition',
    'ConditionalCase',
    'TriggerAction',
    'TriggerImplementation',
    'ComputedFieldImplementation',
    'ValidationImplementation',
    'AggregateFilter',
    'AggregateImplementation',
    'LookupImplementation',
    'FormulaImplementation',
]
