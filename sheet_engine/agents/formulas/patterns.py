"""
Function pattern table for formula recognition
"""
from typing import Dict, Optional


class Pattern:
    CONDITIONAL = "CONDITIONAL"
    CONDITIONAL_AGGREGATE = "CONDITIONAL_AGGREGATE"
    AGGREGATE = "AGGREGATE"
    LOOKUP = "LOOKUP"
    CONCAT = "CONCAT"
    DATE = "DATE"
    LOGICAL = "LOGICAL"


FUNCTION_PATTERNS: Dict[str, str] = {
    'IF': Pattern.CONDITIONAL,
    'IFS': Pattern.CONDITIONAL,

    'SUMIF': Pattern.CONDITIONAL_AGGREGATE,
    'SUMIFS': Pattern.CONDITIONAL_AGGREGATE,
    'COUNTIF': Pattern.CONDITIONAL_AGGREGATE,
    'COUNTIFS': Pattern.CONDITIONAL_AGGREGATE,
    'AVERAGEIF': Pattern.CONDITIONAL_AGGREGATE,
    'AVERAGEIFS': Pattern.CONDITIONAL_AGGREGATE,

    'SUM': Pattern.AGGREGATE,
    'COUNT': Pattern.AGGREGATE,
    'COUNTA': Pattern.AGGREGATE,
    'AVERAGE': Pattern.AGGREGATE,
    'MAX': Pattern.AGGREGATE,
    'MIN': Pattern.AGGREGATE,

    'VLOOKUP': Pattern.LOOKUP,
    'HLOOKUP': Pattern.LOOKUP,
    'XLOOKUP': Pattern.LOOKUP,
    'INDEX': Pattern.LOOKUP,                     # only together with MATCH

    'CONCATENATE': Pattern.CONCAT,
    'CONCAT': Pattern.CONCAT,
    'TEXTJOIN': Pattern.CONCAT,

    'TODAY': Pattern.DATE,
    'NOW': Pattern.DATE,
    'DATE': Pattern.DATE,
    'YEAR': Pattern.DATE,
    'MONTH': Pattern.DATE,
    'DAY': Pattern.DATE,
    'EDATE': Pattern.DATE,
    'EOMONTH': Pattern.DATE,
    'DATEDIF': Pattern.DATE,
    'WEEKDAY': Pattern.DATE,
    'NETWORKDAYS': Pattern.DATE,
    'WORKDAY': Pattern.DATE,

    'AND': Pattern.LOGICAL,
    'OR': Pattern.LOGICAL,
    'NOT': Pattern.LOGICAL,
    'ISBLANK': Pattern.LOGICAL,
    'ISNUMBER': Pattern.LOGICAL,
    'ISTEXT': Pattern.LOGICAL,
    'ISERROR': Pattern.LOGICAL,
    'ISNA': Pattern.LOGICAL,
}

AGGREGATE_OPERATIONS: Dict[str, str] = {
    'SUM': 'SUM', 'SUMIF': 'SUM', 'SUMIFS': 'SUM',
    'COUNT': 'COUNT', 'COUNTA': 'COUNT', 'COUNTIF': 'COUNT', 'COUNTIFS': 'COUNT',
    'AVERAGE': 'AVERAGE', 'AVERAGEIF': 'AVERAGE', 'AVERAGEIFS': 'AVERAGE',
    'MAX': 'MAX', 'MIN': 'MIN',
}

# Branch values that turn an IF into a trigger
ACTION_WORDS = [
    'reorder', 'alert', 'notify', 'flag', 'warning', 'error',
    'pending', 'approved', 'rejected', 'escalate',
]

CRITERIA_OPERATORS = ['>=', '<=', '<>', '>', '<', '=']


def pattern_for(function_name: str) -> Optional[str]:
    return FUNCTION_PATTERNS.get(function_name.upper())


def is_action_word(value) -> bool:
    if not isinstance(value, str):
        return False
    words = value.lower().replace("_", " ").replace("-", " ").split()
    return any(word.strip("!.:") in ACTION_WORDS for word in words)
