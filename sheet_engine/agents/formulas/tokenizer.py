"""
Formula tokenizer
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging

from ...errors import FormulaSyntaxError

logger = logging.getLogger(__name__)


class TokenKind:
    FUNCTION = "FUNCTION"
    RANGE = "RANGE"
    CELL_REF = "CELL_REF"
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    ERROR = "ERROR"
    IDENTIFIER = "IDENTIFIER"
    OPERATOR = "OPERATOR"
    COMMA = "COMMA"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"

    OPERANDS = frozenset({RANGE, CELL_REF, STRING, NUMBER, BOOLEAN, ERROR, IDENTIFIER})
    REFERENCES = frozenset({RANGE, CELL_REF})


_SHEET = r"(?:'(?:[^']|'')+'|[A-Za-z_][\w.]*)!"
_COL = r"\$?[A-Za-z]{1,3}"
_ROW = r"\$?\d+"

# Earlier entries win ties between matches of equal length
_TOKEN_PATTERNS: List[Tuple[str, re.Pattern]] = [
    (TokenKind.FUNCTION, re.compile(r"[A-Za-z_][A-Za-z0-9_.]*(?=\s*\()")),
    (TokenKind.RANGE, re.compile(
        rf"(?:{_SHEET})?(?:{_COL}{_ROW}:{_COL}{_ROW}|{_COL}:{_COL}|{_ROW}:{_ROW})(?![\w(])"
    )),
    (TokenKind.CELL_REF, re.compile(rf"(?:{_SHEET})?{_COL}{_ROW}(?![\w(])")),
    (TokenKind.STRING, re.compile(r'"(?:[^"]|"")*"')),
    (TokenKind.NUMBER, re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")),
    (TokenKind.BOOLEAN, re.compile(r"(?:TRUE|FALSE)(?![\w(])", re.IGNORECASE)),
    (TokenKind.ERROR, re.compile(r"#(?:NULL!|DIV/0!|VALUE!|REF!|NAME\?|NUM!|N/A)")),
    (TokenKind.IDENTIFIER, re.compile(rf"(?:{_SHEET})?[A-Za-z_\\][\w.]*")),
    (TokenKind.OPERATOR, re.compile(r"<=|>=|<>|[-+*/^&=<>%]")),
    (TokenKind.COMMA, re.compile(r"[,;]")),
    (TokenKind.LPAREN, re.compile(r"\(")),
    (TokenKind.RPAREN, re.compile(r"\)")),
]

_WHITESPACE = re.compile(r"\s+")
_REF_PARTS = re.compile(r"^(\$?)([A-Za-z]{1,3})(\$?)(\d+)$")


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int

    @property
    def sheet(self) -> Optional[str]:
        """Sheet qualifier of a reference token ('Products' for Products!A:D)"""
        if "!" not in self.text:
            return None
        sheet = self.text.rsplit("!", 1)[0]
        if sheet.startswith("'") and sheet.endswith("'"):
            sheet = sheet[1:-1].replace("''", "'")
        return sheet

    @property
    def address(self) -> str:
        """Reference without its sheet qualifier"""
        return self.text.rsplit("!", 1)[-1]

    @property
    def string_value(self) -> str:
        return self.text[1:-1].replace('""', '"')


@dataclass(frozen=True)
class CellAddress:
    """Parsed A1 reference: 0-based column, 1-based row and absolute flags"""
    column: int
    row: int
    column_absolute: bool = False
    row_absolute: bool = False

    @property
    def letter(self) -> str:
        return column_letter(self.column)


def column_index(letters: str) -> int:
    """'A' -> 0, 'AA' -> 26"""
    index = 0
    for ch in letters.upper():
        index = index * 26 + (ord(ch) - ord('A') + 1)
    return index - 1


def column_letter(index: int) -> str:
    letters = ""
    index += 1
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord('A') + rem) + letters
    return letters


def parse_address(address: str) -> Optional[CellAddress]:
    match = _REF_PARTS.match(address)
    if not match:
        return None
    col_abs, letters, row_abs, row = match.groups()
    return CellAddress(column_index(letters), int(row), bool(col_abs), bool(row_abs))


def range_columns(address: str) -> Optional[Tuple[int, int]]:
    """(first, last) 0-based columns of a range address; None for row ranges"""
    start, _, end = address.partition(":")
    first = re.sub(r"[\$\d]", "", start)
    last = re.sub(r"[\$\d]", "", end)
    if not first or not last:
        return None
    return column_index(first), column_index(last)


class FormulaTokenizer:
    """Longest-match tokenizer over the formula token classes"""

    def tokenize(self, formula: str) -> List[Token]:
        """
        Args:
            formula: Formula text with or without the leading '='

        Returns:
            Tokens in source order, whitespace skipped

        Raises:
            FormulaSyntaxError: a character no token class accepts
        """
        text = formula.strip()
        if text.startswith("="):
            text = text[1:]

        tokens: List[Token] = []
        pos = 0
        while pos < len(text):
            ws = _WHITESPACE.match(text, pos)
            if ws:
                pos = ws.end()
                continue

            best_kind, best_end = None, pos
            for kind, pattern in _TOKEN_PATTERNS:
                match = pattern.match(text, pos)
                if match and match.end() > best_end:
                    best_kind, best_end = kind, match.end()

            if best_kind is None:
                raise FormulaSyntaxError(f"Unexpected character {text[pos]!r} at {pos} in '{formula}'")

            tokens.append(Token(best_kind, text[pos:best_end], pos))
            pos = best_end

        return tokens
