"""
Formula parser producing an index-based AST arena

Nodes live in one flat list and refer to their children by index. The
parser is a shunting-yard over an explicit operator stack, so nesting
depth never touches the Python call stack; pathological formulas are
bounded by a node-count limit instead.
"""
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Tuple
import logging

from .tokenizer import FormulaTokenizer, Token, TokenKind
from ...errors import FormulaSyntaxError, FormulaTooComplexError

logger = logging.getLogger(__name__)


class NodeKind:
    CALL = "CALL"
    BINARY = "BINARY"
    UNARY = "UNARY"
    POSTFIX = "POSTFIX"
    REFERENCE = "REFERENCE"
    RANGE = "RANGE"
    LITERAL = "LITERAL"
    NAME = "NAME"


COMPARISON_OPERATORS = frozenset({"=", "<>", "<", ">", "<=", ">="})
ARITHMETIC_OPERATORS = frozenset({"+", "-", "*", "/", "^"})

_PRECEDENCE = {
    "=": 1, "<>": 1, "<": 1, ">": 1, "<=": 1, ">=": 1,
    "&": 2,
    "+": 3, "-": 3,
    "*": 4, "/": 4,
    "^": 5,
}
_UNARY_PRECEDENCE = 6


@dataclass
class FormulaNode:
    kind: str
    value: Any = None                            # Function name, operator, literal or reference text
    children: List[int] = field(default_factory=list)
    token: Optional[Token] = None


@dataclass
class FormulaAst:
    """Arena of nodes; `root` indexes the top-level expression"""
    formula: str
    nodes: List[FormulaNode]
    root: int
    tokens: List[Token]
    paren_depth: int

    def node(self, index: int) -> FormulaNode:
        return self.nodes[index]

    @property
    def root_node(self) -> FormulaNode:
        return self.nodes[self.root]

    def walk(self, start: Optional[int] = None) -> Iterator[int]:
        """Pre-order traversal (left to right) using an explicit stack"""
        stack = [self.root if start is None else start]
        while stack:
            index = stack.pop()
            yield index
            stack.extend(reversed(self.nodes[index].children))

    def calls(self) -> List[Tuple[int, str]]:
        """(index, upper-case name) of every function call in pre-order"""
        return [
            (i, str(self.nodes[i].value).upper())
            for i in self.walk()
            if self.nodes[i].kind == NodeKind.CALL
        ]

    @property
    def outer_function(self) -> Optional[str]:
        root = self.root_node
        return str(root.value).upper() if root.kind == NodeKind.CALL else None

    def references(self, start: Optional[int] = None) -> List[Token]:
        return [
            self.nodes[i].token
            for i in self.walk(start)
            if self.nodes[i].kind in (NodeKind.REFERENCE, NodeKind.RANGE)
        ]

    @property
    def cell_refs(self) -> List[str]:
        return [t.text for t in self.tokens if t.kind == TokenKind.CELL_REF]

    @property
    def range_refs(self) -> List[str]:
        return [t.text for t in self.tokens if t.kind == TokenKind.RANGE]

    @property
    def literals(self) -> List[Any]:
        return [
            self.nodes[i].value for i in self.walk()
            if self.nodes[i].kind == NodeKind.LITERAL and self.nodes[i].value is not None
        ]

    def has_operator(self, operators: frozenset, start: Optional[int] = None) -> bool:
        return any(
            self.nodes[i].kind in (NodeKind.BINARY, NodeKind.UNARY) and self.nodes[i].value in operators
            for i in self.walk(start)
        )


def max_paren_depth(formula: str) -> int:
    """Deepest parenthesis nesting, ignoring parentheses inside string literals"""
    depth = deepest = 0
    in_string = False
    for ch in formula:
        if ch == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif ch == "(":
            depth += 1
            deepest = max(deepest, depth)
        elif ch == ")":
            depth = max(0, depth - 1)
    return deepest


@dataclass
class _Frame:
    """Open parenthesis on the operator stack"""
    function: Optional[str]
    token: Token
    operand_mark: int
    args: int = 0


class FormulaParser:
    """Builds a FormulaAst from formula text"""

    def __init__(self, max_nodes: int = 500):
        self.max_nodes = max_nodes
        self.tokenizer = FormulaTokenizer()

    def parse(self, formula: str) -> FormulaAst:
        """
        Raises:
            FormulaSyntaxError: malformed formula
            FormulaTooComplexError: more nodes than max_nodes
        """
        tokens = self.tokenizer.tokenize(formula)
        if not tokens:
            raise FormulaSyntaxError(f"Empty formula '{formula}'")

        nodes: List[FormulaNode] = []
        operands: List[int] = []
        operators: List[Any] = []                # operator tuples and _Frame entries
        expect_operand = True

        def add(node: FormulaNode) -> int:
            if len(nodes) >= self.max_nodes:
                raise FormulaTooComplexError(
                    f"Formula exceeds {self.max_nodes} nodes: '{formula[:80]}'"
                )
            nodes.append(node)
            return len(nodes) - 1

        def reduce_operator(entry: Tuple[str, str, Token]) -> None:
            arity, symbol, token = entry
            if arity == "unary":
                if not operands:
                    raise FormulaSyntaxError(f"Missing operand for '{symbol}' in '{formula}'")
                operand = operands.pop()
                operands.append(add(FormulaNode(NodeKind.UNARY, symbol, [operand], token)))
                return
            if len(operands) < 2:
                raise FormulaSyntaxError(f"Missing operand for '{symbol}' in '{formula}'")
            right = operands.pop()
            left = operands.pop()
            operands.append(add(FormulaNode(NodeKind.BINARY, symbol, [left, right], token)))

        def reduce_until_frame() -> _Frame:
            while operators and not isinstance(operators[-1], _Frame):
                reduce_operator(operators.pop())
            if not operators:
                raise FormulaSyntaxError(f"Unbalanced parenthesis in '{formula}'")
            return operators[-1]

        def close_argument(frame: _Frame) -> None:
            if len(operands) == frame.operand_mark:
                operands.append(add(FormulaNode(NodeKind.LITERAL, None)))
            frame.args += 1
            frame.operand_mark = len(operands)

        pending_function: Optional[Token] = None
        for token in tokens:
            kind = token.kind

            if pending_function is not None and kind != TokenKind.LPAREN:
                raise FormulaSyntaxError(f"Function {pending_function.text} without '(' in '{formula}'")

            if kind in TokenKind.OPERANDS:
                if not expect_operand:
                    raise FormulaSyntaxError(f"Unexpected {token.text!r} in '{formula}'")
                operands.append(add(self._operand_node(token)))
                expect_operand = False

            elif kind == TokenKind.FUNCTION:
                if not expect_operand:
                    raise FormulaSyntaxError(f"Unexpected function {token.text} in '{formula}'")
                pending_function = token

            elif kind == TokenKind.LPAREN:
                if not expect_operand:
                    raise FormulaSyntaxError(f"Unexpected '(' in '{formula}'")
                name = pending_function.text if pending_function is not None else None
                operators.append(_Frame(name, pending_function or token, len(operands)))
                pending_function = None
                expect_operand = True

            elif kind == TokenKind.COMMA:
                frame = reduce_until_frame()
                if frame.function is None:
                    raise FormulaSyntaxError(f"Argument separator outside a function call in '{formula}'")
                close_argument(frame)
                expect_operand = True

            elif kind == TokenKind.RPAREN:
                frame = reduce_until_frame()
                operators.pop()
                if frame.function is None:
                    if len(operands) == frame.operand_mark:
                        raise FormulaSyntaxError(f"Empty parentheses in '{formula}'")
                else:
                    if len(operands) > frame.operand_mark or frame.args > 0:
                        close_argument(frame)
                    args = operands[len(operands) - frame.args:] if frame.args else []
                    del operands[len(operands) - len(args):]
                    name = frame.function.split(".")[-1] if frame.function.lower().startswith("_xl") else frame.function
                    operands.append(add(FormulaNode(NodeKind.CALL, name.upper(), args, frame.token)))
                expect_operand = False

            elif kind == TokenKind.OPERATOR:
                symbol = token.text
                if symbol == "%" and not expect_operand:
                    operand = operands.pop()
                    operands.append(add(FormulaNode(NodeKind.POSTFIX, "%", [operand], token)))
                    continue
                if expect_operand:
                    if symbol not in ("+", "-"):
                        raise FormulaSyntaxError(f"Unexpected operator {symbol!r} in '{formula}'")
                    operators.append(("unary", symbol, token))
                    continue
                precedence = _PRECEDENCE[symbol]
                while operators and not isinstance(operators[-1], _Frame):
                    arity, top, _ = operators[-1]
                    top_precedence = _UNARY_PRECEDENCE if arity == "unary" else _PRECEDENCE[top]
                    # '^' is right associative, everything else left associative
                    if top_precedence > precedence or (top_precedence == precedence and symbol != "^"):
                        reduce_operator(operators.pop())
                    else:
                        break
                operators.append(("binary", symbol, token))
                expect_operand = True

        if pending_function is not None:
            raise FormulaSyntaxError(f"Function {pending_function.text} without '(' in '{formula}'")

        while operators:
            entry = operators.pop()
            if isinstance(entry, _Frame):
                raise FormulaSyntaxError(f"Unbalanced parenthesis in '{formula}'")
            reduce_operator(entry)

        if len(operands) != 1:
            raise FormulaSyntaxError(f"Malformed expression '{formula}'")

        return FormulaAst(
            formula=formula,
            nodes=nodes,
            root=operands[0],
            tokens=tokens,
            paren_depth=max_paren_depth(formula),
        )

    @staticmethod
    def _operand_node(token: Token) -> FormulaNode:
        kind = token.kind
        if kind == TokenKind.CELL_REF:
            return FormulaNode(NodeKind.REFERENCE, token.text, token=token)
        if kind == TokenKind.RANGE:
            return FormulaNode(NodeKind.RANGE, token.text, token=token)
        if kind == TokenKind.STRING:
            return FormulaNode(NodeKind.LITERAL, token.string_value, token=token)
        if kind == TokenKind.NUMBER:
            number = float(token.text)
            return FormulaNode(NodeKind.LITERAL, int(number) if number.is_integer() else number, token=token)
        if kind == TokenKind.BOOLEAN:
            return FormulaNode(NodeKind.LITERAL, token.text.upper() == "TRUE", token=token)
        if kind == TokenKind.ERROR:
            return FormulaNode(NodeKind.LITERAL, token.text, token=token)
        return FormulaNode(NodeKind.NAME, token.text, token=token)
