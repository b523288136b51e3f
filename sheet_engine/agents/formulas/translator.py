"""
FormulaTranslator - turns spreadsheet formulas into automation rules
"""
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Tuple
import logging

from .models import (
    AutomationRule,
    RuleType,
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
from .parser import FormulaParser, FormulaAst, NodeKind, COMPARISON_OPERATORS, ARITHMETIC_OPERATORS, _PRECEDENCE
from .patterns import Pattern, pattern_for, is_action_word, AGGREGATE_OPERATIONS, CRITERIA_OPERATORS
from .resolver import SheetResolver
from .tokenizer import FormulaTokenizer, Token, TokenKind, parse_address, range_columns, column_letter
from ..architect.models import Entity
from ..classifier.models import ColumnMetadata
from ..loader.models import CellKind, RawSheet
from ..normalizer.naming import to_snake_case
from ..regions.models import DataRegion
from ...config import EngineConfig
from ...errors import FormulaSyntaxError
from ...observability import trace_agent

logger = logging.getLogger(__name__)

_NEGATED = {"<=": ">", ">=": "<", "<": ">=", ">": "<=", "=": "<>", "<>": "="}


@dataclass
class FormulaContext:
    """Where a formula lives and how its references map to fields"""
    entity: Entity
    sheet_name: str
    resolver: SheetResolver
    target_field: Optional[str] = None
    location: str = ""


def sheet_formula_cells(sheet: RawSheet, region: DataRegion) -> Iterator[Tuple[int, int, str, bool]]:
    """(row, col, formula, in_data_block) for every formula cell of the sheet"""
    for row, col, formula in sheet.formula_cells():
        in_block = region.data_start_row <= row <= region.data_end_row and region.start_col <= col <= region.end_col
        yield row, col, formula, in_block


class FormulaTranslator:
    """
    Formula Translator

    Parses a formula into an AST arena, picks the call that drives the rule
    (the outer call when recognised, else the first recognised nested call),
    and emits one AutomationRule. Unrecognised or unparseable formulas
    degrade to a generic FORMULA rule.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.thresholds = self.config.thresholds
        self.parser = FormulaParser(self.thresholds.max_formula_nodes)
        self.tokenizer = FormulaTokenizer()

    # Entry points

    def translate(self, formula_text: str, context: FormulaContext) -> Optional[AutomationRule]:
        """
        Translate one formula

        Args:
            formula_text: Formula with or without leading '='
            context: Owning entity, target field and reference resolver

        Returns:
            AutomationRule, or None for empty formula text
        """
        text = (formula_text or "").strip()
        if not text or text == "=":
            return None
        if not text.startswith("="):
            text = f"={text}"

        try:
            ast = self.parser.parse(text)
        except FormulaSyntaxError as e:
            logger.debug(f"Formula at {context.location} not parsed: {e}")
            return self._generic_rule(text, context, [], reason=str(e))

        driver, pattern = self._select_driver(ast)
        if pattern is None:
            deps = self._dependencies(ast, ast.root, context)
            return self._generic_rule(text, context, deps)

        rule_type, implementation, name, description = self._build(ast, driver, pattern, context)
        unresolved = sum(1 for token in self._references(ast, ast.root, context) if not self._is_resolved(token, context))
        excess_depth = max(0, ast.paren_depth - self.thresholds.nesting_free_depth)
        confidence = (
            1.0
            - self.thresholds.unresolved_reference_penalty * unresolved
            - self.thresholds.nesting_penalty * excess_depth
        )

        return AutomationRule(
            rule_id=self._rule_id(context),
            name=name,
            type=rule_type,
            entity=context.entity.entity_id,
            formula=text,
            location=context.location,
            confidence=max(0.0, min(1.0, confidence)),
            description=description,
            implementation=implementation,
            target_field=context.target_field,
            dependencies=self._dependencies(ast, ast.root, context),
            metadata={
                'pattern': pattern,
                'function': ast.node(driver).value if ast.node(driver).kind == NodeKind.CALL else None,
                'unresolved_references': unresolved,
                'nesting_depth': ast.paren_depth,
            },
        )

    @trace_agent("FormulaTranslator")
    def translate_table(self, sheet: RawSheet, entity: Entity, resolver: SheetResolver) -> List[AutomationRule]:
        """
        Translate every formula of an entity's sheet

        Dragged formulas (same relative shape down one column) are
        translated once and the rule records the covered range. Formulas
        outside the data rows (totals, summary cells) target a summary
        field named after their row label and column.
        """
        if entity.table is None:
            return []
        region = entity.table.table.region

        groups: "OrderedDict[Tuple[int, bool, str], List[Tuple[int, str]]]" = OrderedDict()
        for row, col, formula, in_block in sheet_formula_cells(sheet, region):
            key = (col, in_block, self.relative_shape(formula, row, col))
            groups.setdefault(key, []).append((row, formula))

        rules = []
        for (col, in_block, _), cells in groups.items():
            first_row, formula = cells[0]
            letter = column_letter(col)
            if in_block:
                target = entity.column_for_letter(letter)
                target_field = target.name if target else None
            else:
                target_field = self.summary_field(sheet, entity, first_row, col)
            context = FormulaContext(
                entity=entity,
                sheet_name=sheet.name,
                resolver=resolver,
                target_field=target_field,
                location=f"{sheet.name}!{letter}{first_row + 1}",
            )
            rule = self.translate(formula, context)
            if rule is None:
                continue
            rule = replace(rule, metadata={**rule.metadata, 'placement': 'record' if in_block else 'summary'})
            if len(cells) > 1:
                last_row = cells[-1][0]
                rule = replace(
                    rule,
                    applies_to=f"{sheet.name}!{letter}{first_row + 1}:{letter}{last_row + 1}",
                    metadata={**rule.metadata, 'occurrences': len(cells)},
                )
            rules.append(rule)

        if rules:
            logger.info(f"Translated {len(rules)} formula pattern(s) in '{sheet.name}'")
        return rules

    @staticmethod
    def summary_field(sheet: RawSheet, entity: Entity, row: int, col: int) -> str:
        """Field for a value computed outside the data rows: 'Total' under amount -> 'total_amount'"""
        column = entity.column_for_letter(column_letter(col))
        subject = column.name if column else column_letter(col).lower()
        label = next(
            (sheet.cell(row, c).text for c in range(col) if sheet.cell(row, c).kind == CellKind.STRING),
            "",
        )
        if not label:
            return f"{subject}_row_{row + 1}"
        return to_snake_case(f"{label} {subject}", fallback=subject)

    def relative_shape(self, formula: str, row: int, col: int) -> str:
        """Formula with relative references expressed as offsets from its cell"""
        try:
            tokens = self.tokenizer.tokenize(formula)
        except FormulaSyntaxError:
            return formula
        parts = []
        for token in tokens:
            if token.kind in TokenKind.REFERENCES:
                prefix = f"{token.sheet}!" if token.sheet else ""
                ends = [self._relative_address(end, row, col) for end in token.address.split(":")]
                parts.append(prefix + ":".join(ends))
            else:
                parts.append(token.text.upper())
        return " ".join(parts)

    @staticmethod
    def _relative_address(address: str, row: int, col: int) -> str:
        parsed = parse_address(address)
        if parsed is None:
            return address.upper()
        c = f"C{parsed.column}" if parsed.column_absolute else f"C[{parsed.column - col}]"
        r = f"R{parsed.row}" if parsed.row_absolute else f"R[{parsed.row - 1 - row}]"
        return r + c

    # Driver selection

    def _select_driver(self, ast: FormulaAst) -> Tuple[int, Optional[str]]:
        root = ast.root_node
        if root.kind == NodeKind.CALL:
            pattern = self._recognise(ast, ast.root)
            if pattern is not None:
                return ast.root, pattern

        for index, _ in ast.calls():
            if index == ast.root:
                continue
            pattern = self._recognise(ast, index)
            if pattern is not None and pattern != Pattern.LOGICAL:
                return index, pattern

        if root.kind == NodeKind.BINARY and root.value in COMPARISON_OPERATORS:
            return ast.root, Pattern.LOGICAL
        if ast.has_operator(ARITHMETIC_OPERATORS) or any(
            ast.node(i).kind == NodeKind.POSTFIX for i in ast.walk()
        ):
            return ast.root, "MATH"
        if ast.has_operator(frozenset({"&"})):
            return ast.root, Pattern.CONCAT
        return ast.root, None

    @staticmethod
    def _recognise(ast: FormulaAst, index: int) -> Optional[str]:
        node = ast.node(index)
        name = str(node.value).upper()
        if name == "INDEX":
            if len(node.children) >= 2:
                match = ast.node(node.children[1])
                if match.kind == NodeKind.CALL and str(match.value).upper() == "MATCH":
                    return Pattern.LOOKUP
            return None
        return pattern_for(name)

    def _build(self, ast: FormulaAst, driver: int, pattern: str, ctx: FormulaContext):
        if pattern == Pattern.CONDITIONAL:
            return self._build_conditional(ast, driver, ctx)
        if pattern == Pattern.CONDITIONAL_AGGREGATE:
            return self._build_conditional_aggregate(ast, driver, ctx)
        if pattern == Pattern.AGGREGATE:
            return self._build_aggregate(ast, driver, ctx)
        if pattern == Pattern.LOOKUP:
            return self._build_lookup(ast, driver, ctx)
        if pattern == Pattern.LOGICAL:
            return self._build_validation(ast, ctx)
        operation = {Pattern.CONCAT: "CONCAT", Pattern.DATE: "DATE"}.get(pattern, "MATH")
        return self._build_computed(ast, ctx, operation)

    # Builders

    def _build_conditional(self, ast: FormulaAst, index: int, ctx: FormulaContext):
        node = ast.node(index)
        args = node.children
        target = ctx.target_field

        if node.value == "IFS":
            pairs = [(args[i], args[i + 1]) for i in range(0, len(args) - 1, 2)]
            default_index = None
        else:
            pairs = [(args[0], args[1] if len(args) > 1 else None)] if args else []
            default_index = args[2] if len(args) > 2 else None

        cases = [
            ConditionalCase(self._condition(ast, cond, ctx), self._operand(ast, value, ctx) if value is not None else Operand(value=True))
            for cond, value in pairs
        ]
        default = self._operand(ast, default_index, ctx) if default_index is not None else None

        for case in cases:
            if is_action_word(case.value.value):
                return self._trigger(case.condition, case.value, default, ctx)
        if default is not None and is_action_word(default.value) and len(cases) == 1:
            return self._trigger(self._negate(cases[0].condition), default, cases[0].value, ctx)

        expression = self._render(ast, ast.root, ctx)
        implementation = ComputedFieldImplementation(
            target_field=target,
            operation="CONDITIONAL",
            expression=expression,
            dependencies=self._dependencies(ast, ast.root, ctx),
            cases=cases,
            default=default,
        )
        description = "; ".join(
            f"when {c.condition.render()} then {c.value.render()}" for c in cases
        )
        if default is not None:
            description += f"; otherwise {default.render()}"
        return (
            RuleType.COMPUTED_FIELD,
            implementation,
            f"Conditional {target or 'value'}",
            f"{target or 'Value'}: {description}",
        )

    def _trigger(self, condition: Condition, value: Operand, otherwise: Optional[Operand], ctx: FormulaContext):
        target = ctx.target_field
        message = f"{ctx.entity.name} {target or 'record'} is {value.render()} because {condition.render()}"
        actions = [
            TriggerAction(action="SET_FIELD", field=target, value=value.value if value.field is None else value.field),
            TriggerAction(action="NOTIFY", message=message),
        ]
        else_actions = []
        if otherwise is not None:
            else_actions.append(
                TriggerAction(
                    action="SET_FIELD",
                    field=target,
                    value=otherwise.value if otherwise.field is None else otherwise.field,
                )
            )
        implementation = TriggerImplementation(condition=condition, actions=actions, else_actions=else_actions)
        label = value.value if isinstance(value.value, str) else value.render()
        return (
            RuleType.TRIGGER,
            implementation,
            f"{str(label).title()} trigger on {target or ctx.entity.name}",
            f"When {condition.render()}, set {target or 'the record'} to {value.render()} and notify",
        )

    def _build_conditional_aggregate(self, ast: FormulaAst, index: int, ctx: FormulaContext):
        node = ast.node(index)
        name = str(node.value)
        args = node.children
        operation = AGGREGATE_OPERATIONS[name]

        if name in ("SUMIF", "AVERAGEIF"):
            criteria_pairs = [(args[0], args[1])] if len(args) >= 2 else []
            value_range = args[2] if len(args) > 2 else (args[0] if args else None)
        elif name == "COUNTIF":
            criteria_pairs = [(args[0], args[1])] if len(args) >= 2 else []
            value_range = None
        elif name == "COUNTIFS":
            criteria_pairs = [(args[i], args[i + 1]) for i in range(0, len(args) - 1, 2)]
            value_range = None
        else:
            criteria_pairs = [(args[i], args[i + 1]) for i in range(1, len(args) - 1, 2)]
            value_range = args[0] if args else None

        filters = []
        source_entity: Optional[Entity] = None
        for range_index, criteria_index in criteria_pairs:
            entity, column = self._locate_node(ast, range_index, ctx)
            source_entity = source_entity or entity
            operator, value = self._criteria(ast, criteria_index, ctx)
            filters.append(AggregateFilter(field=column.name if column else None, operator=operator, value=value))

        source_field = None
        if value_range is not None:
            entity, column = self._locate_node(ast, value_range, ctx)
            source_entity = entity or source_entity
            source_field = column.name if column else None

        implementation = AggregateImplementation(
            operation=operation,
            source_entity=source_entity.entity_id if source_entity else None,
            source_field=source_field,
            result_field=ctx.target_field,
            filters=filters,
        )
        over = f"{source_entity.entity_id if source_entity else 'records'}"
        condition_text = " and ".join(f"{f.field} {f.operator} {f.value.render()}" for f in filters)
        subject = f"{operation} of {source_field}" if source_field else operation
        return (
            RuleType.AGGREGATE,
            implementation,
            f"{operation.title()} {over} by condition",
            f"{ctx.target_field or 'Result'} = {subject} over {over} where {condition_text or 'all rows'}",
        )

    def _build_aggregate(self, ast: FormulaAst, index: int, ctx: FormulaContext):
        node = ast.node(index)
        operation = AGGREGATE_OPERATIONS[str(node.value)]

        for child in node.children:
            child_node = ast.node(child)
            if child_node.token is None:
                continue
            token = ctx.resolver.expand(child_node.token, ctx.sheet_name)
            if token.kind != TokenKind.RANGE:
                continue
            columns = range_columns(token.address)
            if columns is None or columns[0] != columns[1]:
                continue
            entity, column = self._locate_node(ast, child, ctx)
            implementation = AggregateImplementation(
                operation=operation,
                source_entity=entity.entity_id if entity else None,
                source_field=column.name if column else None,
                result_field=ctx.target_field,
            )
            source = column.name if column else child_node.token.text
            over = entity.entity_id if entity else "records"
            return (
                RuleType.AGGREGATE,
                implementation,
                f"{operation.title()} of {source}",
                f"{ctx.target_field or 'Result'} = {operation} of {source} over all {over}",
            )

        return self._build_computed(ast, ctx, "ROW_AGGREGATE")

    def _build_lookup(self, ast: FormulaAst, index: int, ctx: FormulaContext):
        node = ast.node(index)
        name = str(node.value)
        args = node.children

        lookup_field = None
        target: Optional[Entity] = None
        target_sheet = None
        target_column: Optional[ColumnMetadata] = None
        key_column: Optional[ColumnMetadata] = None
        column_index: Optional[int] = None
        exact = True
        function = name

        if name in ("VLOOKUP", "HLOOKUP") and len(args) >= 3:
            lookup_field = self._operand(ast, args[0], ctx).render()
            target, target_sheet, start = self._range_target(ast, args[1], ctx)
            index_node = ast.node(args[2])
            if index_node.kind == NodeKind.LITERAL and isinstance(index_node.value, (int, float)):
                column_index = int(index_node.value)
            if name == "VLOOKUP" and target is not None and start is not None:
                key_column = SheetResolver.column_at(target, start)
                if column_index is not None:
                    target_column = SheetResolver.column_at(target, start + column_index - 1)
            exact = False
            if len(args) > 3:
                flag = ast.node(args[3])
                exact = flag.kind == NodeKind.LITERAL and flag.value in (False, 0)

        elif name == "XLOOKUP" and len(args) >= 3:
            lookup_field = self._operand(ast, args[0], ctx).render()
            target, target_sheet, key_start = self._range_target(ast, args[1], ctx)
            _, _, return_start = self._range_target(ast, args[2], ctx)
            if target is not None:
                key_column = SheetResolver.column_at(target, key_start) if key_start is not None else None
                if return_start is not None:
                    target_column = SheetResolver.column_at(target, return_start)
                    column_index = return_start - target.table.table.region.start_col + 1 if target.table else None

        elif name == "INDEX" and len(args) >= 2:
            function = "INDEX_MATCH"
            match = ast.node(args[1])
            target, target_sheet, return_start = self._range_target(ast, args[0], ctx)
            if match.children:
                lookup_field = self._operand(ast, match.children[0], ctx).render()
            if len(match.children) > 1 and target is not None:
                _, _, key_start = self._range_target(ast, match.children[1], ctx)
                key_column = SheetResolver.column_at(target, key_start) if key_start is not None else None
            if len(match.children) > 2:
                match_type = ast.node(match.children[2])
                exact = match_type.kind == NodeKind.LITERAL and match_type.value == 0
            if target is not None and return_start is not None:
                target_column = SheetResolver.column_at(target, return_start)
                column_index = return_start - target.table.table.region.start_col + 1 if target.table else None

        post_expression = None
        if index != ast.root:
            post_expression = self._render(ast, ast.root, ctx, {index: f"LOOKUP({lookup_field})"})

        implementation = LookupImplementation(
            function=function,
            lookup_field=lookup_field,
            target_entity=target.entity_id if target else None,
            target_sheet=target_sheet,
            target_column_index=column_index,
            target_column=target_column.name if target_column else None,
            destination_field=ctx.target_field,
            exact_match=exact,
            key_column=key_column.name if key_column else None,
            post_expression=post_expression,
        )
        target_name = target.entity_id if target else (target_sheet or "unknown")
        returned = target_column.name if target_column else f"column {column_index}"
        description = f"Look up {returned} from {target_name} by {lookup_field}"
        if post_expression:
            description += f", then {ctx.target_field or 'result'} = {post_expression}"
        return (
            RuleType.LOOKUP,
            implementation,
            f"Lookup {returned} from {target_name}",
            description,
        )

    def _build_validation(self, ast: FormulaAst, ctx: FormulaContext):
        expression = self._render(ast, ast.root, ctx)
        implementation = ValidationImplementation(
            target_field=ctx.target_field,
            expression=expression,
            dependencies=self._dependencies(ast, ast.root, ctx),
        )
        return (
            RuleType.VALIDATION,
            implementation,
            f"Validate {ctx.target_field or ctx.entity.name}",
            f"{ctx.target_field or 'Check'} holds when {expression}",
        )

    def _build_computed(self, ast: FormulaAst, ctx: FormulaContext, operation: str):
        expression = self._render(ast, ast.root, ctx)
        implementation = ComputedFieldImplementation(
            target_field=ctx.target_field,
            operation=operation,
            expression=expression,
            dependencies=self._dependencies(ast, ast.root, ctx),
        )
        return (
            RuleType.COMPUTED_FIELD,
            implementation,
            f"Compute {ctx.target_field or 'value'}",
            f"{ctx.target_field or 'Value'} = {expression}",
        )

    def _generic_rule(self, text: str, ctx: FormulaContext, dependencies: List[str], reason: str = "unrecognized pattern") -> AutomationRule:
        return AutomationRule(
            rule_id=self._rule_id(ctx),
            name=f"Formula in {ctx.location or ctx.entity.name}",
            type=RuleType.FORMULA,
            entity=ctx.entity.entity_id,
            formula=text,
            location=ctx.location,
            confidence=self.thresholds.generic_formula_confidence,
            description=f"Formula kept for manual review: {text}",
            implementation=FormulaImplementation(formula=text, dependencies=dependencies, reason=reason),
            target_field=ctx.target_field,
            dependencies=dependencies,
            metadata={'pattern': None},
        )

    @staticmethod
    def _rule_id(ctx: FormulaContext) -> str:
        cell = ctx.location.rsplit("!", 1)[-1].lower() if ctx.location else (ctx.target_field or "formula")
        return f"rule_{ctx.entity.entity_id}_{cell}"

    # Operands and references

    def _locate(self, token: Token, ctx: FormulaContext) -> Tuple[Optional[Entity], Optional[ColumnMetadata]]:
        """Entity and column a reference token points at"""
        token = ctx.resolver.expand(token, ctx.sheet_name)
        if token.kind not in TokenKind.REFERENCES:
            return None, None
        sheet = token.sheet
        if sheet is None or sheet == ctx.sheet_name:
            entity = ctx.entity
        else:
            entity = ctx.resolver.resolve(sheet)
        if entity is None:
            return None, None

        if token.kind == TokenKind.CELL_REF:
            address = parse_address(token.address)
            if address is None:
                return entity, None
            if entity.table is not None:
                region = entity.table.table.region
                if not region.data_start_row + 1 <= address.row <= region.data_end_row + 1:
                    return entity, None
            return entity, SheetResolver.column_at(entity, address.column)

        columns = range_columns(token.address)
        if columns is None:
            return entity, None
        return entity, SheetResolver.column_at(entity, columns[0])

    def _locate_node(self, ast: FormulaAst, index: int, ctx: FormulaContext):
        node = ast.node(index)
        if node.kind not in (NodeKind.REFERENCE, NodeKind.RANGE, NodeKind.NAME):
            return None, None
        return self._locate(node.token, ctx)

    def _range_target(self, ast: FormulaAst, index: int, ctx: FormulaContext):
        """(entity, sheet name, first 0-based column) of a range operand"""
        node = ast.node(index)
        if node.kind not in (NodeKind.REFERENCE, NodeKind.RANGE, NodeKind.NAME):
            return None, None, None
        token = ctx.resolver.expand(node.token, ctx.sheet_name)
        if token.kind not in TokenKind.REFERENCES:
            return None, None, None
        sheet = token.sheet or ctx.sheet_name
        entity, _ = self._locate(token, ctx)
        if token.kind == TokenKind.RANGE:
            columns = range_columns(token.address)
            start = columns[0] if columns else None
        else:
            address = parse_address(token.address)
            start = address.column if address else None
        return entity, sheet, start

    def _is_resolved(self, token: Token, ctx: FormulaContext) -> bool:
        entity, column = self._locate(token, ctx)
        return entity is not None and column is not None

    def _field_name(self, token: Token, ctx: FormulaContext) -> Optional[str]:
        entity, column = self._locate(token, ctx)
        if entity is None or column is None:
            return None
        if entity.entity_id == ctx.entity.entity_id:
            return column.name
        return f"{entity.entity_id}.{column.name}"

    def _operand(self, ast: FormulaAst, index: int, ctx: FormulaContext) -> Operand:
        node = ast.node(index)
        if node.kind == NodeKind.LITERAL:
            return Operand(value=node.value)
        if node.kind in (NodeKind.REFERENCE, NodeKind.RANGE) or (
            node.kind == NodeKind.NAME and ctx.resolver.is_defined_name(node.token)
        ):
            name = self._field_name(node.token, ctx)
            if name is None:
                return Operand(reference=node.token.text)
            return Operand(field=name)
        return Operand(expression=self._render(ast, index, ctx))

    def _condition(self, ast: FormulaAst, index: int, ctx: FormulaContext) -> Condition:
        node = ast.node(index)
        if node.kind == NodeKind.BINARY and node.value in COMPARISON_OPERATORS:
            left, right = node.children
            return Condition(self._operand(ast, left, ctx), node.value, self._operand(ast, right, ctx))
        return Condition(self._operand(ast, index, ctx), "IS_TRUE")

    @staticmethod
    def _negate(condition: Condition) -> Condition:
        if condition.right is not None and condition.operator in _NEGATED:
            return Condition(condition.left, _NEGATED[condition.operator], condition.right)
        return Condition(Operand(expression=f"NOT({condition.left.render()})"), "IS_TRUE")

    def _criteria(self, ast: FormulaAst, index: int, ctx: FormulaContext) -> Tuple[str, Operand]:
        """Operator and value of a SUMIF-style criteria argument"""
        node = ast.node(index)
        if node.kind == NodeKind.LITERAL and isinstance(node.value, str):
            text = node.value
            for op in CRITERIA_OPERATORS:
                if text.startswith(op):
                    return op, Operand(value=_number_or_text(text[len(op):]))
            return "=", Operand(value=_number_or_text(text))
        if node.kind == NodeKind.BINARY and node.value == "&":
            left, right = (ast.node(c) for c in node.children)
            if left.kind == NodeKind.LITERAL and isinstance(left.value, str) and left.value in CRITERIA_OPERATORS:
                return left.value, self._operand(ast, node.children[1], ctx)
        return "=", self._operand(ast, index, ctx)

    def _references(self, ast: FormulaAst, start: int, ctx: FormulaContext) -> List[Token]:
        """Reference tokens under start, defined names included"""
        return [
            ast.node(i).token
            for i in ast.walk(start)
            if ast.node(i).kind in (NodeKind.REFERENCE, NodeKind.RANGE)
            or (ast.node(i).kind == NodeKind.NAME and ctx.resolver.is_defined_name(ast.node(i).token))
        ]

    def _dependencies(self, ast: FormulaAst, start: int, ctx: FormulaContext) -> List[str]:
        deps: List[str] = []
        for token in self._references(ast, start, ctx):
            name = self._field_name(token, ctx)
            if name and name not in deps:
                deps.append(name)
        return deps

    def _render(self, ast: FormulaAst, start: int, ctx: FormulaContext, overrides: Optional[Dict[int, str]] = None) -> str:
        """Expression text with references replaced by field names (iterative post-order)"""
        overrides = overrides or {}
        rendered: Dict[int, str] = {}
        stack: List[Tuple[int, bool]] = [(start, False)]
        while stack:
            index, expanded = stack.pop()
            node = ast.node(index)
            if index in overrides:
                rendered[index] = overrides[index]
                continue
            if not expanded and node.children:
                stack.append((index, True))
                stack.extend((child, False) for child in reversed(node.children))
                continue
            rendered[index] = self._render_node(ast, index, rendered, ctx)
        return rendered[start]

    def _render_node(self, ast: FormulaAst, index: int, rendered: Dict[int, str], ctx: FormulaContext) -> str:
        node = ast.node(index)
        kind = node.kind
        if kind == NodeKind.LITERAL:
            if node.value is None:
                return ""
            if isinstance(node.value, bool):
                return "TRUE" if node.value else "FALSE"
            if isinstance(node.value, str):
                return f'"{node.value}"'
            return str(node.value)
        if kind in (NodeKind.REFERENCE, NodeKind.RANGE):
            return self._field_name(node.token, ctx) or node.token.text
        if kind == NodeKind.NAME:
            return self._field_name(node.token, ctx) or str(node.value)
        if kind == NodeKind.CALL:
            return f"{node.value}({', '.join(rendered[c] for c in node.children)})"
        if kind == NodeKind.UNARY:
            child = node.children[0]
            text = rendered[child]
            if ast.node(child).kind == NodeKind.BINARY:
                text = f"({text})"
            return f"{node.value}{text}"
        if kind == NodeKind.POSTFIX:
            return f"{rendered[node.children[0]]}%"

        left, right = node.children
        precedence = _PRECEDENCE[node.value]
        left_text, right_text = rendered[left], rendered[right]
        left_node, right_node = ast.node(left), ast.node(right)
        if left_node.kind == NodeKind.BINARY and _PRECEDENCE[left_node.value] < precedence:
            left_text = f"({left_text})"
        if right_node.kind == NodeKind.BINARY and (
            _PRECEDENCE[right_node.value] < precedence
            or (_PRECEDENCE[right_node.value] == precedence and node.value in ("-", "/"))
        ):
            right_text = f"({right_text})"
        return f"{left_text} {node.value} {right_text}"


def _number_or_text(text: str):
    try:
        number = float(text)
    except ValueError:
        return text
    return int(number) if number.is_integer() else number
