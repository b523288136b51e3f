"""
Sheet name, defined name and cell reference resolution against extracted entities
"""
from typing import Dict, List, Optional
import logging

from rapidfuzz import fuzz, process

from .tokenizer import Token, TokenKind, column_letter
from ..architect.models import Entity
from ..classifier.models import ColumnMetadata
from ..loader.models import NamedRange
from ..normalizer.naming import to_snake_case

logger = logging.getLogger(__name__)


class SheetResolver:
    """
    Maps sheet names found in formulas to entities: exact name,
    case-insensitive name, snake_case table name, then fuzzy match.
    Defined names expand to the sheet range they stand for.
    """

    def __init__(
        self,
        entities: List[Entity],
        fuzzy_cutoff: float = 85.0,
        named_ranges: Optional[List[NamedRange]] = None,
    ):
        self.entities = list(entities)
        self.fuzzy_cutoff = fuzzy_cutoff
        self._by_sheet: Dict[str, Entity] = {e.source_sheet: e for e in self.entities}
        self._by_folded: Dict[str, Entity] = {e.source_sheet.casefold(): e for e in self.entities}
        self._by_table: Dict[str, Entity] = {e.table_name: e for e in self.entities}
        self._names: Dict[str, List[NamedRange]] = {}
        for named in named_ranges or []:
            if named.sheet and named.reference:
                self._names.setdefault(named.name.casefold(), []).append(named)

    def resolve(self, sheet_name: Optional[str]) -> Optional[Entity]:
        if not sheet_name:
            return None
        if sheet_name in self._by_sheet:
            return self._by_sheet[sheet_name]
        if sheet_name.casefold() in self._by_folded:
            return self._by_folded[sheet_name.casefold()]
        table = to_snake_case(sheet_name, fallback="")
        if table in self._by_table:
            return self._by_table[table]

        if not self._by_sheet:
            return None
        match = process.extractOne(
            sheet_name,
            list(self._by_sheet),
            scorer=fuzz.ratio,
            score_cutoff=self.fuzzy_cutoff,
        )
        if match is None:
            logger.debug(f"Sheet '{sheet_name}' does not match any entity")
            return None
        logger.debug(f"Sheet '{sheet_name}' fuzzy-matched '{match[0]}' ({match[1]:.0f})")
        return self._by_sheet[match[0]]

    def expand(self, token: Token, sheet_name: Optional[str] = None) -> Token:
        """
        Replace a defined-name token with the sheet-qualified reference it names

        Names are case-insensitive; a name scoped to sheet_name wins over
        one defined elsewhere. Only the first area of a multi-area name is
        used. Any other token is returned unchanged.
        """
        if token.kind != TokenKind.IDENTIFIER:
            return token
        candidates = self._names.get(token.text.casefold())
        if not candidates:
            return token
        named = next((n for n in candidates if n.sheet == sheet_name), candidates[0])
        reference = named.reference.split(",")[0].strip()
        kind = TokenKind.RANGE if ":" in reference else TokenKind.CELL_REF
        quoted = named.sheet.replace("'", "''")
        return Token(kind, f"'{quoted}'!{reference}", token.position)

    def is_defined_name(self, token: Token) -> bool:
        return token.kind == TokenKind.IDENTIFIER and token.text.casefold() in self._names

    @staticmethod
    def column_at(entity: Entity, column: int) -> Optional[ColumnMetadata]:
        """Entity column at a 0-based sheet column index"""
        return entity.column_for_letter(column_letter(column))
