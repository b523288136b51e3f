"""
Result graph of one analysis run
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .agents.architect.models import Entity, Relationship
from .agents.classifier.models import ClassifiedTable
from .agents.formulas.models import AutomationRule
from .agents.loader.models import NamedRange
from .agents.regions.models import DataRegion
from .agents.validator.models import ConfidenceScore


@dataclass
class SheetAnalysis:
    """Per-sheet output of the region -> normalize -> classify fan-out"""
    sheet_name: str
    sheet_index: int
    regions: List[DataRegion] = field(default_factory=list)
    table: Optional[ClassifiedTable] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def primary_region(self) -> Optional[DataRegion]:
        return self.regions[0] if self.regions else None


@dataclass
class AnalysisResult:
    """Everything inferred from one spreadsheet; treated as immutable once returned"""
    source_file: str
    file_format: str
    entities: List[Entity]
    relationships: List[Relationship]
    rules: List[AutomationRule]
    confidence: ConfidenceScore
    regions: Dict[str, List[DataRegion]] = field(default_factory=dict)
    named_ranges: List[NamedRange] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_seconds: float = 0.0

    def entity(self, entity_id: str) -> Optional[Entity]:
        for e in self.entities:
            if e.entity_id == entity_id:
                return e
        return None

    def rules_for(self, entity_id: str) -> List[AutomationRule]:
        return [r for r in self.rules if r.entity == entity_id]
