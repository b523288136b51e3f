"""
Data models for analysis confidence and review warnings
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


class Severity:
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class AnalysisWarning:
    """Something a reviewer should look at before accepting the result"""
    severity: str
    message: str
    suggestion: str = ""
    entity: Optional[str] = None
    category: str = "general"


@dataclass(frozen=True)
class ConfidenceScore:
    """Overall confidence plus per-dimension scores"""
    overall: float
    structure: float
    entities: float
    relationships: float
    formulas: float
    warnings: List[AnalysisWarning] = field(default_factory=list)

    @property
    def dimensions(self) -> Dict[str, float]:
        return {
            'structure': self.structure,
            'entities': self.entities,
            'relationships': self.relationships,
            'formulas': self.formulas,
        }

    def warnings_by_severity(self, severity: str) -> List[AnalysisWarning]:
        return [w for w in self.warnings if w.severity == severity]
