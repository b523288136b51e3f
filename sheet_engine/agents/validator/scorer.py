"""
ValidationScorer - aggregates per-stage confidence and collects warnings
"""
from typing import Dict, List, Optional
import logging

import networkx as nx

from .models import AnalysisWarning, ConfidenceScore, Severity
from ..architect.models import Entity, Relationship
from ..formulas.models import AutomationRule, RuleType
from ..regions.models import DataRegion
from ...config import EngineConfig
from ...observability import trace_agent

logger = logging.getLogger(__name__)


def _mean(values: List[float], default: float) -> float:
    return sum(values) / len(values) if values else default


class ValidationScorer:
    """
    Confidence Scorer

        overall = 0.3 x structure + 0.4 x entities + 0.3 x relationships

    structure is the mean region quality, entities the mean entity
    confidence and relationships the mean relationship confidence (neutral
    when there are none). The formulas dimension is reported separately.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.thresholds = self.config.thresholds

    @trace_agent("ValidationScorer")
    def score(
        self,
        entities: List[Entity],
        relationships: List[Relationship],
        rules: List[AutomationRule],
        regions: List[DataRegion],
        region_counts: Optional[Dict[str, int]] = None,
        pipeline_warnings: Optional[List[str]] = None,
    ) -> ConfidenceScore:
        """
        Score an analysis run

        Args:
            entities: Extracted entities
            relationships: Accepted relationships
            rules: Translated automation rules
            regions: Primary region of every analysed sheet
            region_counts: Number of regions detected per sheet name
            pipeline_warnings: Messages from earlier stages (skipped sheets etc.)

        Returns:
            ConfidenceScore with warnings ordered HIGH, MEDIUM, LOW
        """
        t = self.thresholds
        neutral = t.neutral_relationship_score

        structure = _mean([r.quality_score for r in regions], 0.0)
        entity_score = _mean([e.confidence for e in entities], 0.0)
        relationship_score = _mean([r.confidence for r in relationships], neutral)
        formula_score = _mean([r.confidence for r in rules], neutral)

        overall = (
            t.structure_weight * structure
            + t.entity_weight * entity_score
            + t.relationship_score_weight * relationship_score
        )

        warnings = (
            self._entity_warnings(entities)
            + self._region_warnings(region_counts or {})
            + [AnalysisWarning(Severity.MEDIUM, message, category="pipeline") for message in pipeline_warnings or []]
            + self._isolation_warnings(entities, relationships)
            + self._low_confidence_warnings(entities, relationships)
            + self._rule_warnings(rules)
        )
        order = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}
        warnings.sort(key=lambda w: order[w.severity])

        logger.info(
            f"Confidence {overall:.2f} (structure={structure:.2f}, entities={entity_score:.2f}, "
            f"relationships={relationship_score:.2f}) with {len(warnings)} warning(s)"
        )

        return ConfidenceScore(
            overall=max(0.0, min(1.0, overall)),
            structure=structure,
            entities=entity_score,
            relationships=relationship_score,
            formulas=formula_score,
            warnings=warnings,
        )

    def _entity_warnings(self, entities: List[Entity]) -> List[AnalysisWarning]:
        return [
            AnalysisWarning(
                Severity.HIGH,
                f"Entity '{e.name}' has no primary key",
                "Choose a unique column as the key or add an auto-increment id",
                entity=e.entity_id,
                category="primary_key",
            )
            for e in entities
            if e.primary_key is None
        ]

    def _region_warnings(self, region_counts: Dict[str, int]) -> List[AnalysisWarning]:
        return [
            AnalysisWarning(
                Severity.MEDIUM,
                f"Sheet '{sheet}' contains {count} tables; only the primary one was analysed",
                "Move additional tables to their own sheets",
                category="regions",
            )
            for sheet, count in region_counts.items()
            if count > 1
        ]

    def _isolation_warnings(self, entities: List[Entity], relationships: List[Relationship]) -> List[AnalysisWarning]:
        if len(entities) < 3:
            return []

        graph = nx.Graph()
        graph.add_nodes_from(e.entity_id for e in entities)
        graph.add_edges_from((r.from_entity, r.to_entity) for r in relationships)
        isolated = sorted(nx.isolates(graph))
        if len(isolated) <= 1:
            return []

        return [
            AnalysisWarning(
                Severity.LOW,
                f"Entity '{entity_id}' is not related to any other entity",
                "Check whether a linking column was missed",
                entity=entity_id,
                category="isolated_entity",
            )
            for entity_id in isolated
        ]

    def _low_confidence_warnings(self, entities: List[Entity], relationships: List[Relationship]) -> List[AnalysisWarning]:
        t = self.thresholds
        warnings = [
            AnalysisWarning(
                Severity.LOW,
                f"Entity '{e.name}' was detected with low confidence ({e.confidence:.2f})",
                "Review the column types and primary key",
                entity=e.entity_id,
                category="low_confidence_entity",
            )
            for e in entities
            if e.confidence < t.low_entity_confidence
        ]
        warnings.extend(
            AnalysisWarning(
                Severity.LOW,
                f"Relationship {r.from_entity}.{r.from_column} -> {r.to_entity} needs review "
                f"(confidence {r.confidence:.2f})",
                "Confirm or remove this relationship",
                entity=r.from_entity,
                category="low_confidence_relationship",
            )
            for r in relationships
            if r.confidence < t.relationship_review
        )
        return warnings

    def _rule_warnings(self, rules: List[AutomationRule]) -> List[AnalysisWarning]:
        return [
            AnalysisWarning(
                Severity.LOW,
                f"Formula at {r.location} was not recognised: {r.formula}",
                "Implement this calculation manually",
                entity=r.entity,
                category="unrecognized_formula",
            )
            for r in rules
            if r.type == RuleType.FORMULA
        ]
