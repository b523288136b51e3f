"""
RelationshipFinder - foreign key detection across entities
"""
from concurrent.futures import ThreadPoolExecutor
from itertools import permutations
from typing import List, Optional, Tuple
import logging

from .models import Entity, Relationship, RelationshipCandidate, RelationshipType
from .relationships import (
    RelationshipMerger,
    NameSimilarityCalculator,
    TypeCompatibility,
    ValueOverlapCalculator,
    CardinalityAnalyzer,
)
from .confidence import RelationshipConfidenceScorer
from .semantics import RelationshipTemplates
from ...config import EngineConfig
from ...observability import trace_agent, observability

logger = logging.getLogger(__name__)


class RelationshipFinder:
    """
    Relationship Finder

    For every ordered entity pair and every non-key column of the source,
    scores the column against the target's primary key:

        confidence = 0.5 x name + 0.3 x value overlap + 0.2 x type

    Candidates at or above the acceptance threshold become FOREIGN_KEY
    relationships; the best one per source column survives deduplication.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.thresholds = self.config.thresholds

        self.name_similarity = NameSimilarityCalculator()
        self.value_overlap = ValueOverlapCalculator()
        self.type_compatibility = TypeCompatibility()
        self.cardinality_analyzer = CardinalityAnalyzer()
        self.confidence_scorer = RelationshipConfidenceScorer(self.thresholds)
        self.templates = RelationshipTemplates()
        self.merger = RelationshipMerger(self.thresholds.relationship_accept)

    @trace_agent("RelationshipFinder")
    def find(self, entities: List[Entity]) -> List[Relationship]:
        """
        Detect foreign key relationships

        Args:
            entities: Extracted entities (read-only)

        Returns:
            Accepted, deduplicated relationships
        """
        span = observability.create_agent_span("RelationshipFinder", {
            "entities": [e.entity_id for e in entities],
        })

        pairs: List[Tuple[Entity, Entity]] = [
            (source, target)
            for source, target in permutations(entities, 2)
            if target.primary_key is not None
        ]
        logger.info(f"Checking {len(pairs)} entity pair(s) for foreign keys")

        self.value_overlap.index(entities)

        if self.config.max_workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                per_pair = list(executor.map(lambda pair: self._check_pair(*pair), pairs))
        else:
            per_pair = [self._check_pair(source, target) for source, target in pairs]

        accepted = [rel for found in per_pair for rel in found]
        relationships = self.merger.deduplicate(accepted)

        observability.end_agent_span(span, {
            "candidates_accepted": len(accepted),
            "relationships": len(relationships),
        })
        logger.info(f"Found {len(relationships)} foreign key relationship(s)")
        return relationships

    def _check_pair(self, source: Entity, target: Entity) -> List[Relationship]:
        """Score every non-key column of source against the target key"""
        target_column = target.primary_key_column
        found = []
        for column in source.columns:
            if column.name == source.primary_key or column.is_empty:
                continue
            candidate = RelationshipCandidate(source, target, column, target_column)
            relationship = self.score_candidate(candidate)
            if relationship is not None:
                found.append(relationship)
        return found

    def score_candidate(self, candidate: RelationshipCandidate) -> Optional[Relationship]:
        """Relationship for a candidate, or None below the acceptance threshold"""
        source, target = candidate.source, candidate.target
        source_column, target_column = candidate.source_column, candidate.target_column

        name_score = self.name_similarity.score(source_column.name, target)
        overlap = self.value_overlap.overlap(source, source_column.name, target, target_column.name)
        type_score = self.type_compatibility.score(source_column.data_type, target_column.data_type)

        confidence, breakdown = self.confidence_scorer.calculate_confidence(name_score, overlap, type_score)
        candidate.raw_scores.update(name_similarity=name_score, value_overlap=overlap, type_compatibility=type_score)

        if not self.confidence_scorer.accepts(confidence):
            if name_score > 0:
                logger.debug(
                    f"Rejected {source.entity_id}.{source_column.name} -> {target.entity_id}: "
                    f"confidence {confidence:.2f}"
                )
            return None

        cardinality = self.cardinality_analyzer.infer(source_column.is_unique, target_column.is_unique)
        logger.debug(
            f"Accepted {source.entity_id}.{source_column.name} -> {target.entity_id}.{target_column.name} "
            f"({cardinality}, {confidence:.2f})"
        )

        return Relationship(
            relationship_id=f"rel_{source.entity_id}_{source_column.name}_{target.entity_id}",
            from_entity=source.entity_id,
            from_column=source_column.name,
            to_entity=target.entity_id,
            to_column=target_column.name,
            type=RelationshipType.FOREIGN_KEY,
            cardinality=cardinality,
            confidence=confidence,
            description=self.templates.describe(
                RelationshipType.FOREIGN_KEY,
                cardinality,
                source.name,
                target.name,
                source_column.name,
                target_column.name,
            ),
            metadata={
                'detection_method': 'foreign_key_analysis',
                'name_similarity': name_score,
                'value_overlap': overlap,
                'type_compatibility': type_score,
                'confidence_breakdown': breakdown,
            },
        )
