"""
OutputGenerator - formats an analysis result into the four output documents
"""
from dataclasses import asdict
from typing import Dict, List, Optional
import logging

import networkx as nx

from .documents import (
    AnalysisDocuments,
    SchemaDocument, SchemaMetadata, SchemaEntity, SchemaColumn, SchemaIndex, SchemaConstraint,
    ColumnValidation, ForeignKeyReference, ColumnDetails,
    RelationshipsDocument, RelationshipEntry, RelationshipDetails,
    Diagram, DiagramNode, DiagramEdge, Position,
    AutomationRulesDocument, RuleEntry, RuleSource, Workflow, WorkflowStep,
    ConfirmationUIDocument, UIAction,
    SummaryCardSection, EntityListSection, RelationshipDiagramSection, RuleListSection, WarningListSection,
    EntityItem, ColumnItem, RelationshipItem, RuleItem, WarningItem,
)
from .type_mapper import SQLTypeMapper
from ..architect.models import Entity, Relationship, RelationshipType
from ..classifier.models import ColumnMetadata, DataType, SemanticType
from ..classifier.taxonomy import VALUE_PATTERNS
from ..formulas.models import AutomationRule, RuleType, ValidationImplementation
from ...config import EngineConfig
from ...models import AnalysisResult
from ...observability import trace_agent

logger = logging.getLogger(__name__)

_NUMERIC_TYPES = {DataType.INTEGER, DataType.FLOAT, DataType.CURRENCY, DataType.PERCENTAGE}
_NON_NEGATIVE_SEMANTICS = {SemanticType.QUANTITY, SemanticType.PRICE}
_PATTERNS = {name: pattern.pattern for name, pattern in VALUE_PATTERNS}

# (min confidence, level, color)
_CONFIDENCE_LEVELS = [
    (0.85, 'high', '#4CAF50'),
    (0.70, 'medium', '#FFC107'),
    (0.0, 'low', '#F44336'),
]


def confidence_level(confidence: float) -> str:
    for floor, level, _ in _CONFIDENCE_LEVELS:
        if confidence >= floor:
            return level
    return 'low'


def confidence_color(confidence: float) -> str:
    for floor, _, color in _CONFIDENCE_LEVELS:
        if confidence >= floor:
            return color
    return _CONFIDENCE_LEVELS[-1][2]


class OutputGenerator:
    """
    Output Generator

    Pure formatting of an AnalysisResult: schema with SQL types, relationships
    with a laid-out diagram, automation rules grouped into per-entity
    workflows, and the review screen description. No inference happens here.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.type_mapper = SQLTypeMapper()

    @trace_agent("OutputGenerator")
    def generate(self, result: AnalysisResult) -> AnalysisDocuments:
        """
        Args:
            result: Completed analysis

        Returns:
            AnalysisDocuments with schema, relationships, automation_rules and confirmation_ui
        """
        diagram = self._diagram(result.entities, result.relationships)
        documents = AnalysisDocuments(
            schema=self._schema_document(result),
            relationships=self._relationships_document(result, diagram),
            automation_rules=self._rules_document(result),
            confirmation_ui=self._ui_document(result, diagram),
        )
        logger.info(
            f"Generated documents for '{result.source_file}': {len(result.entities)} entities, "
            f"{len(result.relationships)} relationships, {len(result.rules)} rules"
        )
        return documents

    # schema.json

    def _schema_document(self, result: AnalysisResult) -> SchemaDocument:
        foreign_keys = {
            (r.from_entity, r.from_column): r
            for r in result.relationships
            if r.type == RelationshipType.FOREIGN_KEY
        }
        warnings = list(dict.fromkeys(result.warnings + [w.message for w in result.confidence.warnings]))

        return SchemaDocument(
            version=self.config.schema_version,
            metadata=SchemaMetadata(
                source_file=result.source_file,
                generated_at=result.generated_at.isoformat(),
                confidence=result.confidence.overall,
                engine_version=self.config.engine_version,
                warnings=warnings,
            ),
            entities=[self._schema_entity(e, foreign_keys, result.rules_for(e.entity_id)) for e in result.entities],
        )

    def _schema_entity(self, entity: Entity, foreign_keys: Dict, rules: List[AutomationRule]) -> SchemaEntity:
        table = entity.table_name
        columns = [self._schema_column(entity, col, foreign_keys.get((entity.entity_id, col.name))) for col in entity.columns]

        indexes = []
        if entity.primary_key:
            indexes.append(SchemaIndex(name=f"pk_{table}", columns=[entity.primary_key], type="PRIMARY"))
        for col in entity.columns:
            if col.name == entity.primary_key:
                continue
            if (entity.entity_id, col.name) in foreign_keys:
                indexes.append(SchemaIndex(name=f"idx_{table}_{col.name}", columns=[col.name], type="INDEX"))
            elif col.is_unique and col.data_type in (DataType.ID, DataType.EMAIL):
                indexes.append(SchemaIndex(name=f"uq_{table}_{col.name}", columns=[col.name], type="UNIQUE"))

        constraints = []
        for col in entity.columns:
            minimum = col.statistics.get('min')
            if col.semantic_type in _NON_NEGATIVE_SEMANTICS and isinstance(minimum, (int, float)) and minimum >= 0:
                constraints.append(SchemaConstraint(
                    name=f"chk_{table}_{col.name}_non_negative",
                    type="CHECK",
                    expression=f"{col.name} >= 0",
                ))
        for rule in rules:
            if isinstance(rule.implementation, ValidationImplementation):
                constraints.append(SchemaConstraint(
                    name=f"chk_{rule.rule_id}",
                    type="CHECK",
                    expression=rule.implementation.expression,
                ))

        return SchemaEntity(
            name=entity.name,
            table_name=table,
            description=entity.description,
            primary_key=entity.primary_key,
            columns=columns,
            indexes=indexes,
            constraints=constraints,
            source_sheet=entity.source_sheet,
            row_count=entity.row_count,
            confidence=entity.confidence,
        )

    def _schema_column(self, entity: Entity, col: ColumnMetadata, fk: Optional[Relationship]) -> SchemaColumn:
        is_pk = col.name == entity.primary_key
        auto_increment = True if is_pk and col.data_type == DataType.ID and col.statistics.get('sequential') else None

        description = f"{col.original_name} ({col.data_type})"
        if col.semantic_type:
            description += f", {col.semantic_type}"

        return SchemaColumn(
            name=col.name,
            type=self.type_mapper.map_type(col),
            nullable=col.nullable and not is_pk,
            unique=col.is_unique,
            auto_increment=auto_increment,
            description=description,
            validation=self._validation(col),
            foreign_key=ForeignKeyReference(references=f"{fk.to_entity}.{fk.to_column}") if fk else None,
            metadata=ColumnDetails(
                original_column=col.original_name,
                semantic_type=col.semantic_type,
                confidence=col.confidence,
                column_letter=col.column_letter,
                sample_values=list(col.sample_values),
            ),
        )

    @staticmethod
    def _validation(col: ColumnMetadata) -> Optional[ColumnValidation]:
        if col.data_type == DataType.ENUM and col.enum_values:
            return ColumnValidation(enum=col.enum_values)
        if col.data_type in _PATTERNS:
            return ColumnValidation(pattern=_PATTERNS[col.data_type])
        if col.data_type in _NUMERIC_TYPES and 'min' in col.statistics:
            return ColumnValidation(min=col.statistics['min'], max=col.statistics.get('max'))
        return None

    # relationships.json

    def _relationships_document(self, result: AnalysisResult, diagram: Diagram) -> RelationshipsDocument:
        entries = []
        for rel in result.relationships:
            meta = rel.metadata
            is_fk = rel.type == RelationshipType.FOREIGN_KEY
            entries.append(RelationshipEntry(
                id=rel.relationship_id,
                from_entity=rel.from_entity,
                from_column=rel.from_column,
                to_entity=rel.to_entity,
                to_column=rel.to_column,
                type=rel.type,
                cardinality=rel.cardinality,
                confidence=rel.confidence,
                description=rel.description,
                on_delete="RESTRICT" if is_fk else "NO ACTION",
                on_update="CASCADE" if is_fk else "NO ACTION",
                metadata=RelationshipDetails(
                    detection_method=meta.get('detection_method', 'unknown'),
                    value_overlap=meta.get('value_overlap'),
                    name_similarity=meta.get('name_similarity'),
                    type_compatibility=meta.get('type_compatibility'),
                    formula=meta.get('formula'),
                    location=meta.get('location'),
                ),
            ))
        return RelationshipsDocument(version=self.config.schema_version, relationships=entries, diagram=diagram)

    def _diagram(self, entities: List[Entity], relationships: List[Relationship]) -> Diagram:
        graph = nx.DiGraph()
        graph.add_nodes_from(e.entity_id for e in entities)
        graph.add_edges_from((r.from_entity, r.to_entity) for r in relationships)
        positions = nx.spring_layout(graph, seed=42) if graph.number_of_nodes() else {}

        nodes = []
        for entity in entities:
            x, y = positions.get(entity.entity_id, (0.0, 0.0))
            nodes.append(DiagramNode(
                id=entity.entity_id,
                label=entity.name,
                position=Position(x=round((float(x) + 1.0) * 400, 2), y=round((float(y) + 1.0) * 300, 2)),
                color=confidence_color(entity.confidence),
                size=40 + min(60, 5 * len(entity.columns)),
                metadata={
                    'table_name': entity.table_name,
                    'primary_key': entity.primary_key,
                    'columns': len(entity.columns),
                    'row_count': entity.row_count,
                },
            ))

        edges = [
            DiagramEdge(
                id=rel.relationship_id,
                from_=rel.from_entity,
                to=rel.to_entity,
                label=rel.from_column,
                cardinality=rel.cardinality,
                style="solid" if rel.type == RelationshipType.FOREIGN_KEY else "dashed",
                color=confidence_color(rel.confidence),
                thickness=1 + round(rel.confidence * 3),
            )
            for rel in relationships
        ]
        return Diagram(layout="force", nodes=nodes, edges=edges)

    # automation_rules.json

    def _rules_document(self, result: AnalysisResult) -> AutomationRulesDocument:
        ordered = sorted(result.rules, key=lambda r: (r.priority, r.entity, r.rule_id))
        entries = [
            RuleEntry(
                id=rule.rule_id,
                name=rule.name,
                type=rule.type,
                entity=rule.entity,
                enabled=rule.type != RuleType.FORMULA,
                priority=rule.priority,
                confidence=rule.confidence,
                description=rule.description,
                source=RuleSource(location=rule.location, formula=rule.formula, applies_to=rule.applies_to),
                implementation=asdict(rule.implementation),
            )
            for rule in ordered
        ]

        workflows = []
        for entity in result.entities:
            rules = [r for r in ordered if r.entity == entity.entity_id]
            if rules:
                workflows.append(self._workflow(entity, rules))
        return AutomationRulesDocument(version=self.config.schema_version, rules=entries, workflows=workflows)

    def _workflow(self, entity: Entity, rules: List[AutomationRule]) -> Workflow:
        """Rules of one entity ordered so every computed field runs before its readers"""
        graph = nx.DiGraph()
        graph.add_nodes_from(r.rule_id for r in rules)
        producers = {r.target_field: r.rule_id for r in rules if r.target_field}
        for rule in rules:
            for dep in rule.dependencies:
                producer = producers.get(dep)
                if producer is not None and producer != rule.rule_id:
                    graph.add_edge(producer, rule.rule_id)

        by_id = {r.rule_id: r for r in rules}
        try:
            order = list(nx.lexicographical_topological_sort(graph, key=lambda rid: (by_id[rid].priority, rid)))
        except nx.NetworkXUnfeasible:
            logger.warning(f"Circular field dependencies among rules of '{entity.entity_id}'; using priority order")
            order = [r.rule_id for r in rules]

        step_ids = {rule_id: f"{entity.entity_id}_step_{i + 1}" for i, rule_id in enumerate(order)}
        steps = [
            WorkflowStep(
                id=step_ids[rule_id],
                name=by_id[rule_id].name,
                action=by_id[rule_id].type,
                rule_id=rule_id,
                field=by_id[rule_id].target_field,
                depends_on=sorted(step_ids[p] for p in graph.predecessors(rule_id)),
            )
            for rule_id in order
        ]
        return Workflow(
            id=f"workflow_{entity.entity_id}",
            name=f"{entity.name} automation",
            entity=entity.entity_id,
            trigger="RECORD_SAVED",
            steps=steps,
        )

    # confirmation_ui.json

    def _ui_document(self, result: AnalysisResult, diagram: Diagram) -> ConfirmationUIDocument:
        score = result.confidence
        review_threshold = self.config.thresholds.relationship_review

        summary = SummaryCardSection(
            id="summary",
            title="Analysis summary",
            confidence=score.overall,
            confidence_level=confidence_level(score.overall),
            stats={
                'sheets': len(result.regions),
                'entities': len(result.entities),
                'relationships': len(result.relationships),
                'rules': len(result.rules),
                'warnings': len(score.warnings),
            },
            dimensions=score.dimensions,
        )

        entity_items = [
            EntityItem(
                id=e.entity_id,
                name=e.name,
                table_name=e.table_name,
                source_sheet=e.source_sheet,
                primary_key=e.primary_key,
                confidence=e.confidence,
                row_count=e.row_count,
                columns=[
                    ColumnItem(
                        name=c.name,
                        type=c.data_type,
                        confidence=c.confidence,
                        original_column=c.original_name,
                        editable_fields=["name", "type"],
                    )
                    for c in e.columns
                ],
                editable_fields=["name", "table_name", "primary_key"],
                actions=["confirm", "rename", "remove"],
            )
            for e in result.entities
        ]

        relationship_items = [
            RelationshipItem(
                id=r.relationship_id,
                description=r.description,
                type=r.type,
                confidence=r.confidence,
                needs_review=r.confidence < review_threshold,
                editable_fields=["cardinality", "to_column"],
                actions=["confirm", "reject"],
            )
            for r in result.relationships
        ]

        rule_items = [
            RuleItem(
                id=r.rule_id,
                name=r.name,
                type=r.type,
                entity=r.entity,
                description=r.description,
                confidence=r.confidence,
                enabled=r.type != RuleType.FORMULA,
                editable_fields=["name", "enabled"],
                actions=["enable", "disable", "edit"],
            )
            for r in sorted(result.rules, key=lambda r: (r.priority, r.entity, r.rule_id))
        ]

        warning_items = [
            WarningItem(
                severity=w.severity,
                message=w.message,
                suggestion=w.suggestion,
                entity=w.entity,
                category=w.category,
            )
            for w in score.warnings
        ]

        return ConfirmationUIDocument(
            version=self.config.schema_version,
            title="Review detected structure",
            subtitle=(
                f"{len(result.entities)} entities, {len(result.relationships)} relationships and "
                f"{len(result.rules)} rules found in {result.source_file}"
            ),
            sections=[
                summary,
                EntityListSection(id="entities", title="Entities", items=entity_items),
                RelationshipDiagramSection(
                    id="relationships", title="Relationships", diagram=diagram, items=relationship_items
                ),
                RuleListSection(id="rules", title="Automation rules", items=rule_items),
                WarningListSection(id="warnings", title="Needs review", items=warning_items),
            ],
            actions=[
                UIAction(
                    id="approve",
                    label="Approve and build",
                    type="primary",
                    action="APPROVE_SCHEMA",
                    requires=["entities", "relationships", "rules"],
                ),
                UIAction(id="export", label="Export JSON", type="secondary", action="EXPORT_DOCUMENTS"),
                UIAction(id="reanalyze", label="Analyze again", type="secondary", action="REANALYZE"),
            ],
        )
