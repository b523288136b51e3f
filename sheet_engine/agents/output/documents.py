"""Pydantic models for the four output documents"""
import json
import os
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer


class Document(BaseModel):
    """
    Base for output models; dumps by alias in JSON mode without null fields

    Fields named in always_emit are written as null instead of dropped.
    """
    model_config = ConfigDict(populate_by_name=True)
    always_emit: ClassVar[Tuple[str, ...]] = ()

    @model_serializer(mode="wrap")
    def emit_required_nulls(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        data = handler(self)
        for name in self.always_emit:
            data.setdefault(name, None)
        return data

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# schema.json
# ============================================================================

class ColumnValidation(Document):
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    enum: Optional[List[Any]] = None


class ForeignKeyReference(Document):
    references: str = Field(..., description="'<table>.<column>'")
    on_delete: str = "RESTRICT"
    on_update: str = "CASCADE"


class ColumnDetails(Document):
    original_column: str
    semantic_type: Optional[str] = None
    confidence: float
    column_letter: Optional[str] = None
    sample_values: List[Any] = Field(default_factory=list)


class SchemaColumn(Document):
    name: str
    type: str
    nullable: bool
    unique: bool
    default: Optional[Any] = None
    auto_increment: Optional[bool] = None
    description: str = ""
    validation: Optional[ColumnValidation] = None
    foreign_key: Optional[ForeignKeyReference] = None
    metadata: ColumnDetails


class SchemaIndex(Document):
    name: str
    columns: List[str]
    type: str


class SchemaConstraint(Document):
    name: str
    type: str
    expression: str


class SchemaEntity(Document):
    always_emit: ClassVar[Tuple[str, ...]] = ("primary_key",)

    name: str
    table_name: str
    description: str
    primary_key: Optional[str] = None
    columns: List[SchemaColumn]
    indexes: List[SchemaIndex] = Field(default_factory=list)
    constraints: List[SchemaConstraint] = Field(default_factory=list)
    source_sheet: Optional[str] = None
    row_count: int = 0
    confidence: float = 0.0


class SchemaMetadata(Document):
    source_file: str
    generated_at: str
    confidence: float
    engine_version: str
    warnings: List[str] = Field(default_factory=list)


class SchemaDocument(Document):
    version: str
    metadata: SchemaMetadata
    entities: List[SchemaEntity]


# ============================================================================
# relationships.json
# ============================================================================

class RelationshipDetails(Document):
    detection_method: str
    value_overlap: Optional[float] = None
    name_similarity: Optional[float] = None
    type_compatibility: Optional[float] = None
    formula: Optional[str] = None
    location: Optional[str] = None


class RelationshipEntry(Document):
    id: str
    from_entity: str
    from_column: str
    to_entity: str
    to_column: str
    type: str
    cardinality: str
    confidence: float
    description: str
    on_delete: str = "RESTRICT"
    on_update: str = "CASCADE"
    metadata: RelationshipDetails


class Position(Document):
    x: float
    y: float


class DiagramNode(Document):
    id: str
    label: str
    type: str = "entity"
    position: Position
    color: str
    size: int
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DiagramEdge(Document):
    id: str
    from_: str = Field(..., alias="from")
    to: str
    label: str
    cardinality: str
    style: str
    color: str
    thickness: int


class Diagram(Document):
    layout: str = "force"
    nodes: List[DiagramNode] = Field(default_factory=list)
    edges: List[DiagramEdge] = Field(default_factory=list)


class RelationshipsDocument(Document):
    version: str
    relationships: List[RelationshipEntry]
    diagram: Diagram


# ============================================================================
# automation_rules.json
# ============================================================================

class RuleSource(Document):
    type: str = "FORMULA"
    location: str
    formula: str
    applies_to: Optional[str] = None


class RuleEntry(Document):
    id: str
    name: str
    type: str
    entity: str
    enabled: bool = True
    priority: int
    confidence: float
    description: str
    source: RuleSource
    implementation: Dict[str, Any]


class WorkflowStep(Document):
    id: str
    name: str
    action: str
    rule_id: str
    field: Optional[str] = None
    depends_on: List[str] = Field(default_factory=list)


class Workflow(Document):
    id: str
    name: str
    entity: str
    trigger: str
    steps: List[WorkflowStep]


class AutomationRulesDocument(Document):
    version: str
    rules: List[RuleEntry]
    workflows: List[Workflow] = Field(default_factory=list)


# ============================================================================
# confirmation_ui.json
# ============================================================================

class ColumnItem(Document):
    name: str
    type: str
    confidence: float
    original_column: str
    editable_fields: List[str] = Field(default_factory=list)


class EntityItem(Document):
    always_emit: ClassVar[Tuple[str, ...]] = ("primary_key",)

    id: str
    name: str
    table_name: str
    source_sheet: str
    primary_key: Optional[str] = None
    confidence: float
    row_count: int
    columns: List[ColumnItem]
    editable_fields: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)


class RelationshipItem(Document):
    id: str
    description: str
    type: str
    confidence: float
    needs_review: bool
    editable_fields: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)


class RuleItem(Document):
    id: str
    name: str
    type: str
    entity: str
    description: str
    confidence: float
    enabled: bool = True
    editable_fields: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)


class WarningItem(Document):
    severity: str
    message: str
    suggestion: str = ""
    entity: Optional[str] = None
    category: str = "general"


class SummaryCardSection(Document):
    id: str
    type: Literal["SUMMARY_CARD"] = "SUMMARY_CARD"
    title: str
    confidence: float
    confidence_level: str
    stats: Dict[str, int] = Field(default_factory=dict)
    dimensions: Dict[str, float] = Field(default_factory=dict)


class EntityListSection(Document):
    id: str
    type: Literal["ENTITY_LIST"] = "ENTITY_LIST"
    title: str
    items: List[EntityItem] = Field(default_factory=list)


class RelationshipDiagramSection(Document):
    id: str
    type: Literal["RELATIONSHIP_DIAGRAM"] = "RELATIONSHIP_DIAGRAM"
    title: str
    diagram: Diagram
    items: List[RelationshipItem] = Field(default_factory=list)


class RuleListSection(Document):
    id: str
    type: Literal["RULE_LIST"] = "RULE_LIST"
    title: str
    items: List[RuleItem] = Field(default_factory=list)


class WarningListSection(Document):
    id: str
    type: Literal["WARNING_LIST"] = "WARNING_LIST"
    title: str
    items: List[WarningItem] = Field(default_factory=list)


UISection = Annotated[
    Union[
        SummaryCardSection,
        EntityListSection,
        RelationshipDiagramSection,
        RuleListSection,
        WarningListSection,
    ],
    Field(discriminator="type"),
]


class UIAction(Document):
    id: str
    label: str
    type: str
    action: str
    requires: List[str] = Field(default_factory=list)


class ConfirmationUIDocument(Document):
    version: str
    title: str
    subtitle: str
    sections: List[UISection]
    actions: List[UIAction] = Field(default_factory=list)


# ============================================================================
# Bundle
# ============================================================================

DOCUMENT_FILES = {
    'schema': 'schema.json',
    'relationships': 'relationships.json',
    'automation_rules': 'automation_rules.json',
    'confirmation_ui': 'confirmation_ui.json',
}


@dataclass
class AnalysisDocuments:
    """The four documents produced for one analysis run"""
    schema: SchemaDocument
    relationships: RelationshipsDocument
    automation_rules: AutomationRulesDocument
    confirmation_ui: ConfirmationUIDocument

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {key: getattr(self, key).to_dict() for key in DOCUMENT_FILES}

    def save(self, directory: str) -> List[str]:
        """Write each document as JSON into directory; returns the written paths"""
        os.makedirs(directory, exist_ok=True)
        paths = []
        for key, file_name in DOCUMENT_FILES.items():
            path = os.path.join(directory, file_name)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(getattr(self, key).to_dict(), f, indent=2, ensure_ascii=False)
            paths.append(path)
        return paths
