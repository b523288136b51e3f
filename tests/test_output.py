"""
Unit tests for the output documents
"""
import json
import os

import pytest

from sheet_engine import AnalysisWorkflow, AnalysisResult
from sheet_engine.agents.classifier import ColumnMetadata, DataType
from sheet_engine.agents.formulas import (
    AutomationRule,
    RuleType,
    Condition,
    Operand,
    TriggerAction,
    TriggerImplementation,
    ComputedFieldImplementation,
)
from sheet_engine.agents.output import (
    OutputGenerator,
    SQLTypeMapper,
    SchemaDocument,
    RelationshipsDocument,
    AutomationRulesDocument,
    ConfirmationUIDocument,
    DOCUMENT_FILES,
)
from sheet_engine.agents.output.documents import EntityItem, SchemaEntity
from sheet_engine.agents.output.generator import confidence_level, confidence_color
from sheet_engine.agents.validator import ValidationScorer

ORDERS = [
    ["Order ID", "Product ID", "Quantity", "Line Total"],
    [1, 1, 2, "=C2*VLOOKUP(B2,Products!A:D,4,FALSE)"],
    [2, 2, 1, "=C3*VLOOKUP(B3,Products!A:D,4,FALSE)"],
    [3, 1, 5, "=C4*VLOOKUP(B4,Products!A:D,4,FALSE)"],
    [4, 3, 1, "=C5*VLOOKUP(B5,Products!A:D,4,FALSE)"],
]

PRODUCTS = [
    ["Product ID", "Name", "Category", "Price"],
    [1, "Widget", "Tools", 9.5],
    [2, "Gadget", "Tools", 12.5],
    [3, "Gizmo", "Parts", 3.25],
]


class TestSQLTypeMapper:
    """Test cases for SQLTypeMapper"""

    def setup_method(self):
        self.mapper = SQLTypeMapper()

    @pytest.mark.parametrize("data_type,expected", [
        (DataType.ID, "INTEGER"),
        (DataType.TEXT, "VARCHAR(255)"),
        (DataType.DATE, "DATE"),
        (DataType.DATETIME, "TIMESTAMP"),
        (DataType.CURRENCY, "DECIMAL(10,2)"),
        (DataType.PERCENTAGE, "DECIMAL(5,2)"),
        (DataType.BOOLEAN, "BOOLEAN"),
        (DataType.PHONE, "VARCHAR(20)"),
        (DataType.URL, "VARCHAR(500)"),
        (DataType.EMPTY, "VARCHAR(255)"),
    ])
    def test_fixed_mapping(self, data_type, expected):
        assert self.mapper.map_type(ColumnMetadata(name="c", data_type=data_type, confidence=1.0)) == expected

    def test_enum_values(self):
        column = ColumnMetadata(
            name="status",
            data_type=DataType.ENUM,
            confidence=0.9,
            statistics={"values": ["Closed", "Customer's"]},
        )
        assert self.mapper.map_type(column) == "ENUM('Closed', 'Customer''s')"


class TestConfidenceLevels:
    def test_levels(self):
        assert confidence_level(0.9) == "high"
        assert confidence_level(0.85) == "high"
        assert confidence_level(0.7) == "medium"
        assert confidence_level(0.2) == "low"
        assert confidence_color(0.9) == "#4CAF50"
        assert confidence_color(0.1) == "#F44336"


class TestOutputGenerator:
    """Test cases for the four generated documents"""

    @pytest.fixture(autouse=True)
    def documents(self, make_workbook, config):
        workbook = make_workbook({"Orders": ORDERS, "Products": PRODUCTS})
        self.documents = AnalysisWorkflow(config).run(workbook, "shop.xlsx")

    def _entity(self, table_name):
        return next(e for e in self.documents.schema.entities if e.table_name == table_name)

    def test_schema(self):
        schema = self.documents.schema
        assert schema.metadata.source_file == "shop.xlsx"
        assert [e.table_name for e in schema.entities] == ["orders", "products"]

        products = self._entity("products")
        key = next(c for c in products.columns if c.name == "product_id")
        assert key.type == "INTEGER"
        assert key.nullable is False
        assert key.auto_increment is True
        assert products.indexes[0].name == "pk_products"

        price = next(c for c in products.columns if c.name == "price")
        assert price.type == "DECIMAL(10,2)"
        assert price.validation.min == 3.25
        assert "chk_products_price_non_negative" in [c.name for c in products.constraints]

        orders = self._entity("orders")
        product_ref = next(c for c in orders.columns if c.name == "product_id")
        assert product_ref.foreign_key.references == "products.product_id"
        assert "idx_orders_product_id" in [i.name for i in orders.indexes]

    def test_relationships(self):
        document = self.documents.relationships
        by_type = {r.type: r for r in document.relationships}
        assert set(by_type) == {"FOREIGN_KEY", "FORMULA_REFERENCE"}
        assert by_type["FOREIGN_KEY"].on_delete == "RESTRICT"
        assert by_type["FORMULA_REFERENCE"].on_delete == "NO ACTION"
        assert by_type["FORMULA_REFERENCE"].metadata.detection_method == "formula_reference"

        assert sorted(n.id for n in document.diagram.nodes) == ["orders", "products"]
        edges = document.to_dict()["diagram"]["edges"]
        assert {e["from"] for e in edges} == {"orders"}
        assert {e["style"] for e in edges} == {"solid", "dashed"}

    def test_automation_rules(self):
        document = self.documents.automation_rules
        assert len(document.rules) == 1
        rule = document.rules[0]
        assert rule.type == RuleType.LOOKUP
        assert rule.source.applies_to == "Orders!D2:D5"
        assert rule.implementation["kind"] == "LOOKUP"
        assert rule.implementation["target_entity"] == "products"
        assert rule.implementation["target_column_index"] == 4

        assert [w.id for w in document.workflows] == ["workflow_orders"]
        assert document.workflows[0].steps[0].id == "orders_step_1"

    def test_confirmation_ui(self):
        document = self.documents.confirmation_ui
        assert [s.type for s in document.sections] == [
            "SUMMARY_CARD",
            "ENTITY_LIST",
            "RELATIONSHIP_DIAGRAM",
            "RULE_LIST",
            "WARNING_LIST",
        ]
        assert [a.id for a in document.actions] == ["approve", "export", "reanalyze"]
        summary = document.sections[0]
        assert summary.stats["entities"] == 2
        assert summary.stats["rules"] == 1

    @pytest.mark.parametrize("key,model", [
        ("schema", SchemaDocument),
        ("relationships", RelationshipsDocument),
        ("automation_rules", AutomationRulesDocument),
        ("confirmation_ui", ConfirmationUIDocument),
    ])
    def test_documents_validate_against_their_models(self, key, model):
        dumped = getattr(self.documents, key).to_dict()
        assert model.model_validate(dumped).to_dict() == dumped

    def test_save(self, tmp_path):
        paths = self.documents.save(str(tmp_path))
        assert sorted(os.path.basename(p) for p in paths) == sorted(DOCUMENT_FILES.values())
        with open(tmp_path / "schema.json", encoding="utf-8") as f:
            assert json.load(f) == self.documents.schema.to_dict()


class TestSavedDocuments:
    """Saved JSON carries the analysis field for field"""

    @pytest.fixture(autouse=True)
    def saved(self, make_workbook, config, tmp_path):
        workflow = AnalysisWorkflow(config)
        self.result = workflow.analyze(make_workbook({"Orders": ORDERS, "Products": PRODUCTS}), "shop.xlsx")
        workflow.output_generator.generate(self.result).save(str(tmp_path))
        self.directory = tmp_path

    def _load(self, key):
        with open(self.directory / DOCUMENT_FILES[key], encoding="utf-8") as f:
            return json.load(f)

    def test_entities_match_analysis(self):
        saved_entities = self._load("schema")["entities"]

        assert len(saved_entities) == len(self.result.entities) == 2
        for saved, entity in zip(saved_entities, self.result.entities):
            assert saved["name"] == entity.name
            assert saved["table_name"] == entity.table_name
            assert saved["primary_key"] == entity.primary_key
            assert [c["name"] for c in saved["columns"]] == [c.name for c in entity.columns]
            assert saved["confidence"] == pytest.approx(entity.confidence, abs=1e-9)

    def test_relationships_match_analysis(self):
        saved_relationships = self._load("relationships")["relationships"]

        assert len(saved_relationships) == len(self.result.relationships)
        assert {r["type"] for r in saved_relationships} == {"FOREIGN_KEY", "FORMULA_REFERENCE"}
        for saved, rel in zip(saved_relationships, self.result.relationships):
            assert saved["id"] == rel.relationship_id
            assert (saved["from_entity"], saved["from_column"]) == (rel.from_entity, rel.from_column)
            assert (saved["to_entity"], saved["to_column"]) == (rel.to_entity, rel.to_column)
            assert (saved["type"], saved["cardinality"]) == (rel.type, rel.cardinality)
            assert saved["confidence"] == pytest.approx(rel.confidence, abs=1e-9)


class TestNullPrimaryKey:
    """An entity without a primary key still writes the field"""

    def test_schema_entity(self):
        dumped = SchemaEntity(name="Notes", table_name="notes", description="", columns=[]).to_dict()
        assert "primary_key" in dumped
        assert dumped["primary_key"] is None
        assert "source_sheet" not in dumped

    def test_entity_item(self):
        item = EntityItem(
            id="notes",
            name="Notes",
            table_name="notes",
            source_sheet="Notes",
            confidence=0.5,
            row_count=3,
            columns=[],
        )
        assert json.loads(json.dumps(item.to_dict()))["primary_key"] is None

    def test_schema_entity_with_key(self):
        dumped = SchemaEntity(name="Notes", table_name="notes", description="", primary_key="note_id", columns=[]).to_dict()
        assert dumped["primary_key"] == "note_id"


class TestWorkflowOrdering:
    """Rules of one entity are ordered by field dependencies, then priority"""

    def _rule(self, rule_id, rule_type, target, dependencies, implementation):
        return AutomationRule(
            rule_id=rule_id,
            name=rule_id,
            type=rule_type,
            entity="sales",
            formula="=1",
            location="Sales!A1",
            confidence=1.0,
            description="",
            implementation=implementation,
            target_field=target,
            dependencies=dependencies,
        )

    def _generate(self, entities, rules, config):
        scorer = ValidationScorer(config)
        result = AnalysisResult(
            source_file="sales.xlsx",
            file_format="xlsx",
            entities=entities,
            relationships=[],
            rules=rules,
            confidence=scorer.score(entities, [], rules, [e.table.table.region for e in entities]),
        )
        return OutputGenerator(config).generate(result)

    def test_producer_runs_before_reader(self, make_entities, config):
        entities, _ = make_entities({
            "Sales": [["Order ID", "Quantity", "Price"], [1, 2, 9.5], [2, 1, 3.0]],
        })
        total = self._rule(
            "rule_sales_d2", RuleType.COMPUTED_FIELD, "total", ["quantity", "price"],
            ComputedFieldImplementation(target_field="total", operation="MATH", expression="quantity * price"),
        )
        alert = self._rule(
            "rule_sales_e2", RuleType.TRIGGER, "status", ["total"],
            TriggerImplementation(
                condition=Condition(Operand(field="total"), ">", Operand(value=100)),
                actions=[TriggerAction(action="NOTIFY", message="large order")],
            ),
        )
        documents = self._generate(entities, [total, alert], config)

        assert [r.id for r in documents.automation_rules.rules] == ["rule_sales_e2", "rule_sales_d2"]
        steps = documents.automation_rules.workflows[0].steps
        assert [s.rule_id for s in steps] == ["rule_sales_d2", "rule_sales_e2"]
        assert steps[1].depends_on == ["sales_step_1"]

    def test_circular_dependencies_fall_back_to_priority(self, make_entities, config):
        entities, _ = make_entities({
            "Sales": [["Order ID", "Quantity", "Price"], [1, 2, 9.5], [2, 1, 3.0]],
        })
        first = self._rule(
            "rule_sales_d2", RuleType.COMPUTED_FIELD, "a", ["b"],
            ComputedFieldImplementation(target_field="a", operation="MATH", expression="b + 1"),
        )
        second = self._rule(
            "rule_sales_e2", RuleType.COMPUTED_FIELD, "b", ["a"],
            ComputedFieldImplementation(target_field="b", operation="MATH", expression="a + 1"),
        )
        documents = self._generate(entities, [first, second], config)
        steps = documents.automation_rules.workflows[0].steps
        assert [s.rule_id for s in steps] == ["rule_sales_d2", "rule_sales_e2"]
