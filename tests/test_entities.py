"""
Unit tests for entity extraction and relationship detection
"""
import pytest

from sheet_engine.agents.architect import (
    RelationshipFinder,
    RelationshipMerger,
    Relationship,
    RelationshipType,
    Cardinality,
)
from sheet_engine.agents.architect.confidence import RelationshipConfidenceScorer
from sheet_engine.agents.architect.relationships import NameSimilarityCalculator, TypeCompatibility
from sheet_engine.agents.classifier import DataType
from sheet_engine.config import DetectionThresholds

PRODUCTS = [
    ["Product ID", "Supplier ID"],
    [1, 1],
    [2, 2],
    [3, 1],
    [4, 2],
]

SUPPLIERS = [
    ["Supplier ID", "Name"],
    [1, "Acme"],
    [2, "Globex"],
]


class TestEntityExtraction:
    """Test cases for SchemaEntityBuilder"""

    def test_single_products_sheet(self, make_entities, config):
        entities, _ = make_entities({
            "Products": [["Product ID", "Name"], [1, "Widget"], [2, "Gadget"]],
        })

        assert len(entities) == 1
        entity = entities[0]
        assert entity.entity_id == "products"
        assert entity.table_name == "products"
        assert entity.name == "Product"
        assert entity.primary_key == "product_id"
        assert entity.primary_key_column.data_type == DataType.ID
        assert entity.primary_key_column.is_unique
        assert entity.confidence >= 0.85
        assert entity.row_count == 2

        assert RelationshipFinder(config).find(entities) == []

    def test_table_name_collision_gets_sheet_suffix(self, make_entities):
        rows = [["Order ID", "Amount"], [1, 10.5], [2, 20.25]]
        entities, _ = make_entities({"Orders": rows, "ORDERS": rows})

        assert [e.entity_id for e in entities] == ["orders_1", "orders_2"]
        assert [e.source_sheet for e in entities] == ["Orders", "ORDERS"]

    def test_missing_primary_key_lowers_confidence(self, make_entities):
        entities, _ = make_entities({
            "Notes": [["Note", "Tag"], ["a", "x"], ["a", "x"], ["b", "y"]],
        })
        entity = entities[0]
        assert entity.primary_key is None
        assert entity.confidence == pytest.approx(0.5)


class TestRelationshipFinder:
    """Test cases for foreign key detection"""

    def test_many_to_one_foreign_key(self, make_entities, config):
        entities, _ = make_entities({"Products": PRODUCTS, "Suppliers": SUPPLIERS})
        relationships = RelationshipFinder(config).find(entities)

        assert len(relationships) == 1
        rel = relationships[0]
        assert rel.type == RelationshipType.FOREIGN_KEY
        assert (rel.from_entity, rel.from_column) == ("products", "supplier_id")
        assert (rel.to_entity, rel.to_column) == ("suppliers", "supplier_id")
        assert rel.cardinality == Cardinality.MANY_TO_ONE
        assert rel.confidence >= 0.9
        assert rel.metadata["name_similarity"] == 1.0
        assert rel.metadata["value_overlap"] == 1.0

    def test_parallel_workers_give_same_result(self, make_entities, config):
        entities, _ = make_entities({"Products": PRODUCTS, "Suppliers": SUPPLIERS})
        sequential = RelationshipFinder(config).find(entities)
        config.max_workers = 4
        parallel = RelationshipFinder(config).find(entities)
        assert sequential == parallel


class TestRelationshipSignals:
    """Test cases for the individual relationship scores"""

    def test_name_similarity(self, make_entities):
        entities, _ = make_entities({"Suppliers": SUPPLIERS})
        suppliers = entities[0]
        calculator = NameSimilarityCalculator()

        assert calculator.score("supplier_id", suppliers) == 1.0
        assert calculator.score("suppliers_id", suppliers) == 1.0
        assert calculator.score("supplier_code", suppliers) == 0.9
        assert calculator.score("main_supplier", suppliers) == 0.7
        assert calculator.score("vendor", suppliers) == 0.0

    def test_type_compatibility(self):
        compatibility = TypeCompatibility()
        assert compatibility.score(DataType.ID, DataType.ID) == 1.0
        assert compatibility.score(DataType.INTEGER, DataType.ID) == 0.9
        assert compatibility.score(DataType.TEXT, DataType.ID) == 0.7
        assert compatibility.score(DataType.DATE, DataType.ID) == 0.0

    def test_confidence_never_drops_as_overlap_grows(self):
        scorer = RelationshipConfidenceScorer(DetectionThresholds())
        for name_score in (0.0, 0.65, 1.0):
            for type_score in (0.0, 0.7, 1.0):
                scores = [
                    scorer.calculate_confidence(name_score, overlap / 10, type_score)[0]
                    for overlap in range(11)
                ]
                assert scores == sorted(scores)

    def test_confidence_is_clamped(self):
        scorer = RelationshipConfidenceScorer(DetectionThresholds())
        confidence, breakdown = scorer.calculate_confidence(1.0, 1.0, 1.0)
        assert confidence == pytest.approx(1.0)
        assert set(breakdown) == {"name_similarity", "value_overlap", "type_compatibility"}


def _relationship(rid, from_entity, from_column, to_entity, confidence):
    return Relationship(
        relationship_id=rid,
        from_entity=from_entity,
        from_column=from_column,
        to_entity=to_entity,
        to_column="id",
        type=RelationshipType.FOREIGN_KEY,
        cardinality=Cardinality.MANY_TO_ONE,
        confidence=confidence,
    )


class TestRelationshipMerger:
    """Test cases for relationship deduplication"""

    def setup_method(self):
        self.merger = RelationshipMerger(0.6)
        self.relationships = [
            _relationship("rel_a", "orders", "customer_id", "customers", 0.95),
            _relationship("rel_b", "orders", "customer_id", "clients", 0.7),
            _relationship("rel_c", "orders", "product_id", "products", 0.9),
            _relationship("rel_d", "orders", "note", "products", 0.4),
            _relationship("rel_e", "orders", "parent_id", "orders", 0.9),
        ]

    def test_best_per_source_column(self):
        merged = self.merger.deduplicate(self.relationships)
        assert [r.relationship_id for r in merged] == ["rel_a", "rel_c"]

    def test_idempotent(self):
        once = self.merger.deduplicate(self.relationships)
        assert self.merger.deduplicate(once) == once

    def test_input_order_does_not_matter(self):
        tied = [
            _relationship("rel_x", "orders", "ref", "a", 0.8),
            _relationship("rel_y", "orders", "ref", "b", 0.8),
        ]
        assert self.merger.deduplicate(tied) == self.merger.deduplicate(list(reversed(tied)))

    def test_by_entity_pair(self):
        merged = self.merger.deduplicate_by_entity_pair([
            _relationship("ref_1", "orders", "total", "products", 0.8),
            _relationship("ref_2", "orders", "price", "products", 0.9),
        ])
        assert [r.relationship_id for r in merged] == ["ref_2"]
