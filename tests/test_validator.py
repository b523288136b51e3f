"""
Unit tests for confidence scoring and review warnings
"""
import pytest

from sheet_engine.agents.architect import RelationshipFinder
from sheet_engine.agents.formulas import AutomationRule, FormulaImplementation, RuleType
from sheet_engine.agents.validator import ValidationScorer, Severity


def _regions(entities):
    return [e.table.table.region for e in entities]


def _generic_rule(entity_id):
    return AutomationRule(
        rule_id=f"rule_{entity_id}_c2",
        name="Formula in Notes!C2",
        type=RuleType.FORMULA,
        entity=entity_id,
        formula="=PMT(A2,B2,1)",
        location="Notes!C2",
        confidence=0.5,
        description="Formula kept for manual review",
        implementation=FormulaImplementation(formula="=PMT(A2,B2,1)"),
    )


class TestValidationScorer:
    """Test cases for ValidationScorer"""

    def setup_method(self):
        self.scorer = ValidationScorer()

    def test_clean_two_table_workbook(self, make_entities, config):
        entities, _ = make_entities({
            "Products": [["Product ID", "Supplier ID"], [1, 1], [2, 2], [3, 1], [4, 2]],
            "Suppliers": [["Supplier ID", "Name"], [1, "Acme"], [2, "Globex"]],
        })
        relationships = RelationshipFinder(config).find(entities)
        score = self.scorer.score(entities, relationships, [], _regions(entities))

        assert score.structure == pytest.approx(1.0)
        assert score.entities == pytest.approx((0.975 + 0.875) / 2)
        assert score.relationships == pytest.approx(0.98)
        assert score.formulas == pytest.approx(0.5)
        assert score.overall == pytest.approx(0.3 * 1.0 + 0.4 * 0.925 + 0.3 * 0.98)
        assert score.warnings == []
        assert set(score.dimensions) == {"structure", "entities", "relationships", "formulas"}

    def test_nothing_detected(self):
        score = self.scorer.score([], [], [], [])
        assert score.overall == pytest.approx(0.15)
        assert score.relationships == pytest.approx(0.5)

    def test_warnings_are_ordered_by_severity(self, make_entities):
        entities, _ = make_entities({
            "Notes": [["Note", "Tag"], ["a", "x"], ["a", "x"], ["b", "y"]],
        })
        score = self.scorer.score(
            entities,
            [],
            [_generic_rule("notes")],
            _regions(entities),
            region_counts={"Notes": 2},
            pipeline_warnings=["Sheet 'Empty' was skipped: sheet is empty"],
        )

        severities = [w.severity for w in score.warnings]
        assert severities == sorted(severities, key=[Severity.HIGH, Severity.MEDIUM, Severity.LOW].index)
        categories = {w.category for w in score.warnings}
        assert categories == {
            "primary_key",
            "regions",
            "pipeline",
            "low_confidence_entity",
            "unrecognized_formula",
        }
        high = score.warnings_by_severity(Severity.HIGH)
        assert len(high) == 1
        assert high[0].entity == "notes"

    def test_isolated_entities(self, make_entities):
        entities, _ = make_entities({
            "Products": [["Product ID", "Name"], [1, "Widget"], [2, "Gadget"]],
            "Colors": [["Color ID", "Label"], [1, "Red"], [2, "Blue"]],
            "Regions": [["Region ID", "Title"], [1, "North"], [2, "South"]],
        })
        score = self.scorer.score(entities, [], [], _regions(entities))
        isolated = [w for w in score.warnings if w.category == "isolated_entity"]
        assert sorted(w.entity for w in isolated) == ["colors", "products", "regions"]
        assert all(w.severity == Severity.LOW for w in isolated)
