"""
Template-based descriptions for relationships
"""
import logging

from ..models import Cardinality, RelationshipType
from ...normalizer.naming import pluralize

logger = logging.getLogger(__name__)


class RelationshipTemplates:
    """Human-readable relationship descriptions keyed by cardinality"""

    def __init__(self):
        self.cardinality_templates = {
            Cardinality.MANY_TO_ONE: "Each {from_entity} belongs to one {to_entity}",
            Cardinality.ONE_TO_MANY: "Each {from_entity} has many {to_entity_plural}",
            Cardinality.ONE_TO_ONE: "Each {from_entity} has exactly one {to_entity}",
            Cardinality.MANY_TO_MANY: "{from_entity_plural} and {to_entity_plural} have a many-to-many relationship",
        }
        self.formula_template = "{from_entity}.{from_column} is calculated from {to_entity} data"

    def describe(
        self,
        relationship_type: str,
        cardinality: str,
        from_entity: str,
        to_entity: str,
        from_column: str = "",
        to_column: str = "",
    ) -> str:
        """
        Args:
            relationship_type: FOREIGN_KEY or FORMULA_REFERENCE
            cardinality: Relationship cardinality
            from_entity: Source entity display name
            to_entity: Target entity display name
            from_column: Source column, mentioned for formula references
            to_column: Target column, mentioned for foreign keys

        Returns:
            Description string
        """
        if relationship_type == RelationshipType.FORMULA_REFERENCE:
            return self.formula_template.format(
                from_entity=from_entity, from_column=from_column, to_entity=to_entity
            )

        template = self.cardinality_templates.get(cardinality, self.cardinality_templates[Cardinality.MANY_TO_ONE])
        text = template.format(
            from_entity=from_entity,
            to_entity=to_entity,
            from_entity_plural=pluralize(from_entity),
            to_entity_plural=pluralize(to_entity),
        )
        if from_column and to_column:
            text += f" (via {from_column} -> {to_column})"
        return text
