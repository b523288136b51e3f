"""
SQL type mapper
Maps detected column data types to SQL column types
"""
from typing import Any, List, Optional
import logging

from ..classifier.models import ColumnMetadata, DataType

logger = logging.getLogger(__name__)


class SQLTypeMapper:
    """
    Fixed lookup from detected data type to SQL type.

    Enum columns render their value set, e.g. ENUM('active', 'closed').
    """

    def __init__(self):
        self.type_map = {
            DataType.ID: 'INTEGER',
            DataType.TEXT: 'VARCHAR(255)',
            DataType.DATE: 'DATE',
            DataType.DATETIME: 'TIMESTAMP',
            DataType.INTEGER: 'INTEGER',
            DataType.FLOAT: 'DECIMAL(10,2)',
            DataType.CURRENCY: 'DECIMAL(10,2)',
            DataType.PERCENTAGE: 'DECIMAL(5,2)',
            DataType.BOOLEAN: 'BOOLEAN',
            DataType.EMAIL: 'VARCHAR(255)',
            DataType.PHONE: 'VARCHAR(20)',
            DataType.URL: 'VARCHAR(500)',
            DataType.EMPTY: 'VARCHAR(255)',     # No values to infer from
        }

    def map_type(self, column: ColumnMetadata) -> str:
        """
        Args:
            column: Classified column

        Returns:
            SQL type string
        """
        if column.data_type == DataType.ENUM:
            return self.enum_type(column.enum_values)
        sql_type = self.type_map.get(column.data_type)
        if sql_type is None:
            logger.warning(f"No SQL type for '{column.data_type}' on column '{column.name}', using VARCHAR(255)")
            return 'VARCHAR(255)'
        return sql_type

    @staticmethod
    def enum_type(values: Optional[List[Any]]) -> str:
        if not values:
            return 'VARCHAR(255)'
        quoted = ", ".join("'" + str(v).replace("'", "''") + "'" for v in values)
        return f"ENUM({quoted})"
