"""
Webflow to Mnemo field mapping.
"""

from .field_tables import FIELD_TABLES, FieldTable, table_for
from .webflow_mapper import map_record

__all__ = ["FIELD_TABLES", "FieldTable", "map_record", "table_for"]
