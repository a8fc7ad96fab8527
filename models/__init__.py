"""models/__init__.py"""
from models.schema import PortableType, ResultTable, Schema, SchemaColumn

__all__ = [
    "PortableType",
    "ResultTable",
    "Schema",
    "SchemaColumn",
]
