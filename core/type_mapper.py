"""
core/type_mapper.py
-------------------
Maps source-engine numeric type codes onto the portable column types used
in the generated SQL.

The codes are the OLE DB / ADO ``DBTYPE`` values a driver reports in the
``DATA_TYPE`` column of the ``Columns`` metadata collection. Group
membership is a fixed lookup table; anything not listed (including the
"empty" type 0) falls back to ``BLOB``, since arbitrary bytes can always be
stored in a blob column.

Design Decision:
    Pure functions with no side effects, and the classification encoded as
    data (frozensets) rather than an if/else tree, like the rest of ``core``.
"""
from __future__ import annotations

from typing import Any

from models.schema import PortableType

# ---------------------------------------------------------------------------
# OLE DB type code groups
# ---------------------------------------------------------------------------
_BOOLEAN_CODES = frozenset({11})
_DATETIME_CODES = frozenset({7, 64, 133, 134, 135})
_DECIMAL_CODES = frozenset({6, 14, 131, 139})
_DOUBLE_CODES = frozenset({4, 5})
_INTEGER_CODES = frozenset({2, 3, 16, 17, 18, 19, 20, 21, 128, 204, 205})
_NULL_CODES = frozenset({0})
_STRING_CODES = frozenset({8, 72, 129, 130, 200, 201, 202, 203})
_BLOB_CODES = frozenset({9, 10, 12, 13, 138})

_CODE_MAP: dict[int, PortableType] = {}
for _codes, _ptype in (
    (_BOOLEAN_CODES, PortableType.BOOLEAN),
    (_DATETIME_CODES, PortableType.DATETIME),
    (_DECIMAL_CODES, PortableType.DECIMAL),
    (_DOUBLE_CODES, PortableType.DOUBLE),
    (_INTEGER_CODES, PortableType.INTEGER),
    (_STRING_CODES, PortableType.STRING),
    (_NULL_CODES | _BLOB_CODES, PortableType.BLOB),
):
    _CODE_MAP.update(dict.fromkeys(_codes, _ptype))

# ---------------------------------------------------------------------------
# MySQL information_schema type names → OLE DB codes
# ---------------------------------------------------------------------------
DBTYPE_EMPTY = 0

_MYSQL_TYPE_CODES: dict[str, int] = {
    "bool": 11,
    "boolean": 11,
    "tinyint": 16,
    "smallint": 2,
    "mediumint": 3,
    "int": 3,
    "integer": 3,
    "bigint": 20,
    "year": 2,
    "float": 4,
    "double": 5,
    "real": 5,
    "decimal": 131,
    "numeric": 131,
    "date": 133,
    "time": 202,  # arrives as timedelta, written as text
    "datetime": 135,
    "timestamp": 135,
    "char": 130,
    "varchar": 202,
    "enum": 202,
    "set": 202,
    "tinytext": 203,
    "text": 203,
    "mediumtext": 203,
    "longtext": 203,
}

_UNSIGNED_CODES: dict[int, int] = {16: 17, 2: 18, 3: 19, 20: 21}


def map_type_code(type_code: Any) -> PortableType:
    """
    Return the portable type for a source type code.

    Total: every input yields a value. Codes outside the documented groups,
    and values that are not integers at all, map to ``BLOB``.

    Examples::

        map_type_code(3)     →  PortableType.INTEGER
        map_type_code(202)   →  PortableType.STRING
        map_type_code(999)   →  PortableType.BLOB
    """
    if isinstance(type_code, bool):
        return PortableType.BLOB
    try:
        code = int(type_code)
    except (TypeError, ValueError):
        return PortableType.BLOB
    return _CODE_MAP.get(code, PortableType.BLOB)


def mysql_type_code(data_type: str, column_type: str = "") -> int:
    """
    Translate a MySQL column type into the OLE DB code a driver would report.

    Args:
        data_type:   ``information_schema.COLUMNS.DATA_TYPE`` (e.g. ``"int"``).
        column_type: ``COLUMN_TYPE`` (e.g. ``"int(10) unsigned"``). Used to
                     spot ``tinyint(1)`` / ``bit(1)`` booleans and unsigned
                     integers.

    Returns:
        The OLE DB type code, or ``DBTYPE_EMPTY`` (0) for types with no
        equivalent (binary, blob, json, spatial).
    """
    base = (data_type or "").strip().lower()
    full = (column_type or "").strip().lower()

    if full.startswith("tinyint(1)") or full == "bit(1)":
        return 11

    code = _MYSQL_TYPE_CODES.get(base, DBTYPE_EMPTY)
    if "unsigned" in full:
        code = _UNSIGNED_CODES.get(code, code)
    return code
