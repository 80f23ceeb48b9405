"""Type-family detection, input coercion and wire conversion for row values."""

import enum
import json
import math
import re
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from app.core.exceptions import InvalidFieldType
from app.schemas.table import BlobMarker, ColumnDescriptor, WireValue


class TypeFamily(str, enum.Enum):
    """Coarse grouping of store-native column types."""

    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    JSON = "json"
    BINARY = "binary"
    TEXT = "text"


_INTEGER_PATTERN = re.compile(r"(^|[^a-z])(tiny|small|medium|big)?int(eger|\d)?\b|serial")
_INTEGER_LITERAL = re.compile(r"^[+-]?\d+$")

_TRUE_STRINGS = {"true", "1", "yes", "y", "on", "t"}
_FALSE_STRINGS = {"false", "0", "no", "n", "off", "f"}


def type_family(type_name: str) -> TypeFamily:
    """
    Map a store-native type name to its family.

    Order matters: ``tinyint(1)`` is a boolean before it is an integer,
    ``timestamp`` is a datetime before it is a time. Array types are JSON
    whatever their element type.
    """
    t = type_name.lower().strip()

    # Array values are bound as JSON lists
    if t.endswith("]") or t == "array":
        return TypeFamily.JSON
    if "bool" in t or t.startswith("tinyint(1)") or t == "bit" or t == "bit(1)":
        return TypeFamily.BOOLEAN
    if "interval" in t:
        return TypeFamily.TEXT
    if _INTEGER_PATTERN.search(t):
        return TypeFamily.INTEGER
    if any(k in t for k in ("decimal", "numeric", "float", "double", "real", "money")):
        return TypeFamily.DECIMAL
    if "json" in t:
        return TypeFamily.JSON
    if "timestamp" in t or "datetime" in t:
        return TypeFamily.DATETIME
    if t.startswith("date"):
        return TypeFamily.DATE
    if t.startswith("time"):
        return TypeFamily.TIME
    if any(k in t for k in ("blob", "binary", "bytea")):
        return TypeFamily.BINARY
    return TypeFamily.TEXT


def coerce_value(column: ColumnDescriptor, value: Any) -> Any:
    """
    Coerce a raw form value toward the column's type family.

    Returns a Python value suitable for binding as a statement parameter.

    Raises:
        InvalidFieldType: If the value cannot represent the column's type
    """
    family = type_family(column.type)

    if isinstance(value, str) and value == "" and family != TypeFamily.TEXT:
        value = None

    if value is None:
        if column.nullable:
            return None
        raise InvalidFieldType(column.name, value, "a non-null value")

    if isinstance(value, (dict, list)) and family not in (TypeFamily.JSON, TypeFamily.TEXT):
        raise InvalidFieldType(column.name, value, family.value)

    if family == TypeFamily.INTEGER:
        return _to_integer(column, value)
    if family == TypeFamily.DECIMAL:
        return _to_decimal(column, value)
    if family == TypeFamily.BOOLEAN:
        return _to_boolean(column, value)
    if family == TypeFamily.DATETIME:
        return _to_datetime(column, value)
    if family == TypeFamily.DATE:
        return _to_date(column, value)
    if family == TypeFamily.TIME:
        return _to_time(column, value)
    if family == TypeFamily.JSON:
        return _to_json(column, value)
    if family == TypeFamily.BINARY:
        raise InvalidFieldType(column.name, value, "binary content, which cannot be edited here")

    if isinstance(value, (dict, list)):
        raise InvalidFieldType(column.name, value, "text")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_integer(column: ColumnDescriptor, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidFieldType(column.name, value, "an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER_LITERAL.match(value.strip()):
        return int(value.strip())
    raise InvalidFieldType(column.name, value, "an integer")


def _to_decimal(column: ColumnDescriptor, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidFieldType(column.name, value, "a number")
    try:
        result = Decimal(value.strip()) if isinstance(value, str) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidFieldType(column.name, value, "a number")
    if not result.is_finite():
        raise InvalidFieldType(column.name, value, "a finite number")
    return result


def _to_boolean(column: ColumnDescriptor, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise InvalidFieldType(column.name, value, "a boolean")


def _to_datetime(column: ColumnDescriptor, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidFieldType(column.name, value, "an ISO-8601 date and time")


def _to_date(column: ColumnDescriptor, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            try:
                return datetime.fromisoformat(text).date()
            except ValueError:
                pass
    raise InvalidFieldType(column.name, value, "an ISO-8601 date")


def _to_time(column: ColumnDescriptor, value: Any) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        try:
            return time.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidFieldType(column.name, value, "an ISO-8601 time")


def _to_json(column: ColumnDescriptor, value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            raise InvalidFieldType(column.name, value, "a JSON document")
    return value


def to_wire_value(value: Any) -> WireValue:
    """Convert a value read from the store into a JSON-safe scalar."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        return int(value) if value == value.to_integral_value() and value.as_tuple().exponent >= 0 else float(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BlobMarker(size=len(bytes(value)))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, enum.Enum):
        return to_wire_value(value.value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def is_blank(value: Any) -> bool:
    """True for values a form sends when a field was left empty."""
    return value is None or (isinstance(value, str) and value == "")
