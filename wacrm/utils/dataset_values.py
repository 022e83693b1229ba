"""
Typed storage for data set record values.

A column's ``data_type`` picks the slot of ``DataSetRecordValue`` a value is
stored in. ``prepare_record`` checks a whole record against the column
definitions and returns every problem it finds, like the workflow and
MetaFlow validators do.
"""
from __future__ import annotations

from datetime import datetime, UTC
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

# Longer strings go to the unbounded text slot
STRING_SLOT_LENGTH = 500
# numeric_value is NUMERIC(18, 4)
NUMERIC_LIMIT = Decimal(10) ** 14
_TRUE = frozenset({"true", "1", "yes", "y"})
_FALSE = frozenset({"false", "0", "no", "n"})


class DataSetValueError(ValueError):
    """Raised when a value cannot be stored in a column of the given type."""


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise DataSetValueError(f"'{value}' is not an ISO 8601 date") from None
    else:
        raise DataSetValueError("expected an ISO 8601 date string")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise DataSetValueError(f"'{value}' is not a boolean")


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise DataSetValueError("expected a number")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise DataSetValueError(f"'{value}' is not a number") from None
    if not number.is_finite():
        raise DataSetValueError(f"'{value}' is not a number")
    if abs(number) >= NUMERIC_LIMIT:
        raise DataSetValueError(f"'{value}' is out of range")
    return number


def coerce_value(data_type: str, value: Any, max_length: Optional[int] = None) -> Any:
    """Convert a raw JSON value to the Python type stored for ``data_type``.

    ``None`` and empty strings mean "no value" and return ``None``.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if data_type == "string":
        if isinstance(value, (dict, list)):
            raise DataSetValueError("expected a text value")
        text = value if isinstance(value, str) else str(value)
        if max_length is not None and len(text) > max_length:
            raise DataSetValueError(f"longer than {max_length} characters")
        return text
    if data_type == "int":
        number = _to_decimal(value)
        if number != number.to_integral_value():
            raise DataSetValueError(f"'{value}' is not a whole number")
        return int(number)
    if data_type == "decimal":
        return _to_decimal(value)
    if data_type == "datetime":
        return _to_datetime(value)
    if data_type == "boolean":
        return _to_bool(value)
    raise DataSetValueError(f"unsupported data type '{data_type}'")


def value_slots(data_type: str, value: Any) -> Dict[str, Any]:
    """Keyword arguments for ``DataSetRecordValue`` holding ``value``."""
    if data_type in ("int", "decimal"):
        return {"numeric_value": Decimal(value)}
    if data_type == "datetime":
        return {"date_value": value}
    if data_type == "boolean":
        return {"boolean_value": value}
    if len(value) > STRING_SLOT_LENGTH:
        return {"text_value": value}
    return {"string_value": value}


def read_value(data_type: str, stored) -> Any:
    """JSON-friendly value of a stored ``DataSetRecordValue`` row."""
    if data_type in ("int", "decimal"):
        if stored.numeric_value is None:
            return None
        number = Decimal(stored.numeric_value)
        return int(number) if data_type == "int" else float(number)
    if data_type == "datetime":
        return stored.date_value
    if data_type == "boolean":
        return stored.boolean_value
    return stored.string_value if stored.string_value is not None else stored.text_value


def primary_key_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


def prepare_record(columns: Iterable, values: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[str], List[str]]:
    """Validate ``values`` against column definitions.

    Returns ``(typed_values, primary_key_value, errors)``. Missing values
    fall back to the column's ``default_value``; required and primary key
    columns must end up with a value.
    """
    columns = list(columns)
    known = {c.column_name for c in columns}
    errors = [f"Unknown column '{name}'" for name in values if name not in known]
    typed: Dict[str, Any] = {}
    primary_key: Optional[str] = None
    for column in columns:
        raw = values.get(column.column_name)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raw = column.default_value
        try:
            value = coerce_value(column.data_type, raw, column.max_length)
        except DataSetValueError as exc:
            errors.append(f"{column.column_name}: {exc}")
            continue
        if value is None:
            if column.is_required or column.is_primary_key:
                errors.append(f"{column.column_name} is required")
            continue
        typed[column.column_name] = value
        if column.is_primary_key and primary_key is None:
            primary_key = primary_key_text(value)
            if len(primary_key) > 255:
                errors.append(f"{column.column_name}: primary key longer than 255 characters")
    return typed, primary_key, errors
