"""Conversion between typed values and the flat multi-column setting record.

A record keeps one column per storage type. Exactly one of them is filled,
the one named by ``storage_type``; every write goes through :func:`encode`,
which clears the other six in the same assignment.
"""

import json
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict

from scoped_settings.core.exceptions import (
    CorruptRecord,
    StorageTypeUndefined,
    TypeMismatch,
    UnsupportedValueType,
)
from scoped_settings.models.storage_type import StorageType

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

SLOT_COLUMNS: Dict[StorageType, str] = {
    StorageType.TEXT: "text_value",
    StorageType.BOOLEAN: "boolean_value",
    StorageType.INTEGER: "integer_value",
    StorageType.FLOAT: "float_value",
    StorageType.DATETIME: "datetime_value",
    StorageType.DATE: "date_value",
    StorageType.JSON: "json_value",
}

if set(SLOT_COLUMNS) != set(StorageType):
    raise RuntimeError("every storage type needs exactly one slot column")


def _is_text(value: Any) -> bool:
    return isinstance(value, str)


def _is_boolean(value: Any) -> bool:
    return isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_float(value: Any) -> bool:
    return isinstance(value, float)


def _is_datetime(value: Any) -> bool:
    return isinstance(value, datetime)


def _is_date(value: Any) -> bool:
    return isinstance(value, date) and not isinstance(value, datetime)


def _is_structured(value: Any) -> bool:
    if isinstance(value, Mapping):
        return True
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


# One predicate per type; no value can satisfy two of them.
_SHAPES: Dict[StorageType, Callable[[Any], bool]] = {
    StorageType.TEXT: _is_text,
    StorageType.BOOLEAN: _is_boolean,
    StorageType.INTEGER: _is_integer,
    StorageType.FLOAT: _is_float,
    StorageType.DATETIME: _is_datetime,
    StorageType.DATE: _is_date,
    StorageType.JSON: _is_structured,
}


def infer_type(value: Any) -> StorageType:
    """Classify a value into its natural storage type."""
    matches = [storage_type for storage_type, accepts in _SHAPES.items() if accepts(value)]
    if len(matches) != 1:
        raise UnsupportedValueType(
            f"Impossible to match a storage type for value of type {type(value).__name__}"
        )
    return matches[0]


def to_storage_type(storage_type: Any) -> StorageType:
    """Normalize a type tag given as an enum member or its string value."""
    if isinstance(storage_type, StorageType):
        return storage_type
    try:
        return StorageType(storage_type)
    except ValueError:
        raise StorageTypeUndefined(f"Unknown storage type: {storage_type!r}") from None


def _normalize_datetime(value: datetime) -> datetime:
    # Stored naive, in UTC, to the second.
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0)


def _validate_json(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError) as e:
        raise TypeMismatch(f"Value is not JSON serializable: {e}") from e
    return value


def _slot_value(storage_type: StorageType, value: Any) -> Any:
    """Check that a value is assignable to a storage type and return what goes in the slot."""
    if value is None:
        raise TypeMismatch(f"Cannot store None as {storage_type.value}")

    if storage_type is StorageType.JSON:
        return _validate_json(value)

    if not _SHAPES[storage_type](value):
        raise TypeMismatch(
            f"Value of type {type(value).__name__} cannot be stored as {storage_type.value}"
        )

    if storage_type is StorageType.INTEGER and not INT64_MIN <= value <= INT64_MAX:
        raise TypeMismatch(f"Integer {value} does not fit in 64 bits")
    if storage_type is StorageType.DATETIME:
        return _normalize_datetime(value)
    return value


def validate(storage_type: Any, value: Any) -> None:
    """Raise TypeMismatch unless ``value`` can be stored as ``storage_type``."""
    _slot_value(to_storage_type(storage_type), value)


def encode(record, storage_type: Any, value: Any) -> None:
    """Write ``value`` into the slot of ``storage_type`` and clear all others."""
    storage_type = to_storage_type(storage_type)
    slot_value = _slot_value(storage_type, value)

    record.storage_type = storage_type.value
    for slot_type, column in SLOT_COLUMNS.items():
        setattr(record, column, slot_value if slot_type is storage_type else None)


def decode(record) -> Any:
    """Read the active slot of a record."""
    if record.storage_type is None:
        raise StorageTypeUndefined("The storage type MUST be defined before reading the value")
    storage_type = to_storage_type(record.storage_type)

    value = None
    for slot_type, column in SLOT_COLUMNS.items():
        slot_value = getattr(record, column)
        if slot_type is storage_type:
            value = slot_value
        elif slot_value is not None:
            raise CorruptRecord(
                f"Setting {record.id} is typed {storage_type.value} but has {column} set"
            )

    if value is None:
        raise CorruptRecord(f"Setting {record.id} has no {storage_type.value} value")

    if storage_type is StorageType.DATETIME:
        return value.replace(tzinfo=timezone.utc)
    return value


def zero_value(storage_type: Any) -> Any:
    """Type-appropriate empty value, used when nothing is stored for a path."""
    if storage_type is None:
        return None
    return {
        StorageType.TEXT: "",
        StorageType.BOOLEAN: False,
        StorageType.INTEGER: 0,
        StorageType.FLOAT: 0.0,
    }.get(to_storage_type(storage_type))


_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


def _coerce_boolean(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if _is_integer(raw) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise TypeMismatch(f"Cannot read {raw!r} as boolean")


def _coerce_integer(raw: Any) -> int:
    if _is_integer(raw):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            pass
    raise TypeMismatch(f"Cannot read {raw!r} as integer")


def _coerce_float(raw: Any) -> float:
    if _is_float(raw) or _is_integer(raw):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError:
            pass
    raise TypeMismatch(f"Cannot read {raw!r} as float")


def _coerce_json(raw: Any) -> Any:
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError as e:
            raise TypeMismatch(f"Cannot read {raw!r} as JSON: {e}") from e
    return raw


def _coerce_datetime(raw: Any) -> datetime:
    if _is_datetime(raw):
        return raw
    if _is_date(raw):
        return datetime(raw.year, raw.month, raw.day, tzinfo=timezone.utc)
    if _is_integer(raw):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    if isinstance(raw, str):
        try:
            return datetime.fromisoformat(raw.strip())
        except ValueError:
            pass
    raise TypeMismatch(f"Cannot read {raw!r} as datetime")


def _coerce_date(raw: Any) -> date:
    if _is_date(raw):
        return raw
    if _is_datetime(raw):
        return raw.date()
    if _is_integer(raw):
        return datetime.fromtimestamp(raw, tz=timezone.utc).date()
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            try:
                return datetime.fromisoformat(text).date()
            except ValueError:
                pass
    raise TypeMismatch(f"Cannot read {raw!r} as date")


def _coerce_text(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    raise TypeMismatch(f"Cannot read {raw!r} as text")


_COERCERS: Dict[StorageType, Callable[[Any], Any]] = {
    StorageType.TEXT: _coerce_text,
    StorageType.BOOLEAN: _coerce_boolean,
    StorageType.INTEGER: _coerce_integer,
    StorageType.FLOAT: _coerce_float,
    StorageType.DATETIME: _coerce_datetime,
    StorageType.DATE: _coerce_date,
    StorageType.JSON: _coerce_json,
}


def coerce(storage_type: Any, raw: Any) -> Any:
    """
    Convert a loosely typed input (seed file, CLI argument) to ``storage_type``.

    The result is still validated by :func:`encode` when it is stored.
    """
    storage_type = to_storage_type(storage_type)
    if raw is None:
        raise TypeMismatch(f"Cannot store None as {storage_type.value}")
    value = _COERCERS[storage_type](raw)
    _slot_value(storage_type, value)
    return value
