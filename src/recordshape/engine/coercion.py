"""Type coercion table: raw value + target field -> canonical value.

Canonical Python representations per declared type:

    int, long        int within signed 32-bit / 64-bit range (bool is never an integer)
    float, double    float
    decimal          decimal.Decimal
    string           str
    boolean          bool
    datetime         timezone-aware datetime (aware inputs pass through unchanged;
                     naive inputs are read in the default timezone; everything
                     converted is UTC)
    bytes            bytes
    any              whatever was supplied

Rules, in order:
1. numpy scalars and pandas timestamps are normalized to Python primitives;
   pd.NA / pd.NaT become None
2. None passes unless the field is declared nullable="false"
3. A value already in canonical form is returned unchanged
4. Lossless widening (int -> float/decimal, float -> decimal, bytearray -> bytes)
5. datetime fields: numeric epoch milliseconds become the exact UTC instant;
   text is parsed with the field's pattern
6. Text for numeric/boolean fields is parsed only when the field's source
   type is "string"
7. Anything else is a CoercionError - no guessing

All functions are pure and safe to call concurrently.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from recordshape.contracts.errors import CoercionError, InvalidSchemaError
from recordshape.contracts.schema import Field, SourceType, TypeTag
from recordshape.core.config import DEFAULT_SETTINGS, EnforcerSettings
from recordshape.engine.date_pattern import DateParseError, DatePatternError, compile_pattern

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Strict integer text: optional sign, no leading zeros, no whitespace
INTEGER_PATTERN = re.compile(r"^[+-]?(?:0|[1-9][0-9]*)$")

# Signed 32-bit and 64-bit bounds for the integer tags
_INT_RANGES: dict[TypeTag, tuple[int, int]] = {
    TypeTag.INT: (-(2**31), 2**31 - 1),
    TypeTag.LONG: (-(2**63), 2**63 - 1),
}

# Values of these types never need numpy/pandas normalization
_PLAIN_TYPES: frozenset[type] = frozenset(
    {int, float, bool, str, bytes, bytearray, Decimal, datetime, type(None)}
)

Coercer = Callable[[Any, Any, Field, EnforcerSettings], Any]


def normalize_raw_value(value: Any) -> Any:
    """Convert numpy/pandas scalars to Python primitives.

    Note:
        numpy and pandas are imported lazily so that plain Python values
        never pull them in.
    """
    if type(value) in _PLAIN_TYPES:
        return value

    import numpy as np
    import pandas as pd

    # Missing-value sentinels normalize to None
    if value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    # pd.Timestamp subclasses datetime - check it first
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return pd.Timestamp(value).tz_localize("UTC").to_pydatetime()
    if isinstance(value, np.str_):
        return str(value)
    if isinstance(value, np.bytes_):
        return bytes(value)
    return value


def _fail(field: Field, raw: Any, reason: str, **kwargs: Any) -> CoercionError:
    return CoercionError.for_value(field.name, raw, field.type_tag, reason=reason, **kwargs)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _text_source(field: Field) -> bool:
    return field.source_type == SourceType.STRING


def _ascii_text(value: str, raw: Any, field: Field) -> str:
    # float() and Decimal() also accept non-ASCII digits
    text = value.strip()
    if not text.isascii():
        raise _fail(field, raw, "numeric text must use ASCII digits")
    return text


def _in_range(number: int, raw: Any, field: Field) -> int:
    low, high = _INT_RANGES[field.type_tag]
    if not low <= number <= high:
        raise _fail(field, raw, f"integer outside {field.type_tag} range [{low}, {high}]")
    return number


def _to_int(value: Any, raw: Any, field: Field, settings: EnforcerSettings) -> int:
    if _is_integer(value):
        return _in_range(int(value), raw, field)
    if isinstance(value, str) and _text_source(field):
        text = value.strip()
        if INTEGER_PATTERN.match(text):
            return _in_range(int(text), raw, field)
        raise _fail(field, raw, "text is not an integer")
    raise _fail(field, raw, f"{type(raw).__name__} is not an integer")


def _to_float(value: Any, raw: Any, field: Field, settings: EnforcerSettings) -> float:
    if isinstance(value, float):
        return value
    if _is_integer(value) and settings.allow_numeric_widening:
        try:
            widened = float(value)
        except OverflowError as e:
            raise _fail(field, raw, "integer out of float range", cause=e) from e
        # Large ints lose precision as floats
        if int(widened) == value:
            return widened
        raise _fail(field, raw, "integer cannot be represented exactly as float")
    if isinstance(value, str) and _text_source(field):
        text = _ascii_text(value, raw, field)
        try:
            return float(text)
        except ValueError as e:
            raise _fail(field, raw, "text is not a number", cause=e) from e
    raise _fail(field, raw, f"{type(raw).__name__} is not a float")


def _to_decimal(value: Any, raw: Any, field: Field, settings: EnforcerSettings) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if (_is_integer(value) or isinstance(value, float)) and settings.allow_numeric_widening:
        # Decimal(float) is exact, so this never rounds
        return Decimal(value)
    if isinstance(value, str) and _text_source(field):
        text = _ascii_text(value, raw, field)
        try:
            return Decimal(text)
        except InvalidOperation as e:
            raise _fail(field, raw, "text is not a decimal", cause=e) from e
    raise _fail(field, raw, f"{type(raw).__name__} is not a decimal")


def _to_string(value: Any, raw: Any, field: Field, settings: EnforcerSettings) -> str:
    if isinstance(value, str):
        return value
    raise _fail(field, raw, f"{type(raw).__name__} is not a string")


def _to_bool(value: Any, raw: Any, field: Field, settings: EnforcerSettings) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and _text_source(field):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise _fail(field, raw, "text is not 'true' or 'false'")
    raise _fail(field, raw, f"{type(raw).__name__} is not a boolean")


def _to_bytes(value: Any, raw: Any, field: Field, settings: EnforcerSettings) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise _fail(field, raw, f"{type(raw).__name__} is not bytes")


def _from_epoch_millis(millis: int, raw: Any, field: Field) -> datetime:
    try:
        return _EPOCH + timedelta(milliseconds=millis)
    except OverflowError as e:
        raise _fail(field, raw, "epoch milliseconds out of range", cause=e) from e


def _to_datetime(value: Any, raw: Any, field: Field, settings: EnforcerSettings) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            # Naive values are wall-clock time in the default zone
            return value.replace(tzinfo=settings.tzinfo).astimezone(UTC)
        return value
    if _is_integer(value):
        return _from_epoch_millis(value, raw, field)
    if isinstance(value, float):
        if not value.is_integer():
            raise _fail(field, raw, "epoch milliseconds must be integral")
        return _from_epoch_millis(int(value), raw, field)
    if isinstance(value, str):
        pattern = field.pattern
        if pattern is None:
            raise _fail(field, raw, "no date pattern declared for text input")
        return parse_with_pattern(value, field, settings, raw=raw)
    raise _fail(field, raw, f"{type(raw).__name__} is not a datetime")


def parse_with_pattern(text: str, field: Field, settings: EnforcerSettings, *, raw: Any = None) -> datetime:
    """Parse text with the field's date pattern.

    Raises:
        InvalidSchemaError: If the field's pattern itself is malformed
        CoercionError: If the text does not match (position set)
    """
    pattern = field.pattern or ""
    try:
        compiled = compile_pattern(pattern)
    except DatePatternError as e:
        raise InvalidSchemaError.for_schema(field.name, e.reason, pattern) from e
    try:
        return compiled.parse(text, settings.tzinfo)
    except DateParseError as e:
        raise _fail(
            field,
            text if raw is None else raw,
            e.reason,
            position=e.position,
            cause=e,
        ) from e


_COERCERS: dict[TypeTag, Coercer] = {
    TypeTag.INT: _to_int,
    TypeTag.LONG: _to_int,
    TypeTag.FLOAT: _to_float,
    TypeTag.DOUBLE: _to_float,
    TypeTag.DECIMAL: _to_decimal,
    TypeTag.STRING: _to_string,
    TypeTag.BOOLEAN: _to_bool,
    TypeTag.DATETIME: _to_datetime,
    TypeTag.BYTES: _to_bytes,
}


def coerce(raw: Any, field: Field, *, settings: EnforcerSettings | None = None) -> Any:
    """Convert a raw value to the canonical value for field's declared type.

    Args:
        raw: Value supplied by the producer
        field: Target field (type tag and properties drive the conversion)
        settings: Behavior switches; defaults to DEFAULT_SETTINGS

    Returns:
        Canonical value for the field

    Raises:
        CoercionError: If the value cannot be converted
        InvalidSchemaError: If the field's pattern is malformed
    """
    settings = settings if settings is not None else DEFAULT_SETTINGS
    value = normalize_raw_value(raw)

    if value is None:
        if field.nullable:
            return None
        raise _fail(field, raw, "field is not nullable")

    if field.type_tag is TypeTag.ANY:
        return value
    if field.type_tag is TypeTag.DYNAMIC:
        raise _fail(field, raw, "dynamic slot marker cannot hold a value")
    return _COERCERS[field.type_tag](value, raw, field, settings)


def validate_field_pattern(field: Field) -> None:
    """Check a datetime field's pattern compiles.

    Raises:
        InvalidSchemaError: If the pattern is malformed
    """
    if field.type_tag is not TypeTag.DATETIME or field.pattern is None:
        return
    try:
        compile_pattern(field.pattern)
    except DatePatternError as e:
        raise InvalidSchemaError.for_schema(field.name, e.reason, field.pattern) from e
