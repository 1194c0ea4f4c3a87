"""Shared contracts: schema model, records and the error taxonomy.

This package is a LEAF MODULE with no outbound dependencies to core/engine.

Import patterns:
    from recordshape.contracts import Schema, Field, TypeTag, Record
"""

from recordshape.contracts.errors import (
    CoercionError,
    EnforcerError,
    ErrorBuilder,
    ErrorCode,
    ExceptionContext,
    FieldNotFoundError,
    IllegalStateError,
    IndexOutOfRangeError,
    InvalidSchemaError,
)
from recordshape.contracts.record import Record
from recordshape.contracts.schema import (
    DYNAMIC_COLUMN_POSITION,
    INCLUDE_ALL_FIELDS,
    NULLABLE,
    PATTERN,
    SOURCE_TYPE,
    DynamicSlot,
    Field,
    Schema,
    SourceType,
    TypeTag,
)

__all__ = [
    "DYNAMIC_COLUMN_POSITION",
    "INCLUDE_ALL_FIELDS",
    "NULLABLE",
    "PATTERN",
    "SOURCE_TYPE",
    "CoercionError",
    "DynamicSlot",
    "EnforcerError",
    "ErrorBuilder",
    "ErrorCode",
    "ExceptionContext",
    "Field",
    "FieldNotFoundError",
    "IllegalStateError",
    "IndexOutOfRangeError",
    "InvalidSchemaError",
    "Record",
    "Schema",
    "SourceType",
    "TypeTag",
]
